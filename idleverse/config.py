"""
Engine configuration.

Defaults match the live game cadences. Every value can be overridden
from the environment with an IDLEVERSE_ prefix, e.g.
IDLEVERSE_TICK_INTERVAL_MS=50 or IDLEVERSE_SEED=42.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field, fields
from pathlib import Path


ENV_PREFIX = "IDLEVERSE_"


@dataclass
class EngineConfig:
    """Cadences and locations for a running universe."""
    tick_interval_ms: int = 100
    evolution_interval_ms: int = 5000
    achievement_interval_ms: int = 1500
    narrative_interval_ms: int = 30000
    narrative_chance: float = 0.3
    autosave_interval_ms: int = 5000

    save_path: Path = field(default_factory=lambda: Path.home() / ".idleverse" / "save.json")
    seed: int | None = None

    # Simulated delay of the content generator
    content_latency_ms: float = 0.0

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> EngineConfig:
        """Build config from IDLEVERSE_* environment variables."""
        env = os.environ if environ is None else environ
        config = cls()
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            setattr(config, f.name, _coerce(f.name, raw, getattr(config, f.name)))
        return config


def _coerce(name: str, raw: str, current):
    if name == "save_path":
        return Path(raw).expanduser()
    if name == "seed":
        return int(raw)
    if isinstance(current, bool):
        return raw.lower() in ("1", "true", "yes")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw
