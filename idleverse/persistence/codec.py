"""
Snapshot Codec - Converts UniverseState to and from text.

Two formats:
- Plain JSON (state_to_json / state_from_json) for the local auto-snapshot
- Export string (serialize / deserialize): JSON -> percent-encoding ->
  XOR with a fixed key -> base64. Reversible obfuscation, not security.

Loading is tolerant of older snapshots: helpers, achievements and the
tier fall back to defaults, and fixed-identity lists are merged by id
against the starter set instead of being taken positionally.
"""

from __future__ import annotations
import base64
import binascii
import json
import math
from dataclasses import replace
from typing import Any
from urllib.parse import quote, unquote

from ..engine_core.state import (
    Achievement, Building, Helper, LogEntry, LogType, Tier,
    UniverseState, INITIAL_ACHIEVEMENTS, INITIAL_HELPERS, initial_state,
)
from ..engine_core import economy


SNAPSHOT_VERSION = 2
OBFUSCATION_KEY = "COSMIC_ENTROPY_KEY"

REQUIRED_FIELDS = ("resources", "buildings")


class SnapshotCorruptionError(ValueError):
    """Raised when a snapshot cannot be decoded or fails validation."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


# =============================================================================
# Dict conversion
# =============================================================================

def state_to_dict(state: UniverseState) -> dict[str, Any]:
    """Convert state to a JSON-compatible dict."""
    return {
        "version": SNAPSHOT_VERSION,
        "galaxyName": state.galaxy_name,
        "resources": state.resources,
        "totalResourcesGenerated": state.total_resources_generated,
        "lifetimeTotalResources": state.lifetime_total_resources,
        "totalClicks": state.total_clicks,
        "clickPower": state.click_power,
        "currentTier": state.current_tier.value,
        "prestigeCurrency": state.prestige_currency,
        "prestigeMultiplier": state.prestige_multiplier,
        "buildings": [
            {
                "id": b.id,
                "name": b.name,
                "description": b.description,
                "baseCost": b.base_cost,
                "baseProduction": b.base_production,
                "count": b.count,
                "costMultiplier": b.cost_multiplier,
                "tier": b.tier.value,
                "flavorText": b.flavor_text,
            }
            for b in state.buildings
        ],
        "helpers": [
            {
                "id": h.id,
                "unlocked": h.unlocked,
                "active": h.active,
                "lastActionTime": h.last_action_time,
                "bonusMultiplier": h.bonus_multiplier,
            }
            for h in state.helpers
        ],
        "achievements": [
            {"id": a.id, "unlocked": a.unlocked}
            for a in state.achievements
        ],
        "achievementQueue": [a.id for a in state.achievement_queue],
        "logs": [
            {
                "id": e.id,
                "message": e.message,
                "timestamp": e.timestamp,
                "type": e.log_type.value,
            }
            for e in state.logs
        ],
        "theme": state.theme,
        "resourceName": state.resource_name,
        "generationCount": state.generation_count,
        "epoch": state.epoch,
        "clockMs": state.clock_ms,
        "logSeq": state.log_seq,
    }


def state_from_dict(data: Any) -> UniverseState:
    """
    Build state from a snapshot dict.

    Raises:
        SnapshotCorruptionError: if required fields are missing or malformed
    """
    if not isinstance(data, dict):
        raise SnapshotCorruptionError("Snapshot is not an object")

    missing = [f for f in REQUIRED_FIELDS if data.get(f) is None]
    if missing:
        raise SnapshotCorruptionError(
            "Invalid save structure",
            errors=[f"missing field: {f}" for f in missing],
        )

    defaults = initial_state()
    try:
        buildings = tuple(_building_from_dict(b) for b in data["buildings"])
        helpers = _merge_helpers(data.get("helpers"))
        achievements = _merge_achievements(data.get("achievements"))
        by_id = {a.id: a for a in achievements}
        queue = tuple(
            by_id[aid] for aid in data.get("achievementQueue", [])
            if isinstance(aid, str) and aid in by_id
        )
        logs = tuple(_log_from_dict(e) for e in data.get("logs", []))
        currency = _number(data.get("prestigeCurrency", defaults.prestige_currency))

        return UniverseState(
            galaxy_name=str(data.get("galaxyName", defaults.galaxy_name)),
            resources=max(0.0, _number(data["resources"])),
            total_resources_generated=_number(data.get("totalResourcesGenerated", 0.0)),
            lifetime_total_resources=_number(data.get("lifetimeTotalResources", 0.0)),
            total_clicks=int(data.get("totalClicks", 0)),
            click_power=_number(data.get("clickPower", defaults.click_power)),
            current_tier=_tier(data.get("currentTier")),
            prestige_currency=currency,
            prestige_multiplier=economy.prestige_multiplier(currency),
            buildings=buildings,
            helpers=helpers,
            achievements=achievements,
            achievement_queue=queue,
            logs=logs or defaults.logs,
            theme=str(data.get("theme", defaults.theme)),
            resource_name=str(data.get("resourceName", defaults.resource_name)),
            generation_count=int(data.get("generationCount", 0)),
            epoch=int(data.get("epoch", 0)),
            clock_ms=_number(data.get("clockMs", 0.0)),
            log_seq=int(data.get("logSeq", len(logs))),
        )
    except SnapshotCorruptionError:
        raise
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        raise SnapshotCorruptionError(f"Malformed snapshot: {e}") from e


def _number(value: Any) -> float:
    result = float(value)
    if not math.isfinite(result):
        raise ValueError(f"non-finite number: {value!r}")
    return result


def _tier(value: Any) -> Tier:
    try:
        return Tier(value)
    except ValueError:
        return Tier.QUANTUM


def _building_from_dict(data: dict[str, Any]) -> Building:
    if not isinstance(data, dict):
        raise ValueError(f"building entry is not an object: {data!r}")
    return Building(
        id=str(data["id"]),
        name=str(data["name"]),
        description=str(data.get("description", "")),
        base_cost=_number(data["baseCost"]),
        base_production=_number(data["baseProduction"]),
        count=max(0, int(data.get("count", 0))),
        cost_multiplier=_number(data.get("costMultiplier", 1.15)),
        tier=_tier(data.get("tier")),
        flavor_text=str(data.get("flavorText", "") or ""),
    )


def _merge_helpers(saved: Any) -> tuple[Helper, ...]:
    """Starter helpers with saved progress applied by id."""
    saved_by_id = {
        h["id"]: h for h in (saved or [])
        if isinstance(h, dict) and "id" in h
    }
    merged = []
    for helper in INITIAL_HELPERS:
        s = saved_by_id.get(helper.id)
        if s:
            helper = replace(
                helper,
                unlocked=bool(s.get("unlocked", helper.unlocked)),
                active=bool(s.get("active", helper.active)),
                last_action_time=_number(s.get("lastActionTime", 0.0)),
                bonus_multiplier=max(1.0, _number(s.get("bonusMultiplier", 1.0) or 1.0)),
            )
        merged.append(helper)
    return tuple(merged)


def _merge_achievements(saved: Any) -> tuple[Achievement, ...]:
    """Starter achievements with saved unlock flags applied by id."""
    unlocked_ids = {
        a["id"] for a in (saved or [])
        if isinstance(a, dict) and a.get("unlocked")
    }
    return tuple(
        replace(a, unlocked=True) if a.id in unlocked_ids else a
        for a in INITIAL_ACHIEVEMENTS
    )


def _log_from_dict(data: dict[str, Any]) -> LogEntry:
    if not isinstance(data, dict):
        raise ValueError(f"log entry is not an object: {data!r}")
    try:
        log_type = LogType(data.get("type", "info"))
    except ValueError:
        log_type = LogType.INFO
    return LogEntry(
        id=str(data.get("id", "")),
        message=str(data["message"]),
        timestamp=_number(data.get("timestamp", 0.0)),
        log_type=log_type,
    )


# =============================================================================
# Text formats
# =============================================================================

def state_to_json(state: UniverseState) -> str:
    return json.dumps(state_to_dict(state))


def state_from_json(text: str) -> UniverseState:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotCorruptionError(f"Snapshot is not valid JSON: {e}") from e
    return state_from_dict(data)


def _xor(text: str) -> str:
    key = OBFUSCATION_KEY
    return "".join(
        chr(ord(c) ^ ord(key[i % len(key)]))
        for i, c in enumerate(text)
    )


def serialize(state: UniverseState) -> str:
    """Encode state as an export string."""
    encoded = quote(state_to_json(state), safe="")
    return base64.b64encode(_xor(encoded).encode("latin-1")).decode("ascii")


def deserialize(text: str) -> UniverseState:
    """
    Decode an export string.

    Raises:
        SnapshotCorruptionError: if the string cannot be decoded or validated
    """
    try:
        raw = base64.b64decode(text.strip().encode("ascii"), validate=True)
        json_text = unquote(_xor(raw.decode("latin-1")), errors="strict")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise SnapshotCorruptionError("Save code is invalid or corrupt.") from e
    return state_from_json(json_text)
