"""
Content Generator - Interface for naming and narrative generation.

A ContentGenerator produces the flavour the engine cannot derive:
- The next research building (name, description, price, output)
- A fresh theme and resource name after prestige
- Short narrative events for the log

All methods are coroutines. They may be slow and they may fail;
callers turn failures into log entries rather than crashes.
"""

from __future__ import annotations
import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from ..engine_core.action import BuildingData
from ..engine_core.state import Building, Tier


class ContentGenerationError(Exception):
    """Raised when a generator cannot produce content."""


@dataclass(frozen=True)
class ThemeData:
    """Naming for a new run."""
    theme: str
    resource_name: str


class ContentGenerator(ABC):
    """
    Abstract base class for content generators.

    Implementations can range from seeded word lists
    to remote text-generation services.
    """

    @abstractmethod
    async def generate_building(
        self,
        theme: str,
        resource_name: str,
        tier: Tier,
        existing_buildings: Sequence[Building],
        total_resources_generated: float,
    ) -> BuildingData:
        """
        Invent the next production building.

        Raises:
            ContentGenerationError: if no building could be produced
        """
        pass

    @abstractmethod
    async def generate_theme(self) -> ThemeData:
        """Pick the theme and resource name for the next run."""
        pass

    @abstractmethod
    async def generate_narrative_event(
        self,
        theme: str,
        resource_name: str,
        tier: Tier,
        total_resources_generated: float,
    ) -> str:
        """One line of story for the log."""
        pass

    def get_name(self) -> str:
        """Get the generator's name/identifier."""
        return self.__class__.__name__


# =============================================================================
# Procedural generator
# =============================================================================

_PREFIXES = {
    Tier.QUANTUM: ["Quark", "Boson", "Lepton", "Phase", "Spin", "Planck"],
    Tier.MACROCOSM: ["Tectonic", "Orbital", "Magma", "Tidal", "Biome", "Crystal"],
    Tier.COSMIC: ["Stellar", "Nebula", "Pulsar", "Quasar", "Galactic", "Dyson"],
    Tier.MULTIVERSAL: ["Brane", "Parallel", "Bulk", "Mirror", "Shard", "Rift"],
    Tier.OMNIPOTENT: ["Axiom", "Genesis", "Eternal", "Omega", "Prime", "Absolute"],
}

_NOUNS = [
    "Foundry", "Loom", "Engine", "Lattice", "Reactor", "Array",
    "Condenser", "Harvester", "Spire", "Forge", "Siphon", "Cradle",
]

_FLAVOR = [
    "Nobody remembers building it.",
    "Warranty void in this dimension.",
    "Hums in a key that does not exist.",
    "Occasionally files complaints with physics.",
    "Runs on pure optimism.",
    "Certified mostly stable.",
]

_THEMES = [
    ThemeData("Neon Abyss", "Lumen"),
    ThemeData("Clockwork Nebula", "Cogs"),
    ThemeData("Crystal Dominion", "Shards of Light"),
    ThemeData("Silent Bloom", "Pollen"),
    ThemeData("Iron Tide", "Ferrite"),
    ThemeData("Dreaming Void", "Whispers"),
    ThemeData("Solar Choir", "Harmonics"),
    ThemeData("Frozen Horizon", "Rime"),
]

_EVENTS = [
    "A distant {resource} storm briefly outshines the {theme}.",
    "Scouts report a {tier} anomaly shaped like a question mark.",
    "The {theme} hums louder; {resource} reserves ripple in response.",
    "An ancient signal repeats the number {amount}. Nobody knows why.",
    "Something in the {tier} layer blinked first.",
    "Philosophers debate whether {resource} can dream.",
]


@dataclass
class ProceduralContentGenerator(ContentGenerator):
    """
    Offline generator built from seeded word lists.

    Deterministic for a given seed and call sequence. latency_ms
    simulates a slow remote service.
    """
    seed: int | None = None
    latency_ms: float = 0.0

    def __post_init__(self):
        self.rng = random.Random(self.seed)

    async def _wait(self):
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000.0)
        else:
            await asyncio.sleep(0)

    async def generate_building(
        self,
        theme: str,
        resource_name: str,
        tier: Tier,
        existing_buildings: Sequence[Building],
        total_resources_generated: float,
    ) -> BuildingData:
        await self._wait()

        taken = {b.name for b in existing_buildings}
        name = None
        for _ in range(20):
            candidate = f"{self.rng.choice(_PREFIXES[tier])} {self.rng.choice(_NOUNS)}"
            if candidate not in taken:
                name = candidate
                break
        if name is None:
            name = f"{self.rng.choice(_PREFIXES[tier])} {self.rng.choice(_NOUNS)} Mk {len(existing_buildings)}"

        top_cost = max((b.base_cost for b in existing_buildings), default=100.0)
        base_cost = round(top_cost * self.rng.uniform(6.0, 10.0))
        base_production = round(base_cost / self.rng.uniform(25.0, 40.0), 2)

        return BuildingData(
            name=name,
            description=f"Converts {theme} background noise into {resource_name}.",
            base_cost=base_cost,
            base_production=base_production,
            flavor_text=self.rng.choice(_FLAVOR),
        )

    async def generate_theme(self) -> ThemeData:
        await self._wait()
        return self.rng.choice(_THEMES)

    async def generate_narrative_event(
        self,
        theme: str,
        resource_name: str,
        tier: Tier,
        total_resources_generated: float,
    ) -> str:
        await self._wait()
        template = self.rng.choice(_EVENTS)
        return template.format(
            theme=theme,
            resource=resource_name,
            tier=tier.value,
            amount=int(total_resources_generated),
        )
