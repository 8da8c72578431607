"""
Pytest fixtures for Idleverse tests.
"""

import asyncio
import random
import pytest

from ..config import EngineConfig
from ..content.generator import (
    ContentGenerator, ContentGenerationError, ProceduralContentGenerator, ThemeData,
)
from ..engine_core.action import BuildingData
from ..engine_core.clock import ManualClock
from ..engine_core.state import UniverseState, initial_state
from ..persistence.store import MemorySnapshotStore
from ..session.game_loop import GameLoop
from ..session.store import StateStore


class FailingGenerator(ContentGenerator):
    """Generator whose every call fails."""

    async def generate_building(self, theme, resource_name, tier, existing_buildings, total_resources_generated):
        raise ContentGenerationError("model offline")

    async def generate_theme(self):
        raise ContentGenerationError("model offline")

    async def generate_narrative_event(self, theme, resource_name, tier, total_resources_generated):
        raise ContentGenerationError("model offline")


class GatedGenerator(ContentGenerator):
    """
    Generator that holds every answer until release() is called.

    Lets a test interleave resets with a pending request.
    """

    def __init__(self):
        self.gate: asyncio.Event | None = None
        self.building_calls = 0
        self.theme_calls = 0

    def _gate(self) -> asyncio.Event:
        if self.gate is None:
            self.gate = asyncio.Event()
        return self.gate

    def release(self):
        self._gate().set()

    async def generate_building(self, theme, resource_name, tier, existing_buildings, total_resources_generated):
        self.building_calls += 1
        await self._gate().wait()
        return BuildingData(
            name=f"Gated Engine {self.building_calls}",
            description="Held until released.",
            base_cost=5000,
            base_production=150,
            flavor_text="Patience.",
        )

    async def generate_theme(self):
        self.theme_calls += 1
        await self._gate().wait()
        return ThemeData("Gated Realm", "Tokens")

    async def generate_narrative_event(self, theme, resource_name, tier, total_resources_generated):
        await self._gate().wait()
        return f"The {theme} holds its breath."


class FixedRandom(random.Random):
    """Random source that always returns the same value."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


def rich(state: UniverseState, resources: float) -> UniverseState:
    """Give a state resources that count as generated this run."""
    return state._copy_with(
        resources=resources,
        total_resources_generated=state.total_resources_generated + resources,
        lifetime_total_resources=state.lifetime_total_resources + resources,
    )


@pytest.fixture
def state() -> UniverseState:
    """A brand new universe."""
    return initial_state()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock) -> StateStore:
    """Store over a fresh universe, stamped by a manual clock."""
    return StateStore(initial_state(), clock=clock, journal_size=None)


@pytest.fixture
def generator() -> ProceduralContentGenerator:
    return ProceduralContentGenerator(seed=7)


@pytest.fixture
def config(tmp_path) -> EngineConfig:
    """Config with live cadences, a seed and a throwaway save path."""
    return EngineConfig(seed=1, save_path=tmp_path / "save.json")


@pytest.fixture
def snapshot_store() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def loop(store, generator, clock, config, snapshot_store) -> GameLoop:
    """A game loop wired to the manual clock; rolls never evolve or narrate."""
    return GameLoop(
        store=store,
        generator=generator,
        clock=clock,
        config=config,
        rng=FixedRandom(0.99),
        snapshot_store=snapshot_store,
    )
