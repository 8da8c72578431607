"""
Universe State - The canonical snapshot of one simulated universe.

Design principles:
- Immutable: every record is a frozen dataclass, sequences are tuples
- All mutations return new state (via _copy_with)
- Serializable: the persistence layer round-trips it through plain dicts
- Owned by the reducer: nothing else builds a modified copy
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum


LOG_CAPACITY = 50


class Tier(Enum):
    """Evolutionary stages of the universe, in order."""
    QUANTUM = "Quantum"
    MACROCOSM = "Macrocosm"
    COSMIC = "Cosmic"
    MULTIVERSAL = "Multiversal"
    OMNIPOTENT = "Omnipotent"

    @property
    def rank(self) -> int:
        return TIER_ORDER.index(self)

    @property
    def next_tier(self) -> Tier | None:
        """The following tier, or None at the terminal tier."""
        idx = self.rank + 1
        return TIER_ORDER[idx] if idx < len(TIER_ORDER) else None


TIER_ORDER: tuple[Tier, ...] = (
    Tier.QUANTUM,
    Tier.MACROCOSM,
    Tier.COSMIC,
    Tier.MULTIVERSAL,
    Tier.OMNIPOTENT,
)


class HelperType(Enum):
    """What an automation helper does when it fires."""
    CLICK = "CLICK"
    BUY = "BUY"
    RESEARCH = "RESEARCH"


class ConditionType(Enum):
    """Achievement condition kinds."""
    RESOURCE_TOTAL = "RESOURCE_TOTAL"
    CLICK_COUNT = "CLICK_COUNT"
    BUILDING_COUNT = "BUILDING_COUNT"
    RESEARCH_COUNT = "RESEARCH_COUNT"
    PRESTIGE = "PRESTIGE"
    SPECIAL = "SPECIAL"


class LogType(Enum):
    INFO = "info"
    UNLOCK = "unlock"
    STORY = "story"
    PRESTIGE = "prestige"
    ACHIEVEMENT = "achievement"
    CHEAT = "cheat"


@dataclass(frozen=True)
class Building:
    """
    A production building.

    Starter buildings exist from the beginning of every run;
    generated ones are appended by completed research.
    """
    id: str
    name: str
    description: str
    base_cost: float
    base_production: float
    count: int = 0
    cost_multiplier: float = 1.15
    tier: Tier = Tier.QUANTUM
    flavor_text: str = ""
    just_unlocked: bool = False  # Transient, cleared on purchase and on load


@dataclass(frozen=True)
class Helper:
    """An automation agent with its own firing interval."""
    id: str
    name: str
    description: str
    helper_type: HelperType
    base_cost: float
    interval_ms: int
    unlocked: bool = False
    active: bool = False
    last_action_time: float = 0.0
    bonus_multiplier: float = 1.0


@dataclass(frozen=True)
class Achievement:
    """A one-way milestone flag."""
    id: str
    name: str
    description: str
    condition_type: ConditionType
    threshold: float
    unlocked: bool = False
    hidden: bool = False
    icon: str = ""
    flavor_text: str = ""


@dataclass(frozen=True)
class LogEntry:
    id: str
    message: str
    timestamp: float
    log_type: LogType = LogType.INFO


@dataclass(frozen=True)
class UniverseState:
    """
    Complete universe state at a point in time.

    This is the canonical state that the engine operates on.
    All state changes go through the reducer.

    Bookkeeping fields that are not part of the game itself:
    - epoch: generation counter, advanced by every reset-class action so
      that asynchronous results requested against an older state are dropped
    - clock_ms: cumulative simulated time accrued through Accrue actions
    - log_seq: sequence used to derive deterministic log entry ids
    """
    galaxy_name: str = "Unknown Sector"
    resources: float = 0.0
    total_resources_generated: float = 0.0  # Current run
    lifetime_total_resources: float = 0.0  # All runs
    total_clicks: int = 0
    click_power: float = 1.0

    current_tier: Tier = Tier.QUANTUM
    prestige_currency: float = 0.0
    prestige_multiplier: float = 1.0

    buildings: tuple[Building, ...] = ()
    helpers: tuple[Helper, ...] = ()
    achievements: tuple[Achievement, ...] = ()
    achievement_queue: tuple[Achievement, ...] = ()
    logs: tuple[LogEntry, ...] = ()

    theme: str = "Quantum Genesis"
    resource_name: str = "Entropy"
    generation_count: int = 0

    epoch: int = 0
    clock_ms: float = 0.0
    log_seq: int = 0

    def get_building(self, building_id: str) -> Building | None:
        """Get building by ID."""
        for b in self.buildings:
            if b.id == building_id:
                return b
        return None

    def get_helper(self, helper_id: str) -> Helper | None:
        """Get helper by ID."""
        for h in self.helpers:
            if h.id == helper_id:
                return h
        return None

    def get_achievement(self, achievement_id: str) -> Achievement | None:
        for a in self.achievements:
            if a.id == achievement_id:
                return a
        return None

    @property
    def total_building_count(self) -> int:
        return sum(b.count for b in self.buildings)

    def with_building(self, building: Building) -> UniverseState:
        """Return new state with updated building."""
        new_buildings = tuple(
            building if b.id == building.id else b
            for b in self.buildings
        )
        return self._copy_with(buildings=new_buildings)

    def with_helper(self, helper: Helper) -> UniverseState:
        """Return new state with updated helper."""
        new_helpers = tuple(
            helper if h.id == helper.id else h
            for h in self.helpers
        )
        return self._copy_with(helpers=new_helpers)

    def with_log(self, message: str, log_type: LogType, timestamp: float) -> UniverseState:
        """Return new state with a log entry appended, keeping the newest 50."""
        return self.with_logs([(message, log_type)], timestamp)

    def with_logs(
        self,
        messages: list[tuple[str, LogType]],
        timestamp: float,
    ) -> UniverseState:
        seq = self.log_seq
        entries = list(self.logs)
        for message, log_type in messages:
            seq += 1
            entries.append(LogEntry(
                id=f"log_{seq}",
                message=message,
                timestamp=timestamp,
                log_type=log_type,
            ))
        return self._copy_with(
            logs=tuple(entries[-LOG_CAPACITY:]),
            log_seq=seq,
        )

    def _copy_with(self, **kwargs) -> UniverseState:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)


# =============================================================================
# Starter defaults
# =============================================================================

INITIAL_BUILDINGS: tuple[Building, ...] = (
    Building(
        id="b_cursor",
        name="Quantum Fluctuator",
        description="Generates small ripples in spacetime.",
        base_cost=15,
        base_production=0.5,
        cost_multiplier=1.15,
        tier=Tier.QUANTUM,
        flavor_text="It just wiggles a bit.",
    ),
    Building(
        id="b_drone",
        name="Matter Weaver",
        description="Knits basic particles together.",
        base_cost=100,
        base_production=4,
        cost_multiplier=1.15,
        tier=Tier.QUANTUM,
        flavor_text="Clickity clack, matter is back.",
    ),
)

INITIAL_HELPERS: tuple[Helper, ...] = (
    Helper(
        id="h_clicker",
        name="Nanobot Swarm",
        description="Auto-clicks once every second.",
        helper_type=HelperType.CLICK,
        base_cost=500,
        interval_ms=1000,
    ),
    Helper(
        id="h_builder",
        name="Auto-Fabricator",
        description="Buys the cheapest building every 5 seconds.",
        helper_type=HelperType.BUY,
        base_cost=25000,
        interval_ms=5000,
    ),
    Helper(
        id="h_researcher",
        name="AI Core",
        description="Auto-researches new tech when affordable.",
        helper_type=HelperType.RESEARCH,
        base_cost=100000,
        interval_ms=10000,
    ),
)

INITIAL_ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement("a_start", "The First Ripple", "Generate 100 total resources.",
                ConditionType.RESOURCE_TOTAL, 100, icon="Zap",
                flavor_text="Something out of nothing."),
    Achievement("a_clicker", "Manual Override", "Click the core 100 times.",
                ConditionType.CLICK_COUNT, 100, icon="MousePointer",
                flavor_text="Your finger is the god of this universe."),
    Achievement("a_builder", "Architect", "Own 25 buildings total.",
                ConditionType.BUILDING_COUNT, 25, icon="Hammer",
                flavor_text="A sturdy foundation."),
    Achievement("a_industrial", "Industrial Revolution", "Own 100 buildings total.",
                ConditionType.BUILDING_COUNT, 100, icon="Factory",
                flavor_text="Efficiency is key."),
    Achievement("a_rich", "Millionaire", "Generate 1,000,000 total resources.",
                ConditionType.RESOURCE_TOTAL, 1_000_000, icon="Coins",
                flavor_text="Too big to fail."),
    Achievement("a_research", "Pioneer", "Research 5 new technologies.",
                ConditionType.RESEARCH_COUNT, 5, icon="Microscope",
                flavor_text="Knowledge is power."),
    Achievement("a_clicker_master", "Carpal God", "Click the core 1,000 times.",
                ConditionType.CLICK_COUNT, 1000, icon="HandMetal",
                flavor_text="Do you ever rest?"),
    Achievement("a_prestige", "Transcendent", "Perform a Prestige reset once.",
                ConditionType.PRESTIGE, 1, icon="Infinity",
                flavor_text="The end is only the beginning."),
    Achievement("a_clicker_5k", "Finger Breaker", "Click the core 5,000 times.",
                ConditionType.CLICK_COUNT, 5000, icon="Activity",
                flavor_text="Hardware warranty voided."),
    Achievement("a_research_10", "Mad Scientist", "Research 10 new technologies.",
                ConditionType.RESEARCH_COUNT, 10, icon="Brain",
                flavor_text="They called me crazy!"),
    Achievement("a_buildings_200", "City Planet", "Own 200 buildings total.",
                ConditionType.BUILDING_COUNT, 200, icon="Globe",
                flavor_text="Running out of parking space."),
    Achievement("a_buildings_500", "Dyson Swarm", "Own 500 buildings total.",
                ConditionType.BUILDING_COUNT, 500, icon="Rocket",
                flavor_text="Blocking out the sun."),
    Achievement("a_rich_1b", "Galactic GDP", "Generate 1,000,000,000 total resources.",
                ConditionType.RESOURCE_TOTAL, 1_000_000_000, icon="Coins",
                flavor_text="Money prints money."),
    Achievement("a_prestige_10", "Star Child", "Accumulate 10 Cosmic Shards.",
                ConditionType.PRESTIGE, 10, icon="Gem",
                flavor_text="Full of stars."),
    Achievement("a_research_25", "Omniscience", "Research 25 new technologies.",
                ConditionType.RESEARCH_COUNT, 25, icon="Brain",
                flavor_text="I see the code of the matrix."),
    Achievement("a_rich_1t", "Type III Civilization", "Generate 1 Trillion total resources.",
                ConditionType.RESOURCE_TOTAL, 1_000_000_000_000, icon="Crown",
                flavor_text="Energy is meaningless now."),
    # Secret
    Achievement("a_cheater", "The Architect's Backdoor",
                "You found the hidden developer console.",
                ConditionType.SPECIAL, 1, hidden=True, icon="Terminal",
                flavor_text="With great power comes zero responsibility."),
    Achievement("a_dirty_hacker", "Dirty Hacker", "You actually used a cheat command.",
                ConditionType.SPECIAL, 1, hidden=True, icon="Skull",
                flavor_text="Achievements earned this way taste like ash."),
)

GENESIS_MESSAGE = "The universe begins with a silent hum."


def initial_state(epoch: int = 0) -> UniverseState:
    """Build the starter universe."""
    return UniverseState(
        buildings=INITIAL_BUILDINGS,
        helpers=INITIAL_HELPERS,
        achievements=INITIAL_ACHIEVEMENTS,
        logs=(LogEntry(id="init", message=GENESIS_MESSAGE, timestamp=0.0, log_type=LogType.STORY),),
        epoch=epoch,
    )
