"""
Schedulers - The periodic drivers around the state store.

Each driver holds only its timer (next due time and interval) and a
read-only view of the store between dispatches. None of them mutate
state directly; they dispatch the same actions a player could.

Drivers:
- TickDriver: wall-clock delta -> Accrue
- AutomationScheduler: one independent timer per helper
- EvolutionRoller: random tier advances and flavour logs
- AchievementEvaluator: periodic achievement scan
- NarrativeSampler: occasional story lines from the content generator
- AutosaveScheduler: periodic snapshot to the local store
"""

from __future__ import annotations
import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..engine_core.action import Action
from ..engine_core.clock import Clock
from ..engine_core.state import HelperType, LogType, Tier
from ..engine_core import economy

if TYPE_CHECKING:
    from .store import StateStore
    from ..content.generator import ContentGenerator
    from ..persistence.store import LocalSnapshotStore


logger = logging.getLogger(__name__)


# Chance per roll of moving from a tier to the next one
EVOLUTION_CHANCES: dict[Tier, float] = {
    Tier.QUANTUM: 0.05,
    Tier.MACROCOSM: 0.01,
    Tier.COSMIC: 0.001,
    Tier.MULTIVERSAL: 0.0001,
}
FLAVOR_FACTOR = 5
FLAVOR_MESSAGE = "Dimensional resonance detected... Stability fluctuated."


@dataclass
class IntervalTimer:
    """
    A periodic timer: next due timestamp plus interval.

    Missed periods are not replayed; firing re-arms one interval
    after the moment it fired.
    """
    interval_ms: float
    next_due_ms: float = 0.0

    @classmethod
    def starting_at(cls, now_ms: float, interval_ms: float) -> IntervalTimer:
        """Timer that first fires one interval after now_ms."""
        return cls(interval_ms=interval_ms, next_due_ms=now_ms + interval_ms)

    def due(self, now_ms: float) -> bool:
        return now_ms >= self.next_due_ms

    def fire(self, now_ms: float):
        self.next_due_ms = now_ms + self.interval_ms

    def reset(self, now_ms: float):
        self.next_due_ms = now_ms + self.interval_ms


class TickDriver:
    """Samples the clock and dispatches Accrue for the elapsed time."""

    def __init__(self, store: StateStore, clock: Clock):
        self.store = store
        self.clock = clock
        self.last_tick_ms = clock.now_ms()

    def step(self, now_ms: float | None = None) -> float:
        """Accrue since the previous step. Returns the delta in ms."""
        now = self.clock.now_ms() if now_ms is None else now_ms
        dt = now - self.last_tick_ms
        if dt > 0:
            self.store.dispatch(Action.accrue(dt))
            self.last_tick_ms = now
            return dt
        return 0.0


class AutomationScheduler:
    """
    Fires each unlocked, active helper on its own interval.

    A helper is due when now - last_action_time >= interval_ms. Every
    attempt is stamped, successful or not, so an unaffordable purchase
    waits a full interval before retrying.
    """

    def __init__(self, store: StateStore):
        self.store = store

    def step(self, now_ms: float) -> list[str]:
        """Fire due helpers. Returns the ids of helpers that fired."""
        fired = []
        for helper in self.store.state.helpers:
            if not helper.unlocked or not helper.active:
                continue
            elapsed = now_ms - helper.last_action_time
            # Negative elapsed means the clock moved backwards; treat as due
            if 0 <= elapsed < helper.interval_ms:
                continue

            self._fire(helper.id, helper.helper_type, helper.bonus_multiplier)
            self.store.dispatch(Action.stamp_helper(helper.id, now_ms))
            fired.append(helper.id)
        return fired

    def _fire(self, helper_id: str, helper_type: HelperType, bonus: float):
        if helper_type == HelperType.CLICK:
            self.store.dispatch(Action.manual_yield(bonus))
        elif helper_type == HelperType.BUY:
            target = economy.cheapest_affordable_building(self.store.state)
            if target is not None:
                self.store.dispatch(Action.purchase_building(target.id))
        elif helper_type == HelperType.RESEARCH:
            # Placeholder capability: automatic research is not defined yet
            pass


class RollOutcome(Enum):
    NOTHING = "nothing"
    EVOLVED = "evolved"
    FLAVOR = "flavor"


class EvolutionRoller:
    """
    Rolls for a tier advance on a fixed cadence.

    Tiers move forward one step at a time; the terminal tier rolls nothing.
    """

    def __init__(
        self,
        store: StateStore,
        rng: random.Random,
        interval_ms: float = 5000,
        start_ms: float = 0.0,
    ):
        self.store = store
        self.rng = rng
        self.timer = IntervalTimer.starting_at(start_ms, interval_ms)

    def step(self, now_ms: float) -> RollOutcome | None:
        """Roll if due. Returns None when the timer was not due."""
        if not self.timer.due(now_ms):
            return None
        self.timer.fire(now_ms)
        return self.roll()

    def roll(self) -> RollOutcome:
        tier = self.store.state.current_tier
        next_tier = tier.next_tier
        if next_tier is None:
            return RollOutcome.NOTHING

        chance = EVOLUTION_CHANCES[tier]
        r = self.rng.random()
        if r < chance:
            self.store.dispatch(Action.advance_tier(next_tier))
            return RollOutcome.EVOLVED
        if r < chance * FLAVOR_FACTOR:
            self.store.dispatch(Action.append_log(FLAVOR_MESSAGE, LogType.INFO))
            return RollOutcome.FLAVOR
        return RollOutcome.NOTHING


class AchievementEvaluator:
    """Dispatches an achievement scan on a fixed cadence."""

    def __init__(self, store: StateStore, interval_ms: float = 1500, start_ms: float = 0.0):
        self.store = store
        self.timer = IntervalTimer.starting_at(start_ms, interval_ms)

    def step(self, now_ms: float) -> list[str]:
        """Scan if due. Returns descriptions of newly unlocked achievements."""
        if not self.timer.due(now_ms):
            return []
        self.timer.fire(now_ms)
        result = self.store.dispatch(Action.evaluate_achievements())
        return result.state_changes


class NarrativeSampler:
    """
    Occasionally asks the content generator for a story line.

    The request runs as a task; its result is dispatched on a later
    step, and dropped if the universe was reset in between.
    """

    def __init__(
        self,
        store: StateStore,
        generator: ContentGenerator,
        rng: random.Random,
        interval_ms: float = 30000,
        chance: float = 0.3,
        start_ms: float = 0.0,
    ):
        self.store = store
        self.generator = generator
        self.rng = rng
        self.chance = chance
        self.timer = IntervalTimer.starting_at(start_ms, interval_ms)
        self._pending: asyncio.Task | None = None
        self._token: int | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    @property
    def task(self) -> asyncio.Task | None:
        return self._pending

    def step(self, now_ms: float) -> str | None:
        """Deliver a finished story line and maybe request the next one."""
        delivered = self._collect()

        if self.timer.due(now_ms):
            self.timer.fire(now_ms)
            if self._pending is None and self.rng.random() < self.chance:
                state = self.store.state
                self._token = state.epoch
                self._pending = asyncio.get_running_loop().create_task(
                    self.generator.generate_narrative_event(
                        state.theme,
                        state.resource_name,
                        state.current_tier,
                        state.total_resources_generated,
                    )
                )
        return delivered

    def cancel(self):
        task = self._pending
        if task is not None:
            if not task.done():
                task.cancel()
            elif not task.cancelled():
                task.exception()
        self._pending = None
        self._token = None

    def _collect(self) -> str | None:
        task = self._pending
        if task is None or not task.done():
            return None
        self._pending = None

        if task.cancelled():
            return None
        exc = task.exception()
        if exc is not None:
            logger.warning("Narrative generation failed: %s", exc)
            return None
        if self._token != self.store.state.epoch:
            return None

        message = task.result()
        if message:
            self.store.dispatch(Action.append_log(message, LogType.STORY))
        return message


class AutosaveScheduler:
    """
    Saves the current state to the snapshot store on a fixed cadence.

    The first due save always writes. After that a save is skipped
    until the store commits another action.
    """

    def __init__(
        self,
        store: StateStore,
        snapshot_store: LocalSnapshotStore,
        interval_ms: float = 5000,
        start_ms: float = 0.0,
    ):
        self.store = store
        self.snapshot_store = snapshot_store
        self.timer = IntervalTimer.starting_at(start_ms, interval_ms)
        self.dirty = True
        store.subscribe(self._on_change)

    def _on_change(self, state, action, result):
        if result.success:
            self.dirty = True

    def step(self, now_ms: float) -> bool:
        """Save if due and changed. Returns True if a save was written."""
        if not self.timer.due(now_ms):
            return False
        self.timer.fire(now_ms)
        if not self.dirty:
            return False
        saved = self.snapshot_store.save(self.store.state)
        if saved:
            self.dirty = False
        return saved
