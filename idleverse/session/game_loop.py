"""
Game Loop - The cooperative driver loop for one universe.

One iteration (step):
1. Tick: accrue production for the elapsed time
2. Automation: fire due helpers
3. Research: deliver or drop a finished research
4. Evolution: roll for a tier advance
5. Achievements: batch-unlock satisfied achievements
6. Narrative: deliver or request a story line
7. Autosave

All drivers share one StateStore and run on one event loop, so no
two transitions ever interleave. Player intents (click, buy, ...)
go through the same store.
"""

from __future__ import annotations
import asyncio
import logging
import random
from dataclasses import dataclass, field
from enum import Enum

from ..config import EngineConfig
from ..content.generator import ContentGenerator, ProceduralContentGenerator
from ..engine_core.action import Action, ActionResult, CheatKind
from ..engine_core.clock import Clock, ManualClock, SystemClock
from ..engine_core.state import UniverseState, initial_state
from ..persistence.codec import deserialize, serialize
from ..persistence.store import LocalSnapshotStore
from .prestige import PrestigeEngine
from .research import ResearchProtocol, ResearchStatus
from .schedulers import (
    AchievementEvaluator,
    AutomationScheduler,
    AutosaveScheduler,
    EvolutionRoller,
    NarrativeSampler,
    RollOutcome,
    TickDriver,
)
from .store import StateStore


logger = logging.getLogger(__name__)

CONSOLE_ACHIEVEMENT = "a_cheater"
CHEAT_ACHIEVEMENT = "a_dirty_hacker"


class LoopState(Enum):
    """State of the game loop."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class StepReport:
    """What one loop iteration did."""
    now_ms: float
    dt_ms: float = 0.0
    helpers_fired: list[str] = field(default_factory=list)
    research: ResearchStatus | None = None
    evolution: RollOutcome | None = None
    achievements: list[str] = field(default_factory=list)
    narrative: str | None = None
    saved: bool = False


class GameLoop:
    """
    The main loop driver.

    Usage:
        loop = GameLoop(clock=ManualClock(), config=EngineConfig(seed=1))

        loop.click()
        loop.buy("b_cursor")

        clock.advance(100)
        report = loop.step()

    step() must run inside an event loop: research and narrative
    requests are asyncio tasks collected on later steps.
    """

    def __init__(
        self,
        store: StateStore | None = None,
        generator: ContentGenerator | None = None,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        rng: random.Random | None = None,
        snapshot_store: LocalSnapshotStore | None = None,
    ):
        self.config = config or EngineConfig()
        self.clock = clock or SystemClock()
        self.store = store or StateStore(clock=self.clock)
        self.rng = rng or random.Random(self.config.seed)
        self.generator = generator or ProceduralContentGenerator(
            seed=self.config.seed,
            latency_ms=self.config.content_latency_ms,
        )
        self.snapshot_store = snapshot_store
        self.loop_state = LoopState.IDLE

        now = self.clock.now_ms()
        cfg = self.config
        self.ticker = TickDriver(self.store, self.clock)
        self.automation = AutomationScheduler(self.store)
        self.research = ResearchProtocol(self.store, self.generator)
        self.prestige_engine = PrestigeEngine(self.store, self.generator, self.research)
        self.evolution = EvolutionRoller(self.store, self.rng, cfg.evolution_interval_ms, now)
        self.achievements = AchievementEvaluator(self.store, cfg.achievement_interval_ms, now)
        self.narrative = NarrativeSampler(
            self.store,
            self.generator,
            self.rng,
            cfg.narrative_interval_ms,
            cfg.narrative_chance,
            now,
        )
        self.autosave = (
            AutosaveScheduler(self.store, snapshot_store, cfg.autosave_interval_ms, now)
            if snapshot_store is not None else None
        )
        logger.debug(
            "Loop for %s using %s content",
            self.store.state.galaxy_name,
            self.generator.get_name(),
        )

    @classmethod
    def restore(
        cls,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
        generator: ContentGenerator | None = None,
        autosave: bool = True,
    ) -> GameLoop:
        """
        Resume from the local snapshot at config.save_path.

        With autosave=False the snapshot is only read: the loop gets no
        snapshot store and never writes back.

        Raises:
            SnapshotCorruptionError: if the snapshot exists but is unreadable
        """
        config = config or EngineConfig()
        clock = clock or SystemClock()
        snapshot_store = LocalSnapshotStore(config.save_path)
        state = snapshot_store.load()
        if state is None:
            state = initial_state()
        else:
            logger.info("Resumed %s from %s", state.galaxy_name, snapshot_store.path)
        return cls(
            store=StateStore(state, clock=clock),
            generator=generator,
            clock=clock,
            config=config,
            snapshot_store=snapshot_store if autosave else None,
        )

    @property
    def state(self) -> UniverseState:
        return self.store.state

    # =========================================================================
    # Driving
    # =========================================================================

    def step(self, now_ms: float | None = None) -> StepReport:
        """Run every driver once, in order."""
        now = self.clock.now_ms() if now_ms is None else now_ms
        report = StepReport(now_ms=now)

        report.dt_ms = self.ticker.step(now)
        report.helpers_fired = self.automation.step(now)
        report.research = self.research.poll(now)
        report.evolution = self.evolution.step(now)
        report.achievements = self.achievements.step(now)
        report.narrative = self.narrative.step(now)
        if self.autosave is not None:
            report.saved = self.autosave.step(now)
        return report

    async def run(self, duration_s: float | None = None):
        """Step every tick_interval_ms until stopped (or duration_s elapsed)."""
        self.loop_state = LoopState.RUNNING
        start = self.clock.now_ms()
        interval = self.config.tick_interval_ms / 1000.0
        try:
            while self.loop_state == LoopState.RUNNING:
                self.step()
                if duration_s is not None and self.clock.now_ms() - start >= duration_s * 1000:
                    break
                await asyncio.sleep(interval)
        finally:
            self.loop_state = LoopState.STOPPED

    def stop(self):
        self.loop_state = LoopState.STOPPED

    async def simulate(self, seconds: float, step_ms: float | None = None) -> UniverseState:
        """
        Fast-forward an idle period on a ManualClock.

        Yields to the event loop between steps so content requests
        can complete.
        """
        if not isinstance(self.clock, ManualClock):
            raise TypeError("simulate() requires a ManualClock")
        step_ms = step_ms or self.config.tick_interval_ms
        if step_ms <= 0:
            raise ValueError("step_ms must be positive")

        remaining = seconds * 1000.0
        while remaining > 0:
            advance = min(step_ms, remaining)
            self.clock.advance(advance)
            remaining -= advance
            self.step()
            await asyncio.sleep(0)
        return self.store.state

    async def settle(self):
        """Wait for outstanding content requests to finish."""
        pending = [
            t for t in (self.research.task, self.narrative.task)
            if t is not None and not t.done()
        ]
        if pending:
            await asyncio.wait(pending)

    # =========================================================================
    # Player intents
    # =========================================================================

    def click(self) -> ActionResult:
        return self.store.dispatch(Action.manual_yield())

    def buy(self, building_id: str) -> ActionResult:
        return self.store.dispatch(Action.purchase_building(building_id))

    def unlock_helper(self, helper_id: str) -> ActionResult:
        return self.store.dispatch(Action.unlock_helper(helper_id))

    def toggle_helper(self, helper_id: str) -> ActionResult:
        return self.store.dispatch(Action.toggle_helper(helper_id))

    def rename(self, name: str) -> ActionResult:
        return self.store.dispatch(Action.rename_galaxy(name))

    def dismiss_achievement(self, achievement_id: str) -> ActionResult:
        return self.store.dispatch(Action.dismiss_achievement(achievement_id))

    def begin_research(self) -> bool:
        return self.research.begin(self.clock.now_ms())

    async def prestige(self) -> ActionResult | None:
        result = await self.prestige_engine.prestige()
        if result is not None:
            self.narrative.cancel()
        return result

    def hard_reset(self) -> ActionResult:
        """Wipe the universe and its local snapshot."""
        self.research.cancel()
        self.narrative.cancel()
        result = self.store.dispatch(Action.hard_reset())
        if self.snapshot_store is not None:
            self.snapshot_store.clear()
        return result

    def load_snapshot(self, state: UniverseState) -> ActionResult:
        self.research.cancel()
        self.narrative.cancel()
        return self.store.dispatch(Action.load_snapshot(state))

    def export_save(self) -> str:
        return serialize(self.store.state)

    def import_save(self, text: str) -> ActionResult:
        """
        Replace the universe with an exported save.

        Raises:
            SnapshotCorruptionError: if the save code is invalid
        """
        return self.load_snapshot(deserialize(text))

    def open_console(self) -> ActionResult:
        """Opening the developer console is itself an achievement."""
        return self.store.dispatch(Action.unlock_secret_achievement(CONSOLE_ACHIEVEMENT))

    def cheat(self, kind: CheatKind) -> ActionResult:
        result = self.store.dispatch(Action.cheat(kind))
        achievement = self.store.state.get_achievement(CHEAT_ACHIEVEMENT)
        if achievement is not None and not achievement.unlocked:
            self.store.dispatch(Action.unlock_secret_achievement(CHEAT_ACHIEVEMENT))
        return result
