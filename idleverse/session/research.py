"""
Research Protocol - Timed generation of new production buildings.

    IDLE -> ACTIVE(start, duration) -> COMPLETED | FAILED -> IDLE

Starting research charges the cost immediately and issues one request
to the content generator. The request is tagged with the state's epoch
at that moment (the generation token). The result is only applied once
the duration has elapsed and only if no reset happened in between.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..engine_core.action import Action
from ..engine_core.state import LogType
from ..engine_core import economy

if TYPE_CHECKING:
    from .store import StateStore
    from ..content.generator import ContentGenerator


logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Research Failed: Data corruption."


class ResearchStatus(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ResearchJob:
    """One research in flight."""
    token: int
    start_ms: float
    duration_ms: float
    cost: float
    task: asyncio.Task


class ResearchProtocol:
    """
    Drives research for one universe.

    Usage (inside a running event loop):
        research = ResearchProtocol(store, generator)
        if research.can_begin():
            research.begin(clock.now_ms())
        ...
        research.poll(clock.now_ms())   # every tick
    """

    def __init__(self, store: StateStore, generator: ContentGenerator):
        self.store = store
        self.generator = generator
        self.job: ResearchJob | None = None

    @property
    def active(self) -> bool:
        return self.job is not None

    @property
    def status(self) -> ResearchStatus:
        return ResearchStatus.ACTIVE if self.job else ResearchStatus.IDLE

    @property
    def task(self) -> asyncio.Task | None:
        return self.job.task if self.job else None

    def cost(self) -> float:
        return economy.research_cost(economy.researched_count(self.store.state))

    def duration_ms(self) -> int:
        return economy.research_duration(economy.researched_count(self.store.state))

    def can_begin(self) -> bool:
        return self.job is None and self.store.state.resources >= self.cost()

    def begin(self, now_ms: float) -> bool:
        """
        Start research. Must be called from inside a running event loop.

        Returns False (and changes nothing) when research is already
        active or unaffordable.
        """
        if self.job is not None:
            return False

        loop = asyncio.get_running_loop()
        state = self.store.state
        count = economy.researched_count(state)
        cost = economy.research_cost(count)

        result = self.store.dispatch(Action.begin_research(cost))
        if not result.success:
            return False

        state = self.store.state
        task = loop.create_task(
            self.generator.generate_building(
                state.theme,
                state.resource_name,
                state.current_tier,
                state.buildings,
                state.total_resources_generated,
            )
        )
        self.job = ResearchJob(
            token=state.epoch,
            start_ms=now_ms,
            duration_ms=economy.research_duration(count),
            cost=cost,
            task=task,
        )
        logger.info("Research started: cost %g, %d ms", cost, self.job.duration_ms)
        return True

    def poll(self, now_ms: float) -> ResearchStatus | None:
        """
        Advance the protocol. Returns None when no research is active.

        ACTIVE means still waiting, either for the timer or for the
        generator; reception is deferred to a later poll.
        """
        job = self.job
        if job is None:
            return None

        if job.token != self.store.state.epoch:
            logger.info("Research from epoch %d dropped after reset", job.token)
            self.cancel()
            return ResearchStatus.CANCELLED

        if now_ms - job.start_ms < job.duration_ms or not job.task.done():
            return ResearchStatus.ACTIVE

        self.job = None
        if job.task.cancelled():
            exc: BaseException | None = asyncio.CancelledError()
        else:
            exc = job.task.exception()

        if exc is not None:
            logger.warning("Research failed", exc_info=exc)
            self.store.dispatch(Action.append_log(FAILURE_MESSAGE, LogType.INFO))
            return ResearchStatus.FAILED

        result = self.store.dispatch(
            Action.complete_research(job.task.result(), 0.0, epoch=job.token)
        )
        return ResearchStatus.COMPLETED if result.success else ResearchStatus.CANCELLED

    def cancel(self):
        """Forget the research in flight; a late result is discarded."""
        job = self.job
        self.job = None
        if job is None:
            return
        if not job.task.done():
            job.task.cancel()
        elif not job.task.cancelled():
            # Mark a stored exception as retrieved
            job.task.exception()

    def progress(self, now_ms: float) -> float:
        """Fraction of the research duration elapsed, 0..1."""
        if self.job is None:
            return 0.0
        if self.job.duration_ms <= 0:
            return 1.0
        return min(1.0, max(0.0, (now_ms - self.job.start_ms) / self.job.duration_ms))

    def remaining_ms(self, now_ms: float) -> float:
        if self.job is None:
            return 0.0
        return max(0.0, self.job.start_ms + self.job.duration_ms - now_ms)
