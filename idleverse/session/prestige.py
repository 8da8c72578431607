"""
Prestige Engine - Gate and sequencing for the prestige reset.

The theme request is the only await. The universe may change while it
is pending, so the gain is recomputed afterwards and the reset is
abandoned if another reset happened in the meantime.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING

from ..content.generator import ThemeData
from ..engine_core.action import Action, ActionResult
from ..engine_core import economy

if TYPE_CHECKING:
    from .store import StateStore
    from .research import ResearchProtocol
    from ..content.generator import ContentGenerator


logger = logging.getLogger(__name__)


class PrestigeEngine:
    """Converts a run's progress into shards."""

    def __init__(
        self,
        store: StateStore,
        generator: ContentGenerator,
        research: ResearchProtocol | None = None,
    ):
        self.store = store
        self.generator = generator
        self.research = research
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def potential_gain(self) -> int:
        return economy.prestige_gain(self.store.state.total_resources_generated)

    def can_prestige(self) -> bool:
        return not self._in_progress and self.potential_gain() > 0

    async def prestige(self) -> ActionResult | None:
        """
        Request a new theme, then reset.

        Returns the Prestige result, or None if the gate was closed or
        the universe was reset while the theme was being generated.
        """
        if not self.can_prestige():
            return None

        self._in_progress = True
        token = self.store.state.epoch
        try:
            try:
                naming = await self.generator.generate_theme()
            except Exception as exc:
                logger.warning("Theme generation failed; keeping current theme", exc_info=exc)
                state = self.store.state
                naming = ThemeData(state.theme, state.resource_name)

            if self.store.state.epoch != token:
                logger.info("Prestige abandoned: universe was reset during theme generation")
                return None

            gain = self.potential_gain()
            if gain <= 0:
                return None

            result = self.store.dispatch(
                Action.prestige(naming.theme, naming.resource_name, gain)
            )
            if self.research is not None:
                self.research.cancel()
            return result
        finally:
            self._in_progress = False
