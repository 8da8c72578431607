"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine calls
2. Manages sessions
3. Advances each universe to "now" before acting on it
4. Formats responses for clients

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.).
Methods that touch a universe are coroutines: research and narrative
requests are tasks on the caller's event loop.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .schemas import (
    # Requests
    CreateUniverseRequest,
    ClickRequest,
    RenameRequest,
    CheatRequest,
    ImportSaveRequest,
    # Responses
    UniverseResponse,
    ActionResponse,
    SaveResponse,
    ErrorResponse,
    # Shared
    BuildingInfo,
    HelperInfo,
    AchievementInfo,
    LogInfo,
    ResearchInfo,
    PrestigeInfo,
    # Enums
    ErrorCode,
)
from ..engine_core import economy
from ..engine_core.action import ActionResult, CheatKind, ErrorCode as EngineErrorCode
from ..persistence.codec import SnapshotCorruptionError, deserialize
from ..session import SessionManager, Session


_ENGINE_ERRORS = {
    EngineErrorCode.INSUFFICIENT_RESOURCES: ErrorCode.INSUFFICIENT_RESOURCES,
    EngineErrorCode.INVALID_TARGET: ErrorCode.INVALID_TARGET,
    EngineErrorCode.INVALID_ARGUMENT: ErrorCode.VALIDATION_ERROR,
}


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        # Create a universe
        universe = await service.create_session(CreateUniverseRequest())

        # Play
        await service.click(universe.session_id, ClickRequest(count=10))
        await service.buy(universe.session_id, "b_cursor")
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    async def create_session(
        self,
        request: CreateUniverseRequest,
    ) -> UniverseResponse | ErrorResponse:
        """Create a new universe, optionally from an exported save."""
        state = None
        if request.save_code:
            try:
                state = deserialize(request.save_code)
            except SnapshotCorruptionError as e:
                return ErrorResponse(error=str(e), error_code=ErrorCode.SNAPSHOT_CORRUPT)

        session = self.session_manager.create_session(
            state=state,
            galaxy_name=request.galaxy_name,
        )
        return self._universe_response(session)

    async def get_universe(self, session_id: str) -> UniverseResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        return self._universe_response(session)

    def end_session(self, session_id: str) -> bool:
        return self.session_manager.end_session(session_id)

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # Player intents
    # =========================================================================

    async def click(
        self,
        session_id: str,
        request: ClickRequest | None = None,
    ) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)

        count = request.count if request else 1
        changes = []
        for _ in range(count):
            changes.extend(session.loop.click().state_changes)
        return self._action_response(session, changes)

    async def buy(self, session_id: str, building_id: str) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        return self._result_response(session, session.loop.buy(building_id))

    async def unlock_helper(self, session_id: str, helper_id: str) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        return self._result_response(session, session.loop.unlock_helper(helper_id))

    async def toggle_helper(self, session_id: str, helper_id: str) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        return self._result_response(session, session.loop.toggle_helper(helper_id))

    async def rename(self, session_id: str, request: RenameRequest) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        return self._result_response(session, session.loop.rename(request.name))

    async def dismiss_achievement(
        self,
        session_id: str,
        achievement_id: str,
    ) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        return self._result_response(session, session.loop.dismiss_achievement(achievement_id))

    async def begin_research(self, session_id: str) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)

        research = session.loop.research
        if research.active:
            return ErrorResponse(
                error="Research already in progress",
                error_code=ErrorCode.RESEARCH_UNAVAILABLE,
            )
        cost = research.cost()
        if not session.loop.begin_research():
            return ErrorResponse(
                error=f"Research needs {cost:,.0f} {session.universe.resource_name}",
                error_code=ErrorCode.RESEARCH_UNAVAILABLE,
                details={"cost": cost, "resources": session.universe.resources},
            )
        return self._action_response(session, [f"Research started for {cost:,.0f}"])

    async def prestige(self, session_id: str) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)

        engine = session.loop.prestige_engine
        if not engine.can_prestige():
            return ErrorResponse(
                error="Nothing to gain from a prestige reset yet",
                error_code=ErrorCode.PRESTIGE_UNAVAILABLE,
                details={"potential_gain": engine.potential_gain()},
            )
        result = await session.loop.prestige()
        if result is None:
            return ErrorResponse(
                error="Prestige was interrupted",
                error_code=ErrorCode.PRESTIGE_UNAVAILABLE,
            )
        return self._result_response(session, result)

    async def hard_reset(self, session_id: str) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        return self._result_response(session, session.loop.hard_reset())

    async def export_save(self, session_id: str) -> SaveResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        return SaveResponse(session_id=session_id, save_code=session.loop.export_save())

    async def import_save(
        self,
        session_id: str,
        request: ImportSaveRequest,
    ) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        try:
            result = session.loop.import_save(request.save_code)
        except SnapshotCorruptionError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.SNAPSHOT_CORRUPT)
        return self._result_response(session, result)

    async def open_console(self, session_id: str) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        result = session.loop.open_console()
        # Reopening the console is not an error
        return self._action_response(session, result.state_changes)

    async def cheat(self, session_id: str, request: CheatRequest) -> ActionResponse | ErrorResponse:
        session = self._advance(session_id)
        if not session:
            return self._not_found(session_id)
        result = session.loop.cheat(CheatKind(request.kind.value))
        return self._result_response(session, result)

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _advance(self, session_id: str) -> Session | None:
        """Look up a session and bring its universe up to date."""
        session = self.session_manager.get_session(session_id)
        if session is None or not session.is_active():
            return None
        session.touch()
        session.loop.step()
        return session

    def _not_found(self, session_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Session {session_id} not found",
            error_code=ErrorCode.SESSION_NOT_FOUND,
        )

    def _result_response(
        self,
        session: Session,
        result: ActionResult,
    ) -> ActionResponse | ErrorResponse:
        """Convert an engine ActionResult to a response."""
        if not result.success:
            return ErrorResponse(
                error=result.error or "Action rejected",
                error_code=_ENGINE_ERRORS.get(result.error_code, ErrorCode.VALIDATION_ERROR),
            )
        return self._action_response(session, result.state_changes)

    def _action_response(self, session: Session, changes: list[str]) -> ActionResponse:
        return ActionResponse(
            session_id=session.session_id,
            success=True,
            changes=changes,
            universe=self._universe_response(session),
        )

    def _universe_response(self, session: Session) -> UniverseResponse:
        """Build complete universe response."""
        state = session.universe
        loop = session.loop
        now = loop.clock.now_ms()

        buildings = [
            BuildingInfo(
                building_id=b.id,
                name=b.name,
                description=b.description,
                count=b.count,
                cost=economy.building_cost(b),
                base_production=b.base_production,
                production_per_second=economy.building_output(b),
                cost_multiplier=b.cost_multiplier,
                tier=b.tier.value,
                flavor_text=b.flavor_text,
                just_unlocked=b.just_unlocked,
            )
            for b in state.buildings
        ]

        helpers = [
            HelperInfo(
                helper_id=h.id,
                name=h.name,
                description=h.description,
                helper_type=h.helper_type.value,
                cost=h.base_cost,
                interval_ms=h.interval_ms,
                unlocked=h.unlocked,
                active=h.active,
                bonus_multiplier=h.bonus_multiplier,
            )
            for h in state.helpers
        ]

        achievements = [
            AchievementInfo(
                achievement_id=a.id,
                name=a.name,
                description=a.description,
                unlocked=a.unlocked,
                icon=a.icon,
                flavor_text=a.flavor_text,
            )
            for a in state.achievements
            if a.unlocked or not a.hidden
        ]

        logs = [
            LogInfo(
                log_id=entry.id,
                message=entry.message,
                timestamp=entry.timestamp,
                log_type=entry.log_type.value,
            )
            for entry in state.logs
        ]

        research = loop.research
        research_info = ResearchInfo(
            active=research.active,
            can_begin=research.can_begin(),
            cost=research.cost(),
            duration_ms=research.job.duration_ms if research.job else research.duration_ms(),
            progress=research.progress(now),
            remaining_ms=research.remaining_ms(now),
        )

        engine = loop.prestige_engine
        prestige_info = PrestigeInfo(
            currency=state.prestige_currency,
            multiplier=state.prestige_multiplier,
            potential_gain=engine.potential_gain(),
            can_prestige=engine.can_prestige(),
        )

        return UniverseResponse(
            session_id=session.session_id,
            galaxy_name=state.galaxy_name,
            theme=state.theme,
            resource_name=state.resource_name,
            tier=state.current_tier.value,
            resources=state.resources,
            production_per_second=economy.total_production(state),
            click_value=economy.click_value(state),
            total_resources_generated=state.total_resources_generated,
            lifetime_total_resources=state.lifetime_total_resources,
            total_clicks=state.total_clicks,
            click_power=state.click_power,
            generation_count=state.generation_count,
            epoch=state.epoch,
            buildings=buildings,
            helpers=helpers,
            achievements=achievements,
            achievement_queue=[a.id for a in state.achievement_queue],
            logs=logs,
            research=research_info,
            prestige=prestige_info,
        )
