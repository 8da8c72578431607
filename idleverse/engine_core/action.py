"""
Action System - Actions, payloads, and results.

Actions represent:
1. Player input (manual yield, purchases, helper toggles, research, prestige)
2. Driver output (accrual ticks, helper stamps, tier advances, achievement scans)
3. Persistence (loading a snapshot, hard reset)
4. Developer console commands

All state changes flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum

from .state import Tier, LogType, UniverseState


class ActionType(Enum):
    """The closed set of actions the reducer understands."""
    # Time
    ACCRUE = "accrue"

    # Player actions
    MANUAL_YIELD = "manual_yield"
    PURCHASE_BUILDING = "purchase_building"
    UNLOCK_HELPER = "unlock_helper"
    TOGGLE_HELPER = "toggle_helper"
    RENAME_GALAXY = "rename_galaxy"

    # Automation bookkeeping
    STAMP_HELPER = "stamp_helper"

    # Research
    BEGIN_RESEARCH = "begin_research"
    COMPLETE_RESEARCH = "complete_research"

    # Evolution and narrative
    ADVANCE_TIER = "advance_tier"
    APPEND_LOG = "append_log"

    # Achievements
    EVALUATE_ACHIEVEMENTS = "evaluate_achievements"
    DISMISS_ACHIEVEMENT = "dismiss_achievement"
    UNLOCK_SECRET_ACHIEVEMENT = "unlock_secret_achievement"

    # Reset-class
    PRESTIGE = "prestige"
    HARD_RESET = "hard_reset"
    LOAD_SNAPSHOT = "load_snapshot"

    # Developer console
    CHEAT = "cheat"


class CheatKind(Enum):
    ADD_RESOURCES = "ADD_RESOURCES"
    ADD_SHARDS = "ADD_SHARDS"
    FORCE_EVOLVE = "FORCE_EVOLVE"
    TIME_WARP = "TIME_WARP"
    UNLOCK_ACHIEVEMENTS = "UNLOCK_ACHIEVEMENTS"


class ErrorCode:
    """Reasons an action was rejected (left state unchanged)."""
    INSUFFICIENT_RESOURCES = "INSUFFICIENT_RESOURCES"
    INVALID_TARGET = "INVALID_TARGET"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    STALE_GENERATION = "STALE_GENERATION"
    NO_HANDLER = "NO_HANDLER"


@dataclass(frozen=True)
class BuildingData:
    """Descriptor for a building produced by research."""
    name: str
    description: str
    base_cost: float
    base_production: float
    flavor_text: str = ""


@dataclass
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types have different payload shapes.
    This is a generic container; validation happens in the reducer.
    """
    # Common target
    target_id: str | None = None

    # Amounts
    dt: float | None = None
    multiplier: float | None = None
    cost: float | None = None
    gain: float | None = None
    now: float | None = None

    # Naming
    name: str | None = None
    theme: str | None = None
    resource_name: str | None = None

    # Research
    building_data: BuildingData | None = None
    epoch: int | None = None

    # Evolution / logs
    tier: Tier | None = None
    message: str | None = None
    log_type: LogType | None = None

    # Snapshot loading
    snapshot: UniverseState | None = None

    cheat: CheatKind | None = None


@dataclass
class Action:
    """
    A complete action to be applied to the universe state.

    Actions are:
    - Journaled for replay
    - Validated before application
    - Applied atomically by the reducer

    timestamp is stamped by the dispatcher; the reducer never reads a clock.
    """
    action_type: ActionType
    payload: ActionPayload = field(default_factory=ActionPayload)
    timestamp: float | None = None

    @classmethod
    def accrue(cls, dt: float) -> Action:
        """Factory for passive production over dt milliseconds."""
        return cls(ActionType.ACCRUE, ActionPayload(dt=dt))

    @classmethod
    def manual_yield(cls, multiplier: float = 1.0) -> Action:
        """Factory for a click on the core."""
        return cls(ActionType.MANUAL_YIELD, ActionPayload(multiplier=multiplier))

    @classmethod
    def purchase_building(cls, building_id: str) -> Action:
        return cls(ActionType.PURCHASE_BUILDING, ActionPayload(target_id=building_id))

    @classmethod
    def unlock_helper(cls, helper_id: str) -> Action:
        return cls(ActionType.UNLOCK_HELPER, ActionPayload(target_id=helper_id))

    @classmethod
    def toggle_helper(cls, helper_id: str) -> Action:
        return cls(ActionType.TOGGLE_HELPER, ActionPayload(target_id=helper_id))

    @classmethod
    def stamp_helper(cls, helper_id: str, now: float) -> Action:
        """Factory for recording a helper firing attempt."""
        return cls(ActionType.STAMP_HELPER, ActionPayload(target_id=helper_id, now=now))

    @classmethod
    def begin_research(cls, cost: float) -> Action:
        return cls(ActionType.BEGIN_RESEARCH, ActionPayload(cost=cost))

    @classmethod
    def complete_research(
        cls,
        data: BuildingData,
        cost: float = 0.0,
        epoch: int | None = None,
    ) -> Action:
        """
        Factory for a finished research.

        epoch is the generation token captured when the research was
        requested; a mismatch with the current state drops the action.
        """
        return cls(
            ActionType.COMPLETE_RESEARCH,
            ActionPayload(building_data=data, cost=cost, epoch=epoch),
        )

    @classmethod
    def advance_tier(cls, tier: Tier) -> Action:
        return cls(ActionType.ADVANCE_TIER, ActionPayload(tier=tier))

    @classmethod
    def append_log(cls, message: str, log_type: LogType = LogType.INFO) -> Action:
        return cls(ActionType.APPEND_LOG, ActionPayload(message=message, log_type=log_type))

    @classmethod
    def evaluate_achievements(cls) -> Action:
        return cls(ActionType.EVALUATE_ACHIEVEMENTS)

    @classmethod
    def dismiss_achievement(cls, achievement_id: str) -> Action:
        return cls(ActionType.DISMISS_ACHIEVEMENT, ActionPayload(target_id=achievement_id))

    @classmethod
    def unlock_secret_achievement(cls, achievement_id: str) -> Action:
        return cls(ActionType.UNLOCK_SECRET_ACHIEVEMENT, ActionPayload(target_id=achievement_id))

    @classmethod
    def rename_galaxy(cls, name: str) -> Action:
        return cls(ActionType.RENAME_GALAXY, ActionPayload(name=name))

    @classmethod
    def prestige(cls, theme: str, resource_name: str, gain: float) -> Action:
        """Factory for a prestige reset with the new naming."""
        return cls(
            ActionType.PRESTIGE,
            ActionPayload(theme=theme, resource_name=resource_name, gain=gain),
        )

    @classmethod
    def hard_reset(cls) -> Action:
        return cls(ActionType.HARD_RESET)

    @classmethod
    def load_snapshot(cls, snapshot: UniverseState) -> Action:
        return cls(ActionType.LOAD_SNAPSHOT, ActionPayload(snapshot=snapshot))

    @classmethod
    def cheat(cls, kind: CheatKind) -> Action:
        return cls(ActionType.CHEAT, ActionPayload(cheat=kind))


@dataclass
class ActionResult:
    """
    Result of applying an action.

    new_state is always set. A rejected action is a no-op:
    success is False and new_state is the unchanged input state.
    """
    success: bool
    new_state: UniverseState
    error: str | None = None
    error_code: str | None = None

    # Human-readable changes (for logs/UI)
    state_changes: list[str] = field(default_factory=list)

    @classmethod
    def rejected(
        cls,
        state: UniverseState,
        error: str,
        error_code: str | None = None,
    ) -> ActionResult:
        """Create a no-op result carrying the unchanged state."""
        return cls(success=False, new_state=state, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: UniverseState,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(success=True, new_state=state, state_changes=changes or [])
