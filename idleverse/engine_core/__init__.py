"""
Engine Core - Deterministic universe state and transitions.

The engine is the runtime that:
1. Holds the UniverseState snapshot
2. Prices everything through the economy model
3. Applies actions via the reducer
4. Evaluates achievement conditions
"""

from .state import (
    UniverseState, Building, Helper, Achievement, LogEntry,
    Tier, TIER_ORDER, HelperType, ConditionType, LogType,
    INITIAL_BUILDINGS, INITIAL_HELPERS, INITIAL_ACHIEVEMENTS,
    LOG_CAPACITY, initial_state,
)
from .action import (
    Action, ActionType, ActionPayload, ActionResult, BuildingData,
    CheatKind, ErrorCode,
)
from .reducer import Reducer, apply_action, transition
from .clock import Clock, SystemClock, ManualClock
from . import economy

__all__ = [
    "UniverseState",
    "Building",
    "Helper",
    "Achievement",
    "LogEntry",
    "Tier",
    "TIER_ORDER",
    "HelperType",
    "ConditionType",
    "LogType",
    "INITIAL_BUILDINGS",
    "INITIAL_HELPERS",
    "INITIAL_ACHIEVEMENTS",
    "LOG_CAPACITY",
    "initial_state",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "BuildingData",
    "CheatKind",
    "ErrorCode",
    "Reducer",
    "apply_action",
    "transition",
    "Clock",
    "SystemClock",
    "ManualClock",
    "economy",
]
