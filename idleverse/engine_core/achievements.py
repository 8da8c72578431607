"""
Achievement conditions.

Pure predicates over UniverseState. SPECIAL achievements are never
satisfied by a scan; they are granted explicitly.
"""

from __future__ import annotations

from .state import Achievement, ConditionType, UniverseState


def condition_met(achievement: Achievement, state: UniverseState) -> bool:
    """Check whether the achievement's threshold is reached."""
    ctype = achievement.condition_type
    threshold = achievement.threshold

    if ctype == ConditionType.RESOURCE_TOTAL:
        return state.total_resources_generated >= threshold
    if ctype == ConditionType.CLICK_COUNT:
        return state.total_clicks >= threshold
    if ctype == ConditionType.BUILDING_COUNT:
        return state.total_building_count >= threshold
    if ctype == ConditionType.RESEARCH_COUNT:
        # Starter buildings count too
        return len(state.buildings) >= threshold
    if ctype == ConditionType.PRESTIGE:
        return state.prestige_currency >= threshold
    return False


def newly_satisfied(state: UniverseState) -> list[Achievement]:
    """Locked achievements whose condition now holds, in declared order."""
    return [
        a for a in state.achievements
        if not a.unlocked and condition_met(a, state)
    ]
