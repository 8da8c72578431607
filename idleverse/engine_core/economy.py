"""
Economy Model - Pure formulas for costs, production and prestige.

No state of its own. Every other component prices things through here.
"""

from __future__ import annotations
import math

from .state import Building, UniverseState, INITIAL_BUILDINGS


INITIAL_BUILDING_COUNT = len(INITIAL_BUILDINGS)

RESEARCH_BASE_COST = 1000.0
RESEARCH_COST_GROWTH = 3.5
RESEARCH_BASE_DURATION_MS = 30_000
RESEARCH_DURATION_STEP_MS = 30_000

PRESTIGE_DIVISOR = 1000.0
PRESTIGE_BONUS_PER_SHARD = 0.1

GENERATED_COST_MULTIPLIER = 1.2


def building_cost(building: Building) -> int:
    """Price of the next unit: floor(baseCost * costMultiplier ^ count)."""
    return math.floor(building.base_cost * building.cost_multiplier ** building.count)


def building_output(building: Building) -> float:
    return building.base_production * building.count


def total_production(state: UniverseState) -> float:
    """Resources per second, prestige multiplier included."""
    return sum(building_output(b) for b in state.buildings) * state.prestige_multiplier


def click_value(state: UniverseState, multiplier: float = 1.0) -> float:
    return state.click_power * state.prestige_multiplier * multiplier


def researched_count(state: UniverseState) -> int:
    """Number of buildings that came from research in this run."""
    return max(0, len(state.buildings) - INITIAL_BUILDING_COUNT)


def research_cost(count: int) -> float:
    return RESEARCH_BASE_COST * RESEARCH_COST_GROWTH ** count


def research_duration(count: int) -> int:
    """Research duration in milliseconds."""
    return RESEARCH_BASE_DURATION_MS + count * RESEARCH_DURATION_STEP_MS


def prestige_gain(total_resources_generated: float) -> int:
    """
    Shards earned by resetting now: floor(cbrt(total / 1000)), never negative.

    The float cube root is corrected against exact integer cubes so that
    perfect cubes (e.g. 1,000,000 -> 10) are not lost to rounding.
    """
    x = total_resources_generated / PRESTIGE_DIVISOR
    if x <= 0:
        return 0
    g = math.floor(x ** (1.0 / 3.0))
    while (g + 1) ** 3 <= x:
        g += 1
    while g > 0 and g ** 3 > x:
        g -= 1
    return g


def prestige_multiplier(currency: float) -> float:
    return 1.0 + currency * PRESTIGE_BONUS_PER_SHARD


def cheapest_affordable_building(state: UniverseState) -> Building | None:
    """
    The affordable building with the lowest current cost.

    Ties go to the building declared first.
    """
    best: Building | None = None
    best_cost = 0
    for b in state.buildings:
        cost = building_cost(b)
        if cost > state.resources:
            continue
        if best is None or cost < best_cost:
            best, best_cost = b, cost
    return best
