"""
Tests for the economy model.

Tests:
- Building cost curve
- Production and click value
- Research cost and duration
- Prestige gain and multiplier
- Cheapest affordable building
"""

import pytest
from dataclasses import replace
from hypothesis import given, strategies as st

from ..engine_core import economy
from ..engine_core.state import INITIAL_BUILDINGS, initial_state


class TestBuildingCost:
    """Tests for building prices."""

    def test_first_unit_costs_base(self):
        """The first unit costs the base cost."""
        cursor = INITIAL_BUILDINGS[0]
        assert economy.building_cost(cursor) == 15

    def test_cost_is_floored(self):
        """Cost is floor(base * multiplier ^ count)."""
        cursor = replace(INITIAL_BUILDINGS[0], count=1)
        # 15 * 1.15 = 17.25
        assert economy.building_cost(cursor) == 17

        cursor = replace(INITIAL_BUILDINGS[0], count=10)
        assert economy.building_cost(cursor) == int(15 * 1.15 ** 10)

    def test_cost_monotonic_in_count(self):
        """Cost never decreases as more units are owned."""
        for base in INITIAL_BUILDINGS:
            costs = [economy.building_cost(replace(base, count=n)) for n in range(200)]
            assert costs == sorted(costs)

    @given(
        st.sampled_from(INITIAL_BUILDINGS),
        st.floats(min_value=1.0, max_value=2.0),
        st.integers(min_value=1, max_value=100),
    )
    def test_cost_monotonic_for_any_multiplier(self, base, multiplier, owned):
        """Monotonicity holds for every multiplier of at least one."""
        b = replace(base, cost_multiplier=multiplier)
        costs = [economy.building_cost(replace(b, count=n)) for n in range(owned + 1)]
        assert all(a <= c for a, c in zip(costs, costs[1:]))


class TestProduction:
    """Tests for production and click value."""

    def test_no_buildings_no_production(self, state):
        """A new universe produces nothing passively."""
        assert economy.total_production(state) == 0

    def test_production_sums_buildings(self, state):
        """Production is the sum of every building's output."""
        cursor, drone = state.buildings
        state = state.with_building(replace(cursor, count=4)).with_building(replace(drone, count=2))
        assert economy.total_production(state) == pytest.approx(4 * 0.5 + 2 * 4)

    def test_production_scaled_by_prestige(self, state):
        """The prestige multiplier scales production."""
        cursor = state.buildings[0]
        state = state.with_building(replace(cursor, count=10))._copy_with(prestige_multiplier=1.5)
        assert economy.total_production(state) == pytest.approx(5 * 1.5)

    def test_click_value(self, state):
        """Click value is click power times prestige times multiplier."""
        state = state._copy_with(click_power=4.0, prestige_multiplier=1.2)
        assert economy.click_value(state) == pytest.approx(4.8)
        assert economy.click_value(state, 2.0) == pytest.approx(9.6)


class TestResearch:
    """Tests for research pricing."""

    def test_first_research(self):
        """No research yet: 1000 and 30 seconds."""
        assert economy.research_cost(0) == 1000
        assert economy.research_duration(0) == 30_000

    def test_third_research(self):
        """Three researched: 1000 * 3.5^3 and two minutes."""
        assert economy.research_cost(3) == pytest.approx(42875)
        assert economy.research_duration(3) == 120_000

    def test_researched_count_ignores_starters(self, state):
        """Starter buildings are not research."""
        assert economy.researched_count(state) == 0
        extra = replace(state.buildings[0], id="b_gen_1")
        assert economy.researched_count(state._copy_with(buildings=state.buildings + (extra,))) == 1

    def test_researched_count_floors_at_zero(self, state):
        """Fewer buildings than the starters never goes negative."""
        assert economy.researched_count(state._copy_with(buildings=())) == 0


class TestPrestige:
    """Tests for prestige gain and multiplier."""

    def test_million_gives_ten(self):
        """1,000,000 generated gives floor(cbrt(1000)) = 10."""
        assert economy.prestige_gain(1_000_000) == 10

    @pytest.mark.parametrize("total,expected", [
        (0, 0),
        (999, 0),
        (1000, 1),
        (7999, 1),
        (8000, 2),
        (26_999, 2),
        (27_000, 3),
        (1_000_000_000, 100),
        (1e15, 10_000),
    ])
    def test_gain_is_floor_cube_root(self, total, expected):
        """Perfect cubes are not lost to floating point."""
        assert economy.prestige_gain(total) == expected

    def test_gain_never_negative(self):
        """Negative totals clamp to zero."""
        assert economy.prestige_gain(-500) == 0

    def test_multiplier(self):
        """Each shard adds ten percent."""
        assert economy.prestige_multiplier(0) == 1.0
        assert economy.prestige_multiplier(10) == pytest.approx(2.0)


class TestCheapestAffordable:
    """Tests for the auto-buy choice."""

    def test_none_when_broke(self, state):
        """Nothing is affordable with no resources."""
        assert economy.cheapest_affordable_building(state) is None

    def test_picks_lowest_current_cost(self, state):
        """The cheapest building by current cost wins, not by base cost."""
        cursor, drone = state.buildings
        # cursor at count 20 costs ~245, drone at count 0 costs 100
        state = state.with_building(replace(cursor, count=20))._copy_with(resources=1000)
        assert economy.cheapest_affordable_building(state).id == drone.id

    def test_ties_go_to_first_declared(self, state):
        """Equal cost: the building declared first is chosen."""
        cursor, drone = state.buildings
        state = state.with_building(replace(drone, base_cost=15))._copy_with(resources=50)
        assert economy.cheapest_affordable_building(state).id == cursor.id

    def test_uses_initial_state(self):
        """Starter buildings are priced 15 and 100."""
        state = initial_state()._copy_with(resources=20)
        assert economy.cheapest_affordable_building(state).id == "b_cursor"
