"""
Tests for the reducer (state transitions).

Tests:
- Action application
- State mutation correctness
- Rejections are no-ops
- Handler coverage
"""

import pytest
from dataclasses import fields, replace
from hypothesis import given, strategies as st

from ..engine_core import economy
from ..engine_core.state import (
    LOG_CAPACITY, HelperType, LogType, Tier, initial_state,
)
from ..engine_core.action import (
    Action, ActionPayload, ActionType, BuildingData, CheatKind, ErrorCode,
)
from ..engine_core.reducer import Reducer, apply_action, transition
from .conftest import rich


SAMPLE_BUILDING = BuildingData(
    name="Tachyon Loom",
    description="Weaves threads that arrive before they are spun.",
    base_cost=8000,
    base_production=250,
    flavor_text="Late for its own invention.",
)


class TestHandlerCoverage:
    """Every action type is handled."""

    def test_no_missing_handlers(self):
        """The handler table covers the whole ActionType enum."""
        assert Reducer().missing_handlers() == set()

    def test_action_carries_only_type_payload_and_time(self):
        assert [f.name for f in fields(Action)] == ["action_type", "payload", "timestamp"]
        assert "params" not in {f.name for f in fields(ActionPayload)}

    def test_every_action_type_returns_a_state(self, state):
        """No action type raises or returns without a state."""
        for action_type in ActionType:
            result = apply_action(state, Action(action_type))
            assert result.new_state is not None


class TestAccrue:
    """Tests for passive production."""

    def test_accrue_adds_production(self, state):
        """Accrue adds production * dt to resources and both totals."""
        state = state.with_building(replace(state.buildings[1], count=3))
        result = apply_action(state, Action.accrue(2500))

        assert result.success
        expected = 3 * 4 * 2.5
        assert result.new_state.resources == pytest.approx(expected)
        assert result.new_state.total_resources_generated == pytest.approx(expected)
        assert result.new_state.lifetime_total_resources == pytest.approx(expected)

    def test_accrue_advances_simulated_clock(self, state):
        """Accrue moves clock_ms forward by dt."""
        new_state = transition(state, Action.accrue(100))
        assert new_state.clock_ms == 100

    @pytest.mark.parametrize("dt", [0, -5, None])
    def test_non_positive_dt_rejected(self, state, dt):
        """dt must be positive."""
        result = apply_action(state, Action.accrue(dt))
        assert not result.success
        assert result.error_code == ErrorCode.INVALID_ARGUMENT
        assert result.new_state is state


class TestManualYield:
    """Tests for clicks."""

    def test_click(self, state):
        """A click adds click value and counts."""
        new_state = transition(state, Action.manual_yield())
        assert new_state.resources == 1
        assert new_state.total_resources_generated == 1
        assert new_state.lifetime_total_resources == 1
        assert new_state.total_clicks == 1

    def test_click_multiplier(self, state):
        """The multiplier scales click value with prestige."""
        state = state._copy_with(click_power=2.0, prestige_multiplier=1.5)
        new_state = transition(state, Action.manual_yield(3.0))
        assert new_state.resources == pytest.approx(9.0)

    def test_non_positive_multiplier_rejected(self, state):
        """A zero multiplier would count a click for nothing."""
        result = apply_action(state, Action.manual_yield(0))
        assert not result.success
        assert result.new_state is state


class TestPurchaseBuilding:
    """Tests for buying buildings."""

    def test_purchase_rejected_when_broke(self, state):
        """With 0 resources the 15-cost building cannot be bought."""
        result = apply_action(state, Action.purchase_building("b_cursor"))

        assert not result.success
        assert result.error_code == ErrorCode.INSUFFICIENT_RESOURCES
        assert result.new_state is state

    def test_purchase_after_accrual(self, state):
        """Accrue enough for 15, then the purchase leaves exactly zero."""
        state = state._copy_with(prestige_multiplier=1.0)
        # One drone for 3.75s produces exactly 15
        state = state.with_building(replace(state.buildings[1], count=1))
        state = transition(state, Action.accrue(3750))
        state = state.with_building(replace(state.buildings[1], count=0))
        assert state.resources == pytest.approx(15)

        result = apply_action(state, Action.purchase_building("b_cursor"))
        assert result.success
        assert result.new_state.resources == pytest.approx(0)
        assert result.new_state.get_building("b_cursor").count == 1

    def test_purchase_clears_just_unlocked(self, state):
        """Buying a building clears its new marker."""
        state = state.with_building(replace(state.buildings[0], just_unlocked=True))
        state = state._copy_with(resources=100)
        new_state = transition(state, Action.purchase_building("b_cursor"))
        assert not new_state.get_building("b_cursor").just_unlocked

    def test_second_unit_costs_more(self, state):
        """The price rises after each purchase."""
        state = state._copy_with(resources=100)
        state = transition(state, Action.purchase_building("b_cursor"))
        assert state.resources == 85
        state = transition(state, Action.purchase_building("b_cursor"))
        assert state.resources == 85 - 17

    def test_unknown_building(self, state):
        """Unknown ids are rejected."""
        result = apply_action(state._copy_with(resources=1e9), Action.purchase_building("b_nope"))
        assert not result.success
        assert result.error_code == ErrorCode.INVALID_TARGET


class TestHelpers:
    """Tests for unlocking and toggling helpers."""

    def test_unlock_helper(self, state):
        """Unlocking charges the cost, activates the helper and logs."""
        state = state._copy_with(resources=600)
        result = apply_action(state, Action.unlock_helper("h_clicker"))

        assert result.success
        helper = result.new_state.get_helper("h_clicker")
        assert helper.unlocked and helper.active
        assert result.new_state.resources == 100
        assert result.new_state.logs[-1].message == "Automation Unit Online: Nanobot Swarm"

    def test_unlock_twice_rejected(self, state):
        """A helper is bought once."""
        state = transition(state._copy_with(resources=2000), Action.unlock_helper("h_clicker"))
        result = apply_action(state, Action.unlock_helper("h_clicker"))
        assert not result.success
        assert result.new_state.resources == 1500

    def test_unlock_unaffordable(self, state):
        """Unlocking needs the base cost."""
        result = apply_action(state._copy_with(resources=499), Action.unlock_helper("h_clicker"))
        assert result.error_code == ErrorCode.INSUFFICIENT_RESOURCES

    def test_toggle_flips_active(self, state):
        """Toggle flips the active flag both ways."""
        state = transition(state, Action.toggle_helper("h_builder"))
        assert state.get_helper("h_builder").active
        state = transition(state, Action.toggle_helper("h_builder"))
        assert not state.get_helper("h_builder").active

    def test_toggle_unknown(self, state):
        """Toggling an unknown helper is a no-op."""
        result = apply_action(state, Action.toggle_helper("h_ghost"))
        assert result.new_state is state

    def test_stamp_helper(self, state):
        """Stamping records the firing time."""
        new_state = transition(state, Action.stamp_helper("h_clicker", 1234.0))
        assert new_state.get_helper("h_clicker").last_action_time == 1234.0


class TestRename:
    """Tests for renaming the galaxy."""

    def test_rename(self, state):
        """The name is trimmed and set."""
        assert transition(state, Action.rename_galaxy("  Andromeda ")).galaxy_name == "Andromeda"

    def test_blank_name_rejected(self, state):
        """A blank name is refused."""
        result = apply_action(state, Action.rename_galaxy("   "))
        assert not result.success
        assert result.new_state.galaxy_name == "Unknown Sector"


class TestResearch:
    """Tests for BeginResearch and CompleteResearch."""

    def test_begin_research_charges_cost(self, state):
        """Cost is charged and logged; buildings untouched."""
        state = state._copy_with(resources=1500)
        result = apply_action(state, Action.begin_research(1000))

        assert result.success
        assert result.new_state.resources == 500
        assert result.new_state.buildings == state.buildings
        assert "Research Protocol Initiated" in result.new_state.logs[-1].message

    def test_begin_research_cannot_go_negative(self, state):
        """Research that cannot be paid is refused."""
        result = apply_action(state._copy_with(resources=10), Action.begin_research(1000))
        assert not result.success
        assert result.new_state.resources == 10

    def test_complete_research_adds_building(self, state):
        """A new building arrives with the research bonuses."""
        state = state._copy_with(current_tier=Tier.COSMIC)
        result = apply_action(state, Action.complete_research(SAMPLE_BUILDING))
        new_state = result.new_state

        assert result.success
        assert len(new_state.buildings) == 3
        building = new_state.buildings[-1]
        assert building.id == "b_gen_1"
        assert building.name == "Tachyon Loom"
        assert building.count == 0
        assert building.cost_multiplier == 1.2
        assert building.tier == Tier.COSMIC
        assert building.just_unlocked
        assert new_state.click_power == 2.0
        assert new_state.generation_count == 1
        assert new_state.logs[-1].log_type == LogType.UNLOCK

    def test_complete_research_boosts_click_helpers_only(self, state):
        """Only CLICK helpers get the research bonus."""
        new_state = transition(state, Action.complete_research(SAMPLE_BUILDING))
        for helper in new_state.helpers:
            expected = 1.25 if helper.helper_type == HelperType.CLICK else 1.0
            assert helper.bonus_multiplier == pytest.approx(expected)

    def test_complete_research_cost_never_below_zero(self, state):
        """An extra cost on completion clamps at zero."""
        state = state._copy_with(resources=100)
        new_state = transition(state, Action.complete_research(SAMPLE_BUILDING, cost=500))
        assert new_state.resources == 0

    def test_stale_epoch_dropped(self, state):
        """A result from an older generation is a no-op."""
        state = state._copy_with(epoch=3)
        result = apply_action(state, Action.complete_research(SAMPLE_BUILDING, epoch=2))

        assert not result.success
        assert result.error_code == ErrorCode.STALE_GENERATION
        assert result.new_state is state

    def test_matching_epoch_applied(self, state):
        """A result from the current generation applies."""
        state = state._copy_with(epoch=3)
        result = apply_action(state, Action.complete_research(SAMPLE_BUILDING, epoch=3))
        assert result.success


class TestAdvanceTier:
    """Tests for evolution."""

    def test_advance_to_next_tier(self, state):
        """The next tier brings click, helper and production bonuses."""
        state = state.with_building(replace(state.buildings[0], count=2))
        new_state = transition(state, Action.advance_tier(Tier.MACROCOSM))

        assert new_state.current_tier == Tier.MACROCOSM
        assert new_state.click_power == pytest.approx(1.5)
        assert new_state.get_helper("h_clicker").bonus_multiplier == pytest.approx(1.25)
        assert new_state.get_helper("h_builder").bonus_multiplier == 1.0
        assert new_state.get_building("b_cursor").base_production == pytest.approx(0.5 * 1.15)
        assert new_state.logs[-1].log_type == LogType.STORY

    def test_same_tier_rejected(self, state):
        """Advancing to the current tier is a no-op."""
        result = apply_action(state, Action.advance_tier(Tier.QUANTUM))
        assert result.new_state is state

    @pytest.mark.parametrize("tier", [Tier.COSMIC, Tier.MULTIVERSAL, Tier.OMNIPOTENT])
    def test_skipping_rejected(self, state, tier):
        """Tiers cannot be skipped."""
        result = apply_action(state, Action.advance_tier(tier))
        assert not result.success
        assert result.new_state.current_tier == Tier.QUANTUM

    def test_regression_rejected(self, state):
        """Tiers never move backwards."""
        state = state._copy_with(current_tier=Tier.COSMIC)
        result = apply_action(state, Action.advance_tier(Tier.MACROCOSM))
        assert result.new_state.current_tier == Tier.COSMIC


class TestLogs:
    """Tests for the bounded log."""

    def test_log_never_exceeds_capacity(self, state):
        """A burst of log entries keeps only the newest 50."""
        for i in range(LOG_CAPACITY * 3):
            state = transition(state, Action.append_log(f"entry {i}"))
        assert len(state.logs) == LOG_CAPACITY
        assert state.logs[-1].message == f"entry {LOG_CAPACITY * 3 - 1}"

    def test_batch_log_respects_capacity(self, state):
        """A single transition with many entries is also capped."""
        messages = [(f"m{i}", LogType.INFO) for i in range(120)]
        state = state.with_logs(messages, 0.0)
        assert len(state.logs) == LOG_CAPACITY

    def test_log_ids_unique(self, state):
        """Log ids are derived from a sequence."""
        for i in range(5):
            state = transition(state, Action.append_log(f"entry {i}"))
        ids = [entry.id for entry in state.logs]
        assert len(ids) == len(set(ids))

    def test_log_timestamp_from_action(self, state):
        """The dispatcher's timestamp lands in the log."""
        action = Action.append_log("hello", LogType.STORY)
        action.timestamp = 4200.0
        assert transition(state, action).logs[-1].timestamp == 4200.0

    def test_empty_message_rejected(self, state):
        """Empty messages are not logged."""
        assert apply_action(state, Action.append_log("")).new_state is state


class TestAchievements:
    """Tests for achievement evaluation."""

    def test_batch_unlock_in_declared_order(self, state):
        """Everything satisfied unlocks in one transition, in declared order."""
        state = rich(state, 2_000_000)._copy_with(total_clicks=150)
        result = apply_action(state, Action.evaluate_achievements())
        queue = [a.id for a in result.new_state.achievement_queue]

        assert queue == ["a_start", "a_clicker", "a_rich"]
        declared = [a.id for a in state.achievements]
        assert queue == sorted(queue, key=declared.index)

    def test_evaluate_twice_is_idempotent(self, state):
        """The second scan with no change unlocks nothing."""
        state = rich(state, 150)
        first = transition(state, Action.evaluate_achievements())
        second = apply_action(first, Action.evaluate_achievements())

        assert second.state_changes == []
        assert second.new_state.achievement_queue == first.achievement_queue
        assert second.new_state.logs == first.logs

    def test_special_never_unlocked_by_scan(self, state):
        """Hidden console achievements need an explicit unlock."""
        state = rich(state, 1e13)._copy_with(total_clicks=10_000, prestige_currency=50)
        new_state = transition(state, Action.evaluate_achievements())
        assert not new_state.get_achievement("a_cheater").unlocked
        assert not new_state.get_achievement("a_dirty_hacker").unlocked

    def test_research_count_includes_starters(self, state):
        """Pioneer counts every building, so three researches reach five."""
        assert len(state.buildings) == 2
        for i in range(2):
            state = transition(state, Action.complete_research(SAMPLE_BUILDING))
        assert not transition(state, Action.evaluate_achievements()).get_achievement("a_research").unlocked

        state = transition(state, Action.complete_research(SAMPLE_BUILDING))
        assert len(state.buildings) == 5
        assert transition(state, Action.evaluate_achievements()).get_achievement("a_research").unlocked

    @pytest.mark.parametrize("achievement_id, buildings", [
        ("a_research", 5), ("a_research_10", 10), ("a_research_25", 25),
    ])
    def test_research_thresholds(self, state, achievement_id, buildings):
        assert state.get_achievement(achievement_id).threshold == buildings
        for i in range(buildings - len(state.buildings)):
            state = transition(state, Action.complete_research(SAMPLE_BUILDING))
        assert transition(state, Action.evaluate_achievements()).get_achievement(achievement_id).unlocked

    def test_dismiss_only_touches_queue(self, state):
        """Dismissing removes the toast but keeps the achievement."""
        state = transition(rich(state, 150), Action.evaluate_achievements())
        new_state = transition(state, Action.dismiss_achievement("a_start"))

        assert new_state.achievement_queue == ()
        assert new_state.get_achievement("a_start").unlocked

    def test_unlock_secret(self, state):
        """A secret achievement is unlocked, queued and logged once."""
        result = apply_action(state, Action.unlock_secret_achievement("a_cheater"))
        assert result.success
        assert result.new_state.get_achievement("a_cheater").unlocked
        assert result.new_state.achievement_queue[-1].id == "a_cheater"

        again = apply_action(result.new_state, Action.unlock_secret_achievement("a_cheater"))
        assert not again.success


class TestPrestige:
    """Tests for the prestige reset."""

    def _played(self, state):
        state = rich(state, 1_000_000)._copy_with(
            total_clicks=321,
            galaxy_name="Andromeda",
            click_power=8.0,
            current_tier=Tier.COSMIC,
            generation_count=2,
        )
        state = state.with_building(replace(state.buildings[0], count=40))
        state = state.with_helper(replace(
            state.get_helper("h_clicker"), unlocked=True, active=False, bonus_multiplier=3.0,
        ))
        return transition(state, Action.evaluate_achievements())

    def test_prestige_round_trip(self, state):
        """Shards and multiplier carry; the run resets."""
        state = self._played(state)
        gain = economy.prestige_gain(state.total_resources_generated)
        assert gain == 10

        new_state = transition(state, Action.prestige("Neon Abyss", "Lumen", gain))

        assert new_state.prestige_currency == 10
        assert new_state.prestige_multiplier == 1 + new_state.prestige_currency * 0.1
        assert new_state.resources == 0
        assert new_state.total_resources_generated == 0
        assert new_state.current_tier == Tier.QUANTUM
        assert new_state.lifetime_total_resources == state.lifetime_total_resources
        assert new_state.total_clicks == state.total_clicks
        assert new_state.click_power == 1.0
        assert new_state.generation_count == 0

    def test_prestige_carries_identity(self, state):
        """Name, new theme, helpers and achievements survive."""
        state = self._played(state)
        new_state = transition(state, Action.prestige("Neon Abyss", "Lumen", 10))

        assert new_state.galaxy_name == "Andromeda"
        assert new_state.theme == "Neon Abyss"
        assert new_state.resource_name == "Lumen"
        clicker = new_state.get_helper("h_clicker")
        assert clicker.unlocked and not clicker.active
        assert clicker.bonus_multiplier == 1.0
        assert new_state.get_achievement("a_rich").unlocked
        assert new_state.get_building("b_cursor").count == 0

    def test_prestige_single_log(self, state):
        """The prestige log replaces the history."""
        new_state = transition(self._played(state), Action.prestige("T", "R", 10))
        assert len(new_state.logs) == 1
        assert new_state.logs[0].log_type == LogType.PRESTIGE

    def test_prestige_advances_epoch(self, state):
        """Prestige starts a new generation."""
        assert transition(state, Action.prestige("T", "R", 0)).epoch == state.epoch + 1

    def test_prestige_without_naming_keeps_theme(self, state):
        """Missing naming falls back to the current theme."""
        new_state = transition(state, Action.prestige("", "", 1))
        assert new_state.theme == state.theme
        assert new_state.resource_name == state.resource_name


class TestResets:
    """Tests for HardReset and LoadSnapshot."""

    def test_hard_reset(self, state):
        """Everything returns to starter defaults; only the epoch moves."""
        played = rich(state, 5e6)._copy_with(prestige_currency=7, galaxy_name="X", epoch=4)
        new_state = transition(played, Action.hard_reset())
        assert new_state == initial_state(epoch=5)

    def test_load_snapshot(self, state):
        """A loaded snapshot replaces the state and clears new markers."""
        snapshot = rich(initial_state(), 777)._copy_with(galaxy_name="Loaded", epoch=1)
        snapshot = snapshot.with_building(replace(snapshot.buildings[0], count=3, just_unlocked=True))
        current = state._copy_with(epoch=6)

        new_state = transition(current, Action.load_snapshot(snapshot))

        assert new_state.galaxy_name == "Loaded"
        assert new_state.resources == 777
        assert not any(b.just_unlocked for b in new_state.buildings)
        assert new_state.epoch == 7


class TestCheats:
    """Tests for developer console commands."""

    def test_add_resources(self, state):
        """Resources and lifetime grow by a quadrillion."""
        new_state = transition(state, Action.cheat(CheatKind.ADD_RESOURCES))
        assert new_state.resources == 1e15
        assert new_state.lifetime_total_resources == 1e15
        assert new_state.logs[-1].log_type == LogType.CHEAT

    def test_add_shards_keeps_multiplier_invariant(self, state):
        """Shards are added and the multiplier follows."""
        new_state = transition(state, Action.cheat(CheatKind.ADD_SHARDS))
        assert new_state.prestige_currency == 100
        assert new_state.prestige_multiplier == pytest.approx(11.0)

    def test_force_evolve(self, state):
        """Forced evolution moves one tier with bonuses."""
        new_state = transition(state, Action.cheat(CheatKind.FORCE_EVOLVE))
        assert new_state.current_tier == Tier.MACROCOSM
        assert new_state.click_power == pytest.approx(1.5)

    def test_force_evolve_at_final_tier(self, state):
        """The last tier has nowhere to go."""
        state = state._copy_with(current_tier=Tier.OMNIPOTENT)
        assert apply_action(state, Action.cheat(CheatKind.FORCE_EVOLVE)).new_state is state

    def test_time_warp(self, state):
        """Time warp adds an hour of production."""
        state = state.with_building(replace(state.buildings[0], count=2))
        new_state = transition(state, Action.cheat(CheatKind.TIME_WARP))
        assert new_state.resources == pytest.approx(3600)

    def test_unlock_all_achievements(self, state):
        """Every achievement is unlocked."""
        new_state = transition(state, Action.cheat(CheatKind.UNLOCK_ACHIEVEMENTS))
        assert all(a.unlocked for a in new_state.achievements)


ACTIONS = st.one_of(
    st.floats(min_value=-100, max_value=5000).map(Action.accrue),
    st.sampled_from([1.0, 2.5, 0, -1]).map(Action.manual_yield),
    st.sampled_from(["b_cursor", "b_drone", "b_x"]).map(Action.purchase_building),
    st.sampled_from(["h_clicker", "h_builder", "h_researcher"]).map(Action.unlock_helper),
    st.just(Action.toggle_helper("h_clicker")),
    st.sampled_from([0, 1000, 50_000]).map(Action.begin_research),
    st.sampled_from([0, 10_000]).map(lambda cost: Action.complete_research(SAMPLE_BUILDING, cost=cost)),
    st.sampled_from(Tier).map(Action.advance_tier),
    st.just(Action.evaluate_achievements()),
    st.sampled_from([0, 1, 3]).map(lambda gain: Action.prestige("T", "R", gain)),
)


class TestNonNegativeResources:
    """resources >= 0 after any sequence of transitions."""

    @given(
        st.floats(min_value=0, max_value=1e6),
        st.lists(ACTIONS, max_size=60),
    )
    def test_action_sequences(self, resources, actions):
        """Player and driver actions never drive resources negative."""
        state = rich(initial_state(), resources)
        for action in actions:
            state = transition(state, action)
            assert state.resources >= 0
