"""
Reducer - Applies actions to universe state.

The reducer is the single point of state mutation.
All state changes must go through apply().

Design principles:
- Pure function: (state, action) -> new_state
- Validates before applying; a failed precondition is a no-op, never an error
- No clock reads: time arrives inside the action
- Every ActionType has exactly one handler
"""

from __future__ import annotations
import logging
from dataclasses import replace

from .state import (
    Building, HelperType, LogType, Tier, UniverseState, initial_state,
)
from .action import Action, ActionType, ActionResult, CheatKind, ErrorCode
from .achievements import newly_satisfied
from . import economy


logger = logging.getLogger(__name__)


TIER_CLICK_BONUS = 1.5
TIER_HELPER_BONUS = 1.25
TIER_PRODUCTION_BONUS = 1.15
RESEARCH_CLICK_BONUS = 2.0
RESEARCH_HELPER_BONUS = 1.25

CHEAT_RESOURCE_AMOUNT = 1_000_000_000_000_000
CHEAT_SHARD_AMOUNT = 100
TIME_WARP_SECONDS = 3600


class Reducer:
    """
    Reducer applies actions to universe state.

    Stateless - all state is in UniverseState.
    """

    def __init__(self):
        self._handlers = {
            ActionType.ACCRUE: self._handle_accrue,
            ActionType.MANUAL_YIELD: self._handle_manual_yield,
            ActionType.PURCHASE_BUILDING: self._handle_purchase_building,
            ActionType.UNLOCK_HELPER: self._handle_unlock_helper,
            ActionType.TOGGLE_HELPER: self._handle_toggle_helper,
            ActionType.RENAME_GALAXY: self._handle_rename_galaxy,
            ActionType.STAMP_HELPER: self._handle_stamp_helper,
            ActionType.BEGIN_RESEARCH: self._handle_begin_research,
            ActionType.COMPLETE_RESEARCH: self._handle_complete_research,
            ActionType.ADVANCE_TIER: self._handle_advance_tier,
            ActionType.APPEND_LOG: self._handle_append_log,
            ActionType.EVALUATE_ACHIEVEMENTS: self._handle_evaluate_achievements,
            ActionType.DISMISS_ACHIEVEMENT: self._handle_dismiss_achievement,
            ActionType.UNLOCK_SECRET_ACHIEVEMENT: self._handle_unlock_secret_achievement,
            ActionType.PRESTIGE: self._handle_prestige,
            ActionType.HARD_RESET: self._handle_hard_reset,
            ActionType.LOAD_SNAPSHOT: self._handle_load_snapshot,
            ActionType.CHEAT: self._handle_cheat,
        }
        missing = self.missing_handlers()
        if missing:
            raise TypeError(
                "Reducer has no handler for: "
                + ", ".join(sorted(t.value for t in missing))
            )

    def missing_handlers(self) -> set[ActionType]:
        """Action types without a handler (must be empty)."""
        return set(ActionType) - set(self._handlers)

    def apply(self, state: UniverseState, action: Action) -> ActionResult:
        """
        Apply an action to the universe state.

        Returns ActionResult; new_state is the input state when rejected.
        """
        handler = self._handlers.get(action.action_type)
        if not handler:
            return ActionResult.rejected(
                state,
                f"No handler for action type: {action.action_type}",
                error_code=ErrorCode.NO_HANDLER,
            )

        result = handler(state, action)
        if not result.success:
            logger.debug(
                "Rejected %s: %s", action.action_type.value, result.error,
            )
        return result

    # =========================================================================
    # Helpers
    # =========================================================================

    def _timestamp(self, state: UniverseState, action: Action) -> float:
        return action.timestamp if action.timestamp is not None else state.clock_ms

    def _credit(self, state: UniverseState, amount: float, **kwargs) -> UniverseState:
        """Add produced resources to the balance and both running totals."""
        return state._copy_with(
            resources=state.resources + amount,
            total_resources_generated=state.total_resources_generated + amount,
            lifetime_total_resources=state.lifetime_total_resources + amount,
            **kwargs,
        )

    def _boost_click_helpers(self, state: UniverseState, factor: float):
        return tuple(
            replace(h, bonus_multiplier=h.bonus_multiplier * factor)
            if h.helper_type == HelperType.CLICK else h
            for h in state.helpers
        )

    def _evolve(self, state: UniverseState, tier: Tier) -> UniverseState:
        """Tier change with its click, helper and production bonuses."""
        return state._copy_with(
            current_tier=tier,
            click_power=state.click_power * TIER_CLICK_BONUS,
            helpers=self._boost_click_helpers(state, TIER_HELPER_BONUS),
            buildings=tuple(
                replace(b, base_production=b.base_production * TIER_PRODUCTION_BONUS)
                for b in state.buildings
            ),
        )

    # =========================================================================
    # Handlers
    # =========================================================================

    def _handle_accrue(self, state: UniverseState, action: Action) -> ActionResult:
        """Passive production over dt milliseconds."""
        dt = action.payload.dt
        if dt is None or dt <= 0:
            return ActionResult.rejected(state, "dt must be positive", ErrorCode.INVALID_ARGUMENT)

        delta = economy.total_production(state) * dt / 1000.0
        new_state = self._credit(state, delta, clock_ms=state.clock_ms + dt)
        return ActionResult.success_with_state(new_state)

    def _handle_manual_yield(self, state: UniverseState, action: Action) -> ActionResult:
        multiplier = action.payload.multiplier
        if multiplier is None:
            multiplier = 1.0
        if multiplier <= 0:
            return ActionResult.rejected(state, "multiplier must be positive", ErrorCode.INVALID_ARGUMENT)

        value = economy.click_value(state, multiplier)
        new_state = self._credit(state, value, total_clicks=state.total_clicks + 1)
        return ActionResult.success_with_state(
            new_state,
            changes=[f"+{value:g} {state.resource_name}"],
        )

    def _handle_purchase_building(self, state: UniverseState, action: Action) -> ActionResult:
        building_id = action.payload.target_id
        building = state.get_building(building_id) if building_id else None
        if not building:
            return ActionResult.rejected(state, f"Building {building_id} not found", ErrorCode.INVALID_TARGET)

        cost = economy.building_cost(building)
        if state.resources < cost:
            return ActionResult.rejected(
                state,
                f"Need {cost} {state.resource_name} for {building.name}",
                ErrorCode.INSUFFICIENT_RESOURCES,
            )

        new_building = replace(building, count=building.count + 1, just_unlocked=False)
        new_state = state.with_building(new_building)._copy_with(
            resources=state.resources - cost,
        )
        return ActionResult.success_with_state(
            new_state,
            changes=[f"Bought {building.name} for {cost}"],
        )

    def _handle_unlock_helper(self, state: UniverseState, action: Action) -> ActionResult:
        helper_id = action.payload.target_id
        helper = state.get_helper(helper_id) if helper_id else None
        if not helper:
            return ActionResult.rejected(state, f"Helper {helper_id} not found", ErrorCode.INVALID_TARGET)
        if helper.unlocked:
            return ActionResult.rejected(state, f"{helper.name} already online", ErrorCode.INVALID_TARGET)
        if state.resources < helper.base_cost:
            return ActionResult.rejected(
                state,
                f"Need {helper.base_cost:g} {state.resource_name} for {helper.name}",
                ErrorCode.INSUFFICIENT_RESOURCES,
            )

        new_state = state.with_helper(replace(helper, unlocked=True, active=True))
        new_state = new_state._copy_with(resources=state.resources - helper.base_cost)
        new_state = new_state.with_log(
            f"Automation Unit Online: {helper.name}",
            LogType.INFO,
            self._timestamp(state, action),
        )
        return ActionResult.success_with_state(new_state, changes=[f"Unlocked {helper.name}"])

    def _handle_toggle_helper(self, state: UniverseState, action: Action) -> ActionResult:
        helper_id = action.payload.target_id
        helper = state.get_helper(helper_id) if helper_id else None
        if not helper:
            return ActionResult.rejected(state, f"Helper {helper_id} not found", ErrorCode.INVALID_TARGET)

        new_state = state.with_helper(replace(helper, active=not helper.active))
        return ActionResult.success_with_state(new_state)

    def _handle_rename_galaxy(self, state: UniverseState, action: Action) -> ActionResult:
        name = (action.payload.name or "").strip()
        if not name:
            return ActionResult.rejected(state, "Galaxy name is empty", ErrorCode.INVALID_ARGUMENT)
        return ActionResult.success_with_state(state._copy_with(galaxy_name=name))

    def _handle_stamp_helper(self, state: UniverseState, action: Action) -> ActionResult:
        """Record the time a helper last fired (successful or not)."""
        helper_id = action.payload.target_id
        helper = state.get_helper(helper_id) if helper_id else None
        if not helper:
            return ActionResult.rejected(state, f"Helper {helper_id} not found", ErrorCode.INVALID_TARGET)
        now = action.payload.now
        if now is None:
            now = self._timestamp(state, action)

        new_helper = replace(helper, last_action_time=now)
        return ActionResult.success_with_state(state.with_helper(new_helper))

    def _handle_begin_research(self, state: UniverseState, action: Action) -> ActionResult:
        """Charge research cost up front. Buildings are untouched until completion."""
        cost = action.payload.cost
        if cost is None or cost < 0:
            return ActionResult.rejected(state, "Research cost must be non-negative", ErrorCode.INVALID_ARGUMENT)
        if state.resources < cost:
            return ActionResult.rejected(
                state,
                f"Need {cost:,.0f} {state.resource_name} to research",
                ErrorCode.INSUFFICIENT_RESOURCES,
            )

        new_state = state._copy_with(resources=state.resources - cost)
        new_state = new_state.with_log(
            f"Research Protocol Initiated. -{int(cost):,} {state.resource_name}",
            LogType.INFO,
            self._timestamp(state, action),
        )
        return ActionResult.success_with_state(new_state)

    def _handle_complete_research(self, state: UniverseState, action: Action) -> ActionResult:
        data = action.payload.building_data
        if data is None:
            return ActionResult.rejected(state, "No building data", ErrorCode.INVALID_ARGUMENT)
        epoch = action.payload.epoch
        if epoch is not None and epoch != state.epoch:
            return ActionResult.rejected(
                state,
                f"Research from generation {epoch} dropped (current {state.epoch})",
                ErrorCode.STALE_GENERATION,
            )

        generation = state.generation_count + 1
        new_building = Building(
            id=f"b_gen_{generation}",
            name=data.name,
            description=data.description,
            base_cost=data.base_cost,
            base_production=data.base_production,
            count=0,
            cost_multiplier=economy.GENERATED_COST_MULTIPLIER,
            tier=state.current_tier,
            flavor_text=data.flavor_text,
            just_unlocked=True,
        )

        cost = action.payload.cost or 0.0
        new_state = state._copy_with(
            resources=max(0.0, state.resources - cost),
            click_power=state.click_power * RESEARCH_CLICK_BONUS,
            helpers=self._boost_click_helpers(state, RESEARCH_HELPER_BONUS),
            buildings=state.buildings + (new_building,),
            generation_count=generation,
        )
        new_state = new_state.with_log(
            f"Research Complete: {data.name}. Click Power x2, Nanobots x1.25",
            LogType.UNLOCK,
            self._timestamp(state, action),
        )
        logger.info("Research complete: %s", data.name)
        return ActionResult.success_with_state(new_state, changes=[f"Unlocked {data.name}"])

    def _handle_advance_tier(self, state: UniverseState, action: Action) -> ActionResult:
        """Move one step forward through the tiers."""
        tier = action.payload.tier
        if tier is None or tier == state.current_tier:
            return ActionResult.rejected(state, "Already at that tier", ErrorCode.INVALID_TARGET)
        if tier != state.current_tier.next_tier:
            return ActionResult.rejected(
                state,
                f"Cannot move from {state.current_tier.value} to {tier.value}",
                ErrorCode.INVALID_TARGET,
            )

        new_state = self._evolve(state, tier).with_log(
            f"EVOLUTION ANOMALY DETECTED: Reality Shift to {tier.value}. "
            "(Clicks x1.5, Nanobots x1.25, Structure Output x1.15)",
            LogType.STORY,
            self._timestamp(state, action),
        )
        logger.info("Universe evolved to %s", tier.value)
        return ActionResult.success_with_state(new_state)

    def _handle_append_log(self, state: UniverseState, action: Action) -> ActionResult:
        message = action.payload.message
        if not message:
            return ActionResult.rejected(state, "Empty log message", ErrorCode.INVALID_ARGUMENT)
        log_type = action.payload.log_type or LogType.INFO
        return ActionResult.success_with_state(
            state.with_log(message, log_type, self._timestamp(state, action))
        )

    def _handle_evaluate_achievements(self, state: UniverseState, action: Action) -> ActionResult:
        """
        Unlock every newly satisfied achievement in one transition.

        Unlocked achievements are queued and logged in declared order.
        """
        satisfied = newly_satisfied(state)
        if not satisfied:
            return ActionResult.success_with_state(state)

        ids = {a.id for a in satisfied}
        unlocked = []
        updated = []
        for a in state.achievements:
            if a.id in ids:
                a = replace(a, unlocked=True)
                unlocked.append(a)
            updated.append(a)

        new_state = state._copy_with(
            achievements=tuple(updated),
            achievement_queue=state.achievement_queue + tuple(unlocked),
        )
        new_state = new_state.with_logs(
            [(f"Achievement Unlocked: {a.name}", LogType.ACHIEVEMENT) for a in unlocked],
            self._timestamp(state, action),
        )
        return ActionResult.success_with_state(
            new_state,
            changes=[f"Achievement unlocked: {a.name}" for a in unlocked],
        )

    def _handle_dismiss_achievement(self, state: UniverseState, action: Action) -> ActionResult:
        achievement_id = action.payload.target_id
        queue = tuple(a for a in state.achievement_queue if a.id != achievement_id)
        return ActionResult.success_with_state(state._copy_with(achievement_queue=queue))

    def _handle_unlock_secret_achievement(self, state: UniverseState, action: Action) -> ActionResult:
        achievement_id = action.payload.target_id
        achievement = state.get_achievement(achievement_id) if achievement_id else None
        if not achievement:
            return ActionResult.rejected(state, f"Achievement {achievement_id} not found", ErrorCode.INVALID_TARGET)
        if achievement.unlocked:
            return ActionResult.rejected(state, f"{achievement.name} already unlocked", ErrorCode.INVALID_TARGET)

        unlocked = replace(achievement, unlocked=True)
        new_state = state._copy_with(
            achievements=tuple(
                unlocked if a.id == achievement_id else a
                for a in state.achievements
            ),
            achievement_queue=state.achievement_queue + (unlocked,),
        )
        new_state = new_state.with_log(
            f"Hidden Access Granted: {unlocked.name}",
            LogType.ACHIEVEMENT,
            self._timestamp(state, action),
        )
        return ActionResult.success_with_state(new_state)

    def _handle_prestige(self, state: UniverseState, action: Action) -> ActionResult:
        """
        Collapse the universe and start a new run.

        Carried over: galaxy name, shards (plus gain), multiplier, the new
        naming, helpers (bonuses reset), achievements, lifetime resources
        and total clicks. Everything else returns to starter defaults.
        """
        gain = action.payload.gain
        if gain is None or gain < 0:
            return ActionResult.rejected(state, "Prestige gain must be non-negative", ErrorCode.INVALID_ARGUMENT)

        currency = state.prestige_currency + gain
        fresh = initial_state(epoch=state.epoch + 1)
        new_state = fresh._copy_with(
            galaxy_name=state.galaxy_name,
            prestige_currency=currency,
            prestige_multiplier=economy.prestige_multiplier(currency),
            theme=action.payload.theme or state.theme,
            resource_name=action.payload.resource_name or state.resource_name,
            helpers=tuple(replace(h, bonus_multiplier=1.0) for h in state.helpers),
            achievements=state.achievements,
            lifetime_total_resources=state.lifetime_total_resources,
            total_clicks=state.total_clicks,
            click_power=1.0,
            clock_ms=state.clock_ms,
            logs=(),
            log_seq=state.log_seq,
        )
        new_state = new_state.with_log(
            "THE UNIVERSE COLLAPSED AND WAS REBORN.",
            LogType.PRESTIGE,
            self._timestamp(state, action),
        )
        logger.info("Prestige: +%g shards (total %g)", gain, currency)
        return ActionResult.success_with_state(new_state, changes=[f"+{gain:g} shards"])

    def _handle_hard_reset(self, state: UniverseState, action: Action) -> ActionResult:
        """Starter defaults; only the generation counter moves forward."""
        logger.info("Hard reset")
        return ActionResult.success_with_state(initial_state(epoch=state.epoch + 1))

    def _handle_load_snapshot(self, state: UniverseState, action: Action) -> ActionResult:
        snapshot = action.payload.snapshot
        if snapshot is None:
            return ActionResult.rejected(state, "No snapshot", ErrorCode.INVALID_ARGUMENT)

        new_state = snapshot._copy_with(
            buildings=tuple(
                replace(b, just_unlocked=False)
                for b in snapshot.buildings
            ),
            epoch=max(state.epoch, snapshot.epoch) + 1,
        )
        logger.info("Loaded snapshot of %s", snapshot.galaxy_name)
        return ActionResult.success_with_state(new_state)

    def _handle_cheat(self, state: UniverseState, action: Action) -> ActionResult:
        """Developer console commands."""
        kind = action.payload.cheat
        ts = self._timestamp(state, action)

        if kind == CheatKind.ADD_RESOURCES:
            new_state = state._copy_with(
                resources=state.resources + CHEAT_RESOURCE_AMOUNT,
                lifetime_total_resources=state.lifetime_total_resources + CHEAT_RESOURCE_AMOUNT,
            ).with_log("CHEAT: Resources Injected", LogType.CHEAT, ts)

        elif kind == CheatKind.ADD_SHARDS:
            currency = state.prestige_currency + CHEAT_SHARD_AMOUNT
            new_state = state._copy_with(
                prestige_currency=currency,
                prestige_multiplier=economy.prestige_multiplier(currency),
            ).with_log("CHEAT: Shards Injected", LogType.CHEAT, ts)

        elif kind == CheatKind.FORCE_EVOLVE:
            next_tier = state.current_tier.next_tier
            if next_tier is None:
                return ActionResult.rejected(state, "Already at the final tier", ErrorCode.INVALID_TARGET)
            new_state = self._evolve(state, next_tier).with_log(
                "CHEAT: Forced Evolution", LogType.CHEAT, ts,
            )

        elif kind == CheatKind.TIME_WARP:
            gained = economy.total_production(state) * TIME_WARP_SECONDS
            new_state = state._copy_with(
                resources=state.resources + gained,
                lifetime_total_resources=state.lifetime_total_resources + gained,
            ).with_log("CHEAT: Time Warp (1 Hr)", LogType.CHEAT, ts)

        elif kind == CheatKind.UNLOCK_ACHIEVEMENTS:
            new_state = state._copy_with(
                achievements=tuple(replace(a, unlocked=True) for a in state.achievements),
            ).with_log("CHEAT: All Awards Unlocked", LogType.CHEAT, ts)

        else:
            return ActionResult.rejected(state, f"Unknown cheat: {kind}", ErrorCode.INVALID_ARGUMENT)

        return ActionResult.success_with_state(new_state)


_DEFAULT_REDUCER: Reducer | None = None


def apply_action(state: UniverseState, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Uses a shared Reducer (it holds no state).
    """
    global _DEFAULT_REDUCER
    if _DEFAULT_REDUCER is None:
        _DEFAULT_REDUCER = Reducer()
    return _DEFAULT_REDUCER.apply(state, action)


def transition(state: UniverseState, action: Action) -> UniverseState:
    """The transition function: (state, action) -> state."""
    return apply_action(state, action).new_state
