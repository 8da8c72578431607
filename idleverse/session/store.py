"""
State Store - The single writer for one universe.

Every driver (manual input, tick, helpers, timers, async completions)
changes state only by calling dispatch(). Transitions run synchronously
and one at a time; a dispatch issued while a transition is being applied
is refused rather than interleaved. Subscribers are notified after the
transition has completed.
"""

from __future__ import annotations
import logging
from collections import deque
from dataclasses import replace
from typing import Callable, Iterable

from ..engine_core.action import Action, ActionResult
from ..engine_core.clock import Clock
from ..engine_core.reducer import Reducer
from ..engine_core.state import UniverseState, initial_state


logger = logging.getLogger(__name__)

Subscriber = Callable[[UniverseState, Action, ActionResult], None]


class StateStore:
    """
    Owns the current UniverseState.

    Usage:
        store = StateStore(clock=SystemClock())
        store.dispatch(Action.manual_yield())
        print(store.state.resources)

    If a clock is given, actions without a timestamp are stamped with
    it before they reach the reducer, so the journal replays exactly.
    """

    def __init__(
        self,
        state: UniverseState | None = None,
        clock: Clock | None = None,
        reducer: Reducer | None = None,
        journal_size: int | None = 0,
    ):
        self._state = state if state is not None else initial_state()
        self.clock = clock
        self.reducer = reducer or Reducer()
        self.last_result: ActionResult | None = None

        # journal_size: 0 disables, None keeps everything
        self.journal: deque[Action] | None = (
            None if journal_size == 0 else deque(maxlen=journal_size)
        )
        self._subscribers: list[Subscriber] = []
        self._dispatching = False

    @property
    def state(self) -> UniverseState:
        """Read-only view of the current state."""
        return self._state

    def dispatch(self, action: Action) -> ActionResult:
        """Apply one action atomically."""
        if self._dispatching:
            raise RuntimeError("dispatch called while a transition is in progress")

        if action.timestamp is None and self.clock is not None:
            action = replace(action, timestamp=self.clock.now_ms())

        self._dispatching = True
        try:
            result = self.reducer.apply(self._state, action)
            self._state = result.new_state
            self.last_result = result
            if self.journal is not None:
                self.journal.append(action)
        finally:
            self._dispatching = False

        for callback in list(self._subscribers):
            callback(result.new_state, action, result)
        return result

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @staticmethod
    def replay(
        initial: UniverseState,
        actions: Iterable[Action],
        reducer: Reducer | None = None,
    ) -> UniverseState:
        """Rebuild a state from a starting snapshot and a journal."""
        reducer = reducer or Reducer()
        state = initial
        for action in actions:
            state = reducer.apply(state, action).new_state
        return state
