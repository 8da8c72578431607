"""
Clocks - Time sources for the drivers.

The reducer never reads time. Drivers ask a Clock for "now" and pass
deltas and timestamps into actions, so tests can use ManualClock and
replay runs exactly.
"""

from __future__ import annotations
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Millisecond time source."""

    @abstractmethod
    def now_ms(self) -> float:
        pass


class SystemClock(Clock):
    """Wall clock in epoch milliseconds.

    Helper stamps are persisted, so they must stay comparable
    across processes.
    """

    def now_ms(self) -> float:
        return time.time() * 1000.0


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Usage:
        clock = ManualClock()
        clock.advance(1500)
        assert clock.now_ms() == 1500
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms

    def now_ms(self) -> float:
        return self._now

    def advance(self, ms: float) -> float:
        if ms < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += ms
        return self._now

    def set(self, now_ms: float):
        if now_ms < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = now_ms
