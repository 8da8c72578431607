"""
Session Module - Drives universes over time.

A session holds one universe:
- StateStore: the single writer; every change is a dispatched action
- Drivers: tick, helpers, research, evolution, achievements, narrative, autosave
- GameLoop: runs the drivers cooperatively on one event loop

Sessions are in-memory; the only persistence is the snapshot store.
"""

from .store import StateStore
from .schedulers import (
    IntervalTimer,
    TickDriver,
    AutomationScheduler,
    EvolutionRoller,
    RollOutcome,
    EVOLUTION_CHANCES,
    AchievementEvaluator,
    NarrativeSampler,
    AutosaveScheduler,
)
from .research import ResearchProtocol, ResearchStatus, ResearchJob
from .prestige import PrestigeEngine
from .game_loop import GameLoop, LoopState, StepReport
from .manager import SessionManager, Session, SessionState

__all__ = [
    "StateStore",
    "IntervalTimer",
    "TickDriver",
    "AutomationScheduler",
    "EvolutionRoller",
    "RollOutcome",
    "EVOLUTION_CHANCES",
    "AchievementEvaluator",
    "NarrativeSampler",
    "AutosaveScheduler",
    "ResearchProtocol",
    "ResearchStatus",
    "ResearchJob",
    "PrestigeEngine",
    "GameLoop",
    "LoopState",
    "StepReport",
    "SessionManager",
    "Session",
    "SessionState",
]
