"""
Session Manager - Creates and manages in-memory universes.

LIFECYCLE:
1. Client creates a session -> a fresh universe (or an imported save)
2. Each request advances the session's GameLoop to "now" before acting
3. Client ends the session -> the universe is dropped from memory

PERSISTENCE RULES:
- Sessions live in memory only
- A universe leaves the process only as an exported save string
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
import uuid
import time

from ..config import EngineConfig
from ..content.generator import ContentGenerator
from ..engine_core.clock import Clock, SystemClock
from ..engine_core.state import UniverseState, initial_state
from .game_loop import GameLoop
from .store import StateStore


class SessionState(Enum):
    """State of a universe session."""
    ACTIVE = "active"
    ENDED = "ended"


@dataclass
class Session:
    """
    One universe being played.

    The session owns its GameLoop (and through it the StateStore).
    """
    session_id: str
    loop: GameLoop
    created_at: float
    last_seen: float

    state: SessionState = SessionState.ACTIVE
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def universe(self) -> UniverseState:
        return self.loop.state

    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    def touch(self):
        self.last_seen = time.time()


class SessionManager:
    """
    Manages universe sessions.

    Responsibilities:
    - Create sessions with their own store, clock and drivers
    - Track active sessions
    - Clean up sessions nobody has touched for a while

    No persistence - sessions are in-memory only.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        clock_factory: Callable[[], Clock] = SystemClock,
        generator_factory: Callable[[EngineConfig], ContentGenerator] | None = None,
    ):
        self.config = config or EngineConfig()
        self.clock_factory = clock_factory
        self.generator_factory = generator_factory
        self._sessions: dict[str, Session] = {}

    def create_session(
        self,
        state: UniverseState | None = None,
        galaxy_name: str | None = None,
    ) -> Session:
        """
        Create a new universe session.

        Args:
            state: Starting state (e.g. an imported save); defaults to a new universe
            galaxy_name: Optional name for the new galaxy

        Returns:
            New Session ready to play
        """
        session_id = str(uuid.uuid4())
        clock = self.clock_factory()
        generator = self.generator_factory(self.config) if self.generator_factory else None

        store = StateStore(state if state is not None else initial_state(), clock=clock)
        loop = GameLoop(
            store=store,
            generator=generator,
            clock=clock,
            config=self.config,
        )
        if galaxy_name:
            loop.rename(galaxy_name)

        now = time.time()
        session = Session(
            session_id=session_id,
            loop=loop,
            created_at=now,
            last_seen=now,
        )
        self._sessions[session_id] = session
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def end_session(self, session_id: str) -> bool:
        """
        End a session and drop its universe.

        Outstanding research and narrative requests are cancelled.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.loop.stop()
        session.loop.research.cancel()
        session.loop.narrative.cancel()
        session.state = SessionState.ENDED
        return True

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_idle_seconds: int = 3600) -> int:
        """
        End sessions that have not been touched for max_idle_seconds.

        Returns the number of sessions ended.
        """
        current_time = time.time()
        stale = [
            sid for sid, session in self._sessions.items()
            if current_time - session.last_seen > max_idle_seconds
        ]
        for session_id in stale:
            self.end_session(session_id)
        return len(stale)
