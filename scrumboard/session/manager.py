"""
Session Manager - Creates and manages game sessions.

LIFECYCLE:
1. Caller starts a game -> session created with a freshly seeded board
2. During the game, every mutating call runs under the session's lock,
   so at most one operation is in flight per game
3. Caller may export the game and later restore it as a new session
4. Game ends -> session removed from memory

PERSISTENCE RULES:
- Sessions are in-memory only
- Durable storage is the caller's job, via export/restore snapshots
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import logging
import random
import threading
import time

from ..engine_core.config import GameConfig
from ..engine_core.errors import GameAlreadyExists, GameNotFound
from ..games.scrum.cards import CardTemplate
from ..games.scrum.setup import setup_scrum_game
from .game import BoardGame, load_snapshot


logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a game session."""
    ACTIVE = "active"
    GAME_OVER = "game_over"
    ABANDONED = "abandoned"


@dataclass
class Session:
    """
    An in-memory game session.

    Contains:
    - The game facade
    - The lock that serializes mutations
    - A seeded random source for server-side rolls
    """
    session_id: str
    game: BoardGame
    created_at: float
    state: SessionState = SessionState.ACTIVE
    rng: random.Random = field(default_factory=random.Random)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def is_active(self) -> bool:
        if self.state == SessionState.ACTIVE and self.game.state.is_game_over:
            self.state = SessionState.GAME_OVER
        return self.state == SessionState.ACTIVE

    def roll_d6(self) -> int:
        return self.rng.randint(1, 6)


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create sessions from a config and starter cards
    - Restore sessions from exported snapshots
    - Track active sessions
    - Clean up completed sessions
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        config: GameConfig | None = None,
        cards: list[CardTemplate] | None = None,
        random_seed: int | None = None,
        game_id: str | None = None,
    ) -> Session:
        """
        Start a new game.

        Args:
            config: Rules parameters (from the environment if not provided)
            cards: Starter cards for the Funnel
            random_seed: Seed for the Funnel shuffle and server-side rolls
            game_id: Identifier to use (random if not provided)

        Returns:
            New Session in Sprint Planning, turn 1

        Raises:
            GameAlreadyExists: If a live session already uses game_id
        """
        state = setup_scrum_game(
            game_id=game_id,
            config=config or GameConfig.from_env(),
            cards=cards,
            random_seed=random_seed,
        )
        return self._register(BoardGame(state), random_seed, replace=False)

    def restore_session(self, snapshot: dict[str, Any], random_seed: int | None = None) -> Session:
        """Register a game from an exported snapshot, replacing any session with the same id."""
        game = BoardGame(load_snapshot(snapshot))
        return self._register(game, random_seed, replace=True)

    def _register(self, game: BoardGame, random_seed: int | None, replace: bool) -> Session:
        session = Session(
            session_id=game.game_id,
            game=game,
            created_at=time.time(),
            rng=random.Random(random_seed),
        )
        with self._lock:
            if not replace and session.session_id in self._sessions:
                raise GameAlreadyExists(f"Game {session.session_id} already exists")
            self._sessions[session.session_id] = session
        logger.info("Session %s started", session.session_id)
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def require_session(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise GameNotFound(f"Game {session_id} not found")
        return session

    def end_session(self, session_id: str, reason: str = "completed") -> bool:
        """Remove a session from memory."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.state = SessionState.GAME_OVER if reason == "completed" else SessionState.ABANDONED
        logger.info("Session %s ended (%s)", session_id, reason)
        return True

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in list(self._sessions.items())
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """
        Drop finished sessions older than max_age.

        Returns the number removed.
        """
        now = time.time()
        stale = [
            sid for sid, session in list(self._sessions.items())
            if now - session.created_at > max_age_seconds and not session.is_active()
        ]
        for sid in stale:
            self.end_session(sid, reason="stale")
        return len(stale)
