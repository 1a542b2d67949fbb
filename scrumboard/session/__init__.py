"""
Session Module - Manages in-memory game sessions.

A session represents one play-through of a game:
- Created when a caller starts or imports a game
- Holds the BoardGame facade and a seeded dice source
- Serializes mutations with a per-game lock
- Removed when the game ends

Sessions are EPHEMERAL: durable storage goes through export/restore
snapshots.
"""

from .game import BoardGame, load_snapshot
from .manager import SessionManager, Session, SessionState
from .simulator import AutoPlayer, TeamPolicy, TurnReport, simulate_game

__all__ = [
    "BoardGame",
    "load_snapshot",
    "SessionManager",
    "Session",
    "SessionState",
    "AutoPlayer",
    "TeamPolicy",
    "TurnReport",
    "simulate_game",
]
