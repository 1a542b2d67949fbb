"""
API Module - REST interface to the Scrum board.

Exposes the engine over HTTP. Clients:
1. Start or import a game
2. Move cards, roll dice and spend tokens
3. Advance phases and record adaptations
4. Read metrics and export snapshots

All state is session-scoped and held in memory.
"""

from .schemas import (
    # Requests
    StartGameRequest,
    MoveCardRequest,
    RollRequest,
    # Responses
    ErrorResponse,
    GameResponse,
    RollResponse,
    # Shared
    ErrorCode,
    GameStateInfo,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "StartGameRequest",
    "MoveCardRequest",
    "RollRequest",
    # Responses
    "ErrorResponse",
    "GameResponse",
    "RollResponse",
    # Shared
    "ErrorCode",
    "GameStateInfo",
    # Service
    "APIService",
    "create_app",
]
