"""
Engine errors.

Every rule violation is an EngineError subclass carrying a stable,
machine-readable error_code. Validation always runs before mutation, so a
raised error means the state was not touched.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for rule violations."""
    error_code = "ENGINE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransition(EngineError):
    """A card move breaks the adjacency rule or starts from the wrong stage."""
    error_code = "INVALID_TRANSITION"


class PermissionDenied(InvalidTransition):
    """The acting role does not own the stage it is acting on."""
    error_code = "PERMISSION_DENIED"

    def __init__(self, role, stage, detail: str | None = None):
        role_name = getattr(role, "value", role)
        stage_name = getattr(stage, "value", stage)
        message = f"{role_name} cannot move cards from {stage_name}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.role = role
        self.stage = stage


class StageNotFound(EngineError):
    """The card id is not on the board."""
    error_code = "STAGE_NOT_FOUND"


class InvalidRollTarget(EngineError):
    """A roll was requested for a card that cannot be rolled for."""
    error_code = "INVALID_ROLL_TARGET"


class PhaseNotAllowed(EngineError):
    """The operation is not permitted in the current phase."""
    error_code = "PHASE_NOT_ALLOWED"


class NoTokensAvailable(EngineError):
    error_code = "NO_TOKENS_AVAILABLE"


class CapacityExceeded(EngineError):
    error_code = "CAPACITY_EXCEEDED"


class InvalidEffort(EngineError):
    error_code = "INVALID_EFFORT"


class RetrospectiveIncomplete(EngineError):
    """Leaving the retrospective needs at least one recorded adaptation."""
    error_code = "RETROSPECTIVE_INCOMPLETE"


class InvalidAdaptation(EngineError):
    error_code = "INVALID_ADAPTATION"


class GameNotFound(EngineError):
    error_code = "GAME_NOT_FOUND"


class InvalidSnapshot(EngineError):
    """An exported state could not be restored."""
    error_code = "INVALID_SNAPSHOT"


class GameAlreadyExists(EngineError):
    """A new game was started with the id of a live game."""
    error_code = "GAME_ALREADY_EXISTS"
