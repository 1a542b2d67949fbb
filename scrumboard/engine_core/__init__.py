"""
Engine Core - Deterministic board state management and rule enforcement.

The engine is the runtime that:
1. Lays out the board from a GameConfig
2. Validates role permissions, WIP limits and phase gating
3. Applies actions via the reducer
4. Resolves d6 outcomes with tokens and technical-debt softening
5. Records metrics for the retrospective
"""

from .stages import Stage, Role, GamePhase, STAGE_ORDER, EXECUTION_STAGES
from .config import GameConfig
from .state import (
    Card,
    StageLane,
    BoardState,
    ScrumMasterState,
    Metrics,
    RevertEvent,
    FlowSnapshot,
    RollResolution,
    GameState,
)
from .action import Action, ActionType, ActionPayload, ActionResult
from .reducer import Reducer, apply_action
from .outcomes import Outcome, OutcomeKind, OutcomeEffect, resolve_outcome
from .errors import (
    EngineError,
    InvalidTransition,
    PermissionDenied,
    StageNotFound,
    InvalidRollTarget,
    PhaseNotAllowed,
    NoTokensAvailable,
    CapacityExceeded,
    InvalidEffort,
    RetrospectiveIncomplete,
    InvalidAdaptation,
    GameNotFound,
    GameAlreadyExists,
    InvalidSnapshot,
)

__all__ = [
    "Stage",
    "Role",
    "GamePhase",
    "STAGE_ORDER",
    "EXECUTION_STAGES",
    "GameConfig",
    "Card",
    "StageLane",
    "BoardState",
    "ScrumMasterState",
    "Metrics",
    "RevertEvent",
    "FlowSnapshot",
    "RollResolution",
    "GameState",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "Reducer",
    "apply_action",
    "Outcome",
    "OutcomeKind",
    "OutcomeEffect",
    "resolve_outcome",
    "EngineError",
    "InvalidTransition",
    "PermissionDenied",
    "StageNotFound",
    "InvalidRollTarget",
    "PhaseNotAllowed",
    "NoTokensAvailable",
    "CapacityExceeded",
    "InvalidEffort",
    "RetrospectiveIncomplete",
    "InvalidAdaptation",
    "GameNotFound",
    "GameAlreadyExists",
    "InvalidSnapshot",
]
