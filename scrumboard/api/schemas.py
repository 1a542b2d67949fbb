"""
Pydantic Schemas for API - request/response models for OpenAPI.

Every response is an envelope:
    {"success": bool, "data": ..., "message": str | null,
     "error": {"code": str, "message": str} | null}

Error codes are the engine's machine-readable codes plus a few transport
codes (VALIDATION_ERROR, INTERNAL_ERROR).
"""

from enum import Enum
from typing import Annotated, Optional, Any
from pydantic import BaseModel, Field

from ..engine_core.stages import Stage, Role


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    INVALID_TRANSITION = "INVALID_TRANSITION"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    STAGE_NOT_FOUND = "STAGE_NOT_FOUND"
    INVALID_ROLL_TARGET = "INVALID_ROLL_TARGET"
    PHASE_NOT_ALLOWED = "PHASE_NOT_ALLOWED"
    NO_TOKENS_AVAILABLE = "NO_TOKENS_AVAILABLE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    INVALID_EFFORT = "INVALID_EFFORT"
    RETROSPECTIVE_INCOMPLETE = "RETROSPECTIVE_INCOMPLETE"
    INVALID_ADAPTATION = "INVALID_ADAPTATION"
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    INVALID_SNAPSHOT = "INVALID_SNAPSHOT"
    GAME_ALREADY_EXISTS = "GAME_ALREADY_EXISTS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class CardInfo(BaseModel):
    """A card as shown on the board."""
    card_id: str
    title: str
    description: str = ""
    effort: int
    stage: str
    created_turn: int
    revert_count: int = 0
    cycle_time: Optional[int] = None
    assignee: Optional[str] = None
    technical_debt: bool = False
    delivered: bool = False


class LaneInfo(BaseModel):
    """Active slots and waiting queue of one stage."""
    stage: str
    wip_limit: Optional[int] = Field(None, description="None for Funnel and Production")
    slots: list[CardInfo] = Field(default_factory=list)
    queue: list[CardInfo] = Field(default_factory=list)


class BoardInfo(BaseModel):
    columns: dict[str, LaneInfo]
    current_turn: int
    current_phase: str
    team_capacity: int
    used_capacity: int
    allocations: dict[str, int] = Field(default_factory=dict)
    technical_debt_invested: int = 0
    delivered_this_turn: int = 0


class ScrumMasterInfo(BaseModel):
    tokens_total: int
    tokens_available: int
    tokens_used: int
    technical_debt_active: bool
    technical_debt_expires_at_turn: Optional[int] = None


class RevertEventInfo(BaseModel):
    card_id: str
    turn: int
    roll: Optional[int] = Field(None, description="None for a review rejection")
    from_stage: str
    to_stage: str
    mitigated: bool = False


class FlowSnapshotInfo(BaseModel):
    turn: int
    column_counts: dict[str, int]


class AdaptationInfo(BaseModel):
    turn: int
    text: str


class MetricsInfo(BaseModel):
    velocity_per_turn: list[int] = Field(default_factory=list)
    accumulated_score: int = 0
    cumulative_flow: list[FlowSnapshotInfo] = Field(default_factory=list)
    revert_events: list[RevertEventInfo] = Field(default_factory=list)
    adaptations: list[AdaptationInfo] = Field(default_factory=list)


class GameStateInfo(BaseModel):
    """Full game state as returned to clients."""
    game_id: str
    board: BoardInfo
    scrum_master: ScrumMasterInfo
    metrics: MetricsInfo
    pending_adaptations: list[str] = Field(default_factory=list)
    max_turns: int
    is_game_over: bool = False


class RollResultInfo(BaseModel):
    """Outcome of a d6 roll or a token applied to it."""
    card_id: str
    roll: int
    outcome: str
    description: str
    from_stage: str
    to_stage: str
    effects: list[str] = Field(default_factory=list)
    can_mitigate: bool = False
    game: GameStateInfo


class SummaryInfo(BaseModel):
    turns_played: int
    total_velocity: int
    average_velocity: float
    accumulated_score: int
    revert_events: int
    tokens_used: int
    delivered_cards: int
    average_cycle_time: Optional[float] = None


class ErrorInfo(BaseModel):
    code: ErrorCode
    message: str


# =============================================================================
# Request Models
# =============================================================================

class StartGameRequest(BaseModel):
    """Request to start a new game. Omitted settings come from the environment."""
    game_id: Optional[str] = None
    random_seed: Optional[int] = Field(None, description="Seed for Funnel order and server-side rolls")
    team_capacity: Optional[int] = Field(None, ge=0)
    tokens_total: Optional[int] = Field(None, ge=0)
    technical_debt_threshold: Optional[int] = Field(None, ge=0)
    max_turns: Optional[int] = Field(None, ge=1)
    wip_limits: Optional[dict[Stage, Annotated[int, Field(ge=1)]]] = None


class AddCardRequest(BaseModel):
    card_id: str
    title: str
    effort: int = Field(..., description="1, 3 or 5")
    description: str = ""


class MoveCardRequest(BaseModel):
    role: Role
    card_id: str
    from_stage: Stage
    to_stage: Stage


class PullToSprintRequest(BaseModel):
    card_ids: list[str]
    role: Role = Role.PRODUCT_OWNER


class RollRequest(BaseModel):
    card_id: str
    role: Optional[Role] = None
    roll: Optional[int] = Field(None, description="Omit to let the server roll")


class CardRequest(BaseModel):
    card_id: str


class AllocateCapacityRequest(BaseModel):
    card_id: str
    effort: int


class TechnicalDebtRequest(BaseModel):
    effort: int


class AdaptationRequest(BaseModel):
    text: str


class ImportGameRequest(BaseModel):
    version: Optional[str] = None
    exported_at: Optional[str] = None
    game_state: dict[str, Any]


# =============================================================================
# Response Envelopes
# =============================================================================

class ApiResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    error: Optional[ErrorInfo] = None


class ErrorResponse(ApiResponse):
    success: bool = False
    data: None = None


class GameResponse(ApiResponse):
    data: Optional[GameStateInfo] = None


class MetricsResponse(ApiResponse):
    data: Optional[MetricsInfo] = None


class RollResponse(ApiResponse):
    data: Optional[RollResultInfo] = None


class SummaryResponse(ApiResponse):
    data: Optional[SummaryInfo] = None


class ExportResponse(ApiResponse):
    data: Optional[dict[str, Any]] = None


class GameListResponse(ApiResponse):
    data: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    environment: str
