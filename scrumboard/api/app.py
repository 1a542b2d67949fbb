"""
FastAPI Application - REST API for the Scrum board.

Endpoints:
    GET    /health                                Health check
    POST   /api/v1/games                          Start a game
    GET    /api/v1/games                          List active games
    POST   /api/v1/games/import                   Restore an exported game
    GET    /api/v1/games/{id}                     Get game state
    DELETE /api/v1/games/{id}                     End a game
    GET    /api/v1/games/{id}/metrics             Velocity, flow and reverts
    GET    /api/v1/games/{id}/summary             Retrospective summary
    GET    /api/v1/games/{id}/export              Export a snapshot
    POST   /api/v1/games/{id}/cards               Add a card to the Funnel
    POST   /api/v1/games/{id}/move-card           Move a card one stage
    POST   /api/v1/games/{id}/pull-to-sprint      Pull cards into the sprint
    POST   /api/v1/games/{id}/accept              Accept a card to Production
    POST   /api/v1/games/{id}/reject              Reject a card to Product Backlog
    POST   /api/v1/games/{id}/roll-d6             Resolve a d6 roll
    POST   /api/v1/games/{id}/use-token           Mitigate the last roll
    POST   /api/v1/games/{id}/allocate-capacity   Spend capacity on a card
    POST   /api/v1/games/{id}/technical-debt      Invest in technical debt
    POST   /api/v1/games/{id}/adaptations         Record a retrospective adaptation
    POST   /api/v1/games/{id}/advance-phase       Next phase
    POST   /api/v1/games/{id}/advance-turn        Finish the turn

All responses are JSON envelopes with explicit Pydantic schemas.
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from .service import APIService
from .schemas import (
    # Request models
    StartGameRequest,
    AddCardRequest,
    MoveCardRequest,
    PullToSprintRequest,
    RollRequest,
    CardRequest,
    AllocateCapacityRequest,
    TechnicalDebtRequest,
    AdaptationRequest,
    ImportGameRequest,
    # Response models
    ErrorResponse,
    GameResponse,
    MetricsResponse,
    RollResponse,
    SummaryResponse,
    ExportResponse,
    GameListResponse,
    HealthResponse,
    # Enums
    ErrorCode,
)

# Environment configuration
SCRUMBOARD_ENV = os.getenv("SCRUMBOARD_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.GAME_NOT_FOUND: 404,
    ErrorCode.GAME_ALREADY_EXISTS: 409,
    ErrorCode.STAGE_NOT_FOUND: 404,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.PHASE_NOT_ALLOWED: 409,
    ErrorCode.RETROSPECTIVE_INCOMPLETE: 409,
    ErrorCode.NO_TOKENS_AVAILABLE: 409,
    ErrorCode.CAPACITY_EXCEEDED: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Rule violation"},
    404: {"model": ErrorResponse, "description": "Game or card not found"},
    409: {"model": ErrorResponse, "description": "Not allowed in the current state"},
}


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Scrum Board API",
        description="""
Scrum board workflow engine - eight stages, WIP limits and d6 outcomes.

## Turn Flow

Every turn runs Sprint Planning, Execution, Sprint Review and Retrospective.
A turn can only finish after at least one adaptation is recorded.

## Error Codes

| Code | Description |
|------|-------------|
| `INVALID_TRANSITION` | Move breaks the stage sequence |
| `PERMISSION_DENIED` | Role does not own the stage |
| `STAGE_NOT_FOUND` | Card is not on the board or not in the given stage |
| `INVALID_ROLL_TARGET` | Card cannot be rolled for |
| `PHASE_NOT_ALLOWED` | Operation not allowed in the current phase |
| `NO_TOKENS_AVAILABLE` | Scrum Master has no tokens left |
| `CAPACITY_EXCEEDED` | Team capacity exhausted |
| `RETROSPECTIVE_INCOMPLETE` | No adaptation recorded this turn |
| `GAME_NOT_FOUND` | Game does not exist |
| `GAME_ALREADY_EXISTS` | A live game already uses the id |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService()

    # =========================================================================
    # Error helpers
    # =========================================================================

    def respond(response):
        """Pass successes through; turn error envelopes into status-coded JSON."""
        if isinstance(response, ErrorResponse):
            return JSONResponse(
                status_code=ERROR_STATUS.get(response.error.code, 400),
                content=response.model_dump(mode="json"),
            )
        return response

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return HealthResponse(version=__version__, environment=SCRUMBOARD_ENV)

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games",
        response_model=GameResponse,
        responses={400: ERROR_RESPONSES[400]},
        tags=["Games"],
        summary="Start a new game",
    )
    def start_game(request: StartGameRequest):
        """
        Start a new game on turn 1 in Sprint Planning.

        Omitted settings fall back to the SCRUMBOARD_* environment.
        """
        return respond(api_service.start_game(request))

    @app.get("/api/v1/games", response_model=GameListResponse, tags=["Games"])
    def list_games():
        return api_service.list_games()

    @app.post(
        "/api/v1/games/import",
        response_model=GameResponse,
        responses={400: ERROR_RESPONSES[400]},
        tags=["Games"],
        summary="Restore an exported game",
    )
    def import_game(request: ImportGameRequest):
        return respond(api_service.import_game(request))

    @app.get(
        "/api/v1/games/{game_id}",
        response_model=GameResponse,
        responses={404: ERROR_RESPONSES[404]},
        tags=["Games"],
    )
    def get_game(game_id: str):
        return respond(api_service.get_game_state(game_id))

    @app.delete(
        "/api/v1/games/{game_id}",
        response_model=GameResponse,
        responses={404: ERROR_RESPONSES[404]},
        tags=["Games"],
    )
    def end_game(game_id: str):
        return respond(api_service.end_game(game_id))

    @app.get(
        "/api/v1/games/{game_id}/metrics",
        response_model=MetricsResponse,
        responses={404: ERROR_RESPONSES[404]},
        tags=["Metrics"],
    )
    def get_metrics(game_id: str):
        return respond(api_service.get_metrics(game_id))

    @app.get(
        "/api/v1/games/{game_id}/summary",
        response_model=SummaryResponse,
        responses={404: ERROR_RESPONSES[404]},
        tags=["Metrics"],
    )
    def get_summary(game_id: str):
        return respond(api_service.get_summary(game_id))

    @app.get(
        "/api/v1/games/{game_id}/export",
        response_model=ExportResponse,
        responses={404: ERROR_RESPONSES[404]},
        tags=["Games"],
    )
    def export_game(game_id: str):
        return respond(api_service.export_game(game_id))

    # =========================================================================
    # Board Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games/{game_id}/cards",
        response_model=GameResponse,
        responses=ERROR_RESPONSES,
        tags=["Board"],
        summary="Add a card to the Funnel",
    )
    def add_card(game_id: str, request: AddCardRequest):
        return respond(api_service.add_card(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/move-card",
        response_model=GameResponse,
        responses={**ERROR_RESPONSES, 403: {"model": ErrorResponse, "description": "Role does not own the stage"}},
        tags=["Board"],
        summary="Move a card to the next stage",
    )
    def move_card(game_id: str, request: MoveCardRequest):
        """
        Move a card forward one stage (or straight to Production).

        Only the role that owns the card's current stage may move it.
        """
        return respond(api_service.move_card(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/pull-to-sprint",
        response_model=GameResponse,
        responses=ERROR_RESPONSES,
        tags=["Board"],
    )
    def pull_to_sprint(game_id: str, request: PullToSprintRequest):
        return respond(api_service.pull_to_sprint(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/accept",
        response_model=GameResponse,
        responses=ERROR_RESPONSES,
        tags=["Review"],
    )
    def accept_card(game_id: str, request: CardRequest):
        return respond(api_service.accept_card(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/reject",
        response_model=GameResponse,
        responses=ERROR_RESPONSES,
        tags=["Review"],
    )
    def reject_card(game_id: str, request: CardRequest):
        return respond(api_service.reject_card(game_id, request))

    # =========================================================================
    # Execution Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games/{game_id}/roll-d6",
        response_model=RollResponse,
        responses=ERROR_RESPONSES,
        tags=["Execution"],
        summary="Resolve a d6 roll for a card",
    )
    def roll_d6(game_id: str, request: RollRequest):
        """
        Roll for a card in an active execution slot.

        Omit `roll` to let the server roll with the game's seeded dice.
        """
        return respond(api_service.roll_d6(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/use-token",
        response_model=RollResponse,
        responses=ERROR_RESPONSES,
        tags=["Execution"],
        summary="Spend a Scrum Master token on the last roll",
    )
    def use_token(game_id: str, request: CardRequest):
        return respond(api_service.use_token(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/allocate-capacity",
        response_model=GameResponse,
        responses=ERROR_RESPONSES,
        tags=["Execution"],
    )
    def allocate_capacity(game_id: str, request: AllocateCapacityRequest):
        return respond(api_service.allocate_capacity(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/technical-debt",
        response_model=GameResponse,
        responses=ERROR_RESPONSES,
        tags=["Execution"],
    )
    def invest_technical_debt(game_id: str, request: TechnicalDebtRequest):
        return respond(api_service.invest_technical_debt(game_id, request))

    # =========================================================================
    # Flow Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games/{game_id}/adaptations",
        response_model=GameResponse,
        responses=ERROR_RESPONSES,
        tags=["Flow"],
    )
    def record_adaptation(game_id: str, request: AdaptationRequest):
        return respond(api_service.record_adaptation(game_id, request))

    @app.post(
        "/api/v1/games/{game_id}/advance-phase",
        response_model=GameResponse,
        responses=ERROR_RESPONSES,
        tags=["Flow"],
    )
    def advance_phase(game_id: str):
        return respond(api_service.advance_phase(game_id))

    @app.post(
        "/api/v1/games/{game_id}/advance-turn",
        response_model=GameResponse,
        responses=ERROR_RESPONSES,
        tags=["Flow"],
    )
    def advance_turn(game_id: str):
        return respond(api_service.advance_turn(game_id))

    logger.info("Scrum board API created (%s)", SCRUMBOARD_ENV)
    return app


# For running directly: uvicorn scrumboard.api.app:app
app = create_app()
