"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to engine actions
2. Manages sessions and serializes mutations per game
3. Formats engine state and errors as response envelopes

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Callable
import logging

from .schemas import (
    # Requests
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
    # Responses
    ErrorResponse,
    GameResponse,
    MetricsResponse,
    RollResponse,
    SummaryResponse,
    ExportResponse,
    GameListResponse,
    # Shared
    ErrorCode,
    ErrorInfo,
    GameStateInfo,
    MetricsInfo,
    RollResultInfo,
    SummaryInfo,
)
from ..engine_core.action import Action, ActionResult
from ..engine_core.config import GameConfig
from ..engine_core.errors import EngineError
from ..engine_core.outcomes import Outcome
from ..engine_core.state import GameState
from ..session import SessionManager, Session


logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        response = service.start_game(StartGameRequest(random_seed=7))
        game_id = response.data.game_id

        service.move_card(game_id, MoveCardRequest(...))
        roll = service.roll_d6(game_id, RollRequest(card_id="login_1"))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start_game(self, request: StartGameRequest) -> GameResponse | ErrorResponse:
        """Start a new game, overriding environment defaults with request values."""
        config = GameConfig.from_env()
        overrides = {
            name: getattr(request, name)
            for name in ("team_capacity", "tokens_total", "technical_debt_threshold", "max_turns")
            if getattr(request, name) is not None
        }
        config = replace(config, **overrides)
        if request.wip_limits:
            for stage, limit in request.wip_limits.items():
                if stage.is_unlimited:
                    return self._error(
                        ErrorCode.VALIDATION_ERROR, f"{stage.value} has no WIP limit",
                    )
                config.wip_limits[stage] = limit

        try:
            session = self.session_manager.create_session(
                config=config,
                random_seed=request.random_seed,
                game_id=request.game_id,
            )
        except EngineError as e:
            return self._engine_error(e)
        return GameResponse(
            data=self._state_info(session.game.state),
            message="Game started successfully",
        )

    def list_games(self) -> GameListResponse:
        return GameListResponse(data=self.session_manager.list_active_sessions())

    def end_game(self, game_id: str) -> GameResponse | ErrorResponse:
        session = self.session_manager.get_session(game_id)
        if session is None:
            return self._not_found(game_id)
        state = session.game.state
        self.session_manager.end_session(game_id, reason="abandoned")
        return GameResponse(data=self._state_info(state), message="Game ended")

    def get_game_state(self, game_id: str) -> GameResponse | ErrorResponse:
        session = self.session_manager.get_session(game_id)
        if session is None:
            return self._not_found(game_id)
        return GameResponse(data=self._state_info(session.game.state))

    def get_metrics(self, game_id: str) -> MetricsResponse | ErrorResponse:
        session = self.session_manager.get_session(game_id)
        if session is None:
            return self._not_found(game_id)
        return MetricsResponse(
            data=MetricsInfo.model_validate(session.game.state.metrics.to_dict()),
        )

    def get_summary(self, game_id: str) -> SummaryResponse | ErrorResponse:
        session = self.session_manager.get_session(game_id)
        if session is None:
            return self._not_found(game_id)
        return SummaryResponse(
            data=SummaryInfo.model_validate(session.game.summary().to_dict()),
        )

    # =========================================================================
    # Board operations
    # =========================================================================

    def add_card(self, game_id: str, request: AddCardRequest) -> GameResponse | ErrorResponse:
        action = Action.add_card(
            request.card_id, request.title, request.effort, description=request.description,
        )
        return self._apply(game_id, action, f"Card {request.card_id} added to Funnel")

    def move_card(self, game_id: str, request: MoveCardRequest) -> GameResponse | ErrorResponse:
        action = Action.move_card(request.role, request.card_id, request.from_stage, request.to_stage)
        return self._apply(
            game_id, action,
            f"Card moved from {request.from_stage.value} to {request.to_stage.value}",
        )

    def pull_to_sprint(self, game_id: str, request: PullToSprintRequest) -> GameResponse | ErrorResponse:
        action = Action.pull_to_sprint(request.card_ids, role=request.role)
        return self._apply(
            game_id, action, f"{len(request.card_ids)} card(s) pulled to Sprint Backlog",
        )

    def accept_card(self, game_id: str, request: CardRequest) -> GameResponse | ErrorResponse:
        return self._apply(game_id, Action.accept_card(request.card_id), "Card accepted to Production")

    def reject_card(self, game_id: str, request: CardRequest) -> GameResponse | ErrorResponse:
        return self._apply(game_id, Action.reject_card(request.card_id), "Card rejected to Product Backlog")

    # =========================================================================
    # Execution operations
    # =========================================================================

    def roll_d6(self, game_id: str, request: RollRequest) -> RollResponse | ErrorResponse:
        """
        Resolve a d6 roll for a card.

        The session's seeded random source rolls unless the request
        carries a physical roll.
        """
        return self._resolve(
            game_id,
            request.card_id,
            lambda session: Action.resolve_roll(
                request.card_id,
                request.roll if request.roll is not None else session.roll_d6(),
                role=request.role,
            ),
        )

    def use_token(self, game_id: str, request: CardRequest) -> RollResponse | ErrorResponse:
        return self._resolve(game_id, request.card_id, lambda session: Action.use_token(request.card_id))

    def allocate_capacity(
        self, game_id: str, request: AllocateCapacityRequest,
    ) -> GameResponse | ErrorResponse:
        action = Action.allocate_capacity(request.card_id, request.effort)
        return self._apply(game_id, action, f"{request.effort} capacity allocated to {request.card_id}")

    def invest_technical_debt(
        self, game_id: str, request: TechnicalDebtRequest,
    ) -> GameResponse | ErrorResponse:
        action = Action.invest_technical_debt(request.effort)
        return self._apply(game_id, action, f"{request.effort} capacity invested in technical debt")

    # =========================================================================
    # Flow
    # =========================================================================

    def record_adaptation(self, game_id: str, request: AdaptationRequest) -> GameResponse | ErrorResponse:
        return self._apply(game_id, Action.record_adaptation(request.text), "Adaptation recorded")

    def advance_phase(self, game_id: str) -> GameResponse | ErrorResponse:
        return self._apply(game_id, Action.advance_phase())

    def advance_turn(self, game_id: str) -> GameResponse | ErrorResponse:
        return self._apply(game_id, Action.advance_turn())

    # =========================================================================
    # Persistence
    # =========================================================================

    def export_game(self, game_id: str) -> ExportResponse | ErrorResponse:
        session = self.session_manager.get_session(game_id)
        if session is None:
            return self._not_found(game_id)
        with session.lock:
            snapshot = session.game.export_state()
        return ExportResponse(data=snapshot, message="Game exported successfully")

    def import_game(self, request: ImportGameRequest) -> GameResponse | ErrorResponse:
        try:
            session = self.session_manager.restore_session(request.model_dump())
        except EngineError as e:
            return self._engine_error(e)
        return GameResponse(
            data=self._state_info(session.game.state),
            message="Game imported successfully",
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _apply(
        self, game_id: str, action: Action, message: str | None = None,
    ) -> GameResponse | ErrorResponse:
        session = self.session_manager.get_session(game_id)
        if session is None:
            return self._not_found(game_id)
        with session.lock:
            result = session.game.try_dispatch(action)
        if not result.success:
            return self._failure(result)
        return GameResponse(
            data=self._state_info(result.new_state),
            message=message or "; ".join(result.state_changes) or None,
        )

    def _resolve(
        self, game_id: str, card_id: str, build: Callable[[Session], Action],
    ) -> RollResponse | ErrorResponse:
        session = self.session_manager.get_session(game_id)
        if session is None:
            return self._not_found(game_id)
        with session.lock:
            result = session.game.try_dispatch(build(session))
        if not result.success:
            return self._failure(result)
        outcome: Outcome = result.outcome
        return RollResponse(
            data=RollResultInfo(
                card_id=card_id,
                roll=outcome.roll,
                outcome=outcome.kind.value,
                description=outcome.description,
                from_stage=outcome.from_stage.value,
                to_stage=outcome.target.value,
                effects=[effect.value for effect in outcome.effects],
                can_mitigate=result.new_state.last_resolution is not None,
                game=self._state_info(result.new_state),
            ),
            message=outcome.description,
        )

    @staticmethod
    def _state_info(state: GameState) -> GameStateInfo:
        return GameStateInfo.model_validate(state.to_dict())

    def _failure(self, result: ActionResult) -> ErrorResponse:
        if isinstance(result.exception, EngineError):
            return self._engine_error(result.exception)
        return self._error(ErrorCode.INTERNAL_ERROR, result.error or "Action failed")

    def _engine_error(self, error: EngineError) -> ErrorResponse:
        try:
            code = ErrorCode(error.error_code)
        except ValueError:
            code = ErrorCode.INTERNAL_ERROR
        return self._error(code, error.message)

    def _not_found(self, game_id: str) -> ErrorResponse:
        return self._error(ErrorCode.GAME_NOT_FOUND, f"Game {game_id} not found")

    @staticmethod
    def _error(code: ErrorCode, message: str) -> ErrorResponse:
        logger.debug("API error %s: %s", code.value, message)
        return ErrorResponse(error=ErrorInfo(code=code, message=message))
