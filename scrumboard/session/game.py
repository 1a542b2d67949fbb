"""
Board Game - the caller-facing facade over one game's state.

Each method builds an Action, runs it through the reducer and, on success,
swaps in the new state. Failures raise the typed EngineError and leave the
state exactly as it was.

Usage:
    game = BoardGame(setup_scrum_game())

    game.move_card(Role.STAKEHOLDER, "login_1", Stage.FUNNEL, Stage.PRODUCT_BACKLOG)
    game.advance_phase()
    outcome = game.resolve_roll("login_1", 6)
    if outcome.can_mitigate:
        game.use_token("login_1")
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any

from ..engine_core.action import Action, ActionResult
from ..engine_core.board import board_violations
from ..engine_core.errors import InvalidSnapshot
from ..engine_core.metrics import retrospective_summary, RetrospectiveSummary
from ..engine_core.outcomes import Outcome
from ..engine_core.reducer import Reducer
from ..engine_core.stages import Stage, Role
from ..engine_core.state import GameState


EXPORT_VERSION = "1.0"


class BoardGame:
    """One game, mutated only through engine actions."""

    def __init__(self, state: GameState, reducer: Reducer | None = None):
        self._state = state
        self._reducer = reducer or Reducer()

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def game_id(self) -> str:
        return self._state.game_id

    def try_dispatch(self, action: Action) -> ActionResult:
        """Apply an action; the result reports failure instead of raising."""
        result = self._reducer.apply(self._state, action)
        if result.success:
            self._state = result.new_state
        return result

    def dispatch(self, action: Action) -> ActionResult:
        return self.try_dispatch(action).raise_for_error()

    # =========================================================================
    # Board operations
    # =========================================================================

    def add_card(self, card_id: str, title: str, effort: int, description: str = "") -> None:
        self.dispatch(Action.add_card(card_id, title, effort, description=description))

    def move_card(self, role: Role, card_id: str, from_stage: Stage, to_stage: Stage) -> None:
        self.dispatch(Action.move_card(role, card_id, from_stage, to_stage))

    def pull_to_sprint(self, card_ids: list[str]) -> None:
        self.dispatch(Action.pull_to_sprint(card_ids))

    def accept_card(self, card_id: str) -> None:
        self.dispatch(Action.accept_card(card_id))

    def reject_card(self, card_id: str) -> None:
        self.dispatch(Action.reject_card(card_id))

    # =========================================================================
    # Execution operations
    # =========================================================================

    def resolve_roll(self, card_id: str, roll: int, role: Role | None = None) -> Outcome:
        return self.dispatch(Action.resolve_roll(card_id, roll, role=role)).outcome

    def use_token(self, card_id: str) -> Outcome:
        return self.dispatch(Action.use_token(card_id)).outcome

    def allocate_capacity(self, card_id: str, effort: int) -> None:
        self.dispatch(Action.allocate_capacity(card_id, effort))

    def invest_technical_debt(self, effort: int) -> None:
        self.dispatch(Action.invest_technical_debt(effort))

    # =========================================================================
    # Flow
    # =========================================================================

    def record_adaptation(self, text: str) -> None:
        self.dispatch(Action.record_adaptation(text))

    def advance_phase(self) -> list[str]:
        return self.dispatch(Action.advance_phase()).state_changes

    def advance_turn(self) -> list[str]:
        return self.dispatch(Action.advance_turn()).state_changes

    def summary(self) -> RetrospectiveSummary:
        return retrospective_summary(self._state)

    # =========================================================================
    # Persistence
    # =========================================================================

    def export_state(self) -> dict[str, Any]:
        """Whole-game snapshot for the persistence layer."""
        return {
            "version": EXPORT_VERSION,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "game_state": self._state.to_dict(),
        }

    def restore_state(self, snapshot: dict[str, Any]) -> None:
        """Replace the whole state with an exported snapshot."""
        self._state = load_snapshot(snapshot)

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any]) -> BoardGame:
        return cls(load_snapshot(snapshot))


def load_snapshot(snapshot: dict[str, Any]) -> GameState:
    """
    Parse an exported snapshot.

    Raises:
        InvalidSnapshot: missing game_state, malformed content or a board that
            breaks its WIP limits
    """
    if not isinstance(snapshot, dict) or not isinstance(snapshot.get("game_state"), dict):
        raise InvalidSnapshot("Invalid game data format: missing game_state")
    try:
        state = GameState.from_dict(snapshot["game_state"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidSnapshot(f"Failed to import game data: {e}") from e

    problems = board_violations(state.board)
    if problems:
        raise InvalidSnapshot("Inconsistent board: " + "; ".join(problems))
    return state
