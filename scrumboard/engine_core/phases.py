"""
Phase state machine - which actions each phase permits, and what happens
when a phase ends.

    SprintPlanning -> Execution -> SprintReview -> Retrospective
          ^                                             |
          +------------------- turn + 1 ----------------+
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Mapping
import logging

from .stages import GamePhase
from .state import GameState
from .action import ActionType
from .errors import PhaseNotAllowed, RetrospectiveIncomplete
from . import board as board_ops
from . import capacity
from . import metrics


logger = logging.getLogger(__name__)

ANY_PHASE = frozenset(GamePhase)

ALLOWED_PHASES: Mapping[ActionType, frozenset[GamePhase]] = MappingProxyType({
    ActionType.ADD_CARD: frozenset({GamePhase.SPRINT_PLANNING}),
    ActionType.MOVE_CARD: frozenset({GamePhase.SPRINT_PLANNING, GamePhase.SPRINT_REVIEW}),
    ActionType.PULL_TO_SPRINT: frozenset({GamePhase.SPRINT_PLANNING}),
    ActionType.ACCEPT_CARD: frozenset({GamePhase.SPRINT_REVIEW}),
    ActionType.REJECT_CARD: frozenset({GamePhase.SPRINT_REVIEW}),
    ActionType.RESOLVE_ROLL: frozenset({GamePhase.EXECUTION}),
    ActionType.ALLOCATE_CAPACITY: frozenset({GamePhase.EXECUTION}),
    ActionType.INVEST_TECHNICAL_DEBT: frozenset({GamePhase.EXECUTION}),
    ActionType.USE_TOKEN: frozenset({GamePhase.EXECUTION}),
    ActionType.RECORD_ADAPTATION: ANY_PHASE,
    ActionType.ADVANCE_PHASE: ANY_PHASE,
    ActionType.ADVANCE_TURN: ANY_PHASE,
})


def require_phase(state: GameState, action_type: ActionType) -> None:
    if state.is_game_over:
        raise PhaseNotAllowed(
            f"Game is over after {state.config.max_turns} turns - no actions allowed"
        )
    allowed = ALLOWED_PHASES.get(action_type, ANY_PHASE)
    phase = state.board.current_phase
    if phase not in allowed:
        names = ", ".join(sorted(p.value for p in allowed))
        raise PhaseNotAllowed(
            f"{action_type.value} is not allowed during {phase.value} (allowed: {names})"
        )


def advance_phase(state: GameState) -> list[str]:
    """
    Finalize the current phase and enter the next one.

    Returns:
        Human-readable changes.
    """
    board = state.board
    leaving = board.current_phase
    changes = []

    if leaving == GamePhase.EXECUTION:
        promoted = board_ops.promote_all(board)
        for stage, cards in promoted.items():
            changes.append(f"Promoted {len(cards)} card(s) in {stage.value}")

    elif leaving == GamePhase.RETROSPECTIVE:
        if not state.pending_adaptations:
            raise RetrospectiveIncomplete(
                "Record at least one process adaptation before closing the retrospective"
            )
        snapshot = metrics.close_turn(state)
        changes.append(
            f"Turn {snapshot.turn} closed with velocity {state.metrics.velocity_per_turn[-1]}"
        )
        board.current_turn += 1
        _expire_technical_debt(state, changes)
        capacity.reset(board)
        state.pending_adaptations.clear()

    entering = leaving.next
    board.current_phase = entering
    if entering == GamePhase.EXECUTION:
        capacity.reset(board)

    logger.info(
        "Game %s: %s -> %s (turn %d)",
        state.game_id, leaving.value, entering.value, board.current_turn,
    )
    changes.append(f"Phase advanced to {entering.value}")
    return changes


def advance_turn(state: GameState) -> list[str]:
    """Run every remaining phase of the current turn, ending in SprintPlanning."""
    start_turn = state.board.current_turn
    changes = []
    while state.board.current_turn == start_turn:
        changes.extend(advance_phase(state))
    return changes


def _expire_technical_debt(state: GameState, changes: list[str]) -> None:
    sm = state.scrum_master
    expires = sm.technical_debt_expires_at_turn
    if sm.technical_debt_active and expires is not None and state.board.current_turn >= expires:
        sm.technical_debt_active = False
        sm.technical_debt_expires_at_turn = None
        changes.append("Technical debt investment expired")
