"""
Capacity ledger - the team's effort budget for the current turn.
"""

from __future__ import annotations

from .state import BoardState, Card
from .errors import CapacityExceeded, InvalidEffort


def check_budget(board: BoardState, effort: int) -> None:
    if effort < 0:
        raise InvalidEffort(f"Effort must not be negative, got {effort}")
    if board.used_capacity + effort > board.team_capacity:
        raise CapacityExceeded(
            f"Allocating {effort} would exceed team capacity "
            f"({board.used_capacity}/{board.team_capacity} used)"
        )


def remaining_for_card(board: BoardState, card: Card) -> int:
    return card.effort - board.allocations.get(card.card_id, 0)


def allocate(board: BoardState, card: Card, effort: int) -> int:
    """
    Record effort spent on a card this turn.

    Validates everything before touching the ledger.

    Returns:
        The card's total allocation this turn.
    """
    if effort < 0:
        raise InvalidEffort(f"Effort must not be negative, got {effort}")
    remaining = remaining_for_card(board, card)
    if effort > remaining:
        raise InvalidEffort(
            f"Card {card.card_id} has {remaining} unallocated effort, cannot take {effort}"
        )
    check_budget(board, effort)

    board.used_capacity += effort
    board.allocations[card.card_id] = board.allocations.get(card.card_id, 0) + effort
    return board.allocations[card.card_id]


def invest(board: BoardState, effort: int) -> int:
    """Spend effort on technical debt. Returns the turn's total investment."""
    check_budget(board, effort)
    board.used_capacity += effort
    board.technical_debt_invested += effort
    return board.technical_debt_invested


def reset(board: BoardState) -> None:
    board.used_capacity = 0
    board.allocations.clear()
    board.technical_debt_invested = 0
