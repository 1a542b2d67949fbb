"""
Metrics aggregator - deliveries, reverts and per-turn flow snapshots.

Everything here is append-only except the per-turn delivery counter, which
is folded into velocity when the turn closes.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any
import logging

from .stages import Stage
from .state import GameState, Card, RevertEvent, FlowSnapshot


logger = logging.getLogger(__name__)


def record_arrival(state: GameState, card: Card) -> bool:
    """
    Account for a card landing in Production.

    Only the first arrival counts: it fixes the cycle time and adds to this
    turn's velocity and to the accumulated score.

    Returns:
        True if this was a first delivery.
    """
    if card.stage != Stage.PRODUCTION or card.delivered:
        return False
    card.delivered = True
    card.cycle_time = state.board.current_turn - card.created_turn
    state.board.delivered_this_turn += 1
    state.metrics.accumulated_score += card.effort
    logger.info(
        "Card %s delivered on turn %d (cycle time %d)",
        card.card_id, state.board.current_turn, card.cycle_time,
    )
    return True


def record_revert(
    state: GameState,
    card: Card,
    roll: int | None,
    from_stage: Stage,
    to_stage: Stage,
) -> int:
    """Count an adverse outcome against a card. Returns the event's index."""
    card.revert_count += 1
    state.metrics.revert_events.append(RevertEvent(
        card_id=card.card_id,
        turn=state.board.current_turn,
        roll=roll,
        from_stage=from_stage,
        to_stage=to_stage,
    ))
    return len(state.metrics.revert_events) - 1


def close_turn(state: GameState) -> FlowSnapshot:
    """Append the velocity entry and flow snapshot for the turn just played."""
    snapshot = FlowSnapshot(
        turn=state.board.current_turn,
        column_counts=state.board.column_counts(),
    )
    state.metrics.cumulative_flow.append(snapshot)
    state.metrics.velocity_per_turn.append(state.board.delivered_this_turn)
    state.board.delivered_this_turn = 0
    return snapshot


@dataclass
class RetrospectiveSummary:
    turns_played: int
    total_velocity: int
    average_velocity: float
    accumulated_score: int
    revert_events: int
    tokens_used: int
    delivered_cards: int
    average_cycle_time: float | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def retrospective_summary(state: GameState) -> RetrospectiveSummary:
    velocity = state.metrics.velocity_per_turn
    total = sum(velocity)
    cycle_times = [
        c.cycle_time for c in state.board.all_cards()
        if c.delivered and c.cycle_time is not None
    ]
    return RetrospectiveSummary(
        turns_played=len(velocity),
        total_velocity=total,
        average_velocity=total / len(velocity) if velocity else 0.0,
        accumulated_score=state.metrics.accumulated_score,
        revert_events=len(state.metrics.revert_events),
        tokens_used=state.scrum_master.tokens_used,
        delivered_cards=len(cycle_times),
        average_cycle_time=sum(cycle_times) / len(cycle_times) if cycle_times else None,
    )
