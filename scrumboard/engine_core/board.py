"""
Stage/queue model - card placement, removal and promotion.

A lane admits an arriving card into its active slots while it is below its
WIP limit; otherwise the card waits at the back of the lane's queue. Any
departure from the active slots backfills from the same lane's queue.
"""

from __future__ import annotations
import logging

from .stages import Stage
from .state import BoardState, StageLane, Card
from .errors import StageNotFound


logger = logging.getLogger(__name__)


def locate(board: BoardState, card_id: str) -> tuple[Stage, bool, Card]:
    """
    Find a card on the board.

    Returns:
        (stage, queued, card) where queued is True if the card waits in
        the stage's queue.

    Raises:
        StageNotFound: no stage holds the card
    """
    for stage, lane in board.lanes.items():
        for card in lane.slots:
            if card.card_id == card_id:
                return stage, False, card
        for card in lane.queue:
            if card.card_id == card_id:
                return stage, True, card
    raise StageNotFound(f"Card {card_id} not found on the board")


def find_card(board: BoardState, card_id: str) -> Card:
    return locate(board, card_id)[2]


def promote(lane: StageLane) -> list[Card]:
    """
    Fill free slots from the head of the queue.

    Idempotent once the queue is empty or the slots are full.
    """
    promoted = []
    while lane.queue and lane.has_free_slot:
        card = lane.queue.pop(0)
        lane.slots.append(card)
        promoted.append(card)
    if promoted:
        logger.debug(
            "Promoted %s into %s",
            [c.card_id for c in promoted], lane.stage.value,
        )
    return promoted


def promote_all(board: BoardState) -> dict[Stage, list[Card]]:
    """Promote on every lane; returns only lanes that changed."""
    changed = {}
    for stage in Stage:
        promoted = promote(board.lanes[stage])
        if promoted:
            changed[stage] = promoted
    return changed


def place_card(board: BoardState, card: Card, stage: Stage) -> bool:
    """
    Append a card to a lane. Returns True if it took an active slot,
    False if it was queued.
    """
    lane = board.lanes[stage]
    card.stage = stage
    if lane.has_free_slot:
        lane.slots.append(card)
        return True
    lane.queue.append(card)
    return False


def remove_card(board: BoardState, card_id: str) -> tuple[Card, Stage]:
    """Take a card off the board, backfilling its lane if it held a slot."""
    stage, queued, card = locate(board, card_id)
    lane = board.lanes[stage]
    if queued:
        lane.queue.remove(card)
    else:
        lane.slots.remove(card)
        promote(lane)
    return card, stage


def relocate(board: BoardState, card_id: str, to_stage: Stage) -> tuple[Card, Stage, bool]:
    """
    Move a card to another lane.

    A card whose destination is its own stage stays where it is.

    Returns:
        (card, from_stage, in_slot)
    """
    stage, queued, card = locate(board, card_id)
    if stage == to_stage:
        return card, stage, not queued
    card, from_stage = remove_card(board, card_id)
    in_slot = place_card(board, card, to_stage)
    logger.debug(
        "Card %s %s -> %s (%s)",
        card_id, from_stage.value, to_stage.value, "slot" if in_slot else "queue",
    )
    return card, from_stage, in_slot


def board_violations(board: BoardState) -> list[str]:
    """
    Structural problems with a board, empty when it is consistent.

    Checks that active slots respect WIP limits, that only a full lane has a
    queue and that every card sits in exactly one place.
    """
    problems = []
    seen: set[str] = set()
    for stage in Stage:
        lane = board.lane(stage)
        if lane.wip_limit is not None and len(lane.slots) > lane.wip_limit:
            problems.append(
                f"{stage.value} holds {len(lane.slots)} active cards, limit {lane.wip_limit}"
            )
        if lane.queue and lane.has_free_slot:
            problems.append(f"{stage.value} queues cards while a slot is free")
        for card in lane.cards:
            if card.card_id in seen:
                problems.append(f"Card {card.card_id} appears more than once")
            seen.add(card.card_id)
    return problems
