"""
Scrum Game Setup - Creates initial game state.

This module handles:
- Laying out the eight lanes from the config
- Shuffling the starter cards with a seed for determinism
- Seeding the Funnel

The game starts on turn 1 in Sprint Planning.
"""

from __future__ import annotations
import logging
import random
import uuid

from ...engine_core.config import GameConfig
from ...engine_core.stages import Stage
from ...engine_core.state import GameState, Card
from ...engine_core import board as board_ops
from .cards import STARTER_CARDS, CardTemplate


logger = logging.getLogger(__name__)


def setup_scrum_game(
    game_id: str | None = None,
    config: GameConfig | None = None,
    cards: list[CardTemplate] | tuple[CardTemplate, ...] | None = None,
    random_seed: int | None = None,
) -> GameState:
    """
    Set up a new game.

    Args:
        game_id: Identifier for the game (random if not provided)
        config: Rules parameters (defaults if not provided)
        cards: Cards to seed the Funnel with (starter deck if not provided)
        random_seed: Seed for the Funnel order; None keeps the given order

    Returns:
        Initial GameState ready for Sprint Planning
    """
    config = config or GameConfig()
    templates = list(STARTER_CARDS if cards is None else cards)
    if random_seed is not None:
        random.Random(random_seed).shuffle(templates)

    state = GameState.create(game_id or str(uuid.uuid4()), config)
    for i, template in enumerate(templates, start=1):
        card = Card(
            card_id=f"{template.key}_{i}",
            title=template.title,
            description=template.description,
            effort=template.effort,
            created_turn=state.board.current_turn,
            technical_debt=template.technical_debt,
        )
        board_ops.place_card(state.board, card, Stage.FUNNEL)

    logger.info(
        "Game %s set up with %d card(s) in the Funnel", state.game_id, len(templates),
    )
    return state
