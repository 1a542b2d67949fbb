"""
Pytest fixtures for Scrumboard tests.
"""

import pytest
from typing import Callable

from ..engine_core.config import GameConfig
from ..engine_core.stages import Stage, GamePhase
from ..engine_core.state import GameState, Card
from ..engine_core import board as board_ops
from ..session.game import BoardGame


@pytest.fixture
def config() -> GameConfig:
    """Standard rules."""
    return GameConfig()


@pytest.fixture
def small_config() -> GameConfig:
    """Standard rules with Implementation limited to two active cards."""
    config = GameConfig()
    config.wip_limits[Stage.IMPLEMENTATION] = 2
    return config


@pytest.fixture
def empty_state(config: GameConfig) -> GameState:
    """An empty board on turn 1, Sprint Planning."""
    return GameState.create("test_game", config)


@pytest.fixture
def place() -> Callable[..., Card]:
    """
    Put a card straight onto the board.

    Usage:
        card = place(state, "login", Stage.IMPLEMENTATION, effort=3)
    """
    def _place(state: GameState, card_id: str, stage: Stage, effort: int = 3) -> Card:
        card = Card(
            card_id=card_id,
            title=card_id.replace("_", " ").title(),
            effort=effort,
            created_turn=state.board.current_turn,
        )
        board_ops.place_card(state.board, card, stage)
        return card
    return _place


@pytest.fixture
def execution_state(empty_state: GameState, place) -> GameState:
    """
    Execution phase with one card in each execution stage:
    impl (Implementation), intg (Integration), test (Testing), pre (PreDeployment).
    """
    place(empty_state, "impl", Stage.IMPLEMENTATION)
    place(empty_state, "intg", Stage.INTEGRATION)
    place(empty_state, "test", Stage.TESTING, effort=1)
    place(empty_state, "pre", Stage.PRE_DEPLOYMENT, effort=5)
    empty_state.board.current_phase = GamePhase.EXECUTION
    return empty_state


@pytest.fixture
def execution_game(execution_state: GameState) -> BoardGame:
    return BoardGame(execution_state)


@pytest.fixture
def review_game(empty_state: GameState, place) -> BoardGame:
    """Sprint Review with two cards waiting in PreDeployment."""
    place(empty_state, "ready_a", Stage.PRE_DEPLOYMENT)
    place(empty_state, "ready_b", Stage.PRE_DEPLOYMENT, effort=5)
    empty_state.board.current_phase = GamePhase.SPRINT_REVIEW
    return BoardGame(empty_state)
