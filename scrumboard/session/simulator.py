"""
Simulator - plays whole turns automatically.

The auto-player acts for every role with simple heuristics and rolls dice
from its own seeded random source, so a simulation with a fixed seed is
fully reproducible. Used by the CLI and for smoke-testing rule changes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import random

from ..engine_core.config import GameConfig
from ..engine_core.errors import EngineError
from ..engine_core.stages import Stage, Role, GamePhase
from ..engine_core.outcomes import OutcomeKind
from ..engine_core.permissions import role_for_stage
from ..games.scrum.setup import setup_scrum_game
from .game import BoardGame


logger = logging.getLogger(__name__)

# Right to left, so finished work clears space before upstream work moves in
ROLL_ORDER = (
    Stage.PRE_DEPLOYMENT,
    Stage.TESTING,
    Stage.INTEGRATION,
    Stage.IMPLEMENTATION,
)


@dataclass
class TeamPolicy:
    """How the simulated team plays."""
    refine_per_turn: int = 3  # Funnel -> Product Backlog moves per planning
    pull_per_turn: int = 3  # Product Backlog -> Sprint Backlog per planning
    invest_probability: float = 0.25
    mitigate: frozenset[OutcomeKind] = field(
        default_factory=lambda: frozenset({OutcomeKind.CRITICAL_FAILURE})
    )


@dataclass
class TurnReport:
    turn: int
    rolls: list[tuple[str, int]] = field(default_factory=list)
    tokens_used: int = 0
    delivered: int = 0


class AutoPlayer:
    """
    Drives a BoardGame through complete turns.

    Usage:
        player = AutoPlayer(random.Random(42))
        report = player.play_turn(game)
    """

    def __init__(self, rng: random.Random, policy: TeamPolicy | None = None):
        self.rng = rng
        self.policy = policy or TeamPolicy()

    def play_turn(self, game: BoardGame) -> TurnReport:
        """Play from the current phase to the start of the next turn."""
        report = TurnReport(turn=game.state.current_turn)
        if game.state.current_phase == GamePhase.SPRINT_PLANNING:
            self._plan(game)
            game.advance_phase()
        if game.state.current_phase == GamePhase.EXECUTION:
            self._execute(game, report)
            game.advance_phase()
        if game.state.current_phase == GamePhase.SPRINT_REVIEW:
            self._review(game)
            game.advance_phase()
        report.delivered = game.state.board.delivered_this_turn
        self._retrospect(game, report)
        game.advance_phase()
        return report

    def _plan(self, game: BoardGame) -> None:
        board = game.state.board
        for card in board.lane(Stage.FUNNEL).cards[:self.policy.refine_per_turn]:
            game.move_card(Role.STAKEHOLDER, card.card_id, Stage.FUNNEL, Stage.PRODUCT_BACKLOG)

        board = game.state.board
        sprint = board.lane(Stage.SPRINT_BACKLOG)
        room = max(0, (sprint.wip_limit or 0) - sprint.count)
        picks = [c.card_id for c in board.lane(Stage.PRODUCT_BACKLOG).slots][:min(room, self.policy.pull_per_turn)]
        if picks:
            game.pull_to_sprint(picks)

        # Start work only where Implementation has free slots
        board = game.state.board
        implementation = board.lane(Stage.IMPLEMENTATION)
        free = (implementation.wip_limit or 0) - len(implementation.slots)
        for card in board.lane(Stage.SPRINT_BACKLOG).slots[:max(0, free)]:
            game.move_card(Role.SCRUM_MASTER, card.card_id, Stage.SPRINT_BACKLOG, Stage.IMPLEMENTATION)

    def _execute(self, game: BoardGame, report: TurnReport) -> None:
        state = game.state
        threshold = state.config.technical_debt_threshold
        if (
            not state.scrum_master.technical_debt_active
            and state.board.remaining_capacity >= threshold
            and self.rng.random() < self.policy.invest_probability
        ):
            game.invest_technical_debt(threshold)

        to_roll = [
            card.card_id
            for stage in ROLL_ORDER
            for card in game.state.board.lane(stage).slots
        ]
        for card_id in to_roll:
            self._allocate(game, card_id)
            outcome = game.resolve_roll(card_id, self.rng.randint(1, 6))
            report.rolls.append((card_id, outcome.roll))
            if (
                outcome.kind in self.policy.mitigate
                and outcome.can_mitigate
                and game.state.scrum_master.tokens_available > 0
            ):
                game.use_token(card_id)
                report.tokens_used += 1

    def _allocate(self, game: BoardGame, card_id: str) -> None:
        board = game.state.board
        card = next(c for c in board.all_cards() if c.card_id == card_id)
        effort = min(card.effort - board.allocations.get(card_id, 0), board.remaining_capacity)
        if effort > 0:
            game.allocate_capacity(card_id, effort)

    def _review(self, game: BoardGame) -> None:
        for card in game.state.board.lane(Stage.PRE_DEPLOYMENT).cards:
            game.accept_card(card.card_id)

    def _retrospect(self, game: BoardGame, report: TurnReport) -> None:
        busiest = max(
            (s for s in Stage if not s.is_unlimited),
            key=lambda s: game.state.board.lane(s).count,
        )
        game.record_adaptation(
            f"Turn {report.turn}: {report.delivered} delivered; "
            f"ask {role_for_stage(busiest).value} to limit work in {busiest.value}"
        )


def simulate_game(
    turns: int | None = None,
    seed: int | None = None,
    config: GameConfig | None = None,
    policy: TeamPolicy | None = None,
) -> tuple[BoardGame, list[TurnReport]]:
    """
    Play a seeded game from setup.

    Args:
        turns: Turns to play (all of config.max_turns if not provided)
        seed: Seed for the Funnel order and dice
        config: Rules parameters
        policy: Team heuristics

    Returns:
        (game, per-turn reports)
    """
    config = config or GameConfig()
    game = BoardGame(setup_scrum_game(config=config, random_seed=seed))
    player = AutoPlayer(random.Random(seed), policy)
    reports = []
    for _ in range(min(turns or config.max_turns, config.max_turns)):
        try:
            reports.append(player.play_turn(game))
        except EngineError:
            logger.exception("Simulation stopped on turn %d", game.state.current_turn)
            raise
    return game, reports
