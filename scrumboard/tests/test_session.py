"""
Tests for sessions, configuration and persistence.

Tests:
- Session lifecycle
- Environment configuration
- Game setup
- Export and restore
"""

import pytest

from ..engine_core.config import GameConfig, DEFAULT_WIP_LIMITS
from ..engine_core.stages import Stage, Role, GamePhase
from ..engine_core.errors import GameAlreadyExists, GameNotFound, InvalidSnapshot
from ..games.scrum import STARTER_CARDS, CardTemplate, setup_scrum_game
from ..session import SessionManager, SessionState, BoardGame, load_snapshot


class TestGameConfig:
    """Configuration defaults and environment overrides."""

    def test_defaults(self):
        config = GameConfig()
        assert config.team_capacity == 10
        assert config.tokens_total == 3
        assert config.max_turns == 10
        assert config.wip_limit(Stage.IMPLEMENTATION) == 3
        assert config.wip_limit(Stage.FUNNEL) is None
        assert config.wip_limit(Stage.PRODUCTION) is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SCRUMBOARD_TEAM_CAPACITY", "6")
        monkeypatch.setenv("SCRUMBOARD_MAX_TURNS", "4")
        monkeypatch.setenv("SCRUMBOARD_WIP_LIMITS", "Implementation=2, Testing=4")

        config = GameConfig.from_env()

        assert config.team_capacity == 6
        assert config.max_turns == 4
        assert config.wip_limit(Stage.IMPLEMENTATION) == 2
        assert config.wip_limit(Stage.TESTING) == 4
        assert config.wip_limit(Stage.INTEGRATION) == DEFAULT_WIP_LIMITS[Stage.INTEGRATION]

    def test_from_env_does_not_share_defaults(self, monkeypatch):
        monkeypatch.setenv("SCRUMBOARD_WIP_LIMITS", "Testing=1")
        GameConfig.from_env()
        assert DEFAULT_WIP_LIMITS[Stage.TESTING] == 3


class TestSetup:
    """Seeding the Funnel."""

    def test_starter_deck_in_funnel(self):
        state = setup_scrum_game(game_id="g1")

        funnel = state.board.lane(Stage.FUNNEL)
        assert len(funnel.slots) == len(STARTER_CARDS)
        assert state.current_turn == 1
        assert state.current_phase == GamePhase.SPRINT_PLANNING
        assert len({c.card_id for c in funnel.slots}) == len(STARTER_CARDS)

    def test_seeded_order_is_reproducible(self):
        first = setup_scrum_game(game_id="a", random_seed=11)
        second = setup_scrum_game(game_id="b", random_seed=11)

        assert (
            [c.card_id for c in first.board.lane(Stage.FUNNEL).slots]
            == [c.card_id for c in second.board.lane(Stage.FUNNEL).slots]
        )

    def test_custom_cards(self):
        cards = [CardTemplate("api", "Public API", 5), CardTemplate("docs", "Docs", 1)]
        state = setup_scrum_game(game_id="g", cards=cards)

        assert [c.card_id for c in state.board.lane(Stage.FUNNEL).slots] == ["api_1", "docs_2"]


class TestSessionManager:
    """Session lifecycle."""

    def test_create_and_get(self):
        manager = SessionManager()
        session = manager.create_session(random_seed=3, game_id="game_1")

        assert manager.get_session("game_1") is session
        assert session.is_active()
        assert manager.list_active_sessions() == ["game_1"]

    def test_duplicate_id_keeps_live_game(self):
        manager = SessionManager()
        session = manager.create_session(random_seed=3, game_id="game_1")
        session.game.advance_phase()

        with pytest.raises(GameAlreadyExists):
            manager.create_session(random_seed=4, game_id="game_1")

        assert manager.get_session("game_1") is session
        assert session.game.state.current_phase == GamePhase.EXECUTION

    def test_restore_replaces_same_id(self):
        manager = SessionManager()
        live = manager.create_session(random_seed=3, game_id="game_1")
        snapshot = live.game.export_state()
        live.game.advance_phase()

        restored = manager.restore_session(snapshot)

        assert manager.get_session("game_1") is restored
        assert restored.game.state.current_phase == GamePhase.SPRINT_PLANNING

    def test_create_uses_environment(self, monkeypatch):
        monkeypatch.setenv("SCRUMBOARD_TOKENS", "1")
        session = SessionManager().create_session()
        assert session.game.state.scrum_master.tokens_total == 1

    def test_require_missing_session(self):
        with pytest.raises(GameNotFound):
            SessionManager().require_session("nope")

    def test_end_session(self):
        manager = SessionManager()
        session = manager.create_session(game_id="g")

        assert manager.end_session("g", reason="abandoned")
        assert session.state == SessionState.ABANDONED
        assert manager.get_session("g") is None
        assert not manager.end_session("g")

    def test_finished_game_is_not_active(self):
        manager = SessionManager()
        session = manager.create_session(config=GameConfig(max_turns=1), game_id="g")
        session.game.record_adaptation("Done")
        session.game.advance_turn()

        assert not session.is_active()
        assert session.state == SessionState.GAME_OVER
        assert manager.list_active_sessions() == []
        assert manager.cleanup_stale_sessions(max_age_seconds=-1) == 1

    def test_seeded_dice(self):
        manager = SessionManager()
        first = manager.create_session(random_seed=5, game_id="a")
        second = manager.create_session(random_seed=5, game_id="b")

        rolls = [first.roll_d6() for _ in range(20)]
        assert rolls == [second.roll_d6() for _ in range(20)]
        assert all(1 <= r <= 6 for r in rolls)


class TestPersistence:
    """Export and restore snapshots."""

    def _played_game(self) -> BoardGame:
        game = BoardGame(setup_scrum_game(game_id="saved", random_seed=2))
        card = game.state.board.lane(Stage.FUNNEL).slots[0]
        game.move_card(Role.STAKEHOLDER, card.card_id, Stage.FUNNEL, Stage.PRODUCT_BACKLOG)
        game.pull_to_sprint([card.card_id])
        game.move_card(Role.SCRUM_MASTER, card.card_id, Stage.SPRINT_BACKLOG, Stage.IMPLEMENTATION)
        game.advance_phase()
        game.invest_technical_debt(3)
        game.resolve_roll(card.card_id, 6)
        return game

    def test_export_envelope(self):
        snapshot = self._played_game().export_state()

        assert snapshot["version"] == "1.0"
        assert "exported_at" in snapshot
        assert snapshot["game_state"]["game_id"] == "saved"

    def test_restore_resumes_play(self):
        original = self._played_game()
        snapshot = original.export_state()

        session = SessionManager().restore_session(snapshot)
        restored = session.game

        assert restored.state.to_dict() == original.state.to_dict()
        card_id = restored.state.last_resolution.card_id
        restored.use_token(card_id)
        assert restored.state.scrum_master.tokens_used == 1

    @pytest.mark.parametrize("snapshot", [
        None,
        {},
        {"version": "1.0"},
        {"game_state": {}},
        {"game_state": {"game_id": "x", "board": {"current_phase": "Lunch"}}},
    ])
    def test_invalid_snapshots(self, snapshot):
        with pytest.raises(InvalidSnapshot):
            load_snapshot(snapshot)

    def test_restore_takes_limits_from_config(self):
        snapshot = self._played_game().export_state()
        columns = snapshot["game_state"]["board"]["columns"]
        del columns["Implementation"]
        columns["Testing"]["wip_limit"] = None

        board = load_snapshot(snapshot).board

        assert board.lane(Stage.IMPLEMENTATION).wip_limit == 3
        assert board.lane(Stage.TESTING).wip_limit == 3
        assert board.lane(Stage.FUNNEL).wip_limit is None

    def test_restored_lane_enforces_limit(self):
        snapshot = BoardGame(setup_scrum_game(game_id="fresh", random_seed=2)).export_state()
        del snapshot["game_state"]["board"]["columns"]["Implementation"]
        game = BoardGame(load_snapshot(snapshot))

        picks = [c.card_id for c in game.state.board.lane(Stage.FUNNEL).slots[:5]]
        for card_id in picks:
            game.move_card(Role.STAKEHOLDER, card_id, Stage.FUNNEL, Stage.PRODUCT_BACKLOG)
        game.pull_to_sprint(picks)
        for card_id in picks:
            game.move_card(Role.SCRUM_MASTER, card_id, Stage.SPRINT_BACKLOG, Stage.IMPLEMENTATION)

        lane = game.state.board.lane(Stage.IMPLEMENTATION)
        assert [c.card_id for c in lane.slots] == picks[:3]
        assert [c.card_id for c in lane.queue] == picks[3:]

    def test_over_limit_snapshot(self):
        snapshot = self._played_game().export_state()
        columns = snapshot["game_state"]["board"]["columns"]
        funnel = columns["Funnel"]["slots"]
        columns["Implementation"]["slots"] = [funnel.pop() for _ in range(4)]

        with pytest.raises(InvalidSnapshot, match="limit 3"):
            load_snapshot(snapshot)

    def test_duplicate_card_snapshot(self):
        snapshot = self._played_game().export_state()
        columns = snapshot["game_state"]["board"]["columns"]
        columns["ProductBacklog"]["slots"].append(columns["Funnel"]["slots"][0])

        with pytest.raises(InvalidSnapshot, match="more than once"):
            load_snapshot(snapshot)

    def test_queue_with_free_slot_snapshot(self):
        snapshot = self._played_game().export_state()
        columns = snapshot["game_state"]["board"]["columns"]
        columns["Testing"]["queue"] = [columns["Funnel"]["slots"].pop()]

        with pytest.raises(InvalidSnapshot, match="slot is free"):
            load_snapshot(snapshot)

    def test_card_stage_follows_its_lane(self):
        snapshot = self._played_game().export_state()
        card = snapshot["game_state"]["board"]["columns"]["Funnel"]["slots"][0]
        card["stage"] = "Testing"

        board = load_snapshot(snapshot).board

        assert board.lane(Stage.FUNNEL).slots[0].stage == Stage.FUNNEL
