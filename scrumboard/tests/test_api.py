"""
Tests for API layer.

Tests:
- API service methods
- HTTP endpoints and status codes
- Error envelopes
"""

import pytest
from fastapi.testclient import TestClient

from ..api.app import create_app
from ..api.schemas import (
    StartGameRequest,
    MoveCardRequest,
    RollRequest,
    CardRequest,
    AdaptationRequest,
    ErrorCode,
    ErrorResponse,
)
from ..api.service import APIService
from ..engine_core.stages import Stage, Role


def first_funnel_card(game: dict) -> str:
    return game["board"]["columns"]["Funnel"]["slots"][0]["card_id"]


class TestAPIService:
    """Tests for APIService."""

    @pytest.fixture
    def service(self):
        """Create a fresh API service."""
        return APIService()

    @pytest.fixture
    def game_id(self, service):
        return service.start_game(StartGameRequest(game_id="svc", random_seed=4)).data.game_id

    def test_start_game(self, service):
        response = service.start_game(StartGameRequest(random_seed=1, max_turns=3))

        assert response.success
        assert response.data.max_turns == 3
        assert response.data.board.current_phase == "SprintPlanning"
        assert len(response.data.board.columns["Funnel"].slots) == 12

    def test_start_game_rejects_limit_on_unlimited_stage(self, service):
        response = service.start_game(StartGameRequest(wip_limits={Stage.FUNNEL: 3}))

        assert isinstance(response, ErrorResponse)
        assert response.error.code == ErrorCode.VALIDATION_ERROR

    def test_custom_wip_limits(self, service):
        response = service.start_game(StartGameRequest(wip_limits={Stage.IMPLEMENTATION: 2}))
        assert response.data.board.columns["Implementation"].wip_limit == 2

    def test_duplicate_game_id(self, service, game_id):
        service.advance_phase(game_id)

        response = service.start_game(StartGameRequest(game_id=game_id, random_seed=5))

        assert isinstance(response, ErrorResponse)
        assert response.error.code == ErrorCode.GAME_ALREADY_EXISTS
        assert service.get_game_state(game_id).data.board.current_phase == "Execution"

    def test_unknown_game(self, service):
        response = service.get_game_state("missing")

        assert not response.success
        assert response.error.code == ErrorCode.GAME_NOT_FOUND

    def test_engine_error_becomes_envelope(self, service, game_id):
        card_id = first_funnel_card(service.get_game_state(game_id).data.model_dump())
        response = service.move_card(game_id, MoveCardRequest(
            role=Role.PRODUCT_OWNER,
            card_id=card_id,
            from_stage=Stage.FUNNEL,
            to_stage=Stage.PRODUCT_BACKLOG,
        ))

        assert not response.success
        assert response.error.code == ErrorCode.PERMISSION_DENIED
        assert response.data is None

    def test_server_roll(self, service, game_id):
        game = service.get_game_state(game_id).data.model_dump()
        card_id = first_funnel_card(game)
        service.move_card(game_id, MoveCardRequest(
            role=Role.STAKEHOLDER, card_id=card_id,
            from_stage=Stage.FUNNEL, to_stage=Stage.PRODUCT_BACKLOG,
        ))
        service.move_card(game_id, MoveCardRequest(
            role=Role.PRODUCT_OWNER, card_id=card_id,
            from_stage=Stage.PRODUCT_BACKLOG, to_stage=Stage.SPRINT_BACKLOG,
        ))
        service.move_card(game_id, MoveCardRequest(
            role=Role.SCRUM_MASTER, card_id=card_id,
            from_stage=Stage.SPRINT_BACKLOG, to_stage=Stage.IMPLEMENTATION,
        ))
        service.advance_phase(game_id)

        response = service.roll_d6(game_id, RollRequest(card_id=card_id))

        assert response.success
        assert 1 <= response.data.roll <= 6
        assert response.data.from_stage == "Implementation"

    def test_adaptation_and_turn(self, service, game_id):
        assert not service.advance_turn(game_id).success

        service.record_adaptation(game_id, AdaptationRequest(text="Smaller batches"))
        response = service.advance_turn(game_id)

        assert response.success
        assert response.data.board.current_turn == 2

    def test_end_game(self, service, game_id):
        assert service.end_game(game_id).success
        assert service.list_games().data == []
        assert service.accept_card(game_id, CardRequest(card_id="x")).error.code == ErrorCode.GAME_NOT_FOUND


class TestEndpoints:
    """HTTP behaviour through FastAPI's TestClient."""

    @pytest.fixture
    def client(self):
        return TestClient(create_app(APIService()))

    @pytest.fixture
    def game(self, client) -> dict:
        response = client.post("/api/v1/games", json={"game_id": "http_game", "random_seed": 9})
        assert response.status_code == 200
        return response.json()["data"]

    def _start_work(self, client, card_id: str) -> None:
        base = "/api/v1/games/http_game"
        for role, from_stage, to_stage in [
            ("Stakeholder", "Funnel", "ProductBacklog"),
            ("ProductOwner", "ProductBacklog", "SprintBacklog"),
            ("ScrumMaster", "SprintBacklog", "Implementation"),
        ]:
            response = client.post(f"{base}/move-card", json={
                "role": role, "card_id": card_id,
                "from_stage": from_stage, "to_stage": to_stage,
            })
            assert response.status_code == 200, response.json()
        assert client.post(f"{base}/advance-phase").status_code == 200

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_start_and_get(self, client, game):
        response = client.get("/api/v1/games/http_game")

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"]["game_id"] == "http_game"
        assert body["data"]["scrum_master"]["tokens_available"] == 3
        assert client.get("/api/v1/games").json()["data"] == ["http_game"]

    def test_duplicate_game_is_409(self, client, game):
        response = client.post("/api/v1/games", json={"game_id": "http_game"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "GAME_ALREADY_EXISTS"

    def test_missing_game_is_404(self, client):
        response = client.get("/api/v1/games/nope")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "GAME_NOT_FOUND"

    def test_permission_denied_is_403(self, client, game):
        response = client.post("/api/v1/games/http_game/move-card", json={
            "role": "Customer",
            "card_id": first_funnel_card(game),
            "from_stage": "Funnel",
            "to_stage": "ProductBacklog",
        })

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PERMISSION_DENIED"

    def test_phase_gating_is_409(self, client, game):
        response = client.post(
            "/api/v1/games/http_game/roll-d6",
            json={"card_id": first_funnel_card(game), "roll": 2},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "PHASE_NOT_ALLOWED"

    def test_unknown_card_is_404(self, client, game):
        response = client.post("/api/v1/games/http_game/pull-to-sprint", json={"card_ids": ["ghost"]})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "STAGE_NOT_FOUND"

    def test_request_validation(self, client, game):
        response = client.post("/api/v1/games/http_game/move-card", json={"role": "Janitor"})
        assert response.status_code == 422

    def test_roll_and_token(self, client, game):
        card_id = first_funnel_card(game)
        self._start_work(client, card_id)

        roll = client.post("/api/v1/games/http_game/roll-d6", json={"card_id": card_id, "roll": 6})
        data = roll.json()["data"]
        assert roll.status_code == 200
        assert data["outcome"] == "critical_failure"
        assert data["to_stage"] == "SprintBacklog"
        assert data["can_mitigate"] is True

        token = client.post("/api/v1/games/http_game/use-token", json={"card_id": card_id})
        data = token.json()["data"]
        assert token.status_code == 200
        assert data["to_stage"] == "Implementation"
        assert data["effects"] == ["token_mitigation"]
        assert data["game"]["scrum_master"]["tokens_available"] == 2

        again = client.post("/api/v1/games/http_game/use-token", json={"card_id": card_id})
        assert again.status_code == 400
        assert again.json()["error"]["code"] == "INVALID_TRANSITION"

    def test_capacity_endpoints(self, client, game):
        card_id = first_funnel_card(game)
        self._start_work(client, card_id)
        base = "/api/v1/games/http_game"

        response = client.post(f"{base}/technical-debt", json={"effort": 10})
        assert response.status_code == 200
        assert response.json()["data"]["scrum_master"]["technical_debt_active"] is True

        response = client.post(f"{base}/allocate-capacity", json={"card_id": card_id, "effort": 1})
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CAPACITY_EXCEEDED"

    def test_retrospective_flow(self, client, game):
        base = "/api/v1/games/http_game"
        for _ in range(3):
            assert client.post(f"{base}/advance-phase").status_code == 200

        blocked = client.post(f"{base}/advance-phase")
        assert blocked.status_code == 409
        assert blocked.json()["error"]["code"] == "RETROSPECTIVE_INCOMPLETE"

        assert client.post(f"{base}/adaptations", json={"text": "Limit WIP"}).status_code == 200
        response = client.post(f"{base}/advance-phase")
        assert response.json()["data"]["board"]["current_turn"] == 2

        metrics = client.get(f"{base}/metrics").json()["data"]
        assert metrics["velocity_per_turn"] == [0]
        assert metrics["adaptations"] == [{"turn": 1, "text": "Limit WIP"}]

        summary = client.get(f"{base}/summary").json()["data"]
        assert summary["turns_played"] == 1

    def test_export_and_import(self, client, game):
        exported = client.get("/api/v1/games/http_game/export").json()["data"]
        assert exported["version"] == "1.0"

        assert client.delete("/api/v1/games/http_game").status_code == 200
        assert client.get("/api/v1/games/http_game").status_code == 404

        response = client.post("/api/v1/games/import", json=exported)
        assert response.status_code == 200
        assert response.json()["data"]["game_id"] == "http_game"
        assert client.get("/api/v1/games/http_game").status_code == 200

    def test_import_invalid_snapshot(self, client):
        response = client.post("/api/v1/games/import", json={"game_state": {}})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SNAPSHOT"

    def test_add_card(self, client, game):
        response = client.post("/api/v1/games/http_game/cards", json={
            "card_id": "new_idea", "title": "New idea", "effort": 3,
        })
        assert response.status_code == 200
        funnel = response.json()["data"]["board"]["columns"]["Funnel"]["slots"]
        assert funnel[-1]["card_id"] == "new_idea"

        bad = client.post("/api/v1/games/http_game/cards", json={
            "card_id": "bad", "title": "Bad", "effort": 2,
        })
        assert bad.status_code == 400
        assert bad.json()["error"]["code"] == "INVALID_EFFORT"
