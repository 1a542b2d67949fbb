"""
Game State - the complete, serializable state of one game.

Design principles:
- Owned: each game has its own GameState, no module-level state
- Serializable: to_dict()/from_dict() round-trip the whole structure
- Mutated only by the reducer, which works on a clone
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
from copy import deepcopy

from .stages import Stage, GamePhase
from .config import GameConfig


VALID_EFFORTS = (1, 3, 5)


@dataclass
class Card:
    """
    A work item on the board.

    `stage` mirrors the lane the card sits in and is kept in sync by the
    board helpers.
    """
    card_id: str
    title: str
    effort: int
    stage: Stage = Stage.FUNNEL
    created_turn: int = 1
    description: str = ""
    revert_count: int = 0
    cycle_time: int | None = None
    assignee: str | None = None
    technical_debt: bool = False
    delivered: bool = False  # First arrival in Production already counted

    def __post_init__(self):
        if self.effort not in VALID_EFFORTS:
            raise ValueError(f"Card effort must be one of {VALID_EFFORTS}, got {self.effort}")

    def __hash__(self):
        return hash(self.card_id)

    def __eq__(self, other):
        if not isinstance(other, Card):
            return False
        return self.card_id == other.card_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "card_id": self.card_id,
            "title": self.title,
            "description": self.description,
            "effort": self.effort,
            "stage": self.stage.value,
            "created_turn": self.created_turn,
            "revert_count": self.revert_count,
            "cycle_time": self.cycle_time,
            "assignee": self.assignee,
            "technical_debt": self.technical_debt,
            "delivered": self.delivered,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Card:
        return cls(
            card_id=str(data["card_id"]),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            effort=int(data["effort"]),
            stage=Stage(data.get("stage", Stage.FUNNEL.value)),
            created_turn=int(data.get("created_turn", 1)),
            revert_count=int(data.get("revert_count", 0)),
            cycle_time=data.get("cycle_time"),
            assignee=data.get("assignee"),
            technical_debt=bool(data.get("technical_debt", False)),
            delivered=bool(data.get("delivered", False)),
        )


@dataclass
class StageLane:
    """
    Active slots plus FIFO waiting queue for one stage.

    Invariant: len(slots) <= wip_limit when a limit is set; queue is always
    empty for unlimited lanes.
    """
    stage: Stage
    wip_limit: int | None = None
    slots: list[Card] = field(default_factory=list)
    queue: list[Card] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.slots) + len(self.queue)

    @property
    def has_free_slot(self) -> bool:
        return self.wip_limit is None or len(self.slots) < self.wip_limit

    @property
    def cards(self) -> list[Card]:
        return self.slots + self.queue

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "wip_limit": self.wip_limit,
            "slots": [c.to_dict() for c in self.slots],
            "queue": [c.to_dict() for c in self.queue],
        }

    @classmethod
    def from_dict(cls, stage: Stage, data: dict[str, Any], wip_limit: int | None) -> StageLane:
        """The limit comes from the game config; the exported wip_limit is informational."""
        lane = cls(
            stage=stage,
            wip_limit=wip_limit,
            slots=[Card.from_dict(c) for c in data.get("slots", [])],
            queue=[Card.from_dict(c) for c in data.get("queue", [])],
        )
        for card in lane.cards:
            card.stage = stage
        return lane


@dataclass
class BoardState:
    """Lanes, turn/phase position and this turn's capacity bookkeeping."""
    lanes: dict[Stage, StageLane] = field(default_factory=dict)
    current_turn: int = 1
    current_phase: GamePhase = GamePhase.SPRINT_PLANNING
    team_capacity: int = 10
    used_capacity: int = 0

    # Per-turn ledgers, reset when capacity resets
    allocations: dict[str, int] = field(default_factory=dict)
    technical_debt_invested: int = 0

    # Cards newly delivered since the last cumulative-flow snapshot
    delivered_this_turn: int = 0

    @classmethod
    def create(cls, config: GameConfig) -> BoardState:
        lanes = {
            stage: StageLane(stage=stage, wip_limit=config.wip_limit(stage))
            for stage in Stage
        }
        return cls(lanes=lanes, team_capacity=config.team_capacity)

    def lane(self, stage: Stage) -> StageLane:
        return self.lanes[stage]

    @property
    def remaining_capacity(self) -> int:
        return self.team_capacity - self.used_capacity

    def column_counts(self) -> dict[str, int]:
        """Cards per stage, slots and queue together."""
        return {stage.value: self.lanes[stage].count for stage in Stage}

    def all_cards(self) -> list[Card]:
        return [card for stage in Stage for card in self.lanes[stage].cards]

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": {stage.value: self.lanes[stage].to_dict() for stage in Stage},
            "current_turn": self.current_turn,
            "current_phase": self.current_phase.value,
            "team_capacity": self.team_capacity,
            "used_capacity": self.used_capacity,
            "allocations": dict(self.allocations),
            "technical_debt_invested": self.technical_debt_invested,
            "delivered_this_turn": self.delivered_this_turn,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], config: GameConfig | None = None) -> BoardState:
        config = config or GameConfig()
        columns = data.get("columns", {})
        lanes = {
            stage: StageLane.from_dict(stage, columns.get(stage.value) or {}, config.wip_limit(stage))
            for stage in Stage
        }
        return cls(
            lanes=lanes,
            current_turn=int(data.get("current_turn", 1)),
            current_phase=GamePhase(data.get("current_phase", GamePhase.SPRINT_PLANNING.value)),
            team_capacity=int(data.get("team_capacity", 10)),
            used_capacity=int(data.get("used_capacity", 0)),
            allocations={str(k): int(v) for k, v in (data.get("allocations") or {}).items()},
            technical_debt_invested=int(data.get("technical_debt_invested", 0)),
            delivered_this_turn=int(data.get("delivered_this_turn", 0)),
        )


@dataclass
class ScrumMasterState:
    """Mitigation tokens and the technical-debt timer."""
    tokens_total: int = 3
    tokens_used: int = 0
    technical_debt_active: bool = False
    technical_debt_expires_at_turn: int | None = None

    @property
    def tokens_available(self) -> int:
        return self.tokens_total - self.tokens_used

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokens_total": self.tokens_total,
            "tokens_available": self.tokens_available,
            "tokens_used": self.tokens_used,
            "technical_debt_active": self.technical_debt_active,
            "technical_debt_expires_at_turn": self.technical_debt_expires_at_turn,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScrumMasterState:
        expires = data.get("technical_debt_expires_at_turn")
        return cls(
            tokens_total=int(data.get("tokens_total", 3)),
            tokens_used=int(data.get("tokens_used", 0)),
            technical_debt_active=bool(data.get("technical_debt_active", False)),
            technical_debt_expires_at_turn=int(expires) if expires is not None else None,
        )


@dataclass
class RevertEvent:
    """One adverse transition. roll is None for a review rejection."""
    card_id: str
    turn: int
    roll: int | None
    from_stage: Stage
    to_stage: Stage
    mitigated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "card_id": self.card_id,
            "turn": self.turn,
            "roll": self.roll,
            "from_stage": self.from_stage.value,
            "to_stage": self.to_stage.value,
            "mitigated": self.mitigated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RevertEvent:
        return cls(
            card_id=str(data["card_id"]),
            turn=int(data["turn"]),
            roll=data.get("roll"),
            from_stage=Stage(data["from_stage"]),
            to_stage=Stage(data["to_stage"]),
            mitigated=bool(data.get("mitigated", False)),
        )


@dataclass
class FlowSnapshot:
    """Per-stage occupancy at the end of a turn."""
    turn: int
    column_counts: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {"turn": self.turn, "column_counts": dict(self.column_counts)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlowSnapshot:
        return cls(
            turn=int(data["turn"]),
            column_counts={str(k): int(v) for k, v in data["column_counts"].items()},
        )


@dataclass
class Metrics:
    """Append-only history used by the retrospective."""
    velocity_per_turn: list[int] = field(default_factory=list)
    accumulated_score: int = 0
    cumulative_flow: list[FlowSnapshot] = field(default_factory=list)
    revert_events: list[RevertEvent] = field(default_factory=list)
    adaptations: list[dict[str, Any]] = field(default_factory=list)  # {"turn", "text"}

    def to_dict(self) -> dict[str, Any]:
        return {
            "velocity_per_turn": list(self.velocity_per_turn),
            "accumulated_score": self.accumulated_score,
            "cumulative_flow": [s.to_dict() for s in self.cumulative_flow],
            "revert_events": [e.to_dict() for e in self.revert_events],
            "adaptations": [dict(a) for a in self.adaptations],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Metrics:
        return cls(
            velocity_per_turn=[int(v) for v in data.get("velocity_per_turn", [])],
            accumulated_score=int(data.get("accumulated_score", 0)),
            cumulative_flow=[FlowSnapshot.from_dict(s) for s in data.get("cumulative_flow", [])],
            revert_events=[RevertEvent.from_dict(e) for e in data.get("revert_events", [])],
            adaptations=[dict(a) for a in data.get("adaptations", [])],
        )


@dataclass
class RollResolution:
    """
    The latest adverse 5/6 resolution, kept so a token can follow it.

    Cleared by any other successful mutation.
    """
    card_id: str
    roll: int
    kind: str  # OutcomeKind value after softening
    from_stage: Stage
    to_stage: Stage
    revert_event_index: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "card_id": self.card_id,
            "roll": self.roll,
            "kind": self.kind,
            "from_stage": self.from_stage.value,
            "to_stage": self.to_stage.value,
            "revert_event_index": self.revert_event_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RollResolution:
        return cls(
            card_id=str(data["card_id"]),
            roll=int(data["roll"]),
            kind=str(data["kind"]),
            from_stage=Stage(data["from_stage"]),
            to_stage=Stage(data["to_stage"]),
            revert_event_index=int(data["revert_event_index"]),
        )


@dataclass
class GameState:
    """
    Complete game state at a point in time.

    This is the canonical state that the engine operates on.
    All state changes go through the reducer.
    """
    game_id: str
    config: GameConfig = field(default_factory=GameConfig)
    board: BoardState = field(default_factory=BoardState)
    scrum_master: ScrumMasterState = field(default_factory=ScrumMasterState)
    metrics: Metrics = field(default_factory=Metrics)

    # Adaptations recorded during the current turn
    pending_adaptations: list[str] = field(default_factory=list)

    # Token follow-up window
    last_resolution: RollResolution | None = None

    # History (for replay and debugging)
    action_history: list[Any] = field(default_factory=list)

    @classmethod
    def create(cls, game_id: str, config: GameConfig | None = None) -> GameState:
        """Empty board laid out from a config."""
        config = config or GameConfig()
        return cls(
            game_id=game_id,
            config=config,
            board=BoardState.create(config),
            scrum_master=ScrumMasterState(tokens_total=config.tokens_total),
        )

    @property
    def current_turn(self) -> int:
        return self.board.current_turn

    @property
    def current_phase(self) -> GamePhase:
        return self.board.current_phase

    @property
    def is_game_over(self) -> bool:
        return self.board.current_turn > self.config.max_turns

    def clone(self) -> GameState:
        """Deep copy the state."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Whole-game structure for persistence. action_history is not included."""
        return {
            "game_id": self.game_id,
            "config": self.config.to_dict(),
            "board": self.board.to_dict(),
            "scrum_master": self.scrum_master.to_dict(),
            "metrics": self.metrics.to_dict(),
            "pending_adaptations": list(self.pending_adaptations),
            "last_resolution": self.last_resolution.to_dict() if self.last_resolution else None,
            "max_turns": self.config.max_turns,
            "is_game_over": self.is_game_over,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameState:
        last = data.get("last_resolution")
        config = GameConfig.from_dict(data.get("config") or {})
        return cls(
            game_id=str(data["game_id"]),
            config=config,
            board=BoardState.from_dict(data["board"], config),
            scrum_master=ScrumMasterState.from_dict(data.get("scrum_master") or {}),
            metrics=Metrics.from_dict(data.get("metrics") or {}),
            pending_adaptations=[str(a) for a in data.get("pending_adaptations", [])],
            last_resolution=RollResolution.from_dict(last) if last else None,
        )
