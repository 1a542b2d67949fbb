"""
Action System - Actions, payloads, and results.

Actions represent:
1. Role actions (move a card, roll for a card, allocate effort)
2. Scrum Master actions (tokens, technical-debt investment)
3. Flow actions (advance phase/turn, record adaptations)

All state changes flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .stages import Stage, Role


class ActionType(Enum):
    """Types of actions in the system."""
    # Board actions
    ADD_CARD = "add_card"
    MOVE_CARD = "move_card"
    PULL_TO_SPRINT = "pull_to_sprint"
    ACCEPT_CARD = "accept_card"
    REJECT_CARD = "reject_card"

    # Execution actions
    RESOLVE_ROLL = "resolve_roll"
    ALLOCATE_CAPACITY = "allocate_capacity"
    INVEST_TECHNICAL_DEBT = "invest_technical_debt"
    USE_TOKEN = "use_token"

    # Flow actions
    RECORD_ADAPTATION = "record_adaptation"
    ADVANCE_PHASE = "advance_phase"
    ADVANCE_TURN = "advance_turn"


@dataclass
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types use different fields.
    This is a generic container; validation happens in the reducer.
    """
    role: Role | None = None
    card_id: str | None = None
    card_ids: list[str] | None = None
    from_stage: Stage | None = None
    to_stage: Stage | None = None
    roll: int | None = None
    effort: int | None = None
    text: str | None = None

    # New card fields for ADD_CARD
    card: dict[str, Any] | None = None


@dataclass
class Action:
    """
    A complete action to be applied to the game state.

    Actions are:
    - Logged for replay
    - Validated before application
    - Applied atomically by the reducer
    """
    action_type: ActionType
    payload: ActionPayload = field(default_factory=ActionPayload)
    timestamp: float | None = None
    action_id: str | None = None

    @classmethod
    def add_card(
        cls,
        card_id: str,
        title: str,
        effort: int,
        description: str = "",
        technical_debt: bool = False,
    ) -> Action:
        return cls(
            action_type=ActionType.ADD_CARD,
            payload=ActionPayload(
                role=Role.STAKEHOLDER,
                card={
                    "card_id": card_id,
                    "title": title,
                    "effort": effort,
                    "description": description,
                    "technical_debt": technical_debt,
                },
            ),
        )

    @classmethod
    def move_card(cls, role: Role, card_id: str, from_stage: Stage, to_stage: Stage) -> Action:
        return cls(
            action_type=ActionType.MOVE_CARD,
            payload=ActionPayload(
                role=role, card_id=card_id, from_stage=from_stage, to_stage=to_stage,
            ),
        )

    @classmethod
    def pull_to_sprint(cls, card_ids: list[str], role: Role = Role.PRODUCT_OWNER) -> Action:
        """Batch move from Product Backlog to Sprint Backlog."""
        return cls(
            action_type=ActionType.PULL_TO_SPRINT,
            payload=ActionPayload(role=role, card_ids=list(card_ids)),
        )

    @classmethod
    def accept_card(cls, card_id: str) -> Action:
        return cls(
            action_type=ActionType.ACCEPT_CARD,
            payload=ActionPayload(role=Role.RELEASE_MANAGER, card_id=card_id),
        )

    @classmethod
    def reject_card(cls, card_id: str) -> Action:
        return cls(
            action_type=ActionType.REJECT_CARD,
            payload=ActionPayload(card_id=card_id),
        )

    @classmethod
    def resolve_roll(cls, card_id: str, roll: int, role: Role | None = None) -> Action:
        return cls(
            action_type=ActionType.RESOLVE_ROLL,
            payload=ActionPayload(role=role, card_id=card_id, roll=roll),
        )

    @classmethod
    def allocate_capacity(cls, card_id: str, effort: int) -> Action:
        return cls(
            action_type=ActionType.ALLOCATE_CAPACITY,
            payload=ActionPayload(card_id=card_id, effort=effort),
        )

    @classmethod
    def invest_technical_debt(cls, effort: int) -> Action:
        return cls(
            action_type=ActionType.INVEST_TECHNICAL_DEBT,
            payload=ActionPayload(role=Role.SCRUM_MASTER, effort=effort),
        )

    @classmethod
    def use_token(cls, card_id: str) -> Action:
        return cls(
            action_type=ActionType.USE_TOKEN,
            payload=ActionPayload(role=Role.SCRUM_MASTER, card_id=card_id),
        )

    @classmethod
    def record_adaptation(cls, text: str) -> Action:
        return cls(
            action_type=ActionType.RECORD_ADAPTATION,
            payload=ActionPayload(text=text),
        )

    @classmethod
    def advance_phase(cls) -> Action:
        return cls(action_type=ActionType.ADVANCE_PHASE)

    @classmethod
    def advance_turn(cls) -> Action:
        return cls(action_type=ActionType.ADVANCE_TURN)


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (if succeeded)
    - Error, error code and the raised exception (if failed)
    - Human-readable changes (for logs and UI)
    """
    success: bool
    new_state: Any | None = None  # GameState
    error: str | None = None
    error_code: str | None = None
    exception: Exception | None = None

    state_changes: list[str] = field(default_factory=list)

    # Set by RESOLVE_ROLL and USE_TOKEN
    outcome: Any | None = None  # Outcome

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        exception: Exception | None = None,
    ) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code, exception=exception)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
        outcome: Any | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
            outcome=outcome,
        )

    def raise_for_error(self) -> ActionResult:
        """Re-raise the engine error behind a failed result."""
        if not self.success:
            if self.exception is not None:
                raise self.exception
            raise RuntimeError(self.error or "Action failed")
        return self
