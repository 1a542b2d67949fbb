"""
Reducer - Applies actions to game state.

The reducer is the single point of state mutation.
All state changes must go through apply_action().

Design principles:
- (state, action) -> ActionResult; the input state is never modified
- Validates before applying
- Handlers work on a clone, so a failed action leaves nothing behind
- Returns ActionResult with success/failure and a machine-readable code
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from .stages import Stage, Role
from .state import GameState, Card, RollResolution, VALID_EFFORTS
from .action import Action, ActionType, ActionResult
from .errors import (
    EngineError,
    InvalidTransition,
    InvalidRollTarget,
    InvalidEffort,
    InvalidAdaptation,
    NoTokensAvailable,
    StageNotFound,
)
from .outcomes import Outcome, OutcomeKind, resolve_outcome, mitigate
from . import board as board_ops
from . import capacity
from . import metrics
from . import permissions
from . import phases


logger = logging.getLogger(__name__)

# Actions after which a pending roll can no longer be mitigated
STAGE_MUTATIONS = frozenset({
    ActionType.MOVE_CARD,
    ActionType.PULL_TO_SPRINT,
    ActionType.ACCEPT_CARD,
    ActionType.REJECT_CARD,
    ActionType.USE_TOKEN,
    ActionType.ADVANCE_PHASE,
    ActionType.ADVANCE_TURN,
})


@dataclass
class Reducer:
    """
    Reducer applies actions to game state.

    Stateless - all state is in GameState.
    """

    def apply(self, state: GameState, action: Action) -> ActionResult:
        """
        Apply an action to the game state.

        Returns ActionResult with new state or error.
        """
        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type: {action.action_type}",
                error_code="NO_HANDLER",
            )

        try:
            phases.require_phase(state, action.action_type)
            new_state = state.clone()
            result = handler(new_state, action)
        except EngineError as e:
            logger.warning(
                "Game %s rejected %s: %s", state.game_id, action.action_type.value, e.message,
            )
            return ActionResult.failure(e.message, error_code=e.error_code, exception=e)
        except Exception as e:
            logger.exception("Game %s: handler for %s failed", state.game_id, action.action_type.value)
            return ActionResult.failure(str(e), error_code="HANDLER_ERROR", exception=e)

        if action.action_type in STAGE_MUTATIONS:
            new_state.last_resolution = None
        new_state.action_history.append(action)
        return result

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.ADD_CARD: self._handle_add_card,
            ActionType.MOVE_CARD: self._handle_move_card,
            ActionType.PULL_TO_SPRINT: self._handle_pull_to_sprint,
            ActionType.ACCEPT_CARD: self._handle_accept_card,
            ActionType.REJECT_CARD: self._handle_reject_card,
            ActionType.RESOLVE_ROLL: self._handle_resolve_roll,
            ActionType.ALLOCATE_CAPACITY: self._handle_allocate_capacity,
            ActionType.INVEST_TECHNICAL_DEBT: self._handle_invest_technical_debt,
            ActionType.USE_TOKEN: self._handle_use_token,
            ActionType.RECORD_ADAPTATION: self._handle_record_adaptation,
            ActionType.ADVANCE_PHASE: self._handle_advance_phase,
            ActionType.ADVANCE_TURN: self._handle_advance_turn,
        }
        return handlers.get(action_type)

    # =========================================================================
    # Board actions
    # =========================================================================

    def _handle_add_card(self, state: GameState, action: Action) -> ActionResult:
        """Stakeholder adds a new idea to the Funnel."""
        data = action.payload.card or {}
        card_id = data.get("card_id")
        if not card_id:
            raise InvalidTransition("A new card needs a card_id")
        try:
            board_ops.locate(state.board, card_id)
        except StageNotFound:
            pass
        else:
            raise InvalidTransition(f"Card {card_id} is already on the board")

        effort = data.get("effort")
        if effort not in VALID_EFFORTS:
            raise InvalidEffort(f"Card effort must be one of {VALID_EFFORTS}, got {effort}")

        card = Card(
            card_id=card_id,
            title=data.get("title", ""),
            description=data.get("description", ""),
            effort=effort,
            created_turn=state.board.current_turn,
            technical_debt=bool(data.get("technical_debt", False)),
        )
        board_ops.place_card(state.board, card, Stage.FUNNEL)
        return ActionResult.success_with_state(
            state, changes=[f"Card {card_id} added to {Stage.FUNNEL.value}"],
        )

    def _handle_move_card(self, state: GameState, action: Action) -> ActionResult:
        p = action.payload
        change = self._move(state, p.role, p.card_id, p.from_stage, p.to_stage)
        return ActionResult.success_with_state(state, changes=[change])

    def _handle_pull_to_sprint(self, state: GameState, action: Action) -> ActionResult:
        """Move a batch of cards from Product Backlog into the sprint, all or nothing."""
        card_ids = action.payload.card_ids or []
        if not card_ids:
            raise InvalidTransition("No cards selected for the sprint")
        if len(set(card_ids)) != len(card_ids):
            raise InvalidTransition("A card was selected more than once")

        changes = [
            self._move(
                state, action.payload.role, card_id,
                Stage.PRODUCT_BACKLOG, Stage.SPRINT_BACKLOG,
            )
            for card_id in card_ids
        ]
        return ActionResult.success_with_state(state, changes=changes)

    def _handle_accept_card(self, state: GameState, action: Action) -> ActionResult:
        """Review accepts a Pre-Deployment card into Production."""
        change = self._move(
            state, Role.RELEASE_MANAGER, action.payload.card_id,
            Stage.PRE_DEPLOYMENT, Stage.PRODUCTION,
        )
        return ActionResult.success_with_state(state, changes=[change])

    def _handle_reject_card(self, state: GameState, action: Action) -> ActionResult:
        """Review rejects a Pre-Deployment card back to Product Backlog."""
        card_id = action.payload.card_id
        stage, _, _ = board_ops.locate(state.board, card_id)
        if stage != Stage.PRE_DEPLOYMENT:
            raise InvalidTransition(
                f"Only {Stage.PRE_DEPLOYMENT.value} cards can be rejected; "
                f"card {card_id} is in {stage.value}"
            )
        card, from_stage, _ = board_ops.relocate(state.board, card_id, Stage.PRODUCT_BACKLOG)
        metrics.record_revert(state, card, None, from_stage, Stage.PRODUCT_BACKLOG)
        return ActionResult.success_with_state(
            state, changes=[f"Card {card_id} rejected back to {Stage.PRODUCT_BACKLOG.value}"],
        )

    def _move(
        self,
        state: GameState,
        role: Role | None,
        card_id: str | None,
        from_stage: Stage | None,
        to_stage: Stage | None,
    ) -> str:
        if not card_id or from_stage is None or to_stage is None:
            raise InvalidTransition("A move needs a card, a source and a destination stage")
        if role is None:
            raise InvalidTransition("A move needs an acting role")

        current, _, _ = board_ops.locate(state.board, card_id)
        if current != from_stage:
            raise InvalidTransition(
                f"Card {card_id} is in {current.value}, not {from_stage.value}"
            )
        permissions.require_move(role, from_stage, to_stage)

        card, _, in_slot = board_ops.relocate(state.board, card_id, to_stage)
        if to_stage == Stage.PRODUCTION:
            metrics.record_arrival(state, card)
        where = "" if in_slot else " (queued)"
        return f"Card {card_id} moved {from_stage.value} -> {to_stage.value}{where}"

    # =========================================================================
    # Execution actions
    # =========================================================================

    def _handle_resolve_roll(self, state: GameState, action: Action) -> ActionResult:
        """Apply a d6 roll to a card in an execution stage's active slots."""
        p = action.payload
        if p.roll is None:
            raise InvalidRollTarget("A roll value is required")
        stage, queued, card = board_ops.locate(state.board, p.card_id)
        if not stage.is_execution:
            raise InvalidRollTarget(
                f"Card {p.card_id} is in {stage.value}; rolls apply only to "
                "Implementation, Integration, Testing and PreDeployment"
            )
        if queued:
            raise InvalidRollTarget(f"Card {p.card_id} is waiting in the {stage.value} queue")
        if p.role is not None:
            permissions.require_owner(p.role, stage)

        outcome = resolve_outcome(p.roll, stage, state.scrum_master.technical_debt_active)
        target = outcome.target
        card, _, _ = board_ops.relocate(state.board, card.card_id, target)

        state.last_resolution = None
        if outcome.is_adverse:
            index = metrics.record_revert(state, card, p.roll, stage, target)
            if outcome.can_mitigate:
                state.last_resolution = RollResolution(
                    card_id=card.card_id,
                    roll=p.roll,
                    kind=outcome.kind.value,
                    from_stage=stage,
                    to_stage=target,
                    revert_event_index=index,
                )
        if target == Stage.PRODUCTION:
            metrics.record_arrival(state, card)

        return ActionResult.success_with_state(
            state,
            changes=[f"Rolled {p.roll} for {card.card_id}: {outcome.description}"],
            outcome=outcome,
        )

    def _handle_use_token(self, state: GameState, action: Action) -> ActionResult:
        """Soften the roll that was just resolved for this card by one tier."""
        sm = state.scrum_master
        card_id = action.payload.card_id
        if sm.tokens_available <= 0:
            raise NoTokensAvailable("No Scrum Master tokens remain")

        pending = state.last_resolution
        if pending is None or pending.card_id != card_id:
            raise InvalidTransition(
                f"Card {card_id} has no just-resolved roll of 5 or 6 to mitigate"
            )

        stage, _, _ = board_ops.locate(state.board, card_id)
        if stage != pending.to_stage:
            raise InvalidTransition(f"Card {card_id} has moved since its roll")

        original = Outcome(
            roll=pending.roll,
            kind=OutcomeKind(pending.kind),
            from_stage=pending.from_stage,
        )
        outcome = mitigate(original)
        card, _, _ = board_ops.relocate(state.board, card_id, outcome.target)

        sm.tokens_used += 1
        state.metrics.revert_events[pending.revert_event_index].mitigated = True
        if outcome.target == Stage.PRODUCTION:
            metrics.record_arrival(state, card)

        return ActionResult.success_with_state(
            state,
            changes=[f"Token used on {card_id}: now {outcome.target.value}"],
            outcome=outcome,
        )

    def _handle_allocate_capacity(self, state: GameState, action: Action) -> ActionResult:
        p = action.payload
        if p.effort is None:
            raise InvalidEffort("Effort is required")
        card = board_ops.find_card(state.board, p.card_id)
        total = capacity.allocate(state.board, card, p.effort)
        return ActionResult.success_with_state(
            state,
            changes=[f"Allocated {p.effort} to {card.card_id} ({total}/{card.effort})"],
        )

    def _handle_invest_technical_debt(self, state: GameState, action: Action) -> ActionResult:
        """Pay down technical debt; enough investment softens critical failures."""
        effort = action.payload.effort
        if effort is None:
            raise InvalidEffort("Effort is required")
        before = state.board.technical_debt_invested
        total = capacity.invest(state.board, effort)
        changes = [f"Invested {effort} in technical debt ({total} this turn)"]

        threshold = state.config.technical_debt_threshold
        if before < threshold <= total:
            sm = state.scrum_master
            sm.technical_debt_active = True
            sm.technical_debt_expires_at_turn = (
                state.board.current_turn + state.config.technical_debt_duration
            )
            changes.append(
                f"Technical debt softening active until turn {sm.technical_debt_expires_at_turn}"
            )
            logger.info("Game %s: technical debt softening active", state.game_id)
        return ActionResult.success_with_state(state, changes=changes)

    # =========================================================================
    # Flow actions
    # =========================================================================

    def _handle_record_adaptation(self, state: GameState, action: Action) -> ActionResult:
        text = (action.payload.text or "").strip()
        if not text:
            raise InvalidAdaptation("Adaptation text must not be empty")
        state.pending_adaptations.append(text)
        state.metrics.adaptations.append({"turn": state.board.current_turn, "text": text})
        return ActionResult.success_with_state(state, changes=["Adaptation recorded"])

    def _handle_advance_phase(self, state: GameState, action: Action) -> ActionResult:
        changes = phases.advance_phase(state)
        return ActionResult.success_with_state(state, changes=changes)

    def _handle_advance_turn(self, state: GameState, action: Action) -> ActionResult:
        changes = phases.advance_turn(state)
        return ActionResult.success_with_state(state, changes=changes)


def apply_action(state: GameState, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a reducer and applies the action.
    """
    return Reducer().apply(state, action)
