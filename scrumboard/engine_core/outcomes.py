"""
Outcome resolution - what a d6 roll does to a card.

The base table maps a roll to an OutcomeKind. Modifiers are layered on top
as effects that rewrite the kind:
- technical-debt softening turns a critical failure into an impediment
- a mitigation token moves an impediment or critical failure down one tier

The resolved Outcome knows its target stage; the reducer performs the move.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from .stages import Stage
from .errors import InvalidRollTarget, InvalidTransition


class OutcomeKind(Enum):
    CRITICAL_SUCCESS = "critical_success"
    PROGRESS = "progress"
    SCOPE_CREEP = "scope_creep"
    IMPEDIMENT = "impediment"
    CRITICAL_FAILURE = "critical_failure"


class OutcomeEffect(Enum):
    """Modifiers applied over the base table, in the order they happened."""
    TECHNICAL_DEBT_SOFTENING = "technical_debt_softening"
    TOKEN_MITIGATION = "token_mitigation"


ROLL_OUTCOMES: Mapping[int, OutcomeKind] = MappingProxyType({
    1: OutcomeKind.CRITICAL_SUCCESS,
    2: OutcomeKind.PROGRESS,
    3: OutcomeKind.PROGRESS,
    4: OutcomeKind.SCOPE_CREEP,
    5: OutcomeKind.IMPEDIMENT,
    6: OutcomeKind.CRITICAL_FAILURE,
})

# PROGRESS is relative to the current stage, everything else is fixed
FIXED_TARGETS: Mapping[OutcomeKind, Stage] = MappingProxyType({
    OutcomeKind.CRITICAL_SUCCESS: Stage.PRODUCTION,
    OutcomeKind.SCOPE_CREEP: Stage.PRODUCT_BACKLOG,
    OutcomeKind.IMPEDIMENT: Stage.IMPLEMENTATION,
    OutcomeKind.CRITICAL_FAILURE: Stage.SPRINT_BACKLOG,
})

# Outcomes that count as a revert. A roll of 1 sends the card forward, so it
# never increments revert_count even though it skips the normal path.
ADVERSE_KINDS = frozenset({
    OutcomeKind.SCOPE_CREEP,
    OutcomeKind.IMPEDIMENT,
    OutcomeKind.CRITICAL_FAILURE,
})

# One severity tier down
MITIGATION_LADDER: Mapping[OutcomeKind, OutcomeKind] = MappingProxyType({
    OutcomeKind.CRITICAL_FAILURE: OutcomeKind.IMPEDIMENT,
    OutcomeKind.IMPEDIMENT: OutcomeKind.PROGRESS,
})

DESCRIPTIONS: Mapping[OutcomeKind, str] = MappingProxyType({
    OutcomeKind.CRITICAL_SUCCESS: "Critical Success! Card moves directly to Production",
    OutcomeKind.PROGRESS: "Standard Progress - Card moves to next column",
    OutcomeKind.SCOPE_CREEP: "Scope Creep - Card returns to Product Backlog",
    OutcomeKind.IMPEDIMENT: "Technical Impediment - Card returns to Implementation",
    OutcomeKind.CRITICAL_FAILURE: "Critical Failure - Card returns to Sprint Backlog",
})


@dataclass(frozen=True)
class Outcome:
    """A roll's effect on one card, rolled from `from_stage`."""
    roll: int
    kind: OutcomeKind
    from_stage: Stage
    effects: tuple[OutcomeEffect, ...] = ()

    @property
    def target(self) -> Stage:
        if self.kind == OutcomeKind.PROGRESS:
            return self.from_stage.successor or self.from_stage
        return FIXED_TARGETS[self.kind]

    @property
    def is_adverse(self) -> bool:
        return self.kind in ADVERSE_KINDS

    @property
    def can_mitigate(self) -> bool:
        return self.kind in MITIGATION_LADDER

    @property
    def description(self) -> str:
        return DESCRIPTIONS[self.kind]


def base_outcome(roll: int, from_stage: Stage) -> Outcome:
    kind = ROLL_OUTCOMES.get(roll)
    if kind is None:
        raise InvalidRollTarget(f"Roll must be between 1 and 6, got {roll}")
    return Outcome(roll=roll, kind=kind, from_stage=from_stage)


def soften_for_technical_debt(outcome: Outcome) -> Outcome:
    """Critical failures only send the card back to Implementation."""
    if outcome.kind != OutcomeKind.CRITICAL_FAILURE:
        return outcome
    return replace(
        outcome,
        kind=OutcomeKind.IMPEDIMENT,
        effects=outcome.effects + (OutcomeEffect.TECHNICAL_DEBT_SOFTENING,),
    )


def mitigate(outcome: Outcome) -> Outcome:
    """Downgrade an outcome by one tier."""
    downgraded = MITIGATION_LADDER.get(outcome.kind)
    if downgraded is None:
        raise InvalidTransition(f"A {outcome.kind.value} outcome cannot be mitigated")
    return replace(
        outcome,
        kind=downgraded,
        effects=outcome.effects + (OutcomeEffect.TOKEN_MITIGATION,),
    )


def resolve_outcome(roll: int, from_stage: Stage, technical_debt_active: bool = False) -> Outcome:
    outcome = base_outcome(roll, from_stage)
    if technical_debt_active:
        outcome = soften_for_technical_debt(outcome)
    return outcome
