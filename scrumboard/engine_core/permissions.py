"""
Role permissions - which role may move cards where.

The role/stage association is a fixed bijection: every role owns exactly
one stage and every stage is owned by exactly one role. A role may only
move cards out of the stage it owns, and only one step to the right or
straight to Production.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Mapping

from .stages import Stage, Role
from .errors import PermissionDenied, InvalidTransition


ROLE_STAGE: Mapping[Role, Stage] = MappingProxyType({
    Role.STAKEHOLDER: Stage.FUNNEL,
    Role.PRODUCT_OWNER: Stage.PRODUCT_BACKLOG,
    Role.SCRUM_MASTER: Stage.SPRINT_BACKLOG,
    Role.DEVELOPER_IMPL: Stage.IMPLEMENTATION,
    Role.DEVELOPER_INTG: Stage.INTEGRATION,
    Role.QA_TESTER: Stage.TESTING,
    Role.RELEASE_MANAGER: Stage.PRE_DEPLOYMENT,
    Role.CUSTOMER: Stage.PRODUCTION,
})

STAGE_ROLE: Mapping[Stage, Role] = MappingProxyType(
    {stage: role for role, stage in ROLE_STAGE.items()}
)

def owns_stage(role: Role) -> Stage:
    """The stage a role is responsible for."""
    return ROLE_STAGE[role]


def role_for_stage(stage: Stage) -> Role:
    return STAGE_ROLE[stage]


def can_initiate_move(role: Role, from_stage: Stage) -> bool:
    return ROLE_STAGE[role] == from_stage


def can_move_to(role: Role, from_stage: Stage, to_stage: Stage) -> bool:
    """Owner of from_stage, moving one step right or straight to Production."""
    if not can_initiate_move(role, from_stage):
        return False
    if to_stage == from_stage:
        return False
    return to_stage == from_stage.successor or to_stage == Stage.PRODUCTION


def require_move(role: Role, from_stage: Stage, to_stage: Stage) -> None:
    """
    Raise unless `role` may move a card from `from_stage` to `to_stage`.

    Raises:
        PermissionDenied: role does not own from_stage
        InvalidTransition: destination is not adjacent (and not Production)
    """
    if not can_initiate_move(role, from_stage):
        raise PermissionDenied(role, from_stage)
    if not can_move_to(role, from_stage, to_stage):
        raise InvalidTransition(
            f"{role.value} cannot move cards from {from_stage.value} to {to_stage.value}: "
            "cards must move sequentially"
        )


def require_owner(role: Role, stage: Stage) -> None:
    if not can_initiate_move(role, stage):
        raise PermissionDenied(role, stage, detail="not the owning role")
