"""
Tests for role permissions.

Tests:
- Role/stage bijection
- Sequential moves and the Production shortcut
- Denial reasons
"""

import pytest

from ..engine_core.stages import Stage, Role, STAGE_ORDER
from ..engine_core.errors import PermissionDenied, InvalidTransition
from ..engine_core.permissions import (
    ROLE_STAGE,
    STAGE_ROLE,
    owns_stage,
    role_for_stage,
    can_move_to,
    require_move,
    require_owner,
)


class TestRoleStageTable:
    """The role/stage association is a bijection."""

    def test_every_role_owns_one_stage(self):
        assert set(ROLE_STAGE) == set(Role)
        assert set(ROLE_STAGE.values()) == set(Stage)

    def test_inverse_table(self):
        for role in Role:
            assert role_for_stage(owns_stage(role)) == role
        assert len(STAGE_ROLE) == len(Stage)

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            ROLE_STAGE[Role.CUSTOMER] = Stage.FUNNEL


class TestCanMoveTo:
    """can_move_to rules."""

    @pytest.mark.parametrize("role", list(Role)[:-1])
    def test_owner_moves_one_step_right(self, role):
        stage = owns_stage(role)
        assert can_move_to(role, stage, stage.successor)

    def test_non_owner_cannot_move(self):
        assert not can_move_to(Role.STAKEHOLDER, Stage.PRODUCT_BACKLOG, Stage.SPRINT_BACKLOG)

    def test_skipping_a_stage_is_refused(self):
        assert not can_move_to(Role.STAKEHOLDER, Stage.FUNNEL, Stage.SPRINT_BACKLOG)

    def test_moving_left_is_refused(self):
        assert not can_move_to(Role.QA_TESTER, Stage.TESTING, Stage.IMPLEMENTATION)

    def test_any_owner_may_jump_to_production(self):
        assert can_move_to(Role.DEVELOPER_IMPL, Stage.IMPLEMENTATION, Stage.PRODUCTION)
        assert can_move_to(Role.STAKEHOLDER, Stage.FUNNEL, Stage.PRODUCTION)

    def test_same_stage_is_not_a_move(self):
        assert not can_move_to(Role.CUSTOMER, Stage.PRODUCTION, Stage.PRODUCTION)
        assert not can_move_to(Role.PRODUCT_OWNER, Stage.PRODUCT_BACKLOG, Stage.PRODUCT_BACKLOG)

    def test_production_has_no_successor(self):
        assert Stage.PRODUCTION.successor is None
        assert STAGE_ORDER[-1] == Stage.PRODUCTION


class TestRequireMove:
    """require_move reports the reason for a refusal."""

    def test_allowed_move_passes(self):
        require_move(Role.STAKEHOLDER, Stage.FUNNEL, Stage.PRODUCT_BACKLOG)

    def test_wrong_role_is_permission_denied(self):
        with pytest.raises(PermissionDenied) as exc_info:
            require_move(Role.STAKEHOLDER, Stage.PRODUCT_BACKLOG, Stage.SPRINT_BACKLOG)
        assert exc_info.value.error_code == "PERMISSION_DENIED"
        assert "Stakeholder" in exc_info.value.message

    def test_permission_denied_is_an_invalid_transition(self):
        with pytest.raises(InvalidTransition):
            require_move(Role.CUSTOMER, Stage.TESTING, Stage.PRE_DEPLOYMENT)

    def test_non_adjacent_move_is_invalid_transition(self):
        with pytest.raises(InvalidTransition) as exc_info:
            require_move(Role.STAKEHOLDER, Stage.FUNNEL, Stage.IMPLEMENTATION)
        assert not isinstance(exc_info.value, PermissionDenied)
        assert exc_info.value.error_code == "INVALID_TRANSITION"

    def test_require_owner(self):
        require_owner(Role.QA_TESTER, Stage.TESTING)
        with pytest.raises(PermissionDenied):
            require_owner(Role.QA_TESTER, Stage.INTEGRATION)

