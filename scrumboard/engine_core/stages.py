"""
Board vocabulary - stages, roles and phases.

Stages are ordered: a card normally travels left to right through them.
"""

from __future__ import annotations
from enum import Enum


class Stage(Enum):
    """The eight workflow columns, in board order."""
    FUNNEL = "Funnel"
    PRODUCT_BACKLOG = "ProductBacklog"
    SPRINT_BACKLOG = "SprintBacklog"
    IMPLEMENTATION = "Implementation"
    INTEGRATION = "Integration"
    TESTING = "Testing"
    PRE_DEPLOYMENT = "PreDeployment"
    PRODUCTION = "Production"

    @property
    def index(self) -> int:
        return STAGE_ORDER.index(self)

    @property
    def successor(self) -> Stage | None:
        """Next stage in board order, None for Production."""
        i = self.index
        if i + 1 < len(STAGE_ORDER):
            return STAGE_ORDER[i + 1]
        return None

    @property
    def is_unlimited(self) -> bool:
        """Funnel and Production never queue."""
        return self in (Stage.FUNNEL, Stage.PRODUCTION)

    @property
    def is_execution(self) -> bool:
        """Stages where dice are rolled."""
        return self in EXECUTION_STAGES


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)

EXECUTION_STAGES: frozenset[Stage] = frozenset({
    Stage.IMPLEMENTATION,
    Stage.INTEGRATION,
    Stage.TESTING,
    Stage.PRE_DEPLOYMENT,
})


class Role(Enum):
    """Team roles. Each owns exactly one stage."""
    STAKEHOLDER = "Stakeholder"
    PRODUCT_OWNER = "ProductOwner"
    SCRUM_MASTER = "ScrumMaster"
    DEVELOPER_IMPL = "Developer-Impl"
    DEVELOPER_INTG = "Developer-Intg"
    QA_TESTER = "QATester"
    RELEASE_MANAGER = "ReleaseManager"
    CUSTOMER = "Customer"


class GamePhase(Enum):
    """Phases of a turn (one sprint), in cycle order."""
    SPRINT_PLANNING = "SprintPlanning"
    EXECUTION = "Execution"
    SPRINT_REVIEW = "SprintReview"
    RETROSPECTIVE = "Retrospective"

    @property
    def next(self) -> GamePhase:
        order = list(GamePhase)
        return order[(order.index(self) + 1) % len(order)]
