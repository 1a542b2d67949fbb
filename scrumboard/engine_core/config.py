"""
Game configuration - tunable rules for a single game.

Defaults match the standard board. Every value can be overridden through
SCRUMBOARD_* environment variables when the hosting process starts games
without an explicit config.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import os

from .stages import Stage


DEFAULT_WIP_LIMITS: dict[Stage, int] = {
    Stage.PRODUCT_BACKLOG: 10,
    Stage.SPRINT_BACKLOG: 5,
    Stage.IMPLEMENTATION: 3,
    Stage.INTEGRATION: 3,
    Stage.TESTING: 3,
    Stage.PRE_DEPLOYMENT: 2,
}


@dataclass
class GameConfig:
    """Rules parameters for one game."""
    team_capacity: int = 10
    tokens_total: int = 3
    technical_debt_threshold: int = 3
    technical_debt_duration: int = 2
    max_turns: int = 10
    wip_limits: dict[Stage, int] = field(default_factory=lambda: dict(DEFAULT_WIP_LIMITS))

    def wip_limit(self, stage: Stage) -> int | None:
        """WIP limit for a stage; None means unlimited."""
        if stage.is_unlimited:
            return None
        return self.wip_limits.get(stage)

    @classmethod
    def from_env(cls) -> GameConfig:
        """Build a config from SCRUMBOARD_* environment variables."""
        config = cls(
            team_capacity=int(os.getenv("SCRUMBOARD_TEAM_CAPACITY", "10")),
            tokens_total=int(os.getenv("SCRUMBOARD_TOKENS", "3")),
            technical_debt_threshold=int(os.getenv("SCRUMBOARD_TECH_DEBT_THRESHOLD", "3")),
            technical_debt_duration=int(os.getenv("SCRUMBOARD_TECH_DEBT_DURATION", "2")),
            max_turns=int(os.getenv("SCRUMBOARD_MAX_TURNS", "10")),
        )
        # e.g. SCRUMBOARD_WIP_LIMITS="Implementation=2,Testing=4"
        overrides = os.getenv("SCRUMBOARD_WIP_LIMITS", "")
        for item in filter(None, (part.strip() for part in overrides.split(","))):
            name, _, value = item.partition("=")
            stage = Stage(name.strip())
            if not stage.is_unlimited:
                config.wip_limits[stage] = int(value)
        return config

    def to_dict(self) -> dict[str, Any]:
        return {
            "team_capacity": self.team_capacity,
            "tokens_total": self.tokens_total,
            "technical_debt_threshold": self.technical_debt_threshold,
            "technical_debt_duration": self.technical_debt_duration,
            "max_turns": self.max_turns,
            "wip_limits": {stage.value: limit for stage, limit in self.wip_limits.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameConfig:
        wip_limits = dict(DEFAULT_WIP_LIMITS)
        for name, limit in (data.get("wip_limits") or {}).items():
            wip_limits[Stage(name)] = int(limit)
        return cls(
            team_capacity=int(data.get("team_capacity", 10)),
            tokens_total=int(data.get("tokens_total", 3)),
            technical_debt_threshold=int(data.get("technical_debt_threshold", 3)),
            technical_debt_duration=int(data.get("technical_debt_duration", 2)),
            max_turns=int(data.get("max_turns", 10)),
            wip_limits=wip_limits,
        )
