#!/usr/bin/env python3
"""
Raw Game Records
================

Neutral, source-independent shape of one external game record. Feed parsers
produce these; the game transformer consumes them.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from period_analyzer.model.records import GameType


FINAL_GAME_STATES = {"OFF", "FINAL"}


class RawPeriod(BaseModel):
    """Goal totals for one period as reported by the feed."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    number: int = Field(..., ge=1, le=5, description="Period number (4 = OT, 5 = SO)")
    home_goals: int = Field(..., ge=0, description="Goals by the home team")
    away_goals: int = Field(..., ge=0, description="Goals by the away team")
    period_type: Optional[str] = Field(None, description="Feed's own period tag, informational only")


class EmptyNetGoal(BaseModel):
    """An empty-net goal event."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    period: int = Field(..., ge=1, le=5)
    team_code: str = Field(..., description="Team that scored into the empty net")


class RawGameRecord(BaseModel):
    """One game as delivered by a feed adapter."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    game_id: str
    date: str = Field(..., description="YYYY-MM-DD")
    season: str = Field(..., description="YYYY-YYYY")
    game_type: GameType = GameType.REGULAR
    home_team_code: str
    away_team_code: str
    periods: List[RawPeriod] = Field(default_factory=list)
    empty_net_goals: List[EmptyNetGoal] = Field(default_factory=list)
    game_state: Optional[str] = Field(None, description="Feed game state, e.g. 'OFF'")

    @property
    def is_final(self) -> bool:
        # Records without a state come from curated files and are treated as final
        return self.game_state is None or self.game_state.upper() in FINAL_GAME_STATES

    def empty_net_count(self, team_code: str, period: int) -> int:
        return sum(1 for goal in self.empty_net_goals if goal.team_code == team_code and goal.period == period)
