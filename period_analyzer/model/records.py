#!/usr/bin/env python3
"""
Period Analyzer Data Models
===========================

Pydantic models for teams, games and per-period results.

Records do not check formats (dates, season strings, team codes). The game
validator owns those checks and reports every violation on a candidate game
together.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


REGULATION_PERIODS = (1, 2, 3)
OVERTIME_PERIOD = 4
SHOOTOUT_PERIOD = 5


class PeriodOutcome(str, Enum):
    """Result of one period from one team's perspective."""
    WIN = "WIN"
    LOSS = "LOSS"
    TIE = "TIE"


class PeriodType(str, Enum):
    """Period classification derived from the period number."""
    REGULATION = "REGULATION"
    OT = "OT"
    SO = "SO"

    @classmethod
    def from_number(cls, period_number: int) -> "PeriodType":
        if period_number <= 3:
            return cls.REGULATION
        if period_number == OVERTIME_PERIOD:
            return cls.OT
        return cls.SO


class GameType(str, Enum):
    """Competition type of a game."""
    REGULAR = "regular"
    PLAYOFF = "playoff"
    PRESEASON = "preseason"
    ALL_STAR = "all-star"


class Conference(str, Enum):
    EASTERN = "Eastern"
    WESTERN = "Western"


class Team(BaseModel):
    """Reference data for one franchise."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Three uppercase letters (e.g. 'CAR')")
    name: str = Field(..., description="Full team name")
    division: Optional[str] = Field(None, description="Division name")
    conference: Optional[Conference] = Field(None, description="Eastern or Western")


class Game(BaseModel):
    """One game between two teams."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique game id (e.g. '2024020705')")
    date: str = Field(..., description="Game date in YYYY-MM-DD format")
    season: str = Field(..., description="Season in YYYY-YYYY format")
    home_team_code: str = Field(..., description="Home team code")
    away_team_code: str = Field(..., description="Away team code")
    game_type: GameType = Field(GameType.REGULAR, description="Competition type")

    def involves(self, team_code: str) -> bool:
        return team_code in (self.home_team_code, self.away_team_code)

    def opponent_of(self, team_code: str) -> str:
        return self.away_team_code if team_code == self.home_team_code else self.home_team_code


class PeriodResult(BaseModel):
    """One team's view of one period of one game."""
    model_config = ConfigDict(frozen=True)

    game_id: str = Field(..., description="Game this period belongs to")
    team_code: str = Field(..., description="Team whose perspective this row takes")
    period_number: int = Field(..., ge=1, le=5, description="1-3 regulation, 4 OT, 5 SO")
    period_type: PeriodType = Field(..., description="Derived from period_number")
    goals_for: int = Field(..., description="Goals scored by team_code")
    goals_against: int = Field(..., description="Goals scored by the opponent")
    empty_net_goals: int = Field(0, description="Empty-net goals scored by team_code")
    period_outcome: PeriodOutcome = Field(..., description="WIN/LOSS/TIE for team_code")
    won_two_plus_reg_periods: bool = Field(False, description="Team won 2+ regulation periods in this game")
