#!/usr/bin/env python3
"""
Query Scopes
============

Immutable, validated parameter objects for every aggregation and query.
Unknown fields are rejected and formats are checked when the scope is built,
so nothing malformed reaches the aggregation code.
"""

import re
from datetime import date
from enum import Enum
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from period_analyzer.model.records import Conference, PeriodOutcome


TEAM_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SEASON_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")


def normalize_team_code(value):
    """Upper-case and check a team code."""
    if not isinstance(value, str):
        raise ValueError("team code must be a string")
    code = value.strip().upper()
    if not TEAM_CODE_PATTERN.match(code):
        raise ValueError(f"team code must be 3 letters, got '{value}'")
    return code


def check_iso_date(value):
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        raise ValueError(f"date must be in YYYY-MM-DD format, got '{value}'")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"'{value}' is not a calendar date")
    return value


def check_season(value):
    if not isinstance(value, str):
        raise ValueError("season must be a string")
    match = SEASON_PATTERN.match(value)
    if not match:
        raise ValueError(f"season must be in YYYY-YYYY format, got '{value}'")
    first, second = int(match.group(1)), int(match.group(2))
    if second != first + 1:
        raise ValueError(f"season years must be consecutive, got '{value}'")
    return value


TeamCode = Annotated[str, BeforeValidator(normalize_team_code)]
IsoDate = Annotated[str, BeforeValidator(check_iso_date)]
Season = Annotated[str, BeforeValidator(check_season)]
Division = Literal["Atlantic", "Metropolitan", "Central", "Pacific"]


class _Scope(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class _DateRangeScope(_Scope):
    start_date: Optional[IsoDate] = Field(None, description="Inclusive lower bound, YYYY-MM-DD")
    end_date: Optional[IsoDate] = Field(None, description="Inclusive upper bound, YYYY-MM-DD")

    @model_validator(mode="after")
    def _ordered_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self

    def contains(self, game_date: str) -> bool:
        # ISO dates compare correctly as strings
        if self.start_date and game_date < self.start_date:
            return False
        if self.end_date and game_date > self.end_date:
            return False
        return True


class StatsScope(_DateRangeScope):
    """Scope for the team statistics aggregator."""
    team_code: Optional[TeamCode] = None
    season: Optional[Season] = None
    conference: Optional[Conference] = None
    division: Optional[Division] = None
    sort_by: Literal["rank", "points", "good_wins", "difference", "periods_won"] = "rank"


class HeadToHeadQuery(_Scope):
    """Two teams and an optional season."""
    team_a: TeamCode
    team_b: TeamCode
    season: Optional[Season] = None

    @model_validator(mode="after")
    def _distinct_teams(self):
        if self.team_a == self.team_b:
            raise ValueError("head-to-head needs two different teams")
        return self


class TrendMetric(str, Enum):
    PERIODS_WON = "periods_won"
    GOOD_WINS = "good_wins"
    WIN_PCT = "win_pct"
    GOALS_PER_GAME = "goals_per_game"
    PERIOD_WIN_PCT = "period_win_pct"


class TrendWindow(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ROLLING10 = "rolling10"


class TrendQuery(_Scope):
    """One team's metric trajectory."""
    team_code: TeamCode
    metric: TrendMetric = TrendMetric.PERIODS_WON
    window: TrendWindow = TrendWindow.MONTHLY
    season: Optional[Season] = None


class PeriodRankingQuery(_DateRangeScope):
    """Per-team counts of one period outcome."""
    outcome: PeriodOutcome = PeriodOutcome.WIN
    period_number: Optional[int] = Field(None, ge=1, le=5)
    season: Optional[Season] = None


class TeamGamesQuery(_DateRangeScope):
    """One team's games, optionally limited to a season or date range."""
    team_code: TeamCode
    season: Optional[Season] = None


class PeriodStatsQuery(_DateRangeScope):
    """Regulation period breakdown, league-wide or for one team."""
    team_code: Optional[TeamCode] = None
    season: Optional[Season] = None
    include_playoffs: bool = False


class HealthCheckQuery(_Scope):
    season: Optional[Season] = None
    detailed: bool = False
