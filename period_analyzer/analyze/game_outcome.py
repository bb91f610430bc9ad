#!/usr/bin/env python3
"""
Game Outcome Reconstruction
===========================

Rebuilds a team's game result from its stored period rows. This is the one
winner rule used by every aggregation (team stats, head-to-head, trends):

- a shootout row decides on shootout goals alone
- otherwise an overtime row adds its goals to the regulation totals
- otherwise regulation totals decide

Hockey games cannot end level, so a tie after this resolution means the
stored rows are corrupt and DataInconsistencyError is raised.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from period_analyzer.curate.period_outcome import regulation_wins_for_rows
from period_analyzer.errors import DataInconsistencyError
from period_analyzer.model.records import (
    OVERTIME_PERIOD,
    PeriodOutcome,
    PeriodResult,
    REGULATION_PERIODS,
    SHOOTOUT_PERIOD,
)


@dataclass(frozen=True)
class TeamGameResult:
    """One team's reconstructed result in one game."""
    game_id: str
    team_code: str
    won: bool
    decided_in: str  # "REGULATION", "OT" or "SO"
    goals_for: int
    goals_against: int
    won_two_plus: bool
    regulation_periods_won: int

    @property
    def extra_time(self) -> bool:
        return self.decided_in != "REGULATION"

    @property
    def is_good_win(self) -> bool:
        return self.won and self.won_two_plus

    @property
    def is_bad_win(self) -> bool:
        return self.won and not self.won_two_plus

    @property
    def is_overtime_loss(self) -> bool:
        return not self.won and self.extra_time


def resolve_team_game(game_id: str, team_code: str, rows: Iterable[PeriodResult]) -> TeamGameResult:
    """
    Determine whether team_code won game_id from its own period rows.

    Args:
        game_id: Game being resolved
        team_code: Perspective team
        rows: Period rows; rows of other teams or games are ignored

    Raises:
        DataInconsistencyError: Missing regulation periods, disagreeing flags,
            duplicate periods, or a game that resolves to a tie
    """
    team_rows = [row for row in rows if row.game_id == game_id and row.team_code == team_code]
    by_number: Dict[int, PeriodResult] = {}
    for row in team_rows:
        if row.period_number in by_number:
            raise DataInconsistencyError(f"Duplicate period {row.period_number} rows",
                                         game_id=game_id, team_code=team_code)
        by_number[row.period_number] = row

    missing = [number for number in REGULATION_PERIODS if number not in by_number]
    if missing:
        raise DataInconsistencyError(f"Missing regulation periods {missing}", game_id=game_id, team_code=team_code)

    flags = {row.won_two_plus_reg_periods for row in team_rows}
    if len(flags) > 1:
        raise DataInconsistencyError("won_two_plus_reg_periods differs between period rows",
                                     game_id=game_id, team_code=team_code)

    regulation_rows = [by_number[number] for number in REGULATION_PERIODS]
    regulation_for = sum(row.goals_for for row in regulation_rows)
    regulation_against = sum(row.goals_against for row in regulation_rows)
    overtime: Optional[PeriodResult] = by_number.get(OVERTIME_PERIOD)
    shootout: Optional[PeriodResult] = by_number.get(SHOOTOUT_PERIOD)

    goals_for = regulation_for + (overtime.goals_for if overtime else 0)
    goals_against = regulation_against + (overtime.goals_against if overtime else 0)

    if shootout is not None:
        deciding_for, deciding_against = shootout.goals_for, shootout.goals_against
        decided_in = "SO"
    elif overtime is not None:
        deciding_for, deciding_against = goals_for, goals_against
        decided_in = "OT"
    else:
        deciding_for, deciding_against = regulation_for, regulation_against
        decided_in = "REGULATION"

    if deciding_for == deciding_against:
        raise DataInconsistencyError(
            f"Game resolves to a tie ({deciding_for}-{deciding_against} after {decided_in})",
            game_id=game_id, team_code=team_code)

    return TeamGameResult(
        game_id=game_id,
        team_code=team_code,
        won=deciding_for > deciding_against,
        decided_in=decided_in,
        goals_for=goals_for,
        goals_against=goals_against,
        won_two_plus=flags.pop(),
        regulation_periods_won=regulation_wins_for_rows(regulation_rows),
    )


def regulation_tallies(rows: Iterable[PeriodResult]) -> Dict[PeriodOutcome, int]:
    """WIN/LOSS/TIE counts over the regulation rows given."""
    tallies = {outcome: 0 for outcome in PeriodOutcome}
    for row in rows:
        if row.period_number <= 3:
            tallies[row.period_outcome] += 1
    return tallies
