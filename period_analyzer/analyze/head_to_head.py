#!/usr/bin/env python3
"""
Head-to-Head Comparator
=======================

Statistics restricted to games two teams played against each other: series
record, good/bad wins, and which team owns each regulation period.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from period_analyzer.analyze.game_outcome import TeamGameResult, resolve_team_game
from period_analyzer.errors import DataInconsistencyError, EmptyResultError
from period_analyzer.model.corpus import Corpus
from period_analyzer.model.records import PeriodOutcome, REGULATION_PERIODS

logger = logging.getLogger(__name__)

EVEN = "EVEN"
TIED = "TIED"


@dataclass
class HeadToHeadTeam:
    code: str
    name: str
    wins: int = 0
    losses: int = 0
    overtime_losses: int = 0
    good_wins: int = 0
    bad_wins: int = 0
    periods_won: int = 0
    periods_lost: int = 0
    periods_tied: int = 0
    period_wins_by_period: Dict[int, int] = field(default_factory=lambda: {n: 0 for n in REGULATION_PERIODS})

    def record(self, result: TeamGameResult) -> None:
        if result.won:
            self.wins += 1
            if result.won_two_plus:
                self.good_wins += 1
            else:
                self.bad_wins += 1
        elif result.extra_time:
            self.overtime_losses += 1
        else:
            self.losses += 1


@dataclass
class HeadToHeadGame:
    game_id: str
    date: str
    home: str
    away: str
    winner: str
    decided_in: str
    team_a_periods_won: int
    team_b_periods_won: int


@dataclass
class HeadToHeadResult:
    season: Optional[str]
    games_played: int
    team_a: HeadToHeadTeam
    team_b: HeadToHeadTeam
    period_dominance: Dict[int, str]
    series_leader: str
    period_leader: str
    better_quality_wins: str
    games: List[HeadToHeadGame] = field(default_factory=list)
    excluded_games: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _leader(a_value: int, b_value: int, a_code: str, b_code: str, level: str) -> str:
    if a_value > b_value:
        return a_code
    if b_value > a_value:
        return b_code
    return level


def compare_teams(corpus: Corpus, team_a: str, team_b: str, season: Optional[str] = None) -> HeadToHeadResult:
    """
    Compare two teams over the games they played against each other.

    Args:
        corpus: Must contain both teams; games/rows may include unrelated games
        team_a: First team code
        team_b: Second team code
        season: Optional YYYY-YYYY filter

    Raises:
        EmptyResultError: If either team is unknown
    """
    teams = {}
    for code in (team_a, team_b):
        team = corpus.team(code)
        if team is None:
            raise EmptyResultError(f"Team {code} not found", suggestion="Check the team code (e.g. CAR, TBL).")
        teams[code] = team

    side_a = HeadToHeadTeam(code=team_a, name=teams[team_a].name)
    side_b = HeadToHeadTeam(code=team_b, name=teams[team_b].name)
    result = HeadToHeadResult(season=season, games_played=0, team_a=side_a, team_b=side_b,
                              period_dominance={}, series_leader=TIED, period_leader=TIED,
                              better_quality_wins=TIED)

    meetings = sorted(
        (g for g in corpus.games
         if g.involves(team_a) and g.involves(team_b) and (season is None or g.season == season)),
        key=lambda g: (g.date, g.id),
    )
    rows_by_game = corpus.rows_by_game()

    for game in meetings:
        rows = rows_by_game.get(game.id, [])
        try:
            result_a = resolve_team_game(game.id, team_a, rows)
            result_b = resolve_team_game(game.id, team_b, rows)
            if result_a.won == result_b.won:
                raise DataInconsistencyError("Both perspectives report the same game result", game_id=game.id)
        except DataInconsistencyError as e:
            logger.warning(f"Excluding game {game.id} from {team_a}-{team_b} comparison: {e}")
            result.excluded_games.append(game.id)
            continue

        for side, team_result in ((side_a, result_a), (side_b, result_b)):
            side.record(team_result)
            for row in rows:
                if row.team_code != side.code or row.period_number > 3:
                    continue
                if row.period_outcome == PeriodOutcome.WIN:
                    side.periods_won += 1
                    side.period_wins_by_period[row.period_number] += 1
                elif row.period_outcome == PeriodOutcome.LOSS:
                    side.periods_lost += 1
                else:
                    side.periods_tied += 1

        result.games.append(HeadToHeadGame(
            game_id=game.id,
            date=game.date,
            home=game.home_team_code,
            away=game.away_team_code,
            winner=team_a if result_a.won else team_b,
            decided_in=result_a.decided_in,
            team_a_periods_won=result_a.regulation_periods_won,
            team_b_periods_won=result_b.regulation_periods_won,
        ))

    result.games_played = len(result.games)
    result.period_dominance = {
        number: _leader(side_a.period_wins_by_period[number], side_b.period_wins_by_period[number],
                        team_a, team_b, EVEN)
        for number in REGULATION_PERIODS
    }
    result.series_leader = _leader(side_a.wins, side_b.wins, team_a, team_b, TIED)
    result.period_leader = _leader(side_a.periods_won, side_b.periods_won, team_a, team_b, TIED)
    result.better_quality_wins = _leader(side_a.good_wins, side_b.good_wins, team_a, team_b, TIED)

    logger.info(f"Head-to-head {team_a} vs {team_b}: {result.games_played} game(s), series leader {result.series_leader}")
    return result
