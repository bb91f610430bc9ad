#!/usr/bin/env python3
"""
Team Statistics Aggregator
==========================

Rolls period rows up into per-team records: wins, losses, overtime losses,
points, regulation period tallies, good/bad wins and a composite rank score.

Teams are ordered by good wins first and by rank score second.
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from period_analyzer.analyze.game_outcome import regulation_tallies, resolve_team_game
from period_analyzer.errors import DataInconsistencyError
from period_analyzer.model.corpus import Corpus
from period_analyzer.model.records import Game, PeriodOutcome, PeriodResult, Team

logger = logging.getLogger(__name__)

POINTS_WEIGHT = 0.6
DIFFERENCE_WEIGHT = 0.4

SORT_KEYS = {
    'points': lambda s: s.points,
    'good_wins': lambda s: s.good_wins,
    'difference': lambda s: s.difference,
    'periods_won': lambda s: s.periods_won,
}


@dataclass
class TeamStats:
    """Aggregated record for one team over one scope."""
    team_code: str
    team_name: str
    conference: Optional[str] = None
    division: Optional[str] = None
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    overtime_losses: int = 0
    points: int = 0
    periods_won: int = 0
    periods_lost: int = 0
    periods_tied: int = 0
    good_wins: int = 0
    bad_wins: int = 0
    difference: int = 0
    rank_score: int = 0
    rank: int = 0
    excluded_games: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_team_stats(team: Team, games: List[Game], period_results: List[PeriodResult]) -> TeamStats:
    """
    Aggregate one team's games.

    Games whose rows are malformed (missing periods, tie after OT/SO,
    conflicting flags) are logged and excluded; the rest still count.
    """
    stats = TeamStats(
        team_code=team.code,
        team_name=team.name,
        conference=team.conference.value if team.conference else None,
        division=team.division,
    )

    rows_by_game: Dict[str, List[PeriodResult]] = {}
    for row in period_results:
        if row.team_code == team.code:
            rows_by_game.setdefault(row.game_id, []).append(row)

    for game in games:
        if not game.involves(team.code):
            continue
        rows = rows_by_game.get(game.id, [])
        try:
            result = resolve_team_game(game.id, team.code, rows)
        except DataInconsistencyError as e:
            logger.warning(f"Excluding game {game.id} from {team.code} stats: {e}")
            stats.excluded_games.append(game.id)
            continue

        stats.games_played += 1
        tallies = regulation_tallies(rows)
        stats.periods_won += tallies[PeriodOutcome.WIN]
        stats.periods_lost += tallies[PeriodOutcome.LOSS]
        stats.periods_tied += tallies[PeriodOutcome.TIE]

        if result.won:
            stats.wins += 1
            if result.won_two_plus:
                stats.good_wins += 1
            else:
                stats.bad_wins += 1
        elif result.extra_time:
            stats.overtime_losses += 1
        else:
            stats.losses += 1

    stats.points = stats.wins * 2 + stats.overtime_losses
    stats.difference = stats.good_wins - stats.bad_wins
    return stats


def rank_teams(team_stats: List[TeamStats], points_weight: float = POINTS_WEIGHT,
               difference_weight: float = DIFFERENCE_WEIGHT) -> List[TeamStats]:
    """
    Assign rank_score and rank, returning the list in ranked order.

    Points are scaled against the best points total, the good/bad difference
    is shifted into 0-100 against the largest absolute difference. Both
    denominators have a floor of 1 so an empty scope still scores.
    """
    max_points = max([s.points for s in team_stats] + [1])
    max_difference = max([abs(s.difference) for s in team_stats] + [1])

    for stats in team_stats:
        normalized_points = stats.points / max_points * 100
        normalized_difference = (stats.difference + max_difference) / (2 * max_difference) * 100
        stats.rank_score = round_half_up(points_weight * normalized_points + difference_weight * normalized_difference)

    ranked = sorted(team_stats, key=lambda s: (-s.good_wins, -s.rank_score))
    for position, stats in enumerate(ranked, start=1):
        stats.rank = position
    return ranked


def calculate_team_stats(corpus: Corpus, sort_by: str = 'rank', points_weight: float = POINTS_WEIGHT,
                         difference_weight: float = DIFFERENCE_WEIGHT) -> List[TeamStats]:
    """
    Team statistics for every team in the corpus.

    Args:
        corpus: Teams in scope plus their games and period rows
        sort_by: 'rank' for ranked order, or points/good_wins/difference/periods_won
        points_weight: Weight of normalized points in rank_score
        difference_weight: Weight of normalized good/bad difference in rank_score

    Returns:
        One TeamStats per team, including teams with no games
    """
    all_stats = [compute_team_stats(team, corpus.games, corpus.period_results) for team in corpus.teams]
    ranked = rank_teams(all_stats, points_weight, difference_weight)

    excluded = sum(len(s.excluded_games) for s in ranked)
    if excluded:
        logger.warning(f"{excluded} team-game result(s) excluded from aggregation due to malformed data")

    if sort_by == 'rank':
        return ranked
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key '{sort_by}'")
    return sorted(ranked, key=lambda s: -SORT_KEYS[sort_by](s))
