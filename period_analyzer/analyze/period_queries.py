#!/usr/bin/env python3
"""
Period Ranking and Query Builders
=================================

Scoped listings over period rows:

- period outcome rankings (which teams win, lose or tie the most periods)
- games in which a team won two or more regulation periods
- a team's period-by-period performance log
- per-period (1-3) breakdown with win rates and goal averages
"""

import logging
from collections import Counter, defaultdict
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from period_analyzer.analyze.game_outcome import resolve_team_game
from period_analyzer.curate.period_outcome import regulation_wins_for_rows
from period_analyzer.errors import DataInconsistencyError, EmptyResultError
from period_analyzer.model.corpus import Corpus
from period_analyzer.model.records import Game, GameType, PeriodOutcome, REGULATION_PERIODS
from period_analyzer.model.scopes import PeriodRankingQuery, PeriodStatsQuery, TeamGamesQuery

logger = logging.getLogger(__name__)


@dataclass
class PeriodRankingEntry:
    rank: int
    team_code: str
    team_name: Optional[str]
    count: int


@dataclass
class TwoPlusGame:
    game_id: str
    date: str
    opponent: str
    home_away: str
    regulation_periods_won: int
    won_game: Optional[bool]


@dataclass
class PeriodPerformanceRow:
    date: str
    game_id: str
    opponent: str
    home_away: str
    period_number: int
    period_type: str
    goals_for: int
    goals_against: int
    empty_net_goals: int
    outcome: str


@dataclass
class PeriodBreakdown:
    period_number: int
    periods_played: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0
    win_percentage: float = 0.0
    avg_goals_for: float = 0.0
    avg_goals_against: float = 0.0
    goal_differential: int = 0


@dataclass
class PeriodStatistics:
    team_code: Optional[str]
    total_team_games: int
    total_periods: int
    period_stats: List[PeriodBreakdown] = field(default_factory=list)
    two_plus_count: int = 0
    two_plus_percentage: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _games_in_scope(corpus: Corpus, scope, team_code: Optional[str] = None) -> List[Game]:
    games = []
    for game in corpus.games:
        if team_code and not game.involves(team_code):
            continue
        if getattr(scope, 'season', None) and game.season != scope.season:
            continue
        if not scope.contains(game.date):
            continue
        games.append(game)
    return games


def period_win_rankings(corpus: Corpus, query: PeriodRankingQuery) -> List[PeriodRankingEntry]:
    """
    Count rows with the requested outcome per team.

    Sorted by count descending, team code ascending on ties.

    Raises:
        EmptyResultError: No games fall inside the date range
    """
    games = {game.id for game in _games_in_scope(corpus, query)}
    if not games:
        raise EmptyResultError("No games found in the requested date range")

    counts = Counter(
        row.team_code for row in corpus.period_results
        if row.game_id in games
        and row.period_outcome == query.outcome
        and (query.period_number is None or row.period_number == query.period_number)
    )

    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    entries = []
    for position, (code, count) in enumerate(ordered, start=1):
        team = corpus.team(code)
        entries.append(PeriodRankingEntry(rank=position, team_code=code,
                                          team_name=team.name if team else None, count=count))
    return entries


def two_plus_games(corpus: Corpus, query: TeamGamesQuery) -> List[TwoPlusGame]:
    """Games in which the team won 2+ regulation periods, most recent first."""
    team_code = query.team_code
    games = _games_in_scope(corpus, query, team_code)
    if not games:
        raise EmptyResultError(f"No games found for {team_code}")

    rows_by_game = corpus.rows_by_game()
    listing = []
    for game in games:
        rows = [row for row in rows_by_game.get(game.id, []) if row.team_code == team_code]
        flags = {row.won_two_plus_reg_periods for row in rows}
        if len(flags) > 1:
            logger.warning(f"Skipping game {game.id}: conflicting two-plus flags for {team_code}")
            continue
        if flags != {True}:
            continue

        try:
            won_game = resolve_team_game(game.id, team_code, rows).won
        except DataInconsistencyError as e:
            logger.warning(f"Game {game.id} result unavailable for {team_code}: {e}")
            won_game = None

        listing.append(TwoPlusGame(
            game_id=game.id,
            date=game.date,
            opponent=game.opponent_of(team_code),
            home_away='home' if game.home_team_code == team_code else 'away',
            regulation_periods_won=regulation_wins_for_rows(rows),
            won_game=won_game,
        ))

    listing.sort(key=lambda g: (g.date, g.game_id), reverse=True)
    return listing


def team_period_performance(corpus: Corpus, query: TeamGamesQuery) -> List[PeriodPerformanceRow]:
    """Every period row of one team, chronological then by period number."""
    team_code = query.team_code
    games = {game.id: game for game in _games_in_scope(corpus, query, team_code)}
    if not games:
        raise EmptyResultError(f"No games found for {team_code}")

    listing = []
    for row in corpus.period_results:
        game = games.get(row.game_id)
        if game is None or row.team_code != team_code:
            continue
        listing.append(PeriodPerformanceRow(
            date=game.date,
            game_id=game.id,
            opponent=game.opponent_of(team_code),
            home_away='home' if game.home_team_code == team_code else 'away',
            period_number=row.period_number,
            period_type=row.period_type.value,
            goals_for=row.goals_for,
            goals_against=row.goals_against,
            empty_net_goals=row.empty_net_goals,
            outcome=row.period_outcome.value,
        ))

    listing.sort(key=lambda r: (r.date, r.game_id, r.period_number))
    return listing


def period_statistics(corpus: Corpus, query: PeriodStatsQuery) -> PeriodStatistics:
    """
    Win/loss/tie rates and goal averages for periods 1, 2 and 3.

    Regular-season games only unless include_playoffs is set.
    """
    games = [
        game for game in _games_in_scope(corpus, query, query.team_code)
        if query.include_playoffs or game.game_type == GameType.REGULAR
    ]
    if not games:
        raise EmptyResultError("No games found for period statistics")
    game_ids = {game.id for game in games}

    breakdowns = {number: PeriodBreakdown(period_number=number) for number in REGULATION_PERIODS}
    goals_for = defaultdict(int)
    goals_against = defaultdict(int)
    team_game_flags = {}

    for row in corpus.period_results:
        if row.game_id not in game_ids:
            continue
        if query.team_code and row.team_code != query.team_code:
            continue
        team_game_flags.setdefault((row.team_code, row.game_id), row.won_two_plus_reg_periods)
        if row.period_number > 3:
            continue

        breakdown = breakdowns[row.period_number]
        breakdown.periods_played += 1
        if row.period_outcome == PeriodOutcome.WIN:
            breakdown.wins += 1
        elif row.period_outcome == PeriodOutcome.LOSS:
            breakdown.losses += 1
        else:
            breakdown.ties += 1
        goals_for[row.period_number] += row.goals_for
        goals_against[row.period_number] += row.goals_against

    for number, breakdown in breakdowns.items():
        played = breakdown.periods_played
        if played:
            breakdown.win_percentage = breakdown.wins / played * 100
            breakdown.avg_goals_for = goals_for[number] / played
            breakdown.avg_goals_against = goals_against[number] / played
        breakdown.goal_differential = goals_for[number] - goals_against[number]

    total_team_games = len(team_game_flags)
    two_plus_count = sum(1 for flag in team_game_flags.values() if flag)
    return PeriodStatistics(
        team_code=query.team_code,
        total_team_games=total_team_games,
        total_periods=sum(b.periods_played for b in breakdowns.values()),
        period_stats=[breakdowns[number] for number in REGULATION_PERIODS],
        two_plus_count=two_plus_count,
        two_plus_percentage=two_plus_count / total_team_games * 100 if total_team_games else 0.0,
    )
