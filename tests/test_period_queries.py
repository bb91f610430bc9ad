"""
Tests for period rankings, two-plus listings and period breakdowns.
"""
import pytest

from period_analyzer.analyze.period_queries import (
    period_statistics,
    period_win_rankings,
    team_period_performance,
    two_plus_games,
)
from period_analyzer.errors import EmptyResultError
from period_analyzer.model.records import PeriodOutcome
from period_analyzer.model.scopes import PeriodRankingQuery, PeriodStatsQuery, TeamGamesQuery


@pytest.fixture
def corpus(populated_store):
    return populated_store.full_corpus()


def _counts(entries):
    return [(e.team_code, e.count) for e in entries]


class TestPeriodWinRankings:

    def test_all_periods(self, corpus):
        entries = period_win_rankings(corpus, PeriodRankingQuery())
        assert _counts(entries) == [('CAR', 6), ('BOS', 3), ('TBL', 2)]
        assert [e.rank for e in entries] == [1, 2, 3]
        assert entries[0].team_name == 'Carolina Hurricanes'

    def test_single_period_skips_teams_without_wins(self, corpus):
        entries = period_win_rankings(corpus, PeriodRankingQuery(period_number=1))
        assert _counts(entries) == [('CAR', 3), ('TBL', 1)]

    def test_ties_break_on_team_code(self, corpus):
        entries = period_win_rankings(corpus, PeriodRankingQuery(period_number=2))
        assert _counts(entries) == [('BOS', 2), ('CAR', 2)]

    def test_tie_outcome(self, corpus):
        entries = period_win_rankings(corpus, PeriodRankingQuery(outcome=PeriodOutcome.TIE))
        assert _counts(entries) == [('CAR', 4), ('BOS', 2), ('TBL', 1)]

    def test_date_range(self, corpus):
        entries = period_win_rankings(corpus, PeriodRankingQuery(start_date='2024-11-01'))
        assert _counts(entries) == [('BOS', 2), ('CAR', 1)]

    def test_empty_date_range(self, corpus):
        with pytest.raises(EmptyResultError):
            period_win_rankings(corpus, PeriodRankingQuery(start_date='2025-01-01', end_date='2025-01-31'))


class TestTwoPlusGames:

    def test_most_recent_first(self, populated_store, make_game):
        extra = make_game('2024020010', '2024-12-01', 'TBL', 'CAR', [(0, 1), (0, 1), (0, 1)])
        populated_store.replace_game(extra.game, extra.period_results)
        listing = two_plus_games(populated_store.full_corpus(), TeamGamesQuery(team_code='CAR'))
        assert [g.game_id for g in listing] == ['2024020010', '2024020001']
        assert listing[0].home_away == 'away'
        assert listing[0].opponent == 'TBL'
        assert listing[0].regulation_periods_won == 3
        assert listing[1].regulation_periods_won == 2
        assert all(g.won_game for g in listing)

    def test_team_without_two_plus_games(self, corpus):
        assert two_plus_games(corpus, TeamGamesQuery(team_code='TBL')) == []

    def test_team_without_games(self, corpus):
        with pytest.raises(EmptyResultError):
            two_plus_games(corpus, TeamGamesQuery(team_code='NYR'))

    def test_season_filter(self, corpus):
        with pytest.raises(EmptyResultError):
            two_plus_games(corpus, TeamGamesQuery(team_code='CAR', season='2023-2024'))


class TestTeamPeriodPerformance:

    def test_chronological_by_period(self, corpus):
        rows = team_period_performance(corpus, TeamGamesQuery(team_code='CAR'))
        assert len(rows) == 15
        assert [(r.game_id, r.period_number) for r in rows[:4]] == [
            ('2024020001', 1), ('2024020001', 2), ('2024020001', 3), ('2024020002', 1),
        ]
        assert rows[-1].period_type == 'SO'

    def test_empty_net_row(self, corpus):
        rows = team_period_performance(corpus, TeamGamesQuery(team_code='CAR', start_date='2024-10-15',
                                                              end_date='2024-10-15'))
        third = [r for r in rows if r.period_number == 3][0]
        assert third.empty_net_goals == 1
        assert third.outcome == 'TIE'
        assert third.home_away == 'away'


class TestPeriodStatistics:

    def test_league_wide(self, corpus):
        stats = period_statistics(corpus, PeriodStatsQuery())
        first = stats.period_stats[0]
        assert (first.periods_played, first.wins, first.losses, first.ties) == (8, 4, 4, 0)
        assert first.win_percentage == 50.0
        assert first.avg_goals_for == 0.5
        assert first.goal_differential == 0
        assert stats.total_team_games == 8
        assert stats.total_periods == 24
        assert stats.two_plus_count == 1
        assert stats.two_plus_percentage == 12.5

    def test_single_team(self, corpus):
        stats = period_statistics(corpus, PeriodStatsQuery(team_code='CAR'))
        first = stats.period_stats[0]
        assert (first.wins, first.losses) == (3, 1)
        assert first.win_percentage == 75.0
        assert first.avg_goals_for == 0.75
        assert first.avg_goals_against == 0.25
        assert first.goal_differential == 2
        assert stats.total_team_games == 4
        assert stats.total_periods == 12
        assert stats.two_plus_percentage == 25.0

    def test_playoffs_excluded_by_default(self, make_game, make_corpus):
        regular = make_game('2024020001', '2025-03-01', 'CAR', 'TBL', [(1, 0), (0, 0), (0, 0)])
        playoff = make_game('2024030111', '2025-04-21', 'CAR', 'TBL', [(2, 0), (1, 0), (0, 0)],
                            game_type='playoff')
        corpus = make_corpus([regular, playoff])
        assert period_statistics(corpus, PeriodStatsQuery()).total_team_games == 2
        assert period_statistics(corpus, PeriodStatsQuery(include_playoffs=True)).total_team_games == 4

    def test_no_games(self, corpus):
        with pytest.raises(EmptyResultError):
            period_statistics(corpus, PeriodStatsQuery(season='2023-2024'))
