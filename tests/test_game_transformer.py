"""
Tests for raw record -> Game + PeriodResult transformation.
"""
import pytest

from period_analyzer.curate.game_transformer import GameTransformer, transform_game
from period_analyzer.errors import ValidationError
from period_analyzer.model.records import PeriodOutcome, PeriodType

from conftest import raw_record


class TestTransform:

    def test_two_rows_per_period(self, make_game):
        result = make_game('2024020705', '2025-01-15', 'CAR', 'TBL', [(1, 0), (0, 2), (1, 1), (1, 0)])
        assert len(result.period_results) == 8
        assert len(result.rows_for('CAR')) == 4
        assert len(result.rows_for('TBL')) == 4

    def test_rows_are_symmetric(self, make_game):
        result = make_game('2024020705', '2025-01-15', 'CAR', 'TBL', [(2, 1), (0, 0), (3, 1)])
        home = {r.period_number: r for r in result.rows_for('CAR')}
        away = {r.period_number: r for r in result.rows_for('TBL')}
        for number in (1, 2, 3):
            assert home[number].goals_for == away[number].goals_against
            assert home[number].goals_against == away[number].goals_for

    def test_period_types_follow_period_number(self, make_game):
        result = make_game('2024020705', '2025-01-15', 'CAR', 'TBL', [(0, 0), (1, 1), (0, 0), (0, 0), (2, 1)])
        types = {r.period_number: r.period_type for r in result.rows_for('CAR')}
        assert types == {1: PeriodType.REGULATION, 2: PeriodType.REGULATION, 3: PeriodType.REGULATION,
                         4: PeriodType.OT, 5: PeriodType.SO}

    def test_two_plus_flag_is_shared_by_all_team_rows(self, make_game):
        result = make_game('2024020705', '2025-01-15', 'CAR', 'TBL', [(1, 0), (1, 0), (0, 2), (0, 1)])
        assert all(r.won_two_plus_reg_periods for r in result.rows_for('CAR'))
        assert not any(r.won_two_plus_reg_periods for r in result.rows_for('TBL'))

    def test_empty_net_goal_in_third_period(self, make_game):
        """CAR wins the third 2-1 but one goal is an empty-netter, so the period is a tie."""
        result = make_game('2024020705', '2025-01-15', 'CAR', 'TBL', [(1, 0), (0, 1), (2, 1)],
                           empty_net=[(3, 'CAR')])
        car_third = [r for r in result.rows_for('CAR') if r.period_number == 3][0]
        tbl_third = [r for r in result.rows_for('TBL') if r.period_number == 3][0]
        assert car_third.empty_net_goals == 1
        assert car_third.period_outcome == PeriodOutcome.TIE
        assert tbl_third.period_outcome == PeriodOutcome.LOSS

    def test_period_order_in_record_does_not_matter(self):
        record = raw_record('2024020705', '2025-01-15', 'CAR', 'TBL', [(1, 0), (0, 1), (2, 0)])
        record['periods'].reverse()
        result = transform_game(record)
        assert [r.period_number for r in result.rows_for('CAR')] == [1, 2, 3]

    def test_feed_period_type_is_informational(self):
        record = raw_record('2024020705', '2025-01-15', 'CAR', 'TBL', [(1, 0), (0, 1), (2, 0)])
        record['periods'][0]['period_type'] = 'OVERTIME'
        result = transform_game(record)
        assert result.rows_for('CAR')[0].period_type == PeriodType.REGULATION


class TestRejection:

    def test_missing_regulation_period(self):
        record = raw_record('2024020705', '2025-01-15', 'CAR', 'TBL', [(1, 0), (0, 1)])
        with pytest.raises(ValidationError) as exc:
            GameTransformer().transform(record)
        assert any('Missing regulation periods' in m for m in exc.value.messages)

    def test_duplicate_period_in_record(self):
        record = raw_record('2024020705', '2025-01-15', 'CAR', 'TBL', [(1, 0), (0, 1), (2, 0)])
        record['periods'].append({'number': 2, 'home_goals': 1, 'away_goals': 1})
        with pytest.raises(ValidationError) as exc:
            transform_game(record)
        assert 'periods' in [v.field for v in exc.value.violations]

    def test_empty_net_goal_for_team_not_in_game(self):
        record = raw_record('2024020705', '2025-01-15', 'CAR', 'TBL', [(1, 0), (0, 1), (2, 0)],
                            empty_net=[(3, 'BOS')])
        with pytest.raises(ValidationError) as exc:
            transform_game(record)
        assert 'empty_net_goals.team_code' in [v.field for v in exc.value.violations]

    def test_negative_goals_rejected_by_record_model(self):
        record = raw_record('2024020705', '2025-01-15', 'CAR', 'TBL', [(1, 0), (0, -1), (2, 0)])
        with pytest.raises(ValidationError):
            transform_game(record)

    def test_header_and_row_violations_reported_together(self):
        record = raw_record('2024020705', '15-01-2025', 'CAR', 'CAR', [(1, 0)], season='2024-2026')
        with pytest.raises(ValidationError) as exc:
            transform_game(record)
        fields = [v.field for v in exc.value.violations]
        assert 'game.date' in fields
        assert 'game.season' in fields
        assert 'game.away_team_code' in fields
        assert 'period_results' in fields
