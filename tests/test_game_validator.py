"""
Unit tests for the game validator.
"""
import pytest

from period_analyzer.errors import ValidationError
from period_analyzer.model.records import Game, PeriodOutcome, PeriodResult, PeriodType
from period_analyzer.validate.game_validator import GameValidator, validate_game


def _row(team, number, gf, ga, en=0, game_id='2024020100', outcome=None):
    if outcome is None:
        outcome = PeriodOutcome.WIN if gf > ga else PeriodOutcome.LOSS if gf < ga else PeriodOutcome.TIE
    return PeriodResult(
        game_id=game_id, team_code=team, period_number=number,
        period_type=PeriodType.from_number(number), goals_for=gf, goals_against=ga,
        empty_net_goals=en, period_outcome=outcome,
    )


def _rows(home='CAR', away='TBL', scores=((1, 0), (0, 0), (2, 1))):
    rows = []
    for number, (h, a) in enumerate(scores, start=1):
        rows.append(_row(home, number, h, a))
        rows.append(_row(away, number, a, h))
    return rows


@pytest.fixture
def game():
    return Game(id='2024020100', date='2025-01-15', season='2024-2025',
                home_team_code='CAR', away_team_code='TBL')


def _fields(violations):
    return [v.field for v in violations]


class TestGameHeader:

    def test_valid_game_has_no_violations(self, game):
        assert GameValidator().check(game, _rows()) == []

    def test_bad_date_format(self, game):
        bad = game.model_copy(update={'date': '01/15/2025'})
        assert 'game.date' in _fields(GameValidator().check(bad, _rows()))

    def test_impossible_calendar_date(self, game):
        bad = game.model_copy(update={'date': '2025-02-30'})
        violations = GameValidator().check(bad, _rows())
        assert any(v.field == 'game.date' and 'calendar' in v.message for v in violations)

    def test_non_consecutive_season(self, game):
        bad = game.model_copy(update={'season': '2024-2026'})
        assert 'game.season' in _fields(GameValidator().check(bad, _rows()))

    def test_same_home_and_away(self, game):
        bad = game.model_copy(update={'away_team_code': 'CAR'})
        rows = [r for r in _rows() if r.team_code == 'CAR']
        assert 'game.away_team_code' in _fields(GameValidator().check(bad, rows))

    def test_lowercase_team_code(self, game):
        bad = game.model_copy(update={'home_team_code': 'car'})
        assert 'game.home_team_code' in _fields(GameValidator().check(bad, _rows(home='car')))

    def test_missing_game_id(self, game):
        bad = game.model_copy(update={'id': ''})
        assert 'game.id' in _fields(GameValidator().check(bad, _rows()))


class TestPeriodRows:

    def test_fewer_than_six_rows(self, game):
        rows = _rows()[:4]
        violations = GameValidator().check(game, rows)
        assert 'period_results' in _fields(violations)
        assert 'period_results.home' in _fields(violations)
        assert 'period_results.away' in _fields(violations)

    def test_goal_mismatch_between_perspectives(self, game):
        rows = _rows()
        rows[1] = _row('TBL', 1, 0, 2)  # home row says CAR scored 1
        violations = GameValidator().check(game, rows)
        assert any('Goal mismatch in period 1' in v.message for v in violations)

    def test_empty_net_goals_exceeding_goals(self, game):
        rows = _rows()
        rows[4] = _row('CAR', 3, 2, 1, en=3)
        violations = GameValidator().check(game, rows)
        assert any('exceed total goals' in v.message for v in violations)

    def test_negative_goals(self, game):
        rows = _rows()
        rows[0] = _row('CAR', 1, -1, 0)
        rows[1] = _row('TBL', 1, 0, -1)
        assert 'period_results.goals' in _fields(GameValidator().check(game, rows))

    def test_duplicate_period_row(self, game):
        rows = _rows() + [_row('CAR', 2, 0, 0)]
        violations = GameValidator().check(game, rows)
        assert any('Duplicate row for CAR period 2' in v.message for v in violations)

    def test_row_for_team_not_in_game(self, game):
        rows = _rows() + [_row('BOS', 4, 1, 0)]
        assert 'period_results.team_code' in _fields(GameValidator().check(game, rows))

    def test_overtime_recorded_for_one_team_only(self, game):
        rows = _rows(scores=((1, 0), (0, 0), (0, 1))) + [_row('CAR', 4, 1, 0)]
        violations = GameValidator().check(game, rows)
        assert any('recorded for only one team' in v.message for v in violations)

    def test_row_from_another_game(self, game):
        rows = _rows()
        rows[2] = _row('CAR', 2, 0, 0, game_id='2024020999')
        assert 'period_results.game_id' in _fields(GameValidator().check(game, rows))


class TestValidate:

    def test_collects_every_violation(self, game):
        bad = game.model_copy(update={'date': 'yesterday', 'season': '2024'})
        with pytest.raises(ValidationError) as exc:
            validate_game(bad, _rows()[:2])
        fields = _fields(exc.value.violations)
        assert 'game.date' in fields
        assert 'game.season' in fields
        assert 'period_results' in fields

    def test_valid_game_passes(self, game):
        validate_game(game, _rows())

    def test_error_serializes_violations(self, game):
        with pytest.raises(ValidationError) as exc:
            validate_game(game, [])
        payload = exc.value.to_dict()
        assert payload['type'] == 'VALIDATION_ERROR'
        assert payload['violations']
