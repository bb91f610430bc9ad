#!/usr/bin/env python3
"""
Game Transformer
================

Converts one raw game record into a Game plus two symmetric PeriodResult rows
per period played (one per team), then runs the result through the game
validator. Nothing leaves this module unvalidated.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from period_analyzer.curate.period_outcome import calculate_period_outcome, won_two_plus_reg_periods
from period_analyzer.errors import ValidationError, Violation
from period_analyzer.model.raw_game import RawGameRecord
from period_analyzer.model.records import Game, PeriodResult, PeriodType
from period_analyzer.validate.game_validator import GameValidator

logger = logging.getLogger(__name__)


@dataclass
class TransformedGame:
    """A validated game with its period rows, ready to persist."""
    game: Game
    period_results: List[PeriodResult] = field(default_factory=list)

    def rows_for(self, team_code: str) -> List[PeriodResult]:
        return [row for row in self.period_results if row.team_code == team_code]


class GameTransformer:
    """Raw feed record -> validated Game and PeriodResult rows."""

    def __init__(self, validator: Optional[GameValidator] = None):
        self.validator = validator or GameValidator()
        self.logger = logging.getLogger('GameTransformer')

    def transform(self, record: Union[RawGameRecord, Dict[str, Any]]) -> TransformedGame:
        """
        Transform and validate one game.

        Args:
            record: A RawGameRecord or a dict in the same shape

        Returns:
            TransformedGame with 2 x periods_played rows

        Raises:
            ValidationError: With every violation found in the record or the derived rows
        """
        record = self._coerce(record)
        violations = self._check_record(record)

        game = Game(
            id=record.game_id,
            date=record.date,
            season=record.season,
            home_team_code=record.home_team_code,
            away_team_code=record.away_team_code,
            game_type=record.game_type,
        )

        period_results = self._build_period_rows(record)
        period_results = self._apply_two_plus_flags(game, period_results)

        violations.extend(self.validator.check(game, period_results))
        if violations:
            self.logger.warning(f"Game {record.game_id} rejected: {len(violations)} violation(s)")
            raise ValidationError(violations, subject=f"game {record.game_id}")

        self.logger.debug(f"Transformed game {game.id}: {len(period_results)} period rows")
        return TransformedGame(game=game, period_results=period_results)

    def _coerce(self, record: Union[RawGameRecord, Dict[str, Any]]) -> RawGameRecord:
        if isinstance(record, RawGameRecord):
            return record
        try:
            return RawGameRecord.model_validate(record)
        except PydanticValidationError as e:
            game_id = record.get('game_id') if isinstance(record, dict) else None
            raise ValidationError.from_pydantic(e, subject=f"raw game {game_id}")

    def _check_record(self, record: RawGameRecord) -> List[Violation]:
        violations = []

        numbers = [period.number for period in record.periods]
        duplicates = sorted({number for number in numbers if numbers.count(number) > 1})
        if duplicates:
            violations.append(Violation('periods', 'Period reported more than once',
                                        expected='unique period numbers', actual=duplicates))

        teams = {record.home_team_code, record.away_team_code}
        for goal in record.empty_net_goals:
            if goal.team_code not in teams:
                violations.append(Violation('empty_net_goals.team_code', 'Empty-net goal credited to a team not in this game',
                                            expected=sorted(teams), actual=goal.team_code))

        for period in record.periods:
            if period.period_type is None:
                continue
            inferred = PeriodType.from_number(period.number)
            if not _tag_matches(period.period_type, inferred):
                # Only the period number is trusted
                self.logger.debug(f"Game {record.game_id} period {period.number}: ignoring feed type "
                                  f"'{period.period_type}', using {inferred.value}")

        return violations

    def _build_period_rows(self, record: RawGameRecord) -> List[PeriodResult]:
        rows = []
        home, away = record.home_team_code, record.away_team_code

        for period in sorted(record.periods, key=lambda p: p.number):
            period_type = PeriodType.from_number(period.number)
            home_en = record.empty_net_count(home, period.number)
            away_en = record.empty_net_count(away, period.number)

            rows.append(PeriodResult(
                game_id=record.game_id,
                team_code=home,
                period_number=period.number,
                period_type=period_type,
                goals_for=period.home_goals,
                goals_against=period.away_goals,
                empty_net_goals=home_en,
                period_outcome=calculate_period_outcome(period.number, period.home_goals, period.away_goals, home_en),
            ))
            rows.append(PeriodResult(
                game_id=record.game_id,
                team_code=away,
                period_number=period.number,
                period_type=period_type,
                goals_for=period.away_goals,
                goals_against=period.home_goals,
                empty_net_goals=away_en,
                period_outcome=calculate_period_outcome(period.number, period.away_goals, period.home_goals, away_en),
            ))

        return rows

    def _apply_two_plus_flags(self, game: Game, rows: List[PeriodResult]) -> List[PeriodResult]:
        """Second pass: the flag needs every regulation outcome of a team first."""
        return apply_two_plus_flags(game, rows)


def apply_two_plus_flags(game: Game, rows: List[PeriodResult]) -> List[PeriodResult]:
    """Return copies of rows carrying each team's won_two_plus_reg_periods flag."""
    flags = {}
    for team_code in (game.home_team_code, game.away_team_code):
        flags[team_code] = won_two_plus_reg_periods(
            (row.period_number, row.period_outcome) for row in rows if row.team_code == team_code
        )
    return [row.model_copy(update={'won_two_plus_reg_periods': flags.get(row.team_code, False)}) for row in rows]


def _tag_matches(tag: str, inferred: PeriodType) -> bool:
    aliases = {
        PeriodType.REGULATION: {'REG', 'REGULAR', 'REGULATION'},
        PeriodType.OT: {'OT', 'OVERTIME'},
        PeriodType.SO: {'SO', 'SHOOTOUT'},
    }
    return tag.strip().upper() in aliases[inferred]


def transform_game(record: Union[RawGameRecord, Dict[str, Any]]) -> TransformedGame:
    """Module-level shortcut for GameTransformer().transform."""
    return GameTransformer().transform(record)
