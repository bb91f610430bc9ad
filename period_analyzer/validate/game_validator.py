#!/usr/bin/env python3
"""
Game Validator for the NHL Period Analyzer
==========================================

The single integrity gate between transformation and persistence. A candidate
game and its period rows are checked as a unit and every violation is
collected before anything is raised.
"""

import logging
import re
from collections import defaultdict
from datetime import date
from typing import Dict, List, Sequence

from period_analyzer.errors import ValidationError, Violation
from period_analyzer.model.records import Game, PeriodResult, REGULATION_PERIODS


ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SEASON_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")
TEAM_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")
MIN_PERIOD_ROWS = 6

logger = logging.getLogger(__name__)


class GameValidator:
    """
    Structural and numeric checks on one game plus its period rows.

    Checks the game header (id, date, season, team codes), row completeness
    (six rows minimum, periods 1-3 for both teams), goal symmetry between the
    two perspectives of each period, and empty-net goal bounds.
    """

    def check(self, game: Game, period_results: Sequence[PeriodResult]) -> List[Violation]:
        """Return every violation found; an empty list means the game is valid."""
        violations = []
        violations.extend(self._check_game_header(game))
        violations.extend(self._check_completeness(game, period_results))
        violations.extend(self._check_rows(game, period_results))
        violations.extend(self._check_symmetry(game, period_results))
        return violations

    def validate(self, game: Game, period_results: Sequence[PeriodResult]) -> None:
        """Raise ValidationError listing all violations, if any."""
        violations = self.check(game, period_results)
        if violations:
            logger.warning(f"Game {game.id or '<missing id>'} failed validation with {len(violations)} violation(s)")
            raise ValidationError(violations, subject=f"game {game.id or '<missing id>'}")

    def _check_game_header(self, game: Game) -> List[Violation]:
        violations = []

        if not game.id:
            violations.append(Violation('game.id', 'Missing game id', expected='non-empty id', actual=game.id))

        if not game.date or not ISO_DATE_PATTERN.match(game.date):
            violations.append(Violation('game.date', 'Invalid game date format (must be YYYY-MM-DD)',
                                        expected='YYYY-MM-DD', actual=game.date))
        else:
            try:
                date.fromisoformat(game.date)
            except ValueError:
                violations.append(Violation('game.date', 'Game date is not a calendar date',
                                            expected='valid calendar date', actual=game.date))

        season_match = SEASON_PATTERN.match(game.season or '')
        if not season_match:
            violations.append(Violation('game.season', 'Invalid season format (must be YYYY-YYYY)',
                                        expected='YYYY-YYYY', actual=game.season))
        else:
            first_year, second_year = int(season_match.group(1)), int(season_match.group(2))
            if second_year != first_year + 1:
                violations.append(Violation('game.season', 'Season years must be consecutive',
                                            expected=f"{first_year}-{first_year + 1}", actual=game.season))

        if game.home_team_code == game.away_team_code:
            violations.append(Violation('game.away_team_code', 'Home and away teams cannot be the same',
                                        expected=f"not {game.home_team_code}", actual=game.away_team_code))

        for field_name in ('home_team_code', 'away_team_code'):
            code = getattr(game, field_name)
            if not TEAM_CODE_PATTERN.match(code or ''):
                violations.append(Violation(f'game.{field_name}', 'Invalid team code format (must be 3 uppercase letters)',
                                            expected='[A-Z]{3}', actual=code))

        return violations

    def _check_completeness(self, game: Game, period_results: Sequence[PeriodResult]) -> List[Violation]:
        violations = []

        if len(period_results) < MIN_PERIOD_ROWS:
            violations.append(Violation('period_results', 'Incomplete period data',
                                        expected=f'at least {MIN_PERIOD_ROWS} rows', actual=len(period_results)))

        for side, team_code in (('home', game.home_team_code), ('away', game.away_team_code)):
            present = {row.period_number for row in period_results
                       if row.team_code == team_code and row.period_number <= 3}
            missing = [number for number in REGULATION_PERIODS if number not in present]
            if missing:
                violations.append(Violation(f'period_results.{side}', f'Missing regulation periods for {side} team {team_code}',
                                            expected=list(REGULATION_PERIODS), actual=sorted(present)))

        return violations

    def _check_rows(self, game: Game, period_results: Sequence[PeriodResult]) -> List[Violation]:
        violations = []
        teams = {game.home_team_code, game.away_team_code}
        seen = set()

        for row in period_results:
            label = f"{row.team_code} period {row.period_number}"

            if row.game_id != game.id:
                violations.append(Violation('period_results.game_id', f'Row for {label} belongs to another game',
                                            expected=game.id, actual=row.game_id))
            if row.team_code not in teams:
                violations.append(Violation('period_results.team_code', f'Row team {row.team_code} did not play in this game',
                                            expected=sorted(teams), actual=row.team_code))

            key = (row.team_code, row.period_number)
            if key in seen:
                violations.append(Violation('period_results', f'Duplicate row for {label}', expected='one row', actual='duplicate'))
            seen.add(key)

            if row.goals_for < 0 or row.goals_against < 0:
                violations.append(Violation('period_results.goals', f'Negative goal count for {label}',
                                            expected='>= 0', actual=(row.goals_for, row.goals_against)))
            if row.empty_net_goals < 0:
                violations.append(Violation('period_results.empty_net_goals', f'Negative empty-net count for {label}',
                                            expected='>= 0', actual=row.empty_net_goals))
            if row.empty_net_goals > row.goals_for:
                violations.append(Violation(
                    'period_results.empty_net_goals',
                    f'Empty net goals ({row.empty_net_goals}) exceed total goals ({row.goals_for}) for {label}',
                    expected=f'<= {row.goals_for}', actual=row.empty_net_goals))

        return violations

    def _check_symmetry(self, game: Game, period_results: Sequence[PeriodResult]) -> List[Violation]:
        violations = []
        by_team: Dict[str, Dict[int, PeriodResult]] = defaultdict(dict)
        for row in period_results:
            by_team[row.team_code][row.period_number] = row

        home_rows = by_team.get(game.home_team_code, {})
        away_rows = by_team.get(game.away_team_code, {})

        for number in sorted(set(home_rows) | set(away_rows)):
            home, away = home_rows.get(number), away_rows.get(number)
            if home is None or away is None:
                if number > 3:
                    violations.append(Violation('period_results', f'Period {number} recorded for only one team',
                                                expected='rows for both teams', actual='one row'))
                continue

            if home.goals_for != away.goals_against:
                violations.append(Violation(
                    f'period_results.period_{number}',
                    f'Goal mismatch in period {number}: home scored {home.goals_for}, away conceded {away.goals_against}',
                    expected=home.goals_for, actual=away.goals_against))
            if home.goals_against != away.goals_for:
                violations.append(Violation(
                    f'period_results.period_{number}',
                    f'Goal mismatch in period {number}: home conceded {home.goals_against}, away scored {away.goals_for}',
                    expected=home.goals_against, actual=away.goals_for))

        return violations


def validate_game(game: Game, period_results: Sequence[PeriodResult]) -> None:
    """Module-level shortcut for GameValidator().validate."""
    GameValidator().validate(game, period_results)
