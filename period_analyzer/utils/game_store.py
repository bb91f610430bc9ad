#!/usr/bin/env python3
"""
Game Store
==========

In-memory store of teams, games and period rows. Aggregations never talk to
the store directly: callers select a Corpus for a scope and hand it over.

Writes are per game. replace_game swaps a game and all of its rows in one
step, so readers never see a game with half of its rows.
"""

import logging
import threading
from collections import Counter
from typing import Dict, Iterable, List, Optional

from period_analyzer.errors import EmptyResultError, ValidationError, Violation
from period_analyzer.model.corpus import Corpus
from period_analyzer.model.records import Game, PeriodResult, Team


class GameStore:
    """Teams, games and period results keyed for scoped reads."""

    def __init__(self, teams: Iterable[Team] = (), games: Iterable[Game] = (),
                 period_results: Iterable[PeriodResult] = ()):
        self.logger = logging.getLogger('GameStore')
        self._lock = threading.RLock()
        self._teams: Dict[str, Team] = {team.code: team for team in teams}
        self._games: Dict[str, Game] = {game.id: game for game in games}
        # Rows are kept per game id, including rows whose game is not stored
        self._rows: Dict[str, List[PeriodResult]] = {}
        for row in period_results:
            self._rows.setdefault(row.game_id, []).append(row)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def get_team(self, code: str) -> Optional[Team]:
        return self._teams.get(code)

    @property
    def teams(self) -> List[Team]:
        return sorted(self._teams.values(), key=lambda t: t.code)

    def teams_in_scope(self, team_code: Optional[str] = None, conference: Optional[str] = None,
                       division: Optional[str] = None) -> List[Team]:
        """
        Teams matching the optional filters.

        Raises:
            EmptyResultError: No team matches
        """
        conference_value = getattr(conference, 'value', conference)
        matches = [
            team for team in self.teams
            if (team_code is None or team.code == team_code)
            and (conference_value is None or (team.conference is not None and team.conference.value == conference_value))
            and (division is None or team.division == division)
        ]
        if not matches:
            filters = {k: v for k, v in (('team', team_code), ('conference', conference_value),
                                         ('division', division)) if v}
            raise EmptyResultError(f"No teams match {filters}",
                                   suggestion="Check the team code, conference or division.")
        return matches

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_game(self, game_id: str) -> Optional[Game]:
        return self._games.get(game_id)

    def has_game(self, game_id: str) -> bool:
        return game_id in self._games

    def rows_for_game(self, game_id: str) -> List[PeriodResult]:
        return list(self._rows.get(game_id, []))

    def game_ids(self, season: Optional[str] = None) -> List[str]:
        """Stored game ids in date order."""
        games = sorted(self._games.values(), key=lambda g: (g.date, g.id))
        return [g.id for g in games if season is None or g.season == season]

    def period_row_counts(self) -> Counter:
        """Number of stored period rows per game id, orphans included."""
        with self._lock:
            return Counter({game_id: len(rows) for game_id, rows in self._rows.items() if rows})

    def games_for_team(self, team_code: str, season: Optional[str] = None) -> List[Game]:
        return sorted(
            (g for g in self._games.values() if g.involves(team_code) and (season is None or g.season == season)),
            key=lambda g: (g.date, g.id),
        )

    def head_to_head_games(self, team_a: str, team_b: str, season: Optional[str] = None) -> List[Game]:
        return [g for g in self.games_for_team(team_a, season) if g.involves(team_b)]

    def _corpus(self, teams: List[Team], games: List[Game]) -> Corpus:
        rows = []
        for game in games:
            rows.extend(self._rows.get(game.id, []))
        return Corpus(teams=list(teams), games=list(games), period_results=rows)

    def select(self, scope=None) -> Corpus:
        """
        Corpus for a query scope.

        Any scope attribute that exists is honoured: team_code, conference,
        division, season, start_date/end_date. Games are those involving at
        least one team in scope.

        Raises:
            EmptyResultError: The team filters match no team
        """
        with self._lock:
            team_code = getattr(scope, 'team_code', None)
            teams = self.teams_in_scope(team_code=team_code,
                                        conference=getattr(scope, 'conference', None),
                                        division=getattr(scope, 'division', None))
            codes = {team.code for team in teams}
            season = getattr(scope, 'season', None)
            contains = getattr(scope, 'contains', None)

            games = [
                g for g in sorted(self._games.values(), key=lambda g: (g.date, g.id))
                if (g.home_team_code in codes or g.away_team_code in codes)
                and (season is None or g.season == season)
                and (contains is None or contains(g.date))
            ]
            return self._corpus(teams, games)

    def head_to_head_corpus(self, team_a: str, team_b: str, season: Optional[str] = None) -> Corpus:
        with self._lock:
            teams = [t for t in (self.get_team(team_a), self.get_team(team_b)) if t is not None]
            return self._corpus(teams, self.head_to_head_games(team_a, team_b, season))

    def team_corpus(self, team_code: str, season: Optional[str] = None) -> Corpus:
        with self._lock:
            team = self.get_team(team_code)
            return self._corpus([team] if team else [], self.games_for_team(team_code, season))

    def full_corpus(self) -> Corpus:
        """Every team, game and row, orphaned rows included."""
        with self._lock:
            rows = [row for game_rows in self._rows.values() for row in game_rows]
            return Corpus(teams=self.teams, games=sorted(self._games.values(), key=lambda g: (g.date, g.id)),
                          period_results=rows)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def replace_game(self, game: Game, period_results: List[PeriodResult]) -> bool:
        """
        Store a game and its rows, replacing any previous version wholesale.

        Returns:
            True if the game already existed (an update), False for an insert

        Raises:
            ValidationError: A row belongs to a different game
        """
        strays = [row for row in period_results if row.game_id != game.id]
        if strays:
            raise ValidationError([Violation('game_id', 'Period row belongs to a different game',
                                             expected=game.id, actual=row.game_id) for row in strays],
                                  subject=f"game {game.id}")

        with self._lock:
            existed = game.id in self._games
            self._games[game.id] = game
            self._rows[game.id] = list(period_results)

        self.logger.debug(f"{'Replaced' if existed else 'Inserted'} game {game.id} with {len(period_results)} rows")
        return existed

    def replace_rows(self, game_id: str, period_results: List[PeriodResult]) -> None:
        """Swap only the period rows of a stored game."""
        game = self.get_game(game_id)
        if game is None:
            raise EmptyResultError(f"Game {game_id} not found", suggestion="Ingest the game first.")
        self.replace_game(game, period_results)

    def delete_game(self, game_id: str) -> bool:
        """Delete a game and its rows. Returns False when nothing was stored."""
        with self._lock:
            existed = self._games.pop(game_id, None) is not None
            rows = self._rows.pop(game_id, None)
        return existed or bool(rows)

    def add_period_results(self, period_results: Iterable[PeriodResult]) -> None:
        """Append rows without touching games; used when loading persisted data."""
        with self._lock:
            for row in period_results:
                self._rows.setdefault(row.game_id, []).append(row)
