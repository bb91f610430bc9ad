"""
Shared pytest fixtures for the period analyzer tests.

Games are built the same way production data is: a raw record goes through
the GameTransformer, so every fixture game is validated.
"""
from typing import List, Optional, Sequence, Tuple

import pytest

from period_analyzer.curate.game_transformer import GameTransformer, TransformedGame
from period_analyzer.model.corpus import Corpus
from period_analyzer.model.records import Team
from period_analyzer.utils.game_store import GameStore
from period_analyzer.utils.reference_data import default_teams


def raw_record(game_id: str, date: str, home: str, away: str,
               periods: Sequence[Tuple[int, int]],
               empty_net: Sequence[Tuple[int, str]] = (),
               season: str = '2024-2025', game_type: str = 'regular',
               game_state: Optional[str] = None) -> dict:
    """
    Raw game dict in RawGameRecord shape.

    `periods` lists (home_goals, away_goals) for periods 1, 2, 3 and
    optionally 4 (OT) and 5 (SO).
    """
    record = {
        'game_id': game_id,
        'date': date,
        'season': season,
        'game_type': game_type,
        'home_team_code': home,
        'away_team_code': away,
        'periods': [
            {'number': number, 'home_goals': h, 'away_goals': a}
            for number, (h, a) in enumerate(periods, start=1)
        ],
        'empty_net_goals': [{'period': p, 'team_code': t} for p, t in empty_net],
    }
    if game_state is not None:
        record['game_state'] = game_state
    return record


@pytest.fixture
def teams() -> List[Team]:
    """All 32 NHL teams."""
    return default_teams()


@pytest.fixture
def make_game():
    """Factory: build and validate a game through the transformer."""
    transformer = GameTransformer()

    def _make(game_id, date, home, away, periods, empty_net=(), **kwargs) -> TransformedGame:
        return transformer.transform(raw_record(game_id, date, home, away, periods, empty_net, **kwargs))

    return _make


@pytest.fixture
def make_corpus(teams):
    """Factory: corpus from transformed games, with all teams or a chosen subset."""

    def _make(games: Sequence[TransformedGame], team_codes: Optional[Sequence[str]] = None) -> Corpus:
        selected = [t for t in teams if team_codes is None or t.code in team_codes]
        rows = [row for g in games for row in g.period_results]
        return Corpus(teams=selected, games=[g.game for g in games], period_results=rows)

    return _make


@pytest.fixture
def store(teams) -> GameStore:
    """Empty store loaded with the NHL teams."""
    return GameStore(teams=teams)


@pytest.fixture
def populated_store(store, make_game) -> GameStore:
    """
    Store with four CAR/TBL/BOS games:

    - 2024020001 CAR 3-1 TBL, CAR wins periods 1 and 2 (good win)
    - 2024020002 TBL 2-3 CAR in OT, CAR wins only period 2 (bad win, TBL OTL)
    - 2024020003 BOS 1-2 CAR, the third-period CAR goal is into an empty net (bad win)
    - 2024020004 CAR loses to BOS in a shootout (CAR OTL, BOS bad win)
    """
    games = [
        make_game('2024020001', '2024-10-10', 'CAR', 'TBL', [(1, 0), (2, 0), (0, 1)]),
        make_game('2024020002', '2024-10-12', 'TBL', 'CAR', [(1, 0), (0, 1), (1, 1), (0, 1)]),
        make_game('2024020003', '2024-10-15', 'BOS', 'CAR', [(0, 1), (1, 0), (0, 1)], empty_net=[(3, 'CAR')]),
        make_game('2024020004', '2024-11-02', 'CAR', 'BOS', [(1, 0), (0, 1), (0, 0), (0, 0), (1, 2)]),
    ]
    for g in games:
        store.replace_game(g.game, g.period_results)
    return store
