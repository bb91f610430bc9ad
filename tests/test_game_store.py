"""
Tests for the in-memory game store and team reference data.
"""
import json

import pytest

from period_analyzer.errors import EmptyResultError, ValidationError
from period_analyzer.model.records import Conference
from period_analyzer.model.scopes import StatsScope, TeamGamesQuery
from period_analyzer.utils.reference_data import ReferenceDataLoader, default_teams


class TestTeams:

    def test_default_teams(self):
        teams = default_teams()
        assert len(teams) == 32
        assert len({t.code for t in teams}) == 32
        utah = [t for t in teams if t.code == 'UTA'][0]
        assert (utah.division, utah.conference) == ('Central', Conference.WESTERN)

    def test_teams_in_scope_by_division(self, store):
        teams = store.teams_in_scope(division='Metropolitan')
        assert 'CAR' in [t.code for t in teams]
        assert all(t.division == 'Metropolitan' for t in teams)

    def test_teams_in_scope_by_conference(self, store):
        teams = store.teams_in_scope(conference=Conference.WESTERN)
        assert len(teams) == 16

    def test_no_matching_team(self, store):
        with pytest.raises(EmptyResultError):
            store.teams_in_scope(team_code='XYZ')


class TestSelect:

    def test_team_scope_keeps_only_that_team(self, populated_store):
        corpus = populated_store.select(StatsScope(team_code='TBL'))
        assert [t.code for t in corpus.teams] == ['TBL']
        assert [g.id for g in corpus.games] == ['2024020001', '2024020002']
        assert len(corpus.period_results) == 14

    def test_date_range(self, populated_store):
        corpus = populated_store.select(TeamGamesQuery(team_code='CAR', start_date='2024-10-11',
                                                       end_date='2024-10-31'))
        assert [g.id for g in corpus.games] == ['2024020002', '2024020003']

    def test_division_scope(self, populated_store):
        corpus = populated_store.select(StatsScope(division='Atlantic'))
        assert {g.id for g in corpus.games} == {'2024020001', '2024020002', '2024020003', '2024020004'}
        assert 'CAR' not in [t.code for t in corpus.teams]

    def test_unknown_team(self, populated_store):
        with pytest.raises(EmptyResultError):
            populated_store.select(StatsScope(team_code='XYZ'))

    def test_head_to_head_corpus(self, populated_store):
        corpus = populated_store.head_to_head_corpus('CAR', 'TBL')
        assert [g.id for g in corpus.games] == ['2024020001', '2024020002']
        assert {t.code for t in corpus.teams} == {'CAR', 'TBL'}


class TestWrites:

    def test_replace_reports_update(self, store, make_game):
        built = make_game('2024020001', '2024-10-10', 'CAR', 'TBL', [(1, 0), (0, 0), (0, 0)])
        assert store.replace_game(built.game, built.period_results) is False
        assert store.replace_game(built.game, built.period_results) is True
        assert len(store.rows_for_game('2024020001')) == 6

    def test_rows_of_another_game_rejected(self, store, make_game):
        first = make_game('2024020001', '2024-10-10', 'CAR', 'TBL', [(1, 0), (0, 0), (0, 0)])
        second = make_game('2024020002', '2024-10-11', 'CAR', 'TBL', [(1, 0), (0, 0), (0, 0)])
        with pytest.raises(ValidationError):
            store.replace_game(first.game, first.period_results + second.period_results[:1])
        assert not store.has_game('2024020001')

    def test_delete_game(self, populated_store):
        assert populated_store.delete_game('2024020001') is True
        assert populated_store.rows_for_game('2024020001') == []
        assert populated_store.delete_game('2024020001') is False

    def test_replace_rows_requires_game(self, store):
        with pytest.raises(EmptyResultError):
            store.replace_rows('2024020001', [])


class TestReferenceDataLoader:

    def test_built_in_teams(self):
        loader = ReferenceDataLoader()
        assert loader.get_team('CAR').name == 'Carolina Hurricanes'
        assert len(loader.team_codes()) == 32

    def test_team_list_file(self, tmp_path):
        path = tmp_path / 'teams.json'
        path.write_text(json.dumps([{'code': 'CAR', 'name': 'Carolina Hurricanes',
                                     'division': 'Metropolitan', 'conference': 'Eastern'}]))
        assert ReferenceDataLoader(str(path)).team_codes() == ['CAR']

    def test_standings_payload(self, tmp_path):
        path = tmp_path / 'standings.json'
        path.write_text(json.dumps({'standings': [{
            'teamAbbrev': {'default': 'TBL'},
            'teamName': {'default': 'Tampa Bay Lightning'},
            'divisionName': 'Atlantic',
            'conferenceName': 'Eastern',
        }]}))
        team = ReferenceDataLoader(str(path)).get_team('TBL')
        assert team.conference == Conference.EASTERN

    def test_missing_file_falls_back(self, tmp_path):
        assert len(ReferenceDataLoader(str(tmp_path / 'nope.json')).teams) == 32

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / 'teams.json'
        path.write_text(json.dumps([{'code': 'CAR'}]))
        with pytest.raises(ValidationError):
            ReferenceDataLoader(str(path))
