"""
Tests for CSV persistence and configuration loading.
"""
import json
import os

import pytest

from period_analyzer.config.analyzer_config import AnalyzerConfig, create_default_config, load_config
from period_analyzer.errors import ValidationError
from period_analyzer.utils.storage import CSVStorageManager


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.delenv('PERIOD_ANALYZER_STORAGE', raising=False)
    return AnalyzerConfig({'storage_root': str(tmp_path / 'storage')})


@pytest.fixture
def storage(config):
    return CSVStorageManager(config)


class TestCSVStorage:

    def test_round_trip(self, storage, populated_store):
        storage.save_store(populated_store)
        loaded = storage.load_store()

        assert len(loaded.teams) == 32
        assert loaded.game_ids() == populated_store.game_ids()
        for game_id in populated_store.game_ids():
            assert loaded.get_game(game_id) == populated_store.get_game(game_id)
            original = sorted(populated_store.rows_for_game(game_id), key=lambda r: (r.period_number, r.team_code))
            restored = sorted(loaded.rows_for_game(game_id), key=lambda r: (r.period_number, r.team_code))
            assert restored == original

    def test_orphaned_rows_survive(self, storage, populated_store, make_game):
        orphan = make_game('2024020099', '2024-10-11', 'BOS', 'NYR', [(1, 0), (0, 0), (0, 0)])
        populated_store.add_period_results(orphan.period_results)
        storage.save_store(populated_store)
        loaded = storage.load_store()
        assert not loaded.has_game('2024020099')
        assert loaded.period_row_counts()['2024020099'] == 6

    def test_games_csv_has_timestamp(self, storage, populated_store):
        storage.save_store(populated_store)
        games = storage.get_data('games')
        assert 'last_updated' in games.columns
        assert games['id'].tolist()[0] == '2024020001'

    def test_get_data_filters(self, storage, populated_store):
        storage.save_store(populated_store)
        rows = storage.get_data('period_results', {'game_id': '2024020003', 'team_code': 'CAR'})
        assert len(rows) == 3

    def test_missing_files_use_default_teams(self, storage, teams):
        loaded = storage.load_store(default_teams=teams[:3])
        assert len(loaded.teams) == 3
        assert loaded.game_ids() == []

    def test_no_temporary_file_left_behind(self, storage, populated_store):
        storage.save_store(populated_store)
        csv_dir = storage.csv_paths['games'].parent
        assert sorted(p.name for p in csv_dir.iterdir()) == ['games.csv', 'period_results.csv', 'teams.csv']

    def test_corrupt_row_is_reported(self, storage, populated_store):
        storage.save_store(populated_store)
        path = storage.csv_paths['period_results']
        text = path.read_text().replace(',WIN,', ',BOGUS,', 1)
        path.write_text(text)
        with pytest.raises(ValidationError):
            storage.load_store()


class TestConfig:

    def test_defaults(self, config, tmp_path):
        assert config.points_weight == 0.6
        assert config.rolling_window_size == 10
        assert config.file_paths['games'].startswith(str(tmp_path))

    def test_no_default_season(self):
        config = AnalyzerConfig(create_default_config())
        assert not hasattr(config, 'default_season')
        assert 'default_season' not in create_default_config()

    def test_endpoint(self, config):
        assert config.get_endpoint('landing', game_id='2024020001') == \
            'https://api-web.nhle.com/v1/gamecenter/2024020001/landing'

    def test_load_config_overlays_sections(self, tmp_path, monkeypatch):
        monkeypatch.delenv('PERIOD_ANALYZER_STORAGE', raising=False)
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'trends': {'threshold_pct': 20.0}, 'request_delay': 0}))
        config = load_config(str(path))
        assert config.trend_threshold_pct == 20.0
        assert config.trend_edge_windows == 3
        assert config.request_delay == 0

    def test_environment_overrides_storage_root(self, tmp_path, monkeypatch):
        monkeypatch.setenv('PERIOD_ANALYZER_STORAGE', str(tmp_path / 'elsewhere'))
        config = AnalyzerConfig({'storage_root': str(tmp_path / 'storage')})
        assert config.storage_root == str(tmp_path / 'elsewhere')

    def test_create_storage_directories(self, config):
        config.create_storage_directories()
        assert os.path.isdir(config.file_paths['raw'])
        assert os.path.isdir(config.file_paths['logs'])
