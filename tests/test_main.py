"""
End-to-end tests for the command line driver.
"""
import json
import logging

import pytest

from main import load_payloads, main

from conftest import raw_record


@pytest.fixture(autouse=True)
def storage_root(tmp_path, monkeypatch):
    monkeypatch.setenv('PERIOD_ANALYZER_STORAGE', str(tmp_path / 'storage'))
    root = logging.getLogger()
    handlers = list(root.handlers)
    yield tmp_path / 'storage'
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def games_file(tmp_path):
    path = tmp_path / 'games.json'
    path.write_text(json.dumps([
        raw_record('2024020001', '2024-10-10', 'CAR', 'TBL', [(1, 0), (2, 0), (0, 1)]),
        raw_record('2024020002', '2024-10-12', 'TBL', 'CAR', [(1, 0), (0, 1), (1, 1), (0, 1)]),
    ]))
    return str(path)


def _run(capsys, *argv):
    exit_code = main(list(argv))
    return exit_code, json.loads(capsys.readouterr().out)


class TestCommands:

    def test_ingest_then_stats(self, capsys, games_file, storage_root):
        code, output = _run(capsys, 'ingest', '--files', games_file)
        assert code == 0
        assert output['data']['inserted'] == 2
        assert (storage_root / 'csv' / 'period_results.csv').exists()

        code, output = _run(capsys, 'stats', '--team', 'car')
        assert code == 0
        car = output['data'][0]
        assert car['team_code'] == 'CAR'
        assert (car['wins'], car['good_wins'], car['points']) == (2, 1, 4)

    def test_head_to_head(self, capsys, games_file):
        _run(capsys, 'ingest', '--files', games_file)
        code, output = _run(capsys, 'h2h', 'CAR', 'TBL')
        assert code == 0
        assert output['data']['series_leader'] == 'CAR'
        assert output['data']['games_played'] == 2

    def test_health(self, capsys, games_file):
        _run(capsys, 'ingest', '--files', games_file)
        code, output = _run(capsys, 'health')
        assert output['data']['health_score'] == 100

    def test_unknown_team_is_an_empty_result(self, capsys, games_file):
        _run(capsys, 'ingest', '--files', games_file)
        code, output = _run(capsys, 'h2h', 'CAR', 'XYZ')
        assert code == 1
        assert output['success'] is False
        assert output['error']['type'] == 'EMPTY_RESULT'

    def test_bad_season_is_a_validation_error(self, capsys):
        code, output = _run(capsys, 'stats', '--season', '2024-2026')
        assert code == 1
        assert output['error']['type'] == 'VALIDATION_ERROR'
        assert output['error']['violations'][0]['field'] == 'season'

    def test_ingest_needs_a_source(self, capsys):
        code, output = _run(capsys, 'ingest')
        assert code == 1
        assert output['error']['violations'][0]['field'] == 'files'


class TestLoadPayloads:

    def test_accepts_list_wrapper_and_single(self, tmp_path):
        record = raw_record('2024020001', '2024-10-10', 'CAR', 'TBL', [(1, 0), (0, 0), (0, 0)])
        paths = []
        for name, content in (('list.json', [record, record]), ('wrapped.json', {'games': [record]}),
                              ('single.json', record)):
            path = tmp_path / name
            path.write_text(json.dumps(content))
            paths.append(str(path))
        assert len(load_payloads(paths)) == 4
