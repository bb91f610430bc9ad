#!/usr/bin/env python3
"""
CSV Storage Manager for the NHL Period Analyzer
===============================================

Persists teams, games and period results as three CSV files and loads them
back into a GameStore. CSV keeps the data human readable and easy to diff or
load into a spreadsheet.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from period_analyzer.config.analyzer_config import AnalyzerConfig
from period_analyzer.errors import ValidationError
from period_analyzer.model.records import Game, PeriodResult, Team
from period_analyzer.utils.game_store import GameStore

TEAM_COLUMNS = ['code', 'name', 'division', 'conference']
GAME_COLUMNS = ['id', 'date', 'season', 'home_team_code', 'away_team_code', 'game_type']
PERIOD_COLUMNS = [
    'game_id', 'team_code', 'period_number', 'period_type', 'goals_for', 'goals_against',
    'empty_net_goals', 'period_outcome', 'won_two_plus_reg_periods',
]

COLUMN_TYPES = {
    'teams': {'code': str, 'name': str, 'division': str, 'conference': str},
    'games': {'id': str, 'date': str, 'season': str, 'home_team_code': str, 'away_team_code': str, 'game_type': str},
    'period_results': {'game_id': str, 'team_code': str, 'period_type': str, 'period_outcome': str},
}


class CSVStorageManager:
    """
    Manages CSV-based storage for the analyzer's three datasets.
    """

    def __init__(self, config: AnalyzerConfig):
        """Initialize the CSV storage manager."""
        self.config = config
        self.logger = logging.getLogger('CSVStorage')

        self.csv_paths = {
            'teams': Path(config.file_paths['teams']),
            'games': Path(config.file_paths['games']),
            'period_results': Path(config.file_paths['period_results']),
        }

    def _write_csv(self, dataset_name: str, frame: pd.DataFrame) -> None:
        """Write through a temporary file so a crash never leaves half a CSV."""
        path = self.csv_paths[dataset_name]
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix('.csv.tmp')
        frame.to_csv(tmp_path, index=False)
        os.replace(tmp_path, path)

    def save_teams_data(self, teams: List[Team]) -> None:
        """Save teams to CSV."""
        frame = pd.DataFrame([team.model_dump(mode='json') for team in teams], columns=TEAM_COLUMNS)
        self._write_csv('teams', frame)
        self.logger.info(f"Saved {len(teams)} teams to CSV")

    def save_games_data(self, games: List[Game]) -> None:
        """Save games to CSV."""
        frame = pd.DataFrame([game.model_dump(mode='json') for game in games], columns=GAME_COLUMNS)
        frame['last_updated'] = datetime.now().isoformat()
        self._write_csv('games', frame)
        self.logger.info(f"Saved {len(games)} games to CSV")

    def save_period_results(self, period_results: List[PeriodResult]) -> None:
        """Save period results to CSV."""
        frame = pd.DataFrame([row.model_dump(mode='json') for row in period_results], columns=PERIOD_COLUMNS)
        self._write_csv('period_results', frame)
        self.logger.info(f"Saved {len(period_results)} period results to CSV")

    def save_store(self, store: GameStore) -> None:
        """Persist the full contents of a store, orphaned rows included."""
        corpus = store.full_corpus()
        self.save_teams_data(corpus.teams)
        self.save_games_data(corpus.games)
        self.save_period_results(corpus.period_results)

    def get_data(self, dataset_name: str, filters: Optional[Dict[str, Any]] = None) -> pd.DataFrame:
        """Get data from a dataset with optional equality filters."""
        file_path = self.csv_paths.get(dataset_name)
        if not file_path or not file_path.exists():
            self.logger.warning(f"Dataset {dataset_name} not found")
            return pd.DataFrame()

        df = pd.read_csv(file_path, dtype=COLUMN_TYPES.get(dataset_name))
        if filters:
            for column, value in filters.items():
                if column in df.columns:
                    df = df[df[column] == value]
        return df

    def _records(self, dataset_name: str) -> List[Dict[str, Any]]:
        df = self.get_data(dataset_name)
        if df.empty:
            return []
        df = df.astype(object).where(pd.notna(df), None)
        return df.to_dict(orient='records')

    def load_store(self, default_teams: Optional[List[Team]] = None) -> GameStore:
        """
        Load persisted data into a new GameStore.

        Args:
            default_teams: Teams to use when no teams CSV exists yet

        Raises:
            ValidationError: A stored row does not fit the data model
        """
        try:
            teams = [Team.model_validate(r) for r in self._records('teams')]
            games = [Game.model_validate({k: r[k] for k in GAME_COLUMNS}) for r in self._records('games')]
            rows = [PeriodResult.model_validate(r) for r in self._records('period_results')]
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e, subject="stored CSV data")

        if not teams and default_teams:
            teams = list(default_teams)

        store = GameStore(teams=teams, games=games)
        store.add_period_results(rows)
        self.logger.info(f"Loaded {len(teams)} teams, {len(games)} games, {len(rows)} period results")
        return store
