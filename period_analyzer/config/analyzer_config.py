#!/usr/bin/env python3
"""
Period Analyzer Configuration
=============================

Configuration for ingestion, storage and the aggregation thresholds. Built
from a plain dictionary so it can come from defaults, a JSON file or tests.
"""

import json
import os
from typing import Any, Dict, Optional


class AnalyzerConfig:
    """
    Configuration class for the period analyzer.

    Holds storage paths, NHL web API endpoints and the tunable constants used
    by ranking, trend classification and health scoring.
    """

    def __init__(self, config_dict: Dict[str, Any] = None):
        """Initialize the configuration."""
        if config_dict is None:
            config_dict = {}

        # Basic settings
        self.verbose = config_dict.get('verbose', False)

        # NHL web API
        self.base_url = config_dict.get('base_url', "https://api-web.nhle.com")
        self.request_timeout = config_dict.get('request_timeout', 30)
        self.request_delay = config_dict.get('request_delay', 0.5)  # seconds between requests
        self.headers = {
            "User-Agent": "NHL-Period-Analyzer/1.0 (Educational/Research Purpose)",
            "Accept": "application/json",
        }
        self.endpoints = {
            "landing": "{base_url}/v1/gamecenter/{game_id}/landing",
            "schedule": "{base_url}/v1/schedule/{date}",
        }

        # File paths setup
        self.storage_root = os.environ.get(
            'PERIOD_ANALYZER_STORAGE',
            config_dict.get('storage_root', os.path.join(os.getcwd(), "storage")),
        )
        self.file_paths = {
            "teams": os.path.join(self.storage_root, "csv", "teams.csv"),
            "games": os.path.join(self.storage_root, "csv", "games.csv"),
            "period_results": os.path.join(self.storage_root, "csv", "period_results.csv"),
            "raw": os.path.join(self.storage_root, "raw"),
            "logs": os.path.join(self.storage_root, "logs"),
        }

        # Optional team reference file (JSON team list or NHL standings payload)
        self.teams_file = config_dict.get('teams_file')

        # Ranking
        ranking = config_dict.get('ranking', {})
        self.points_weight = ranking.get('points_weight', 0.6)
        self.difference_weight = ranking.get('difference_weight', 0.4)

        # Trends
        trends = config_dict.get('trends', {})
        self.trend_threshold_pct = trends.get('threshold_pct', 10.0)
        self.trend_edge_windows = trends.get('edge_windows', 3)
        self.rolling_window_size = trends.get('rolling_window_size', 10)

        # Data health
        health = config_dict.get('health', {})
        self.max_gap_days = health.get('max_gap_days', 5)
        self.health_penalties = health.get('penalties', {
            'missing_period_results': 2,
            'incomplete_period_results': 1,
            'invalid_team_codes': 5,
            'orphaned_period_results': 1,
        })

        # Ingestion
        self.skip_existing = config_dict.get('skip_existing', True)

    def get_endpoint(self, key: str, **kwargs) -> str:
        """
        Construct the full URL for an endpoint key.

        Args:
            key: Endpoint key
            **kwargs: Parameters to substitute in the endpoint template

        Returns:
            Full URL for the endpoint
        """
        return self.endpoints[key].format(base_url=self.base_url, **kwargs)

    def create_storage_directories(self) -> None:
        """Create storage directories."""
        for directory in (os.path.dirname(self.file_paths["games"]), self.file_paths["raw"], self.file_paths["logs"]):
            os.makedirs(directory, exist_ok=True)


def create_default_config() -> Dict[str, Any]:
    """Create default configuration dictionary."""
    return {
        'verbose': False,
        'storage_root': os.path.join(os.getcwd(), "storage"),
        'request_timeout': 30,
        'request_delay': 0.5,
        'skip_existing': True,
        'ranking': {
            'points_weight': 0.6,
            'difference_weight': 0.4,
        },
        'trends': {
            'threshold_pct': 10.0,
            'edge_windows': 3,
            'rolling_window_size': 10,
        },
        'health': {
            'max_gap_days': 5,
        },
    }


def load_config(path: Optional[str] = None) -> AnalyzerConfig:
    """Defaults, overlaid with a JSON file when one is given."""
    config_dict = create_default_config()
    if path:
        with open(path, 'r', encoding='utf-8') as f:
            overrides = json.load(f)
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(config_dict.get(key), dict):
                config_dict[key].update(value)
            else:
                config_dict[key] = value
    return AnalyzerConfig(config_dict)
