#!/usr/bin/env python3
"""
NHL Feed Collector
==================

Fetches gamecenter landing documents and daily schedules from the NHL web API
(api-web.nhle.com). Requests share one session and are spaced by a fixed
delay. Any HTTP or transport failure raises FeedError; there is no retry.
"""

import json
import logging
import os
import time
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import requests

from period_analyzer.config.analyzer_config import AnalyzerConfig
from period_analyzer.errors import FeedError
from period_analyzer.model.scopes import check_iso_date


class FeedCollector:
    """Collector for NHL web API JSON payloads."""

    def __init__(self, config: AnalyzerConfig, session: Optional[requests.Session] = None):
        """
        Initialize the collector.

        Args:
            config: Analyzer configuration (base URL, timeout, delay, headers)
            session: Optional pre-built session, mainly for tests
        """
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update(config.headers)

        # Rate limiting
        self.request_delay = config.request_delay
        self.last_request_time = 0.0

        # Progress tracking
        self.total_requests = 0
        self.failed_requests = 0

        self.logger = logging.getLogger(__name__)

    def _make_request(self, url: str) -> Dict[str, Any]:
        """Make a rate-limited GET request and decode the JSON body."""
        time_since_last = time.time() - self.last_request_time
        if time_since_last < self.request_delay:
            time.sleep(self.request_delay - time_since_last)

        self.total_requests += 1
        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
            self.last_request_time = time.time()
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            self.failed_requests += 1
            status = e.response.status_code if e.response is not None else None
            self.logger.error(f"HTTP {status} from {url}")
            raise FeedError(f"NHL API returned HTTP {status}", url=url, status_code=status) from e
        except requests.exceptions.RequestException as e:
            self.failed_requests += 1
            self.logger.error(f"Request failed for {url}: {e}")
            raise FeedError(f"Request to NHL API failed: {e}", url=url) from e
        except ValueError as e:
            self.failed_requests += 1
            self.logger.error(f"JSON decode error for {url}: {e}")
            raise FeedError(f"NHL API returned invalid JSON: {e}", url=url) from e

    def fetch_landing(self, game_id: str) -> Dict[str, Any]:
        """Fetch the gamecenter landing document for one game."""
        url = self.config.get_endpoint("landing", game_id=game_id)
        data = self._make_request(url)
        self.logger.info(f"Fetched landing for game {game_id} (state: {data.get('gameState')})")
        return data

    def fetch_schedule(self, day: str) -> Dict[str, Any]:
        """Fetch the schedule document for the week starting at `day` (YYYY-MM-DD)."""
        url = self.config.get_endpoint("schedule", date=check_iso_date(day))
        return self._make_request(url)

    def schedule_game_ids(self, start_date: str, end_date: str) -> List[str]:
        """
        Game ids scheduled between two dates, inclusive.

        The schedule endpoint returns a whole game week, so a single request
        usually covers seven days; only games dated inside the range are kept.

        Args:
            start_date: First day, YYYY-MM-DD
            end_date: Last day, YYYY-MM-DD

        Returns:
            Game ids in schedule order, without duplicates
        """
        start = date.fromisoformat(check_iso_date(start_date))
        end = date.fromisoformat(check_iso_date(end_date))
        if start > end:
            raise ValueError("start_date must be on or before end_date")

        game_ids: List[str] = []
        seen = set()
        day = start
        while day <= end:
            schedule = self.fetch_schedule(day.isoformat())
            covered = [day]
            for week in schedule.get('gameWeek', []):
                week_date = week.get('date')
                if week_date:
                    covered.append(date.fromisoformat(week_date))
                for game in week.get('games', []):
                    game_date = game.get('gameDate') or week_date
                    if not game_date or not (start.isoformat() <= game_date <= end.isoformat()):
                        continue
                    game_id = str(game.get('id'))
                    if game_id not in seen:
                        seen.add(game_id)
                        game_ids.append(game_id)
            day = max(covered) + timedelta(days=1)

        self.logger.info(f"Found {len(game_ids)} games between {start_date} and {end_date}")
        return game_ids

    def save_json_data(self, data: Dict[str, Any], filepath: str) -> None:
        """Save a raw payload to disk."""
        os.makedirs(os.path.dirname(filepath), exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def collect_landing(self, game_id: str, save_raw: bool = False) -> Dict[str, Any]:
        """Fetch a landing document and optionally keep a copy under the raw storage dir."""
        data = self.fetch_landing(game_id)
        if save_raw:
            self.save_json_data(data, os.path.join(self.config.file_paths["raw"], f"{game_id}_landing.json"))
        return data
