#!/usr/bin/env python3
"""
NHL Period Analyzer
===================

Command line driver for ingesting NHL games and querying period-level
statistics built from them.

Commands:
- ingest: load games from JSON files or from the NHL web API for a date range
- backfill: rebuild missing, incomplete or stale period rows
- stats: team statistics and rankings
- h2h: head-to-head comparison of two teams
- trends: one team's metric over weekly, monthly or rolling windows
- rankings: teams ranked by period wins, losses or ties
- two-plus: games in which a team won 2+ regulation periods
- performance: a team's period-by-period log
- period-stats: win rates and goal averages for periods 1-3
- health: data completeness and consistency report

Every command prints one JSON document: {"success": true, "data": ...} or
{"success": false, "error": {...}}.
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from period_analyzer.analyze.head_to_head import compare_teams
from period_analyzer.analyze.period_queries import (
    period_statistics, period_win_rankings, team_period_performance, two_plus_games,
)
from period_analyzer.analyze.team_stats import SORT_KEYS, calculate_team_stats
from period_analyzer.analyze.trends import analyze_trends
from period_analyzer.collect.feed_collector import FeedCollector
from period_analyzer.config.analyzer_config import AnalyzerConfig, load_config
from period_analyzer.curate.ingestion import backfill, ingest_records
from period_analyzer.errors import FeedError, PeriodAnalyzerError, ValidationError, Violation
from period_analyzer.model.records import PeriodOutcome
from period_analyzer.model.scopes import (
    HeadToHeadQuery, HealthCheckQuery, PeriodRankingQuery, PeriodStatsQuery, StatsScope,
    TeamGamesQuery, TrendMetric, TrendQuery, TrendWindow,
)
from period_analyzer.utils.game_store import GameStore
from period_analyzer.utils.reference_data import ReferenceDataLoader
from period_analyzer.utils.storage import CSVStorageManager
from period_analyzer.validate.data_health import DataHealthChecker


def build_scope(scope_class, **fields):
    """Build a query scope, dropping unset options and translating pydantic errors."""
    try:
        return scope_class(**{k: v for k, v in fields.items() if v is not None})
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, subject=scope_class.__name__)


def load_payloads(paths: List[str]) -> List[Dict[str, Any]]:
    """Read game payloads from JSON files; a file may hold one payload or a list."""
    payloads = []
    for path in paths:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if isinstance(data, list):
            payloads.extend(data)
        elif isinstance(data, dict) and isinstance(data.get('games'), list):
            payloads.extend(data['games'])
        else:
            payloads.append(data)
    return payloads


class PeriodAnalyzerSystem:
    """
    Wires configuration, storage, collection and the analysis functions
    together for the command line.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or load_config()
        self.config.create_storage_directories()
        self.logger = self._setup_logging()

        self.storage_manager = CSVStorageManager(self.config)
        self.reference_data = ReferenceDataLoader(self.config.teams_file)
        self._store: Optional[GameStore] = None
        self._collector: Optional[FeedCollector] = None

    def _setup_logging(self) -> logging.Logger:
        """Console (stderr, keeping stdout for JSON) plus a timestamped log file."""
        root = logging.getLogger()
        root.setLevel(logging.DEBUG if self.config.verbose else logging.INFO)

        console_handler = logging.StreamHandler(sys.stderr)
        log_file = os.path.join(self.config.file_paths['logs'],
                                f'period_analyzer_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        file_handler = logging.FileHandler(log_file)

        log_format = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(log_format)
        file_handler.setFormatter(log_format)
        console_handler.setLevel(logging.DEBUG if self.config.verbose else logging.WARNING)

        root.addHandler(console_handler)
        root.addHandler(file_handler)
        return logging.getLogger('PeriodAnalyzer')

    @property
    def store(self) -> GameStore:
        if self._store is None:
            self._store = self.storage_manager.load_store(default_teams=list(self.reference_data.teams.values()))
        return self._store

    @property
    def collector(self) -> FeedCollector:
        if self._collector is None:
            self._collector = FeedCollector(self.config)
        return self._collector

    # ------------------------------------------------------------------
    # Write commands
    # ------------------------------------------------------------------

    def ingest(self, files: Optional[List[str]] = None, start_date: Optional[str] = None,
               end_date: Optional[str] = None, force: bool = False, save_raw: bool = False) -> Dict[str, Any]:
        fetch_failures = []
        if files:
            payloads = load_payloads(files)
        elif start_date:
            game_ids = self.collector.schedule_game_ids(start_date, end_date or start_date)
            payloads, fetch_failures = self._fetch_all(game_ids, save_raw)
        else:
            raise ValidationError([Violation('files', 'Nothing to ingest', expected='--files or --start-date')],
                                  subject="ingest")

        skip_existing = self.config.skip_existing and not force
        summary = ingest_records(payloads, self.store, skip_existing=skip_existing)
        for game_id, error in fetch_failures:
            summary.processed += 1
            summary.record_failure(game_id, error)
        self.storage_manager.save_store(self.store)
        return summary.to_dict()

    def _fetch_all(self, game_ids: List[str], save_raw: bool):
        payloads, failures = [], []
        for game_id in game_ids:
            try:
                payloads.append(self.collector.collect_landing(game_id, save_raw=save_raw))
            except FeedError as e:
                self.logger.error(f"Could not fetch game {game_id}: {e}")
                failures.append((game_id, e))
        return payloads, failures

    def backfill(self, season: Optional[str] = None, force: bool = False, fetch: bool = False,
                 limit: Optional[int] = None, dry_run: bool = False) -> Dict[str, Any]:
        summary = backfill(self.store, season=season, force=force,
                           fetch=self.collector.fetch_landing if fetch else None,
                           limit=limit, dry_run=dry_run)
        if not dry_run:
            self.storage_manager.save_store(self.store)
        return summary.to_dict()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def team_stats(self, **options) -> List[Dict[str, Any]]:
        scope = build_scope(StatsScope, **options)
        corpus = self.store.select(scope)
        stats = calculate_team_stats(corpus, sort_by=scope.sort_by,
                                     points_weight=self.config.points_weight,
                                     difference_weight=self.config.difference_weight)
        return [s.to_dict() for s in stats]

    def head_to_head(self, team_a: str, team_b: str, season: Optional[str] = None) -> Dict[str, Any]:
        query = build_scope(HeadToHeadQuery, team_a=team_a, team_b=team_b, season=season)
        corpus = self.store.head_to_head_corpus(query.team_a, query.team_b, query.season)
        return compare_teams(corpus, query.team_a, query.team_b, query.season).to_dict()

    def trends(self, team_code: str, metric: Optional[str] = None, window: Optional[str] = None,
               season: Optional[str] = None) -> Dict[str, Any]:
        query = build_scope(TrendQuery, team_code=team_code, metric=metric, window=window, season=season)
        corpus = self.store.team_corpus(query.team_code, query.season)
        report = analyze_trends(corpus, query.team_code, query.metric, query.window, query.season,
                                rolling_size=self.config.rolling_window_size,
                                edge_windows=self.config.trend_edge_windows,
                                threshold_pct=self.config.trend_threshold_pct)
        return report.to_dict()

    def period_rankings(self, **options) -> List[Dict[str, Any]]:
        query = build_scope(PeriodRankingQuery, **options)
        return [vars(entry) for entry in period_win_rankings(self.store.select(query), query)]

    def two_plus(self, **options) -> List[Dict[str, Any]]:
        query = build_scope(TeamGamesQuery, **options)
        return [vars(game) for game in two_plus_games(self.store.select(query), query)]

    def performance(self, **options) -> List[Dict[str, Any]]:
        query = build_scope(TeamGamesQuery, **options)
        return [vars(row) for row in team_period_performance(self.store.select(query), query)]

    def period_stats(self, **options) -> Dict[str, Any]:
        query = build_scope(PeriodStatsQuery, **options)
        return period_statistics(self.store.select(query), query).to_dict()

    def health(self, season: Optional[str] = None, detailed: bool = False) -> Dict[str, Any]:
        query = build_scope(HealthCheckQuery, season=season, detailed=detailed)
        checker = DataHealthChecker(max_gap_days=self.config.max_gap_days, penalties=self.config.health_penalties)
        return checker.check(self.store.full_corpus(), season=query.season, detailed=query.detailed).to_dict()


def _add_date_range(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--start-date', help='First game date, YYYY-MM-DD')
    parser.add_argument('--end-date', help='Last game date, YYYY-MM-DD')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="NHL Period Analyzer - period-level statistics from NHL game data"
    )
    parser.add_argument('--config', help='JSON file overriding the default configuration')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging')

    commands = parser.add_subparsers(dest='command', required=True)

    ingest = commands.add_parser('ingest', help='Load games from JSON files or the NHL web API')
    ingest.add_argument('--files', nargs='+', help='JSON files with landing, legacy feed or raw game payloads')
    _add_date_range(ingest)
    ingest.add_argument('--force', action='store_true', help='Re-import games that are already stored')
    ingest.add_argument('--save-raw', action='store_true', help='Keep fetched payloads under storage/raw')

    backfill_cmd = commands.add_parser('backfill', help='Rebuild incomplete or stale period rows')
    backfill_cmd.add_argument('--season', help='Season, YYYY-YYYY')
    backfill_cmd.add_argument('--force', action='store_true', help='Rebuild every game')
    backfill_cmd.add_argument('--fetch', action='store_true', help='Re-read games from the NHL web API')
    backfill_cmd.add_argument('--limit', type=int, help='Process at most N games')
    backfill_cmd.add_argument('--dry-run', action='store_true', help='Do not write any changes')

    stats = commands.add_parser('stats', help='Team statistics and rankings')
    stats.add_argument('--team', help='Team code, e.g. CAR')
    stats.add_argument('--season', help='Season, YYYY-YYYY')
    stats.add_argument('--conference', choices=['Eastern', 'Western'])
    stats.add_argument('--division', choices=['Atlantic', 'Metropolitan', 'Central', 'Pacific'])
    stats.add_argument('--sort-by', choices=['rank'] + sorted(SORT_KEYS), default='rank')
    _add_date_range(stats)

    h2h = commands.add_parser('h2h', help='Head-to-head comparison')
    h2h.add_argument('team_a')
    h2h.add_argument('team_b')
    h2h.add_argument('--season', help='Season, YYYY-YYYY')

    trends = commands.add_parser('trends', help='Metric trend for one team')
    trends.add_argument('team')
    trends.add_argument('--metric', choices=[m.value for m in TrendMetric], default=TrendMetric.PERIODS_WON.value)
    trends.add_argument('--window', choices=[w.value for w in TrendWindow], default=TrendWindow.MONTHLY.value)
    trends.add_argument('--season', help='Season, YYYY-YYYY')

    rankings = commands.add_parser('rankings', help='Teams ranked by period outcomes')
    rankings.add_argument('--outcome', choices=[o.value for o in PeriodOutcome], default=PeriodOutcome.WIN.value)
    rankings.add_argument('--period', type=int, choices=[1, 2, 3, 4, 5], help='Only this period number')
    rankings.add_argument('--season', help='Season, YYYY-YYYY')
    _add_date_range(rankings)

    for name, help_text in (('two-plus', 'Games with 2+ regulation periods won'),
                            ('performance', 'Period-by-period log for one team')):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument('team')
        sub.add_argument('--season', help='Season, YYYY-YYYY')
        _add_date_range(sub)

    period_stats = commands.add_parser('period-stats', help='Breakdown of periods 1-3')
    period_stats.add_argument('--team', help='Team code; league-wide when omitted')
    period_stats.add_argument('--season', help='Season, YYYY-YYYY')
    period_stats.add_argument('--include-playoffs', action='store_true')
    _add_date_range(period_stats)

    health = commands.add_parser('health', help='Data health report')
    health.add_argument('--season', help='Season, YYYY-YYYY')
    health.add_argument('--detailed', action='store_true', help='Include affected game ids')

    return parser


def run_command(system: PeriodAnalyzerSystem, args: argparse.Namespace) -> Any:
    dates = {'start_date': getattr(args, 'start_date', None), 'end_date': getattr(args, 'end_date', None)}
    handlers: Dict[str, Callable[[], Any]] = {
        'ingest': lambda: system.ingest(args.files, args.start_date, args.end_date, args.force, args.save_raw),
        'backfill': lambda: system.backfill(args.season, args.force, args.fetch, args.limit, args.dry_run),
        'stats': lambda: system.team_stats(team_code=args.team, season=args.season, conference=args.conference,
                                           division=args.division, sort_by=args.sort_by, **dates),
        'h2h': lambda: system.head_to_head(args.team_a, args.team_b, args.season),
        'trends': lambda: system.trends(args.team, args.metric, args.window, args.season),
        'rankings': lambda: system.period_rankings(outcome=args.outcome, period_number=args.period,
                                                   season=args.season, **dates),
        'two-plus': lambda: system.two_plus(team_code=args.team, season=args.season, **dates),
        'performance': lambda: system.performance(team_code=args.team, season=args.season, **dates),
        'period-stats': lambda: system.period_stats(team_code=args.team, season=args.season,
                                                    include_playoffs=args.include_playoffs, **dates),
        'health': lambda: system.health(args.season, args.detailed),
    }
    return handlers[args.command]()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the NHL Period Analyzer."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.verbose:
        config.verbose = True
    system = PeriodAnalyzerSystem(config)

    try:
        data = run_command(system, args)
        output = {'success': True, 'data': data}
        exit_code = 0
    except PeriodAnalyzerError as e:
        system.logger.error(f"{args.command} failed: {e}")
        output = {'success': False, 'error': e.to_dict()}
        exit_code = 1
    except KeyboardInterrupt:
        system.logger.info("Operation cancelled by user")
        return 1

    print(json.dumps(output, indent=2, default=str))
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
