#!/usr/bin/env python3
"""
Data Health Checker for the NHL Period Analyzer
===============================================

Read-only scan of the stored corpus for structural problems:

- games with no period rows (error)
- games with fewer than six period rows (warning)
- games referencing unknown team codes (error)
- period rows whose game is not stored, "orphaned" (warning)
- schedule gaps of more than five days inside a season (warning)

A heuristic health score starts at 100 and loses points per problem.
"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from period_analyzer.model.corpus import Corpus

logger = logging.getLogger(__name__)

MIN_PERIOD_ROWS = 6
MAX_DATE_GAP_DAYS = 5
DETAIL_LIMIT = 20

DEFAULT_PENALTIES = {
    'missing_period_results': 2,
    'incomplete_period_results': 1,
    'invalid_team_codes': 5,
    'orphaned_period_results': 1,
}


@dataclass
class HealthIssue:
    type: str
    severity: str  # "error" or "warning"
    message: str
    count: int
    details: Optional[List[Any]] = None


@dataclass
class HealthReport:
    health_score: int
    season: Optional[str]
    summary: Dict[str, int]
    season_details: Dict[str, Dict[str, Any]]
    issues: List[HealthIssue] = field(default_factory=list)

    @property
    def issue_counts(self) -> Dict[str, int]:
        counts = Counter(issue.severity for issue in self.issues)
        return {'errors': counts.get('error', 0), 'warnings': counts.get('warning', 0)}

    @property
    def recommendation(self) -> str:
        if not self.issues:
            return "Database is healthy!"
        return "Re-import or backfill the affected games to fix missing or incomplete data"

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['issue_counts'] = self.issue_counts
        result['recommendation'] = self.recommendation
        return result


class DataHealthChecker:
    """Scans a corpus and scores its completeness."""

    def __init__(self, max_gap_days: int = MAX_DATE_GAP_DAYS, penalties: Optional[Dict[str, int]] = None):
        self.max_gap_days = max_gap_days
        self.penalties = dict(DEFAULT_PENALTIES)
        if penalties:
            self.penalties.update(penalties)
        self.logger = logging.getLogger('DataHealthChecker')

    def check(self, corpus: Corpus, season: Optional[str] = None, detailed: bool = False) -> HealthReport:
        """
        Check the whole corpus, or only one season's games.

        Orphaned rows have no game and therefore no season; they are always
        reported against the full corpus.
        """
        games = [g for g in corpus.games if season is None or g.season == season]
        all_game_ids = {g.id for g in corpus.games}
        team_codes = {t.code for t in corpus.teams}
        row_counts = Counter(row.game_id for row in corpus.period_results)

        missing = [g.id for g in games if row_counts.get(g.id, 0) == 0]
        incomplete = [{'game_id': g.id, 'count': row_counts[g.id]} for g in games
                      if 0 < row_counts.get(g.id, 0) < MIN_PERIOD_ROWS]

        invalid_refs = []
        for game in games:
            for code in (game.home_team_code, game.away_team_code):
                if code not in team_codes:
                    invalid_refs.append({'game_id': game.id, 'invalid_team': code})

        orphaned = sorted({row.game_id for row in corpus.period_results if row.game_id not in all_game_ids})

        season_details, gaps = self._season_coverage(games)

        issues = []
        if missing:
            issues.append(HealthIssue('missing_period_results', 'error',
                                      f"{len(missing)} games have no period results", len(missing),
                                      missing[:DETAIL_LIMIT] if detailed else None))
        if incomplete:
            issues.append(HealthIssue('incomplete_period_results', 'warning',
                                      f"{len(incomplete)} games have incomplete period results", len(incomplete),
                                      incomplete[:DETAIL_LIMIT] if detailed else None))
        if invalid_refs:
            issues.append(HealthIssue('invalid_team_codes', 'error',
                                      f"{len(invalid_refs)} team references point to unknown teams", len(invalid_refs),
                                      invalid_refs if detailed else None))
        if gaps:
            issues.append(HealthIssue('date_gaps', 'warning',
                                      f"{len(gaps)} significant date gaps found", len(gaps),
                                      gaps if detailed else None))
        if orphaned:
            issues.append(HealthIssue('orphaned_period_results', 'warning',
                                      f"{len(orphaned)} games have period results but no game record", len(orphaned),
                                      orphaned[:DETAIL_LIMIT] if detailed else None))

        penalty = (
            self.penalties['missing_period_results'] * len(missing)
            + self.penalties['incomplete_period_results'] * len(incomplete)
            + self.penalties['invalid_team_codes'] * len(invalid_refs)
            + self.penalties['orphaned_period_results'] * len(orphaned)
        )
        health_score = min(100, max(0, 100 - penalty))

        report = HealthReport(
            health_score=health_score,
            season=season,
            summary={
                'total_games': len(games),
                'total_period_results': sum(row_counts.get(g.id, 0) for g in games),
                'total_teams': len(team_codes),
                'seasons_covered': len(season_details),
            },
            season_details=season_details,
            issues=issues,
        )

        for issue in issues:
            log = self.logger.error if issue.severity == 'error' else self.logger.warning
            log(issue.message)
        self.logger.info(f"Health score {health_score} over {len(games)} games")
        return report

    def _season_coverage(self, games):
        season_details = {}
        gaps = []
        for season in sorted({g.season for g in games}):
            dates = sorted({g.date for g in games if g.season == season})
            season_details[season] = {
                'games': sum(1 for g in games if g.season == season),
                'first_date': dates[0],
                'last_date': dates[-1],
            }
            for previous, current in zip(dates, dates[1:]):
                try:
                    days = (date.fromisoformat(current) - date.fromisoformat(previous)).days
                except ValueError:
                    self.logger.warning(f"Unparseable game date in season {season}: {previous} / {current}")
                    continue
                if days > self.max_gap_days:
                    gaps.append({'season': season, 'gap_start': previous, 'gap_end': current, 'days': days})
        return season_details, gaps


def check_data_health(corpus: Corpus, season: Optional[str] = None, detailed: bool = False) -> HealthReport:
    return DataHealthChecker().check(corpus, season=season, detailed=detailed)
