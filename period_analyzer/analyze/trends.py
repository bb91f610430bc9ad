#!/usr/bin/env python3
"""
Trend Analyzer
==============

Splits one team's games into calendar weeks, calendar months or overlapping
10-game windows, computes a stat bundle per window and classifies whether the
chosen metric is improving, declining or stable.

Direction compares the mean of the last three windows with the mean of the
first three; a change beyond +/-10% is a trend.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from period_analyzer.analyze.game_outcome import resolve_team_game
from period_analyzer.errors import DataInconsistencyError, EmptyResultError
from period_analyzer.model.corpus import Corpus
from period_analyzer.model.scopes import TrendMetric, TrendWindow

logger = logging.getLogger(__name__)

ROLLING_WINDOW_SIZE = 10
EDGE_WINDOWS = 3
TREND_THRESHOLD_PCT = 10.0

IMPROVING = "improving"
DECLINING = "declining"
STABLE = "stable"


@dataclass
class WindowStats:
    games: int = 0
    wins: int = 0
    losses: int = 0
    overtime_losses: int = 0
    good_wins: int = 0
    bad_wins: int = 0
    periods_won: int = 0
    total_periods: int = 0
    period_win_pct: float = 0.0
    win_pct: float = 0.0
    goals_per_game: float = 0.0


@dataclass
class TrendPoint:
    label: str
    games: int
    value: float
    details: WindowStats


@dataclass
class TrendReport:
    team_code: str
    team_name: str
    metric: str
    window: str
    season: Optional[str]
    total_games: int
    trend_direction: str
    change_pct: Optional[float]
    best_window: Optional[TrendPoint]
    worst_window: Optional[TrendPoint]
    current: Optional[TrendPoint]
    windows: List[TrendPoint] = field(default_factory=list)
    excluded_games: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def window_stats(frame: pd.DataFrame) -> WindowStats:
    """Stat bundle for the games in one window."""
    games = len(frame)
    if games == 0:
        return WindowStats()

    wins = int(frame['won'].sum())
    overtime_losses = int(frame['overtime_loss'].sum())
    periods_won = int(frame['periods_won'].sum())
    total_periods = int(frame['regulation_periods'].sum())
    return WindowStats(
        games=games,
        wins=wins,
        losses=games - wins - overtime_losses,
        overtime_losses=overtime_losses,
        good_wins=int(frame['good_win'].sum()),
        bad_wins=int(frame['bad_win'].sum()),
        periods_won=periods_won,
        total_periods=total_periods,
        period_win_pct=periods_won / total_periods * 100 if total_periods else 0.0,
        win_pct=wins / games * 100,
        goals_per_game=float(frame['goals_for'].sum()) / games,
    )


def metric_value(stats: WindowStats, metric: TrendMetric) -> float:
    if metric == TrendMetric.PERIODS_WON:
        return stats.periods_won
    if metric == TrendMetric.GOOD_WINS:
        return stats.good_wins
    if metric == TrendMetric.WIN_PCT:
        return round(stats.win_pct, 1)
    if metric == TrendMetric.GOALS_PER_GAME:
        return round(stats.goals_per_game, 2)
    if metric == TrendMetric.PERIOD_WIN_PCT:
        return round(stats.period_win_pct, 1)
    raise ValueError(f"Unknown metric {metric}")


def classify_trend(values: Sequence[float], edge: int = EDGE_WINDOWS,
                   threshold_pct: float = TREND_THRESHOLD_PCT):
    """
    Compare the last `edge` values with the first `edge` values.

    Returns:
        (direction, change_pct); change_pct is None when it is undefined
    """
    if len(values) < 2:
        return STABLE, None

    earlier = list(values[:edge])
    recent = list(values[-edge:])
    earlier_avg = sum(earlier) / len(earlier)
    recent_avg = sum(recent) / len(recent)

    if earlier_avg == 0:
        # Percentage change from zero is undefined; any rise counts as improvement
        return (IMPROVING if recent_avg > 0 else STABLE), None

    change_pct = (recent_avg - earlier_avg) / abs(earlier_avg) * 100
    if change_pct > threshold_pct:
        return IMPROVING, change_pct
    if change_pct < -threshold_pct:
        return DECLINING, change_pct
    return STABLE, change_pct


def _game_frame(corpus: Corpus, team_code: str, season: Optional[str], excluded: List[str]) -> pd.DataFrame:
    games = sorted(
        (g for g in corpus.games if g.involves(team_code) and (season is None or g.season == season)),
        key=lambda g: (g.date, g.id),
    )
    rows_by_game = corpus.rows_by_game()

    records = []
    for game in games:
        try:
            result = resolve_team_game(game.id, team_code, rows_by_game.get(game.id, []))
        except DataInconsistencyError as e:
            logger.warning(f"Excluding game {game.id} from {team_code} trend: {e}")
            excluded.append(game.id)
            continue
        records.append({
            'game_id': game.id,
            'date': game.date,
            'won': result.won,
            'overtime_loss': result.is_overtime_loss,
            'good_win': result.is_good_win,
            'bad_win': result.is_bad_win,
            'periods_won': result.regulation_periods_won,
            'regulation_periods': 3,
            'goals_for': result.goals_for,
        })

    frame = pd.DataFrame.from_records(records, columns=[
        'game_id', 'date', 'won', 'overtime_loss', 'good_win', 'bad_win',
        'periods_won', 'regulation_periods', 'goals_for',
    ])
    frame['date'] = pd.to_datetime(frame['date'])
    return frame


def _partition(frame: pd.DataFrame, window: TrendWindow, rolling_size: int):
    """Yield (label, window_frame) pairs in chronological order."""
    if window == TrendWindow.ROLLING10:
        for end in range(rolling_size - 1, len(frame)):
            start = end - rolling_size + 1
            chunk = frame.iloc[start:end + 1]
            ending = chunk['date'].iloc[-1].strftime('%Y-%m-%d')
            yield f"Games {start + 1}-{end + 1} (ending {ending})", chunk
        return

    if window == TrendWindow.WEEKLY:
        iso = frame['date'].dt.isocalendar()
        keys = iso['year'].astype(str) + '-W' + iso['week'].astype(str).str.zfill(2)
    else:
        keys = frame['date'].dt.strftime('%Y-%m')

    for key, chunk in frame.groupby(keys, sort=True):
        yield str(key), chunk


def analyze_trends(corpus: Corpus, team_code: str, metric: TrendMetric = TrendMetric.PERIODS_WON,
                   window: TrendWindow = TrendWindow.MONTHLY, season: Optional[str] = None,
                   rolling_size: int = ROLLING_WINDOW_SIZE, edge_windows: int = EDGE_WINDOWS,
                   threshold_pct: float = TREND_THRESHOLD_PCT) -> TrendReport:
    """
    Metric trajectory for one team.

    Raises:
        EmptyResultError: Unknown team or no games in scope
    """
    team = corpus.team(team_code)
    if team is None:
        raise EmptyResultError(f"Team {team_code} not found", suggestion="Check the team code (e.g. CAR, TBL).")

    excluded: List[str] = []
    frame = _game_frame(corpus, team_code, season, excluded)
    if frame.empty:
        raise EmptyResultError(f"No games found for {team_code}" + (f" in {season}" if season else ""))

    points = []
    for label, chunk in _partition(frame, window, rolling_size):
        stats = window_stats(chunk)
        points.append(TrendPoint(label=label, games=stats.games, value=metric_value(stats, metric), details=stats))

    direction, change_pct = classify_trend([p.value for p in points], edge_windows, threshold_pct)

    best = max(points, key=lambda p: p.value) if points else None
    worst = min(points, key=lambda p: p.value) if points else None

    logger.info(f"{team_code} {metric.value} trend over {len(points)} {window.value} window(s): {direction}")
    return TrendReport(
        team_code=team.code,
        team_name=team.name,
        metric=metric.value,
        window=window.value,
        season=season,
        total_games=len(frame),
        trend_direction=direction,
        change_pct=round(change_pct, 1) if change_pct is not None else None,
        best_window=best,
        worst_window=worst,
        current=points[-1] if points else None,
        windows=points,
        excluded_games=excluded,
    )
