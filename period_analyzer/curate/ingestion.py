#!/usr/bin/env python3
"""
Bulk Ingestion and Backfill
===========================

Feeds raw game payloads through the parser, transformer and validator into a
GameStore, one game at a time. A bad game is recorded in the summary and the
run moves on to the next one.

Backfill repairs games already in the store: rows that are missing, incomplete
or disagree with what the goal counts imply are rebuilt and swapped in
wholesale.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from period_analyzer.curate.game_transformer import GameTransformer, apply_two_plus_flags
from period_analyzer.curate.period_outcome import calculate_period_outcome
from period_analyzer.errors import PeriodAnalyzerError, ValidationError, Violation
from period_analyzer.model.raw_game import RawGameRecord
from period_analyzer.model.records import Game, PeriodResult, PeriodType
from period_analyzer.parse.feed_parser import parse_record
from period_analyzer.utils.game_store import GameStore
from period_analyzer.validate.game_validator import MIN_PERIOD_ROWS, GameValidator

logger = logging.getLogger(__name__)


@dataclass
class IngestSummary:
    """Counts and per-game failures for one ingestion or backfill run."""
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)
    skipped_games: List[Dict[str, str]] = field(default_factory=list)
    dry_run: bool = False

    def record_failure(self, game_id: Optional[str], error: Exception) -> None:
        self.failed += 1
        entry = {'id': game_id, 'error': str(error)}
        if isinstance(error, PeriodAnalyzerError):
            entry['type'] = error.error_type
        if isinstance(error, ValidationError):
            entry['violations'] = [v.to_dict() for v in error.violations]
        self.failures.append(entry)

    def record_skip(self, game_id: Optional[str], reason: str) -> None:
        self.skipped += 1
        self.skipped_games.append({'id': game_id, 'reason': reason})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _game_id_of(payload: Any) -> Optional[str]:
    if isinstance(payload, RawGameRecord):
        return payload.game_id
    if isinstance(payload, dict):
        for key in ('game_id', 'id', 'gamePk'):
            if payload.get(key) is not None:
                return str(payload[key])
        game_pk = payload.get('gameData', {}).get('gamePk')
        return str(game_pk) if game_pk is not None else None
    return None


def _check_known_teams(game: Game, known_teams: Set[str]) -> None:
    violations = [
        Violation(f'game.{side}_team_code', 'Unknown team code', expected='a known team', actual=code)
        for side, code in (('home', game.home_team_code), ('away', game.away_team_code))
        if code not in known_teams
    ]
    if violations:
        raise ValidationError(violations, subject=f"game {game.id}")


def ingest_records(records: Iterable[Union[RawGameRecord, Dict[str, Any]]], store: GameStore,
                   known_teams: Optional[Iterable[str]] = None, skip_existing: bool = True,
                   transformer: Optional[GameTransformer] = None) -> IngestSummary:
    """
    Ingest raw game payloads into the store.

    Args:
        records: RawGameRecord objects, feed payloads (landing or legacy) or dicts in RawGameRecord shape
        store: Target store
        known_teams: Valid team codes; defaults to the teams held by the store
        skip_existing: Leave games that are already stored untouched
        transformer: Optional transformer, mainly for tests

    Returns:
        IngestSummary with processed/inserted/updated/skipped/failed counts
    """
    transformer = transformer or GameTransformer()
    team_codes = set(known_teams) if known_teams is not None else {team.code for team in store.teams}
    summary = IngestSummary()

    for payload in records:
        summary.processed += 1
        game_id = _game_id_of(payload)
        try:
            record = payload if isinstance(payload, RawGameRecord) else parse_record(payload)
            game_id = record.game_id

            if not record.is_final:
                logger.info(f"Skipping game {game_id}: not final (state: {record.game_state})")
                summary.record_skip(game_id, f"not final ({record.game_state})")
                continue

            if skip_existing and store.has_game(game_id):
                logger.debug(f"Skipping game {game_id}: already stored")
                summary.record_skip(game_id, "already stored")
                continue

            transformed = transformer.transform(record)
            _check_known_teams(transformed.game, team_codes)

            if store.replace_game(transformed.game, transformed.period_results):
                summary.updated += 1
            else:
                summary.inserted += 1
        except (PeriodAnalyzerError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to ingest game {game_id}: {e}")
            summary.record_failure(game_id, e)

    logger.info(f"Ingestion finished: {summary.processed} processed, {summary.inserted} inserted, "
                f"{summary.updated} updated, {summary.skipped} skipped, {summary.failed} failed")
    return summary


def rederive_game(game: Game, period_results: List[PeriodResult],
                  validator: Optional[GameValidator] = None) -> List[PeriodResult]:
    """
    Recompute period types, outcomes and two-plus flags from stored goal counts.

    Raises:
        ValidationError: The rebuilt rows still fail validation (e.g. periods are missing)
    """
    validator = validator or GameValidator()
    rows = [
        row.model_copy(update={
            'period_type': PeriodType.from_number(row.period_number),
            'period_outcome': calculate_period_outcome(row.period_number, row.goals_for,
                                                       row.goals_against, row.empty_net_goals),
        })
        for row in sorted(period_results, key=lambda r: (r.period_number, r.team_code != game.home_team_code))
    ]
    rows = apply_two_plus_flags(game, rows)
    validator.validate(game, rows)
    return rows


def _row_signature(rows: Iterable[PeriodResult]):
    return sorted((r.team_code, r.period_number, r.period_type.value, r.period_outcome.value,
                   r.won_two_plus_reg_periods) for r in rows)


def is_stale(game: Game, period_results: List[PeriodResult]) -> bool:
    """True when the stored derived fields differ from a fresh derivation, or cannot be derived."""
    try:
        fresh = rederive_game(game, period_results)
    except ValidationError:
        return True
    return _row_signature(fresh) != _row_signature(period_results)


def games_needing_backfill(store: GameStore, season: Optional[str] = None) -> List[str]:
    """Ids of stored games with fewer than six period rows, in date order."""
    counts = store.period_row_counts()
    return [game_id for game_id in store.game_ids(season) if counts.get(game_id, 0) < MIN_PERIOD_ROWS]


def backfill(store: GameStore, season: Optional[str] = None, force: bool = False,
             fetch: Optional[Callable[[str], Dict[str, Any]]] = None, limit: Optional[int] = None,
             dry_run: bool = False, transformer: Optional[GameTransformer] = None) -> IngestSummary:
    """
    Rebuild period rows for stored games.

    Without `fetch`, rows are re-derived from the stored goal counts, which
    repairs stale outcomes and flags but cannot invent missing periods. With
    `fetch` (game id -> feed payload), each game is re-read from the feed.

    Args:
        store: Store to repair
        season: Only games of this season
        force: Rebuild every game, not only incomplete or stale ones
        fetch: Optional payload source, e.g. FeedCollector.fetch_landing
        limit: Process at most this many games
        dry_run: Do everything except writing to the store

    Returns:
        IngestSummary; rebuilt games count as updated
    """
    transformer = transformer or GameTransformer()
    summary = IngestSummary(dry_run=dry_run)

    if force:
        candidates = store.game_ids(season)
    else:
        incomplete = set(games_needing_backfill(store, season))
        candidates = [
            game_id for game_id in store.game_ids(season)
            if game_id in incomplete or is_stale(store.get_game(game_id), store.rows_for_game(game_id))
        ]
    if limit is not None:
        candidates = candidates[:limit]

    logger.info(f"Backfill: {len(candidates)} game(s) to process" + (f" in {season}" if season else ""))

    for game_id in candidates:
        summary.processed += 1
        game = store.get_game(game_id)
        try:
            if fetch is not None:
                record = parse_record(fetch(game_id))
                if not record.is_final:
                    summary.record_skip(game_id, f"not final ({record.game_state})")
                    continue
                transformed = transformer.transform(record)
                game, rows = transformed.game, transformed.period_results
            else:
                rows = rederive_game(game, store.rows_for_game(game_id), transformer.validator)

            if not dry_run:
                store.replace_game(game, rows)
            summary.updated += 1
        except (PeriodAnalyzerError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to backfill game {game_id}: {e}")
            summary.record_failure(game_id, e)

    logger.info(f"Backfill finished: {summary.updated} rebuilt, {summary.skipped} skipped, {summary.failed} failed")
    return summary
