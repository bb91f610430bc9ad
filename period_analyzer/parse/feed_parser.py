#!/usr/bin/env python3
"""
NHL Feed Parser
===============

Turns external game payloads into RawGameRecord objects for the game
transformer. Two payload shapes are understood:

- the NHL web API gamecenter "landing" document (api-web.nhle.com)
- the legacy statsapi game feed (gameData / liveData)

Nothing here decides period outcomes; the parser only reports goal totals
per period and which goals went into an empty net.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from period_analyzer.errors import ValidationError, Violation
from period_analyzer.model.raw_game import RawGameRecord
from period_analyzer.model.records import GameType, SHOOTOUT_PERIOD

logger = logging.getLogger(__name__)

GAME_TYPE_CODES = {
    1: GameType.PRESEASON,
    2: GameType.REGULAR,
    3: GameType.PLAYOFF,
    4: GameType.ALL_STAR,
    'PR': GameType.PRESEASON,
    'R': GameType.REGULAR,
    'P': GameType.PLAYOFF,
    'A': GameType.ALL_STAR,
}

EMPTY_NET_MODIFIER = "empty-net"
LEGACY_FINAL_STATES = {"FINAL", "GAME OVER"}
SHOOTOUT_PERIOD_TYPES = {"SO", "SHOOTOUT"}


def format_season(season: Any) -> str:
    """
    Convert an NHL season id to YYYY-YYYY.

    Args:
        season: 20242025, "20242025" or an already formatted "2024-2025"

    Returns:
        Season string; unrecognised values are returned unchanged for the validator to reject
    """
    text = str(season).strip()
    if len(text) == 8 and text.isdigit():
        return f"{text[:4]}-{text[4:]}"
    return text


def map_game_type(code: Any) -> GameType:
    """Map numeric (1-4) or letter (PR/R/P/A) game type codes."""
    if code is None:
        return GameType.REGULAR
    if isinstance(code, str):
        key = code.strip().upper()
        if key.isdigit():
            key = int(key)
    else:
        key = int(code)
    try:
        return GAME_TYPE_CODES[key]
    except KeyError:
        raise ValidationError([Violation('game_type', 'Unknown game type code',
                                         expected=sorted(str(k) for k in GAME_TYPE_CODES), actual=code)])


def extract_date(value: Optional[str]) -> str:
    """'2025-01-15T00:00:00Z' -> '2025-01-15'."""
    if not value:
        return ""
    return str(value).split('T')[0]


def _abbrev(value: Any) -> Optional[str]:
    """Team abbreviations appear both as plain strings and as {"default": ...}."""
    if isinstance(value, dict):
        return value.get('default')
    return value


def _reject_extra_overtimes(game_id: str, periods: List[Dict[str, Any]]) -> None:
    """
    Period 5 is reserved for the shootout. A game that needed a second
    overtime (playoffs) cannot be represented and is rejected by name rather
    than stored with its second overtime posing as a shootout.
    """
    extra = [p['number'] for p in periods
             if p['number'] >= SHOOTOUT_PERIOD
             and str(p.get('period_type') or '').upper() not in SHOOTOUT_PERIOD_TYPES]
    if extra:
        logger.warning(f"Game {game_id}: multiple overtime periods ({extra}), game skipped")
        raise ValidationError([Violation('periods', 'Games with more than one overtime period are not supported',
                                         expected='at most one overtime period', actual=extra)],
                              subject=f"feed game {game_id}")


def _build_record(fields: Dict[str, Any]) -> RawGameRecord:
    try:
        return RawGameRecord.model_validate(fields)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, subject=f"feed game {fields.get('game_id')}")


def parse_landing(payload: Dict[str, Any]) -> RawGameRecord:
    """
    Parse an NHL web API gamecenter landing document.

    Period totals come from summary.scoring; each goal is credited by its
    isHome flag. Goals with goalModifier "empty-net" are recorded as empty-net
    goals. Shootout attempts in summary.shootout with a "goal" result are
    counted as period 5 goals.

    Args:
        payload: Decoded landing JSON

    Returns:
        RawGameRecord for the game
    """
    home = _abbrev(payload.get('homeTeam', {}).get('abbrev'))
    away = _abbrev(payload.get('awayTeam', {}).get('abbrev'))
    game_id = str(payload.get('id', ''))
    summary = payload.get('summary') or {}

    totals = {}
    period_types = {}
    empty_net = []

    for period in summary.get('scoring', []):
        descriptor = period.get('periodDescriptor', {})
        number = descriptor.get('number')
        if number is None:
            continue
        totals.setdefault(number, {'home': 0, 'away': 0})
        period_types[number] = descriptor.get('periodType')

        for goal in period.get('goals', []):
            side = 'home' if goal.get('isHome') else 'away'
            totals[number][side] += 1
            if goal.get('goalModifier') == EMPTY_NET_MODIFIER:
                empty_net.append({'period': number,
                                  'team_code': _abbrev(goal.get('teamAbbrev')) or (home if side == 'home' else away)})

    shootout = summary.get('shootout') or []
    if shootout:
        # Attempts supersede whatever the scoring summary lists for period 5
        totals[SHOOTOUT_PERIOD] = {'home': 0, 'away': 0}
        period_types[SHOOTOUT_PERIOD] = 'SO'
        for attempt in shootout:
            if str(attempt.get('result', '')).lower() != 'goal':
                continue
            team = _abbrev(attempt.get('teamAbbrev'))
            if team == home:
                totals[SHOOTOUT_PERIOD]['home'] += 1
            elif team == away:
                totals[SHOOTOUT_PERIOD]['away'] += 1
            else:
                logger.warning(f"Game {game_id}: shootout attempt by unknown team {team}")

    # Regulation periods are always played in a finished game, even scoreless ones
    for number in (1, 2, 3):
        totals.setdefault(number, {'home': 0, 'away': 0})

    periods = [
        {'number': number, 'home_goals': goals['home'], 'away_goals': goals['away'],
         'period_type': period_types.get(number)}
        for number, goals in sorted(totals.items())
    ]
    _reject_extra_overtimes(game_id, periods)

    logger.debug(f"Parsed landing for game {game_id}: {len(periods)} periods, {len(empty_net)} empty-net goals")
    return _build_record({
        'game_id': game_id,
        'date': extract_date(payload.get('gameDate') or payload.get('startTimeUTC')),
        'season': format_season(payload.get('season', '')),
        'game_type': map_game_type(payload.get('gameType')),
        'home_team_code': home,
        'away_team_code': away,
        'periods': periods,
        'empty_net_goals': empty_net,
        'game_state': payload.get('gameState'),
    })


def _is_goal(play: Dict[str, Any]) -> bool:
    result = play.get('result', {})
    return result.get('eventTypeId') == 'GOAL' or str(result.get('event', '')).lower() == 'goal'


def _periods_from_goal_plays(plays: List[Dict[str, Any]], home_id: Any, away_id: Any) -> List[Dict[str, Any]]:
    """Rebuild period totals from goal plays; always at least three periods."""
    home_goals = Counter()
    away_goals = Counter()
    period_types = {}
    for play in plays:
        if not _is_goal(play):
            continue
        about = play.get('about', {})
        number = about.get('period')
        if number is None:
            continue
        period_types.setdefault(number, about.get('periodType'))
        team_id = (play.get('team') or {}).get('id')
        if team_id == home_id:
            home_goals[number] += 1
        elif team_id == away_id:
            away_goals[number] += 1

    last_period = max([3] + list(period_types))
    return [
        {'number': number, 'home_goals': home_goals[number], 'away_goals': away_goals[number],
         'period_type': period_types.get(number)}
        for number in range(1, last_period + 1)
    ]


def parse_game_feed(payload: Dict[str, Any]) -> RawGameRecord:
    """
    Parse a legacy statsapi game feed.

    Period totals come from liveData.linescore.periods. When the linescore
    carries no periods, totals are reconstructed from the goal plays. A
    shootout (linescore.hasShootout) becomes period 5 with the made attempts
    from linescore.shootoutInfo. Empty-net goals are the goal plays flagged result.emptyNet.
    """
    game_data = payload.get('gameData', {})
    live_data = payload.get('liveData', {})
    linescore = live_data.get('linescore', {})
    plays = live_data.get('plays', {}).get('allPlays', [])

    home_team = linescore.get('teams', {}).get('home', {}).get('team') or game_data.get('teams', {}).get('home', {}).get('team', {})
    away_team = linescore.get('teams', {}).get('away', {}).get('team') or game_data.get('teams', {}).get('away', {}).get('team', {})
    home, away = home_team.get('abbreviation'), away_team.get('abbreviation')
    home_id, away_id = home_team.get('id'), away_team.get('id')
    game_id = str(game_data.get('gamePk') or payload.get('gamePk', ''))

    if linescore.get('periods'):
        periods = [
            {'number': period['num'], 'home_goals': period['home']['goals'],
             'away_goals': period['away']['goals'], 'period_type': period.get('periodType')}
            for period in linescore['periods']
        ]
    else:
        logger.info(f"Game {game_id}: linescore has no periods, rebuilding from goal plays")
        periods = _periods_from_goal_plays(plays, home_id, away_id)

    # The shootout is reported beside the linescore periods, never among them
    if linescore.get('hasShootout') and all(p['number'] != SHOOTOUT_PERIOD for p in periods):
        shootout_info = linescore.get('shootoutInfo', {})
        periods.append({'number': SHOOTOUT_PERIOD,
                        'home_goals': shootout_info.get('home', {}).get('scores', 0),
                        'away_goals': shootout_info.get('away', {}).get('scores', 0),
                        'period_type': 'SO'})
    _reject_extra_overtimes(game_id, periods)

    empty_net = []
    for play in plays:
        if not _is_goal(play) or play.get('result', {}).get('emptyNet') is not True:
            continue
        team_id = (play.get('team') or {}).get('id')
        team_code = home if team_id == home_id else away if team_id == away_id else (play.get('team') or {}).get('triCode')
        empty_net.append({'period': play.get('about', {}).get('period'), 'team_code': team_code})

    status = game_data.get('status', {}).get('abstractGameState')
    state = None
    if status is not None:
        state = 'FINAL' if status.upper() in LEGACY_FINAL_STATES else status.upper()

    return _build_record({
        'game_id': game_id,
        'date': extract_date(game_data.get('gameDate') or game_data.get('datetime', {}).get('dateTime')),
        'season': format_season(game_data.get('season', '')),
        'game_type': map_game_type(game_data.get('gameType')),
        'home_team_code': home,
        'away_team_code': away,
        'periods': periods,
        'empty_net_goals': empty_net,
        'game_state': state,
    })


def parse_record(payload: Dict[str, Any]) -> RawGameRecord:
    """
    Parse any supported payload.

    Dispatches on shape: landing documents have "summary"/"homeTeam", legacy
    feeds have "liveData", and anything else is taken to already be in the
    RawGameRecord shape.
    """
    if 'liveData' in payload or 'gameData' in payload:
        return parse_game_feed(payload)
    if 'homeTeam' in payload and 'awayTeam' in payload:
        return parse_landing(payload)
    return _build_record(payload)
