#!/usr/bin/env python3
"""
Reference team data for the period analyzer.
Ships the 32 NHL franchises and can load an override from a JSON file, either
a plain team list or an NHL standings payload.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from period_analyzer.errors import ValidationError
from period_analyzer.model.records import Team

logger = logging.getLogger(__name__)

# (code, name, division, conference)
NHL_TEAMS = [
    ('BOS', 'Boston Bruins', 'Atlantic', 'Eastern'),
    ('BUF', 'Buffalo Sabres', 'Atlantic', 'Eastern'),
    ('DET', 'Detroit Red Wings', 'Atlantic', 'Eastern'),
    ('FLA', 'Florida Panthers', 'Atlantic', 'Eastern'),
    ('MTL', 'Montreal Canadiens', 'Atlantic', 'Eastern'),
    ('OTT', 'Ottawa Senators', 'Atlantic', 'Eastern'),
    ('TBL', 'Tampa Bay Lightning', 'Atlantic', 'Eastern'),
    ('TOR', 'Toronto Maple Leafs', 'Atlantic', 'Eastern'),
    ('CAR', 'Carolina Hurricanes', 'Metropolitan', 'Eastern'),
    ('CBJ', 'Columbus Blue Jackets', 'Metropolitan', 'Eastern'),
    ('NJD', 'New Jersey Devils', 'Metropolitan', 'Eastern'),
    ('NYI', 'New York Islanders', 'Metropolitan', 'Eastern'),
    ('NYR', 'New York Rangers', 'Metropolitan', 'Eastern'),
    ('PHI', 'Philadelphia Flyers', 'Metropolitan', 'Eastern'),
    ('PIT', 'Pittsburgh Penguins', 'Metropolitan', 'Eastern'),
    ('WSH', 'Washington Capitals', 'Metropolitan', 'Eastern'),
    ('UTA', 'Utah Hockey Club', 'Central', 'Western'),
    ('CHI', 'Chicago Blackhawks', 'Central', 'Western'),
    ('COL', 'Colorado Avalanche', 'Central', 'Western'),
    ('DAL', 'Dallas Stars', 'Central', 'Western'),
    ('MIN', 'Minnesota Wild', 'Central', 'Western'),
    ('NSH', 'Nashville Predators', 'Central', 'Western'),
    ('STL', 'St. Louis Blues', 'Central', 'Western'),
    ('WPG', 'Winnipeg Jets', 'Central', 'Western'),
    ('ANA', 'Anaheim Ducks', 'Pacific', 'Western'),
    ('CGY', 'Calgary Flames', 'Pacific', 'Western'),
    ('EDM', 'Edmonton Oilers', 'Pacific', 'Western'),
    ('LAK', 'Los Angeles Kings', 'Pacific', 'Western'),
    ('SEA', 'Seattle Kraken', 'Pacific', 'Western'),
    ('SJS', 'San Jose Sharks', 'Pacific', 'Western'),
    ('VAN', 'Vancouver Canucks', 'Pacific', 'Western'),
    ('VGK', 'Vegas Golden Knights', 'Pacific', 'Western'),
]


def default_teams() -> List[Team]:
    return [Team(code=code, name=name, division=division, conference=conference)
            for code, name, division, conference in NHL_TEAMS]


class ReferenceDataLoader:
    """
    Loads team reference data.
    """

    def __init__(self, teams_path: Optional[str] = None):
        """
        Initialize the reference data loader.

        Args:
            teams_path: Optional JSON file; the built-in NHL list is used otherwise
        """
        self.teams_path = Path(teams_path) if teams_path else None
        self.teams: Dict[str, Team] = {}
        self._load_teams()

    def _load_teams(self):
        if self.teams_path is None:
            self.teams = {team.code: team for team in default_teams()}
            return

        if not self.teams_path.exists():
            logger.warning(f"Teams file not found: {self.teams_path}, using built-in NHL teams")
            self.teams = {team.code: team for team in default_teams()}
            return

        with open(self.teams_path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        entries = self._standings_entries(data) if isinstance(data, dict) and 'standings' in data else data
        try:
            teams = [Team.model_validate(entry) for entry in entries]
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e, subject=str(self.teams_path))

        self.teams = {team.code: team for team in teams}
        logger.info(f"Loaded {len(self.teams)} teams from {self.teams_path}")

    def _standings_entries(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Extract team info from an NHL standings payload."""
        entries = []
        for team_data in data.get('standings', []):
            code = team_data.get('teamAbbrev', {}).get('default')
            if not code:
                continue
            entries.append({
                'code': code,
                'name': team_data.get('teamName', {}).get('default', code),
                'division': team_data.get('divisionName'),
                'conference': team_data.get('conferenceName'),
            })
        return entries

    def get_team(self, code: str) -> Optional[Team]:
        return self.teams.get(code)

    def team_codes(self) -> List[str]:
        return sorted(self.teams)
