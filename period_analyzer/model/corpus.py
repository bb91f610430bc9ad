#!/usr/bin/env python3
"""
Corpus container handed from the store to the aggregation functions.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from period_analyzer.model.records import Game, PeriodResult, Team


@dataclass
class Corpus:
    """Already-fetched teams, games and period rows for one scope."""
    teams: List[Team] = field(default_factory=list)
    games: List[Game] = field(default_factory=list)
    period_results: List[PeriodResult] = field(default_factory=list)

    def rows_by_game(self) -> Dict[str, List[PeriodResult]]:
        grouped = defaultdict(list)
        for row in self.period_results:
            grouped[row.game_id].append(row)
        return dict(grouped)

    def team(self, code: str) -> Optional[Team]:
        for team in self.teams:
            if team.code == code:
                return team
        return None
