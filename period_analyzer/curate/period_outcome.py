#!/usr/bin/env python3
"""
Period Outcome Calculation
==========================

Turns one team's goal counts for one period into WIN/LOSS/TIE, and derives the
per-team-per-game "won two or more regulation periods" flag.

Empty-net goals are removed from the scoring team's total in the third period
only; the opponent's total is never adjusted.
"""

from typing import Iterable, Tuple

from period_analyzer.model.records import PeriodOutcome, PeriodResult


EMPTY_NET_EXCLUSION_PERIOD = 3
TWO_PLUS_THRESHOLD = 2


def calculate_period_outcome(period_number: int, goals_for: int, goals_against: int,
                             empty_net_goals: int = 0) -> PeriodOutcome:
    """
    Classify a period from one team's perspective.

    Args:
        period_number: 1-3 regulation, 4 overtime, 5 shootout
        goals_for: Goals scored by the team
        goals_against: Goals scored by the opponent
        empty_net_goals: Empty-net goals included in goals_for

    Returns:
        PeriodOutcome.WIN, LOSS or TIE
    """
    adjusted_for = goals_for
    if period_number == EMPTY_NET_EXCLUSION_PERIOD:
        adjusted_for = goals_for - empty_net_goals

    if adjusted_for > goals_against:
        return PeriodOutcome.WIN
    if adjusted_for < goals_against:
        return PeriodOutcome.LOSS
    return PeriodOutcome.TIE


def count_regulation_wins(periods: Iterable[Tuple[int, PeriodOutcome]]) -> int:
    """Number of (period_number, outcome) pairs that are regulation wins."""
    return sum(1 for number, outcome in periods if number <= 3 and outcome == PeriodOutcome.WIN)


def won_two_plus_reg_periods(periods: Iterable[Tuple[int, PeriodOutcome]]) -> bool:
    """True when at least two of periods 1-3 were won."""
    return count_regulation_wins(periods) >= TWO_PLUS_THRESHOLD


def regulation_wins_for_rows(rows: Iterable[PeriodResult]) -> int:
    return count_regulation_wins((row.period_number, row.period_outcome) for row in rows)
