#!/usr/bin/env python3
"""
Error Types for the NHL Period Analyzer
=======================================

Failure kinds reaching callers of the engine:

- ValidationError: malformed or inconsistent input. Every violation found is
  collected, never just the first.
- DataInconsistencyError: persisted data breaks a domain rule (a game that
  resolves to a tie, disagreeing flags on one team's rows, ...).
- EmptyResultError: a query scope matched nothing. Reported separately from
  storage failures so callers can suggest loosening filters.
- FeedError: the NHL web API could not deliver a payload.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Violation:
    """A single failed check."""
    field: str
    message: str
    expected: Optional[Any] = None
    actual: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class PeriodAnalyzerError(Exception):
    """Base class for all engine errors."""

    error_type = "PERIOD_ANALYZER_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.error_type, 'message': str(self)}


class ValidationError(PeriodAnalyzerError):
    """Raised with the complete list of violations for one input."""

    error_type = "VALIDATION_ERROR"

    def __init__(self, violations: List[Violation], subject: Optional[str] = None):
        self.violations = list(violations)
        self.subject = subject
        prefix = f"Validation failed for {subject}" if subject else "Validation failed"
        super().__init__(f"{prefix}: " + "; ".join(str(v) for v in self.violations))

    @property
    def messages(self) -> List[str]:
        return [str(v) for v in self.violations]

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['violations'] = [v.to_dict() for v in self.violations]
        return result

    @classmethod
    def from_pydantic(cls, error, subject: Optional[str] = None) -> "ValidationError":
        """Translate a pydantic ValidationError into one violation per error entry."""
        violations = []
        for entry in error.errors():
            field = ".".join(str(part) for part in entry.get('loc', ())) or "__root__"
            violations.append(Violation(
                field=field,
                message=entry.get('msg', 'invalid value'),
                expected=entry.get('type'),
                actual=entry.get('input'),
            ))
        return cls(violations, subject=subject)


class DataInconsistencyError(PeriodAnalyzerError):
    """Raised when stored records contradict the data-model invariants."""

    error_type = "DATA_INCONSISTENCY"

    def __init__(self, message: str, game_id: Optional[str] = None, team_code: Optional[str] = None):
        self.game_id = game_id
        self.team_code = team_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['game_id'] = self.game_id
        result['team_code'] = self.team_code
        return result


class EmptyResultError(PeriodAnalyzerError):
    """Raised when a scope matches no rows."""

    error_type = "EMPTY_RESULT"

    def __init__(self, message: str, suggestion: str = "Try loosening the filters (team, season or date range)."):
        self.suggestion = suggestion
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['suggestion'] = self.suggestion
        return result


class FeedError(PeriodAnalyzerError):
    """Raised when the NHL web API cannot be reached or answers with an error."""

    error_type = "FEED_ERROR"

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['url'] = self.url
        result['status_code'] = self.status_code
        return result
