"""TypedDicts for the JSON shapes exchanged with the records API."""

from __future__ import annotations

from typing import Literal, NotRequired, TypedDict

RecordType = Literal["false_positive", "threat"]
Severity = Literal["low", "medium", "high", "critical"]

VALID_RECORD_TYPES: frozenset[str] = frozenset({"false_positive", "threat"})
VALID_SEVERITIES: frozenset[str] = frozenset({"low", "medium", "high", "critical"})


class SecurityRecord(TypedDict):
    """One entry in a day's log. The store persists it verbatim."""

    id: str
    type: RecordType
    title: str
    description: str
    timestamp: str
    severity: NotRequired[Severity]


MonthSummary = dict[str, int]
