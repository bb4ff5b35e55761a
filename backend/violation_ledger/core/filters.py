"""Violation filters and ordering.

A ``ViolationFilter`` combines optional constraints with AND logic; absent
fields impose no constraint. The same filter is turned into SQL conditions
for the relational adapter (``build_conditions``) and evaluated directly
against loaded records by the in-memory adapter (``matches``).

Location is a prefix match. SQL backends use a native ``LIKE 'value%'``.
The in-memory predicate reproduces the range form a document store without
prefix queries uses, ``value <= location <= value + PREFIX_SENTINEL``, where
the sentinel is U+F8FF, the highest code point of the BMP private-use area.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, field_validator
from sqlalchemy import ColumnElement, func, or_

from violation_ledger.models.enums import ViolationStatus
from violation_ledger.models.violation import Violation

PREFIX_SENTINEL = chr(0xF8FF)

# Statuses counted as open alerts on the patrol dashboard.
ACTIVE_STATUSES: Tuple[ViolationStatus, ...] = (
    ViolationStatus.ESCALATED,
    ViolationStatus.PENDING,
)

# Statuses shown on the live violations monitor.
LIVE_STATUSES: Tuple[ViolationStatus, ...] = (
    ViolationStatus.ESCALATED,
    ViolationStatus.WARNING_SENT,
    ViolationStatus.PENDING,
)


def normalize_plate(value: str) -> str:
    """Plate numbers are stored and compared trimmed and uppercased."""
    return value.strip().upper()


def status_value(status: Any) -> str:
    """Raw string value of a status, whether given as enum or string."""
    return getattr(status, "value", status)


def prefix_range(value: str) -> Tuple[str, str]:
    """Inclusive (low, high) bounds matching every string starting with ``value``."""
    return value, value + PREFIX_SENTINEL


class ViolationFilter(BaseModel):
    """Logical filter over violations.

    Attributes:
        status: A single status or a set of statuses to match.
        plate_number: Exact plate match (normalized before comparison).
        location: Location prefix.
        start_date: Inclusive lower bound on ``detected_at``.
        end_date: Inclusive upper bound on ``detected_at``.
        search: Case-insensitive text matched against plate, location and host name.
    """

    status: Optional[Union[ViolationStatus, List[ViolationStatus]]] = None
    plate_number: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = None

    @field_validator("plate_number")
    @classmethod
    def _normalize_plate(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return normalize_plate(value)

    @field_validator("location", "search")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def statuses(self) -> Optional[List[ViolationStatus]]:
        """The status constraint as a list, or None when unconstrained."""
        if self.status is None:
            return None
        if isinstance(self.status, list):
            return list(self.status)
        return [self.status]


def build_conditions(violation_filter: Optional[ViolationFilter]) -> List[ColumnElement[bool]]:
    """Translate a filter into SQLAlchemy conditions to be combined with AND."""
    conditions: List[ColumnElement[bool]] = []
    if violation_filter is None:
        return conditions

    statuses = violation_filter.statuses
    if statuses is not None:
        if len(statuses) == 1:
            conditions.append(Violation.status == statuses[0].value)
        else:
            conditions.append(Violation.status.in_([s.value for s in statuses]))

    if violation_filter.plate_number is not None:
        conditions.append(Violation.plate_number == violation_filter.plate_number)

    if violation_filter.location is not None:
        conditions.append(Violation.location.startswith(violation_filter.location, autoescape=True))

    if violation_filter.start_date is not None:
        conditions.append(Violation.detected_at >= violation_filter.start_date)

    if violation_filter.end_date is not None:
        conditions.append(Violation.detected_at <= violation_filter.end_date)

    if violation_filter.search is not None:
        term = violation_filter.search.strip().lower()
        conditions.append(
            or_(
                func.lower(Violation.plate_number).contains(term, autoescape=True),
                func.lower(Violation.location).contains(term, autoescape=True),
                func.lower(Violation.host_name).contains(term, autoescape=True),
            )
        )

    return conditions


def matches_search(violation: Any, search: str) -> bool:
    """Case-insensitive substring match on plate, location and host name."""
    term = search.strip().lower()
    if not term:
        return True
    fields = (violation.plate_number, violation.location, violation.host_name)
    return any(value and term in value.lower() for value in fields)


def matches(violation: Any, violation_filter: Optional[ViolationFilter]) -> bool:
    """Evaluate a filter against a single loaded violation."""
    if violation_filter is None:
        return True

    statuses = violation_filter.statuses
    if statuses is not None:
        if status_value(violation.status) not in {s.value for s in statuses}:
            return False

    if violation_filter.plate_number is not None:
        if violation.plate_number != violation_filter.plate_number:
            return False

    if violation_filter.location is not None:
        low, high = prefix_range(violation_filter.location)
        if not (low <= violation.location <= high):
            return False

    if violation_filter.start_date is not None and violation.detected_at < violation_filter.start_date:
        return False

    if violation_filter.end_date is not None and violation.detected_at > violation_filter.end_date:
        return False

    if violation_filter.search is not None and not matches_search(violation, violation_filter.search):
        return False

    return True


def apply_filter(violations: Iterable[Any], violation_filter: Optional[ViolationFilter]) -> List[Any]:
    """Return the violations matching the filter, in input order."""
    return [v for v in violations if matches(v, violation_filter)]


def sort_newest_first(violations: Iterable[Any]) -> List[Any]:
    """Order by ``detected_at`` descending; equal timestamps by id ascending."""
    ordered = sorted(violations, key=lambda v: v.id)
    ordered.sort(key=lambda v: v.detected_at, reverse=True)
    return ordered

