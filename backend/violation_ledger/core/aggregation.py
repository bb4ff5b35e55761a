"""Aggregations over violation snapshots.

These operate on already-fetched violations (a list result or one payload
of a live feed) and never touch storage.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Mapping

from violation_ledger.core.filters import status_value
from violation_ledger.models.enums import ViolationStatus

# Section order on the live violations monitor.
SECTION_ORDER = (
    ViolationStatus.ESCALATED,
    ViolationStatus.WARNING_SENT,
    ViolationStatus.PENDING,
)

SECTION_LABELS: Dict[ViolationStatus, str] = {
    ViolationStatus.ESCALATED: "Escalated",
    ViolationStatus.WARNING_SENT: "Warning Sent",
    ViolationStatus.PENDING: "Pending",
}

DEFAULT_MIN_COUNT = 2


@dataclass
class ViolationSection:
    """A titled group of violations sharing one status."""
    status: ViolationStatus
    title: str
    violations: List[Any] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.violations)


@dataclass
class OffenderGroup:
    """All violations recorded against one plate."""
    plate_number: str
    violations: List[Any]
    count: int
    latest_violation: Any


def group_by_status(violations: Iterable[Any]) -> List[ViolationSection]:
    """Group violations into escalated, warning-sent and pending sections.

    Sections come out in that fixed order, empty ones are omitted, and each
    title carries its member count, e.g. ``"Escalated (3)"``. Members keep
    their input order. Violations in any other status are not shown.
    """
    groups: Dict[str, List[Any]] = {}
    for violation in violations:
        groups.setdefault(status_value(violation.status), []).append(violation)

    sections: List[ViolationSection] = []
    for status in SECTION_ORDER:
        members = groups.get(status.value)
        if members:
            sections.append(
                ViolationSection(
                    status=status,
                    title=f"{SECTION_LABELS[status]} ({len(members)})",
                    violations=members,
                )
            )
    return sections


def repeat_offenders(
    violations: Iterable[Any],
    min_count: int = DEFAULT_MIN_COUNT,
) -> Dict[str, List[Any]]:
    """Map plate number to its violations for plates with at least ``min_count``.

    Plates appear in order of first occurrence; no other sorting is done.
    """
    by_plate: Dict[str, List[Any]] = {}
    for violation in violations:
        by_plate.setdefault(violation.plate_number, []).append(violation)

    return {
        plate: plate_violations
        for plate, plate_violations in by_plate.items()
        if len(plate_violations) >= min_count
    }


def offender_groups(offenders: Mapping[str, List[Any]]) -> List[OffenderGroup]:
    """Wrap a repeat-offender mapping with counts and the most recent violation."""
    groups = []
    for plate, plate_violations in offenders.items():
        latest = max(plate_violations, key=lambda v: v.detected_at)
        groups.append(
            OffenderGroup(
                plate_number=plate,
                violations=list(plate_violations),
                count=len(plate_violations),
                latest_violation=latest,
            )
        )
    return groups


def sort_offenders(
    groups: Iterable[OffenderGroup],
    by: Literal["count", "recent"] = "count",
) -> List[OffenderGroup]:
    """Sort offender groups by violation count or by most recent violation, descending."""
    if by == "count":
        return sorted(groups, key=lambda g: g.count, reverse=True)
    if by == "recent":
        return sorted(groups, key=lambda g: g.latest_violation.detected_at, reverse=True)
    raise ValueError(f"Unknown sort key '{by}'")


def offender_severity(count: int) -> str:
    if count >= 5:
        return "high"
    if count >= 3:
        return "medium"
    return "low"


def count_by_status(violations: Iterable[Any]) -> Dict[str, int]:
    """Count violations per status; every known status is present in the result."""
    counts = {status.value: 0 for status in ViolationStatus}
    for violation in violations:
        value = status_value(violation.status)
        counts[value] = counts.get(value, 0) + 1
    return counts
