"""Violation lifecycle engine.

Storage-independent logic: the status state machine, filter predicates,
aggregations over violation snapshots, and derived time values.
"""

from violation_ledger.core.aggregation import (
    OffenderGroup,
    ViolationSection,
    group_by_status,
    repeat_offenders,
)
from violation_ledger.core.errors import (
    BackendUnavailableError,
    InvalidTransitionError,
    LedgerError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationError,
)
from violation_ledger.core.filters import ViolationFilter, normalize_plate
from violation_ledger.core.lifecycle import apply_transition
from violation_ledger.core.timing import elapsed_since, remaining_window

__all__ = [
    "apply_transition",
    "ViolationFilter",
    "normalize_plate",
    "group_by_status",
    "repeat_offenders",
    "ViolationSection",
    "OffenderGroup",
    "elapsed_since",
    "remaining_window",
    "LedgerError",
    "NotAuthenticatedError",
    "NotFoundError",
    "BackendUnavailableError",
    "ValidationError",
    "InvalidTransitionError",
]
