"""Violation status state machine.

A violation starts out ``pending``. A patrol officer may send the host a
warning (``warning_sent``), escalate the case (``escalated``) and finally
close it, either because the host complied (``host_complied``) or because it
was resolved manually or by issuing a ticket (``resolved``). ``resolved`` is
also reachable straight from ``pending``.

Each transition stamps exactly one timestamp column on the violation. The
adjacency table below documents the lifecycle; it is only enforced when the
caller asks for it, otherwise any status may be written at any time.
"""

from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union

from violation_ledger.core.errors import InvalidTransitionError, ValidationError
from violation_ledger.models.enums import ViolationStatus

StatusLike = Union[ViolationStatus, str]


TIMESTAMP_FIELDS: Dict[ViolationStatus, str] = {
    ViolationStatus.WARNING_SENT: "warning_sent_at",
    ViolationStatus.ESCALATED: "escalated_at",
    ViolationStatus.RESOLVED: "resolved_at",
    ViolationStatus.HOST_COMPLIED: "resolved_at",
}

ALLOWED_TRANSITIONS: Dict[ViolationStatus, FrozenSet[ViolationStatus]] = {
    ViolationStatus.PENDING: frozenset({ViolationStatus.WARNING_SENT, ViolationStatus.RESOLVED}),
    ViolationStatus.WARNING_SENT: frozenset({ViolationStatus.ESCALATED}),
    ViolationStatus.ESCALATED: frozenset({ViolationStatus.RESOLVED, ViolationStatus.HOST_COMPLIED}),
    ViolationStatus.RESOLVED: frozenset(),
    ViolationStatus.HOST_COMPLIED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[ViolationStatus] = frozenset(
    {ViolationStatus.RESOLVED, ViolationStatus.HOST_COMPLIED}
)

# Set once on creation; a status update may never overwrite these.
IMMUTABLE_FIELDS: FrozenSet[str] = frozenset({"id", "detected_at", "created_by"})

# Written by the transition itself; extra fields may not override them.
RESERVED_FIELDS: FrozenSet[str] = IMMUTABLE_FIELDS | {"status"}


def reject_reserved_fields(extra_fields: Optional[Mapping[str, Any]]) -> None:
    """Raise ValidationError if ``extra_fields`` names a reserved column."""
    if not extra_fields:
        return
    locked = sorted(RESERVED_FIELDS.intersection(extra_fields))
    if locked:
        raise ValidationError(f"Field(s) cannot be changed: {', '.join(locked)}")


def parse_status(value: StatusLike) -> ViolationStatus:
    """Coerce a raw status value into a ViolationStatus.

    Raises:
        ValidationError: If the value is not a known status.
    """
    if isinstance(value, ViolationStatus):
        return value
    try:
        return ViolationStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in ViolationStatus)
        raise ValidationError(
            f"Invalid status '{value}'. Valid values are: {valid}"
        ) from None


def timestamp_field_for(status: StatusLike) -> Optional[str]:
    """Name of the timestamp column a transition into ``status`` stamps."""
    return TIMESTAMP_FIELDS.get(parse_status(status))


def is_terminal(status: StatusLike) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def can_transition(current: StatusLike, new: StatusLike) -> bool:
    """Whether ``current -> new`` is an edge of the documented lifecycle."""
    return parse_status(new) in ALLOWED_TRANSITIONS[parse_status(current)]


def apply_transition(
    violation: Any,
    new_status: StatusLike,
    extra_fields: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
    enforce: bool = False,
) -> Dict[str, Any]:
    """Build the update payload for moving a violation to ``new_status``.

    The payload always carries the new ``status`` plus the single timestamp
    column associated with it (``pending`` stamps nothing). Other timestamp
    columns are left out so the stored values are untouched. ``extra_fields``
    are merged last, verbatim.

    Args:
        violation: The current violation; only its ``status`` is read.
        new_status: Target status.
        extra_fields: Additional columns to write, e.g. ``{"ticket_issued": True}``.
        now: Time to stamp with (defaults to the current UTC time).
        enforce: Reject transitions that are not in ALLOWED_TRANSITIONS.

    Returns:
        Mapping of column name to new value.

    Raises:
        ValidationError: If the status is unknown or ``extra_fields`` names
            ``status`` or an immutable field.
        InvalidTransitionError: If ``enforce`` is set and the move is not allowed.
    """
    target = parse_status(new_status)

    if enforce:
        current = parse_status(violation.status)
        if not can_transition(current, target):
            raise InvalidTransitionError(
                f"Cannot move violation from '{current.value}' to '{target.value}'"
            )

    reject_reserved_fields(extra_fields)

    payload: Dict[str, Any] = {"status": target.value}

    timestamp_field = TIMESTAMP_FIELDS.get(target)
    if timestamp_field is not None:
        payload[timestamp_field] = now or datetime.now(timezone.utc)

    if extra_fields:
        payload.update(extra_fields)

    return payload
