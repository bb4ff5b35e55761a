"""Violation repository interface.

Every storage backend implements ``ViolationRepository``. Callers receive
plain results or one of the ``violation_ledger.core.errors`` exceptions;
nothing is retried.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from violation_ledger.core.errors import NotAuthenticatedError, ValidationError
from violation_ledger.core.filters import ACTIVE_STATUSES, ViolationFilter, normalize_plate
from violation_ledger.core.lifecycle import StatusLike, reject_reserved_fields
from violation_ledger.models.status_change import StatusChange
from violation_ledger.models.violation import VIOLATION_COLUMNS, Violation
from violation_ledger.services.identity import Actor
from violation_ledger.services.subscriptions import ErrorCallback, Subscription


class ViolationCreate(BaseModel):
    """Fields supplied by the reporting officer when logging a violation."""

    plate_number: str = Field(..., max_length=32, description="Vehicle plate number")
    location: str = Field(..., max_length=255, description="Where the violation was observed")
    violation_type: Optional[str] = Field(None, max_length=100)
    gps_id: Optional[str] = Field(None, max_length=100)
    geofence_zone: Optional[str] = Field(None, max_length=100)
    host_id: Optional[str] = Field(None, max_length=255)
    host_name: Optional[str] = Field(None, max_length=255)
    host_phone: Optional[str] = Field(None, max_length=50)
    photo_url: Optional[str] = None
    notes: Optional[str] = None


class ViolationPatch(BaseModel):
    """Columns a status update may write alongside the new status."""

    model_config = ConfigDict(extra="forbid")

    plate_number: Optional[str] = Field(None, min_length=1, max_length=32)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    violation_type: Optional[str] = Field(None, max_length=100)
    gps_id: Optional[str] = Field(None, max_length=100)
    geofence_zone: Optional[str] = Field(None, max_length=100)
    host_id: Optional[str] = Field(None, max_length=255)
    host_name: Optional[str] = Field(None, max_length=255)
    host_phone: Optional[str] = Field(None, max_length=50)
    photo_url: Optional[str] = None
    notes: Optional[str] = None
    warning_sent_at: Optional[datetime] = None
    escalated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    ticket_issued: Optional[bool] = None

    @field_validator("location", "ticket_issued")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may not be null")
        return value

    @field_validator("plate_number")
    @classmethod
    def _normalize_plate(cls, value: Optional[str]) -> str:
        plate = normalize_plate(value) if value is not None else ""
        if not plate:
            raise ValueError("plate number may not be blank")
        return plate

    @field_validator("warning_sent_at", "escalated_at", "resolved_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def prepare_violation_fields(fields: ViolationCreate, actor: Optional[Actor]) -> Dict[str, Any]:
    """Validate and normalize creation fields into column values.

    Status, timestamps and the ticket flag are left to the adapter.

    Raises:
        NotAuthenticatedError: If there is no actor.
        ValidationError: If plate number or location is blank.
    """
    if actor is None:
        raise NotAuthenticatedError("User not authenticated")

    plate_number = normalize_plate(fields.plate_number)
    if not plate_number:
        raise ValidationError("Plate number is required")

    location = fields.location.strip()
    if not location:
        raise ValidationError("Location is required")

    return {
        "plate_number": plate_number,
        "location": location,
        "violation_type": _clean(fields.violation_type),
        "gps_id": _clean(fields.gps_id),
        "geofence_zone": _clean(fields.geofence_zone),
        "host_id": _clean(fields.host_id),
        "host_name": _clean(fields.host_name),
        "host_phone": _clean(fields.host_phone),
        "photo_url": fields.photo_url or None,
        "notes": _clean(fields.notes),
        "created_by": actor.uid,
    }


def prepare_extra_fields(extra_fields: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Check extra status-update fields and coerce them to column types.

    Raises:
        ValidationError: If a field is reserved, unknown or has a bad value.
    """
    if not extra_fields:
        return {}

    reject_reserved_fields(extra_fields)

    unknown = sorted(set(extra_fields) - VIOLATION_COLUMNS)
    if unknown:
        raise ValidationError(f"Unknown violation field(s): {', '.join(unknown)}")

    try:
        patch = ViolationPatch.model_validate(dict(extra_fields))
    except PydanticValidationError as e:
        invalid = sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]})
        raise ValidationError(f"Invalid value for field(s): {', '.join(invalid)}") from None

    return patch.model_dump(exclude_unset=True)


class ViolationRepository(ABC):
    """Abstract storage contract for violations."""

    @abstractmethod
    async def create(self, fields: ViolationCreate, actor: Optional[Actor]) -> uuid.UUID:
        """Persist a new pending violation and return its id.

        The plate is normalized, ``detected_at`` is stamped with the current
        time, status is ``pending`` and ``ticket_issued`` is False.

        Raises:
            NotAuthenticatedError: If ``actor`` is None.
            ValidationError: If plate number or location is blank.
            BackendUnavailableError: If storage fails.
        """

    @abstractmethod
    async def get_by_id(self, violation_id: uuid.UUID) -> Optional[Violation]:
        """Return the violation, or None when no such id exists."""

    @abstractmethod
    async def list(self, violation_filter: Optional[ViolationFilter] = None) -> List[Violation]:
        """Point-in-time read of matching violations, newest ``detected_at`` first.

        Equal timestamps are ordered by id ascending.
        """

    @abstractmethod
    async def update_status(
        self,
        violation_id: uuid.UUID,
        status: StatusLike,
        extra_fields: Optional[Mapping[str, Any]] = None,
        actor: Optional[Actor] = None,
    ) -> None:
        """Move a violation to ``status``, stamping its transition timestamp.

        Raises:
            NotFoundError: If the violation does not exist.
            ValidationError: If the status or extra fields are rejected.
            BackendUnavailableError: If storage fails.
        """

    @abstractmethod
    async def history(self, violation_id: uuid.UUID) -> List[StatusChange]:
        """Status changes recorded for a violation, newest first."""

    @abstractmethod
    def subscribe(
        self,
        violation_filter: Optional[ViolationFilter],
        on_change: Callable[[List[Violation]], Any],
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Deliver the full matching set, ordered like ``list``, on every change."""

    def subscribe_active_count(
        self,
        on_change: Callable[[int], Any],
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Deliver the number of escalated and pending violations on every change."""
        active = ViolationFilter(status=list(ACTIVE_STATUSES))
        return self.subscribe(
            active,
            lambda violations: on_change(len(violations)),
            on_error,
        )
