"""Violation model for storing logged parking/access violations."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, String, Text, Uuid, inspect
from sqlalchemy.orm import Mapped, mapped_column

from violation_ledger.database import Base
from violation_ledger.models.enums import ViolationStatus
from violation_ledger.models.types import UTCDateTime, utcnow


class Violation(Base):
    """SQLAlchemy model for violations.

    A violation is logged by a patrol officer against a plate number and
    moves through the status lifecycle (pending, warning_sent, escalated,
    resolved/host_complied). Each transition stamps its own timestamp
    column; ``detected_at`` is set once on creation and never changes.
    """
    __tablename__ = "violations"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    plate_number: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        index=True,
    )
    location: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    gps_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    geofence_zone: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ViolationStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    detected_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
        index=True,
    )
    warning_sent_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    escalated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    host_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    host_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    host_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    violation_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    ticket_issued: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Violation(id={self.id}, plate_number='{self.plate_number}', status='{self.status}')>"


VIOLATION_COLUMNS = frozenset(c.key for c in inspect(Violation).column_attrs)
