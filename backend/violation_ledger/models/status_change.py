"""StatusChange model for the violation status audit trail."""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from violation_ledger.database import Base
from violation_ledger.models.types import UTCDateTime, utcnow


class StatusChange(Base):
    """SQLAlchemy model for status changes.

    One row is written for every status update applied to a violation,
    recording the previous and new status, the acting user when known, and
    the names of any extra fields merged into the update.
    """
    __tablename__ = "status_changes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    violation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("violations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_status: Mapped[str] = mapped_column(String(20), nullable=False)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    extra_fields: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<StatusChange(id={self.id}, violation_id={self.violation_id}, "
            f"{self.from_status}->{self.to_status})>"
        )
