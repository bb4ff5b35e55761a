"""Visitor model for guard-registered visits."""

import uuid
from datetime import datetime

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from violation_ledger.database import Base
from violation_ledger.models.types import UTCDateTime, utcnow


class Visitor(Base):
    """SQLAlchemy model for visitor check-ins. Immutable once created."""
    __tablename__ = "visitors"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    host_id: Mapped[str] = mapped_column(String(255), nullable=False)
    host_name: Mapped[str] = mapped_column(String(255), nullable=False)
    plate_number: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    vehicle_category: Mapped[str] = mapped_column(String(50), nullable=False)
    gps_id: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Visitor(id={self.id}, name='{self.name}', plate_number='{self.plate_number}')>"
