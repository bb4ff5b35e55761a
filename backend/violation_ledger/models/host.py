"""Host model for residents and businesses that receive visitors."""

import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from violation_ledger.database import Base


class Host(Base):
    """SQLAlchemy model for hosts. Read-only from the service's perspective."""
    __tablename__ = "hosts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Host(id={self.id}, name='{self.name}')>"
