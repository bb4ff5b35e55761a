"""Visitor check-in registry."""

import logging
import uuid
from typing import Optional

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from violation_ledger.core.errors import BackendUnavailableError, NotAuthenticatedError, ValidationError
from violation_ledger.core.filters import normalize_plate
from violation_ledger.models.types import utcnow
from violation_ledger.models.visitor import Visitor
from violation_ledger.services.identity import Actor

logger = logging.getLogger(__name__)


class VisitorCreate(BaseModel):
    name: str = Field(..., max_length=255)
    host_id: str = Field(..., max_length=255)
    host_name: str = Field(..., max_length=255)
    plate_number: str = Field(..., max_length=32)
    vehicle_category: str = Field(..., max_length=50)
    gps_id: str = Field(..., max_length=100)


REQUIRED_VISITOR_FIELDS = (
    ("name", "Visitor name"),
    ("host_id", "Host"),
    ("host_name", "Host"),
    ("plate_number", "Plate number"),
    ("vehicle_category", "Vehicle category"),
    ("gps_id", "GPS ID"),
)


class VisitorService:
    """Register visitors at the gate and look them up by plate."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def create(self, fields: VisitorCreate, actor: Optional[Actor]) -> uuid.UUID:
        """Record a visitor check-in.

        Raises:
            NotAuthenticatedError: If there is no actor.
            ValidationError: If any field is blank.
        """
        if actor is None:
            raise NotAuthenticatedError("User not authenticated")

        values = {key: getattr(fields, key).strip() for key, _ in REQUIRED_VISITOR_FIELDS}
        for key, label in REQUIRED_VISITOR_FIELDS:
            if not values[key]:
                raise ValidationError(f"{label} is required")
        values["plate_number"] = normalize_plate(values["plate_number"])

        visitor = Visitor(id=uuid.uuid4(), created_at=utcnow(), created_by=actor.uid, **values)
        try:
            async with self._session_maker() as session:
                session.add(visitor)
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error registering visitor: {e}")
            raise BackendUnavailableError("Failed to register visitor") from e

        logger.info(f"Registered visitor {visitor.id} ({visitor.plate_number}) for host {visitor.host_name}")
        return visitor.id

    async def find_by_plate(self, plate_number: str) -> Optional[Visitor]:
        """Most recent visitor record for a plate, or None."""
        query = (
            select(Visitor)
            .where(Visitor.plate_number == normalize_plate(plate_number))
            .order_by(Visitor.created_at.desc())
            .limit(1)
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                return result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error fetching visitor for plate {plate_number}: {e}")
            raise BackendUnavailableError("Failed to fetch visitor") from e


def get_visitor_service() -> VisitorService:
    from violation_ledger.database import async_session_maker

    return VisitorService(async_session_maker)
