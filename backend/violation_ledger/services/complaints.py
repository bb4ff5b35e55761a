"""Complaint intake and review.

Complaints are filed by hosts, residents or guards about a vehicle or an
existing violation. Reviewers move them through
pending -> in_review -> resolved | dismissed; every change stamps
``updated_at``.
"""

import logging
import uuid
from typing import Any, Callable, Iterable, List, Mapping, Optional

from pydantic import BaseModel, Field
from sqlalchemy import func, inspect as sa_inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from violation_ledger.core.errors import BackendUnavailableError, NotFoundError, ValidationError
from violation_ledger.core.filters import normalize_plate
from violation_ledger.models.complaint import Complaint
from violation_ledger.models.enums import ComplaintStatus
from violation_ledger.models.types import utcnow
from violation_ledger.services.identity import Actor
from violation_ledger.services.subscriptions import (
    COMPLAINTS,
    ChangeFeed,
    ErrorCallback,
    Subscription,
    get_change_feed,
)

logger = logging.getLogger(__name__)

COMPLAINT_COLUMNS = frozenset(c.key for c in sa_inspect(Complaint).column_attrs)
# status and updated_at are written by update_status itself.
LOCKED_COMPLAINT_FIELDS = frozenset({"id", "created_at", "created_by", "status", "updated_at"})
OPEN_COMPLAINT_STATUSES = (ComplaintStatus.PENDING, ComplaintStatus.IN_REVIEW)


class ComplaintCreate(BaseModel):
    """Fields supplied when filing a complaint."""

    title: str = Field(..., max_length=255)
    description: str
    reporter_name: Optional[str] = Field(None, max_length=255)
    reporter_phone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    plate_number: Optional[str] = Field(None, max_length=32)
    violation_id: Optional[uuid.UUID] = None


def parse_complaint_status(value: Any) -> ComplaintStatus:
    if isinstance(value, ComplaintStatus):
        return value
    try:
        return ComplaintStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in ComplaintStatus)
        raise ValidationError(f"Invalid status '{value}'. Valid values are: {valid}") from None


def search_complaints(complaints: Iterable[Complaint], query: str) -> List[Complaint]:
    """Case-insensitive substring search over title, description, plate and location."""
    term = query.strip().lower()
    if not term:
        return list(complaints)

    def _hit(complaint: Complaint) -> bool:
        fields = (
            complaint.title,
            complaint.description,
            complaint.plate_number,
            complaint.location,
        )
        return any(value and term in value.lower() for value in fields)

    return [c for c in complaints if _hit(c)]


class ComplaintService:
    """Store and review complaints."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], feed: ChangeFeed):
        self._session_maker = session_maker
        self._feed = feed

    async def create(self, fields: ComplaintCreate, actor: Optional[Actor] = None) -> uuid.UUID:
        title = fields.title.strip()
        description = fields.description.strip()
        if not title:
            raise ValidationError("Title is required")
        if not description:
            raise ValidationError("Description is required")

        now = utcnow()
        plate = normalize_plate(fields.plate_number) if fields.plate_number else None
        complaint = Complaint(
            id=uuid.uuid4(),
            title=title,
            description=description,
            reporter_name=fields.reporter_name,
            reporter_phone=fields.reporter_phone,
            location=fields.location,
            plate_number=plate or None,
            violation_id=fields.violation_id,
            status=ComplaintStatus.PENDING.value,
            created_at=now,
            updated_at=now,
            created_by=actor.uid if actor else None,
        )

        try:
            async with self._session_maker() as session:
                session.add(complaint)
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error creating complaint: {e}")
            raise BackendUnavailableError("Failed to create complaint") from e

        logger.info(f"Created complaint {complaint.id}: {complaint.title}")
        self._feed.publish(COMPLAINTS)
        return complaint.id

    async def list(self, status: Optional[ComplaintStatus] = None) -> List[Complaint]:
        query = select(Complaint).order_by(Complaint.created_at.desc(), Complaint.id.asc())
        if status is not None:
            query = query.where(Complaint.status == parse_complaint_status(status).value)

        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error fetching complaints: {e}")
            raise BackendUnavailableError("Failed to fetch complaints") from e

    async def count_open(self) -> int:
        """Number of complaints still pending or in review."""
        query = select(func.count(Complaint.id)).where(
            Complaint.status.in_([s.value for s in OPEN_COMPLAINT_STATUSES])
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                return result.scalar() or 0
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error counting open complaints: {e}")
            raise BackendUnavailableError("Failed to count complaints") from e

    async def update_status(
        self,
        complaint_id: uuid.UUID,
        status: Any,
        extra_fields: Optional[Mapping[str, Any]] = None,
    ) -> None:
        target = parse_complaint_status(status)
        if extra_fields:
            rejected = sorted(
                (set(extra_fields) - COMPLAINT_COLUMNS) | (LOCKED_COMPLAINT_FIELDS & set(extra_fields))
            )
            if rejected:
                raise ValidationError(f"Field(s) cannot be changed: {', '.join(rejected)}")

        try:
            async with self._session_maker() as session:
                complaint = await session.get(Complaint, complaint_id)
                if complaint is None:
                    raise NotFoundError(f"Complaint with ID '{complaint_id}' not found.")

                complaint.status = target.value
                complaint.updated_at = utcnow()
                for column, value in (extra_fields or {}).items():
                    setattr(complaint, column, value)
                await session.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error updating complaint status: {e}")
            raise BackendUnavailableError("Failed to update complaint status") from e

        logger.info(f"Updated complaint {complaint_id} status to {target.value}")
        self._feed.publish(COMPLAINTS)

    def subscribe(
        self,
        status: Optional[ComplaintStatus],
        on_change: Callable[[List[Complaint]], Any],
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        return Subscription(self._feed, COMPLAINTS, lambda: self.list(status), on_change, on_error)


_complaint_service: Optional[ComplaintService] = None


def get_complaint_service() -> ComplaintService:
    """Get or create the global ComplaintService."""
    global _complaint_service
    if _complaint_service is None:
        from violation_ledger.database import async_session_maker

        _complaint_service = ComplaintService(async_session_maker, get_change_feed())
    return _complaint_service


def reset_complaint_service() -> None:
    global _complaint_service
    _complaint_service = None
