"""Violation storage backed by the relational database.

``SQLViolationRepository`` is the production implementation of the
``ViolationRepository`` contract. ``get_violation_repository`` picks the
implementation configured by ``storage_backend`` and is used as a FastAPI
dependency.
"""

import logging
import uuid
from typing import Any, Callable, List, Mapping, Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from violation_ledger.config import get_settings
from violation_ledger.core.errors import BackendUnavailableError, NotFoundError
from violation_ledger.core.filters import ViolationFilter, build_conditions
from violation_ledger.core.lifecycle import StatusLike, apply_transition
from violation_ledger.models.enums import ViolationStatus
from violation_ledger.models.status_change import StatusChange
from violation_ledger.models.types import utcnow
from violation_ledger.models.violation import Violation
from violation_ledger.services.identity import Actor
from violation_ledger.services.repository import (
    ViolationCreate,
    ViolationRepository,
    prepare_extra_fields,
    prepare_violation_fields,
)
from violation_ledger.services.subscriptions import (
    VIOLATIONS,
    ChangeFeed,
    ErrorCallback,
    Subscription,
    get_change_feed,
)

logger = logging.getLogger(__name__)

# Storage-level failures surfaced as BackendUnavailableError.
STORAGE_ERRORS = (SQLAlchemyError, OSError)


class SQLViolationRepository(ViolationRepository):
    """ViolationRepository over an async SQLAlchemy session factory.

    Usage:
        repo = SQLViolationRepository(async_session_maker, get_change_feed())
        violation_id = await repo.create(ViolationCreate(...), actor)
        await repo.update_status(violation_id, ViolationStatus.WARNING_SENT)
        subscription = repo.subscribe(ViolationFilter(status="pending"), on_change)
        subscription.cancel()
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        feed: ChangeFeed,
        enforce_transitions: bool = False,
    ):
        self._session_maker = session_maker
        self._feed = feed
        self._enforce_transitions = enforce_transitions

    async def create(self, fields: ViolationCreate, actor: Optional[Actor]) -> uuid.UUID:
        values = prepare_violation_fields(fields, actor)
        violation = Violation(
            id=uuid.uuid4(),
            status=ViolationStatus.PENDING.value,
            detected_at=utcnow(),
            ticket_issued=False,
            **values,
        )

        try:
            async with self._session_maker() as session:
                session.add(violation)
                await session.commit()
        except STORAGE_ERRORS as e:
            logger.error(f"Error creating violation: {e}")
            raise BackendUnavailableError("Failed to create violation") from e

        logger.info(
            f"Created violation {violation.id} for plate {violation.plate_number} "
            f"by {violation.created_by}"
        )
        self._feed.publish(VIOLATIONS)
        return violation.id

    async def get_by_id(self, violation_id: uuid.UUID) -> Optional[Violation]:
        try:
            async with self._session_maker() as session:
                return await session.get(Violation, violation_id)
        except STORAGE_ERRORS as e:
            logger.error(f"Error fetching violation {violation_id}: {e}")
            raise BackendUnavailableError("Failed to fetch violation") from e

    async def list(self, violation_filter: Optional[ViolationFilter] = None) -> List[Violation]:
        query = select(Violation).order_by(Violation.detected_at.desc(), Violation.id.asc())
        conditions = build_conditions(violation_filter)
        if conditions:
            query = query.where(and_(*conditions))

        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except STORAGE_ERRORS as e:
            logger.error(f"Error fetching violations: {e}")
            raise BackendUnavailableError("Failed to fetch violations") from e

    async def update_status(
        self,
        violation_id: uuid.UUID,
        status: StatusLike,
        extra_fields: Optional[Mapping[str, Any]] = None,
        actor: Optional[Actor] = None,
    ) -> None:
        fields = prepare_extra_fields(extra_fields)

        try:
            async with self._session_maker() as session:
                violation = await session.get(Violation, violation_id)
                if violation is None:
                    raise NotFoundError(f"Violation with ID '{violation_id}' not found.")

                previous_status = violation.status
                payload = apply_transition(
                    violation,
                    status,
                    fields,
                    enforce=self._enforce_transitions,
                )
                for column, value in payload.items():
                    setattr(violation, column, value)

                session.add(
                    StatusChange(
                        violation_id=violation.id,
                        from_status=previous_status,
                        to_status=payload["status"],
                        actor_id=actor.uid if actor else None,
                        extra_fields=sorted(fields),
                        created_at=utcnow(),
                    )
                )
                await session.commit()
        except STORAGE_ERRORS as e:
            logger.error(f"Error updating violation status: {e}")
            raise BackendUnavailableError("Failed to update violation status") from e

        logger.info(
            f"Updated violation {violation_id}: {previous_status} -> {payload['status']}, "
            f"actor={actor.uid if actor else None}"
        )
        self._feed.publish(VIOLATIONS)

    async def history(self, violation_id: uuid.UUID) -> List[StatusChange]:
        query = (
            select(StatusChange)
            .where(StatusChange.violation_id == violation_id)
            .order_by(StatusChange.created_at.desc())
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except STORAGE_ERRORS as e:
            logger.error(f"Error fetching status history for {violation_id}: {e}")
            raise BackendUnavailableError("Failed to fetch status history") from e

    def subscribe(
        self,
        violation_filter: Optional[ViolationFilter],
        on_change: Callable[[List[Violation]], Any],
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        return Subscription(
            self._feed,
            VIOLATIONS,
            lambda: self.list(violation_filter),
            on_change,
            on_error,
        )


_repository_instance: Optional[ViolationRepository] = None


def get_violation_repository() -> ViolationRepository:
    """Get or create the global ViolationRepository for the configured backend."""
    global _repository_instance
    if _repository_instance is None:
        settings = get_settings()
        feed = get_change_feed()
        if settings.storage_backend == "memory":
            from violation_ledger.services.memory import InMemoryViolationRepository

            _repository_instance = InMemoryViolationRepository(
                feed,
                enforce_transitions=settings.enforce_status_transitions,
            )
        else:
            from violation_ledger.database import async_session_maker

            _repository_instance = SQLViolationRepository(
                async_session_maker,
                feed,
                enforce_transitions=settings.enforce_status_transitions,
            )
        logger.info(f"Using {settings.storage_backend} violation storage")
    return _repository_instance


def reset_violation_repository() -> None:
    """Reset the global repository instance. Primarily useful for testing."""
    global _repository_instance
    _repository_instance = None
