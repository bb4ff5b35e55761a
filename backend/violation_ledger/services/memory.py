"""In-process violation storage.

Used for local development (``STORAGE_BACKEND=memory``) and by tests that
exercise the HTTP and WebSocket layers without a database. Records are kept
as detached ``Violation`` instances; callers always receive copies.
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional

from violation_ledger.core.errors import NotFoundError
from violation_ledger.core.filters import ViolationFilter, apply_filter, sort_newest_first
from violation_ledger.core.lifecycle import StatusLike, apply_transition
from violation_ledger.models.enums import ViolationStatus
from violation_ledger.models.status_change import StatusChange
from violation_ledger.models.types import utcnow
from violation_ledger.models.violation import VIOLATION_COLUMNS, Violation
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
)

logger = logging.getLogger(__name__)


def _copy(violation: Violation) -> Violation:
    return Violation(**{column: getattr(violation, column) for column in VIOLATION_COLUMNS})


class InMemoryViolationRepository(ViolationRepository):
    """ViolationRepository holding everything in a dict keyed by id."""

    def __init__(self, feed: ChangeFeed, enforce_transitions: bool = False):
        self._feed = feed
        self._enforce_transitions = enforce_transitions
        self._violations: Dict[uuid.UUID, Violation] = {}
        self._history: Dict[uuid.UUID, List[StatusChange]] = {}

    async def create(self, fields: ViolationCreate, actor: Optional[Actor]) -> uuid.UUID:
        values = prepare_violation_fields(fields, actor)
        violation = Violation(
            id=uuid.uuid4(),
            status=ViolationStatus.PENDING.value,
            detected_at=utcnow(),
            ticket_issued=False,
            **values,
        )
        for column in VIOLATION_COLUMNS - set(values) - {"id", "status", "detected_at", "ticket_issued"}:
            setattr(violation, column, None)

        self._violations[violation.id] = violation
        self._history[violation.id] = []
        logger.info(f"Created violation {violation.id} for plate {violation.plate_number}")
        self._feed.publish(VIOLATIONS)
        return violation.id

    async def get_by_id(self, violation_id: uuid.UUID) -> Optional[Violation]:
        violation = self._violations.get(violation_id)
        return _copy(violation) if violation is not None else None

    async def list(self, violation_filter: Optional[ViolationFilter] = None) -> List[Violation]:
        matching = apply_filter(self._violations.values(), violation_filter)
        return [_copy(v) for v in sort_newest_first(matching)]

    async def update_status(
        self,
        violation_id: uuid.UUID,
        status: StatusLike,
        extra_fields: Optional[Mapping[str, Any]] = None,
        actor: Optional[Actor] = None,
    ) -> None:
        fields = prepare_extra_fields(extra_fields)

        violation = self._violations.get(violation_id)
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

        self._history[violation_id].append(
            StatusChange(
                id=uuid.uuid4(),
                violation_id=violation_id,
                from_status=previous_status,
                to_status=payload["status"],
                actor_id=actor.uid if actor else None,
                extra_fields=sorted(fields),
                created_at=utcnow(),
            )
        )
        logger.info(f"Updated violation {violation_id}: {previous_status} -> {payload['status']}")
        self._feed.publish(VIOLATIONS)

    async def history(self, violation_id: uuid.UUID) -> List[StatusChange]:
        return list(reversed(self._history.get(violation_id, [])))

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
