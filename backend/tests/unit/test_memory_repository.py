"""Unit tests for the in-process violation repository."""

import asyncio
import uuid
from datetime import datetime, timezone

import pytest

from violation_ledger.core.errors import NotAuthenticatedError, NotFoundError, ValidationError
from violation_ledger.core.filters import ViolationFilter
from violation_ledger.models.enums import ViolationStatus
from violation_ledger.services.memory import InMemoryViolationRepository
from violation_ledger.services.repository import ViolationCreate


@pytest.fixture
def repository(feed):
    return InMemoryViolationRepository(feed)


class TestInMemoryRepository:

    @pytest.mark.asyncio
    async def test_create_and_get(self, repository, guard):
        violation_id = await repository.create(
            ViolationCreate(plate_number="kda 1a", location="Gate A"), guard
        )

        violation = await repository.get_by_id(violation_id)
        assert violation.plate_number == "KDA 1A"
        assert violation.status == "pending"
        assert violation.ticket_issued is False
        assert violation.host_name is None

    @pytest.mark.asyncio
    async def test_create_requires_actor(self, repository):
        with pytest.raises(NotAuthenticatedError):
            await repository.create(ViolationCreate(plate_number="A", location="B"), None)

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, repository, guard):
        violation_id = await repository.create(ViolationCreate(plate_number="A1", location="Gate"), guard)

        copy = await repository.get_by_id(violation_id)
        copy.status = "resolved"

        assert (await repository.get_by_id(violation_id)).status == "pending"

    @pytest.mark.asyncio
    async def test_filters_and_updates(self, repository, guard):
        first = await repository.create(ViolationCreate(plate_number="A1", location="Gate A"), guard)
        await repository.create(ViolationCreate(plate_number="B2", location="Block C"), guard)

        await repository.update_status(first, ViolationStatus.WARNING_SENT, actor=guard)

        warned = await repository.list(ViolationFilter(status=ViolationStatus.WARNING_SENT))
        gate = await repository.list(ViolationFilter(location="Gate"))
        assert [v.id for v in warned] == [first]
        assert warned[0].warning_sent_at is not None
        assert [v.id for v in gate] == [first]

        (change,) = await repository.history(first)
        assert change.from_status == "pending"
        assert change.to_status == "warning_sent"
        assert change.actor_id == "guard-1"

    @pytest.mark.asyncio
    async def test_update_missing(self, repository):
        with pytest.raises(NotFoundError):
            await repository.update_status(uuid.uuid4(), ViolationStatus.RESOLVED)

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, repository, guard):
        violation_id = await repository.create(ViolationCreate(plate_number="A1", location="Gate"), guard)

        with pytest.raises(ValidationError):
            await repository.update_status(violation_id, ViolationStatus.RESOLVED, {"towed": True})

    @pytest.mark.asyncio
    async def test_extra_fields_are_typed(self, repository, guard):
        violation_id = await repository.create(ViolationCreate(plate_number="A1", location="Gate"), guard)

        with pytest.raises(ValidationError):
            await repository.update_status(violation_id, ViolationStatus.RESOLVED, {"status": "pending"})
        with pytest.raises(ValidationError):
            await repository.update_status(violation_id, ViolationStatus.RESOLVED, {"resolved_at": "soon"})

        await repository.update_status(
            violation_id, ViolationStatus.RESOLVED, {"resolved_at": "2024-01-01T00:00:00"}
        )

        violation = await repository.get_by_id(violation_id)
        assert violation.status == "resolved"
        assert violation.resolved_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert len(await repository.history(violation_id)) == 1

    @pytest.mark.asyncio
    async def test_subscription_sees_writes(self, repository, guard):
        snapshots = asyncio.Queue()
        subscription = repository.subscribe(None, snapshots.put_nowait)
        try:
            assert await asyncio.wait_for(snapshots.get(), timeout=5) == []

            await repository.create(ViolationCreate(plate_number="A1", location="Gate"), guard)

            (violation,) = await asyncio.wait_for(snapshots.get(), timeout=5)
            assert violation.plate_number == "A1"
        finally:
            await subscription.aclose()
