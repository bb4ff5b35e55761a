"""Unit tests for the Violations API endpoints."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi import status
from httpx import AsyncClient, ASGITransport

from violation_ledger.core.errors import BackendUnavailableError
from violation_ledger.main import app
from violation_ledger.models.enums import UserRole, ViolationStatus
from violation_ledger.services.identity import issue_token
from violation_ledger.services.memory import InMemoryViolationRepository
from violation_ledger.services.violations import get_violation_repository


# Test fixtures

@pytest.fixture
def repository(feed):
    """In-memory repository wired into the app for the duration of a test."""
    repo = InMemoryViolationRepository(feed)
    app.dependency_overrides[get_violation_repository] = lambda: repo
    yield repo
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {issue_token('guard-1', UserRole.GUARD)}"}


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _create(client, headers, **fields):
    payload = {"plate_number": "KDA 123A", "location": "Gate A"}
    payload.update(fields)
    response = await client.post("/api/violations", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED
    return uuid.UUID(response.json()["id"])


class TestCreateViolation:
    """Tests for POST /api/violations endpoint."""

    @pytest.mark.asyncio
    async def test_create(self, client, repository, auth_headers):
        violation_id = await _create(client, auth_headers, plate_number=" ab-123 ")

        violation = await repository.get_by_id(violation_id)
        assert violation.plate_number == "AB-123"
        assert violation.created_by == "guard-1"

    @pytest.mark.asyncio
    async def test_create_without_token(self, client, repository):
        response = await client.post(
            "/api/violations", json={"plate_number": "A1", "location": "Gate"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "User not authenticated"

    @pytest.mark.asyncio
    async def test_create_with_bad_token(self, client, repository):
        response = await client.post(
            "/api/violations",
            json={"plate_number": "A1", "location": "Gate"},
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_create_blank_location(self, client, repository, auth_headers):
        response = await client.post(
            "/api/violations",
            json={"plate_number": "A1", "location": "   "},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"] == "Location is required"

    @pytest.mark.asyncio
    async def test_create_missing_field(self, client, repository, auth_headers):
        response = await client.post("/api/violations", json={"plate_number": "A1"}, headers=auth_headers)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestListViolations:
    """Tests for GET /api/violations endpoint."""

    @pytest.mark.asyncio
    async def test_list_empty(self, client, repository):
        response = await client.get("/api/violations")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_list_filter_by_repeated_status(self, client, repository, auth_headers):
        escalated = await _create(client, auth_headers, plate_number="A1")
        pending = await _create(client, auth_headers, plate_number="B2")
        resolved = await _create(client, auth_headers, plate_number="C3")
        await repository.update_status(escalated, ViolationStatus.ESCALATED)
        await repository.update_status(resolved, ViolationStatus.RESOLVED)

        response = await client.get("/api/violations?status=escalated&status=pending")

        assert response.status_code == status.HTTP_200_OK
        ids = {uuid.UUID(item["id"]) for item in response.json()}
        assert ids == {escalated, pending}

    @pytest.mark.asyncio
    async def test_list_invalid_status(self, client, repository):
        response = await client.get("/api/violations?status=towed")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_list_search_and_location(self, client, repository, auth_headers):
        await _create(client, auth_headers, plate_number="A1", location="Gate A - Bay 1", host_name="Alice")
        await _create(client, auth_headers, plate_number="B2", location="Block C", host_name="Bob")

        by_location = await client.get("/api/violations", params={"location": "Gate A"})
        by_search = await client.get("/api/violations", params={"search": "bob"})

        assert [v["plate_number"] for v in by_location.json()] == ["A1"]
        assert [v["plate_number"] for v in by_search.json()] == ["B2"]

    @pytest.mark.asyncio
    async def test_backend_unavailable(self, client):
        broken = AsyncMock()
        broken.list.side_effect = BackendUnavailableError("Failed to fetch violations")
        app.dependency_overrides[get_violation_repository] = lambda: broken
        try:
            response = await client.get("/api/violations")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["detail"] == "Failed to fetch violations"


class TestViolationDetail:
    """Tests for GET /api/violations/{id} endpoint."""

    @pytest.mark.asyncio
    async def test_get_not_found(self, client, repository):
        violation_id = uuid.uuid4()

        response = await client.get(f"/api/violations/{violation_id}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert str(violation_id) in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_get_invalid_uuid(self, client, repository):
        response = await client.get("/api/violations/not-a-uuid")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_get_includes_history(self, client, repository, auth_headers):
        violation_id = await _create(client, auth_headers)
        await client.patch(
            f"/api/violations/{violation_id}/status",
            json={"status": "warning_sent"},
            headers=auth_headers,
        )

        response = await client.get(f"/api/violations/{violation_id}")

        data = response.json()
        assert data["status"] == "warning_sent"
        assert len(data["history"]) == 1
        assert data["history"][0]["actor_id"] == "guard-1"


class TestStatusChanges:
    """Tests for PATCH /status and POST /ticket."""

    @pytest.mark.asyncio
    async def test_patch_status(self, client, repository, auth_headers):
        violation_id = await _create(client, auth_headers)

        response = await client.patch(
            f"/api/violations/{violation_id}/status",
            json={"status": "escalated", "extra_fields": {"notes": "Host unreachable"}},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "escalated"
        assert data["escalated_at"] is not None
        assert data["warning_sent_at"] is None
        assert data["notes"] == "Host unreachable"

    @pytest.mark.asyncio
    async def test_patch_missing_violation(self, client, repository):
        response = await client.patch(
            f"/api/violations/{uuid.uuid4()}/status", json={"status": "resolved"}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_patch_immutable_field(self, client, repository, auth_headers):
        violation_id = await _create(client, auth_headers)

        response = await client.patch(
            f"/api/violations/{violation_id}/status",
            json={"status": "resolved", "extra_fields": {"detected_at": "2024-01-01T00:00:00Z"}},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "extra_fields",
        [{"status": "resolved"}, {"resolved_at": "2024-13-45"}],
    )
    async def test_patch_rejects_bad_extra_fields(self, client, repository, auth_headers, extra_fields):
        violation_id = await _create(client, auth_headers)

        response = await client.patch(
            f"/api/violations/{violation_id}/status",
            json={"status": "warning_sent", "extra_fields": extra_fields},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        stored = await client.get(f"/api/violations/{violation_id}")
        assert stored.json()["status"] == "pending"
        assert stored.json()["history"] == []

    @pytest.mark.asyncio
    async def test_issue_ticket(self, client, repository, auth_headers):
        violation_id = await _create(client, auth_headers)

        response = await client.post(f"/api/violations/{violation_id}/ticket", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "resolved"
        assert data["ticket_issued"] is True
        assert data["resolved_at"] is not None
        assert data["history"][0]["extra_fields"] == ["ticket_issued"]


class TestMonitorViews:
    """Tests for the live, active and repeat-offender views."""

    @pytest.mark.asyncio
    async def test_live_sections(self, client, repository, auth_headers):
        warned = await _create(client, auth_headers, plate_number="A1")
        await _create(client, auth_headers, plate_number="B2")
        closed = await _create(client, auth_headers, plate_number="C3")
        await repository.update_status(warned, ViolationStatus.WARNING_SENT)
        await repository.update_status(closed, ViolationStatus.HOST_COMPLIED)

        response = await client.get("/api/violations/live")

        assert response.status_code == status.HTTP_200_OK
        sections = response.json()
        assert [s["title"] for s in sections] == ["Warning Sent (1)", "Pending (1)"]
        warned_item = sections[0]["violations"][0]
        assert warned_item["elapsed"] == "Just now"
        assert warned_item["minutes_remaining"] in (29, 30)
        assert sections[1]["violations"][0]["minutes_remaining"] is None

    @pytest.mark.asyncio
    async def test_active_alerts(self, client, repository, auth_headers):
        escalated = await _create(client, auth_headers, plate_number="A1")
        await _create(client, auth_headers, plate_number="B2")
        warned = await _create(client, auth_headers, plate_number="C3")
        await repository.update_status(escalated, ViolationStatus.ESCALATED)
        await repository.update_status(warned, ViolationStatus.WARNING_SENT)

        response = await client.get("/api/violations/active")

        data = response.json()
        assert data["count"] == 2
        assert {item["plate_number"] for item in data["items"]} == {"A1", "B2"}

    @pytest.mark.asyncio
    async def test_repeat_offenders(self, client, repository, auth_headers):
        for plate in ("A1", "A1", "A1", "B2", "B2", "C3"):
            await _create(client, auth_headers, plate_number=plate)

        response = await client.get("/api/violations/repeat-offenders")
        recent = await client.get("/api/violations/repeat-offenders?min_count=3&sort=recent")

        data = response.json()
        assert [o["plate_number"] for o in data] == ["A1", "B2"]
        assert data[0]["count"] == 3
        assert data[0]["severity"] == "medium"
        assert data[1]["severity"] == "low"
        assert [o["plate_number"] for o in recent.json()] == ["A1"]

    @pytest.mark.asyncio
    async def test_repeat_offenders_bad_sort(self, client, repository):
        response = await client.get("/api/violations/repeat-offenders?sort=plate")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"
