"""Violations API routes.

This module provides FastAPI endpoints for the patrol violation workflow:
- Log a violation and list violations with filtering
- Move a violation through warning, escalation and resolution, or issue a ticket
- Live monitor sections, active alerts and repeat offenders
- WebSocket feeds of the filtered violation list and the active alert count
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from pydantic import BaseModel, ConfigDict, Field

from violation_ledger.config import get_settings
from violation_ledger.core.aggregation import (
    group_by_status,
    offender_groups,
    offender_severity,
    repeat_offenders,
    sort_offenders,
)
from violation_ledger.core.filters import ACTIVE_STATUSES, LIVE_STATUSES, ViolationFilter
from violation_ledger.core.timing import elapsed_since, reference_time, remaining_window
from violation_ledger.models.enums import ViolationStatus
from violation_ledger.services.identity import Actor, get_current_actor
from violation_ledger.services.repository import ViolationCreate, ViolationRepository
from violation_ledger.services.violations import get_violation_repository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/violations", tags=["Violations"])


# Pydantic Models

class ViolationResponse(BaseModel):
    """Response model for a single violation."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    plate_number: str
    location: str
    gps_id: Optional[str] = None
    geofence_zone: Optional[str] = None
    status: str
    detected_at: datetime
    warning_sent_at: Optional[datetime] = None
    escalated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    host_id: Optional[str] = None
    host_name: Optional[str] = None
    host_phone: Optional[str] = None
    violation_type: Optional[str] = None
    photo_url: Optional[str] = None
    notes: Optional[str] = None
    created_by: str
    ticket_issued: bool = False


class StatusChangeResponse(BaseModel):
    """Response model for one recorded status change."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    from_status: str
    to_status: str
    actor_id: Optional[str] = None
    extra_fields: List[str] = Field(default_factory=list)
    created_at: datetime


class ViolationDetailResponse(ViolationResponse):
    history: List[StatusChangeResponse]


class ViolationCreatedResponse(BaseModel):
    id: UUID


class StatusUpdateRequest(BaseModel):
    """Request model for moving a violation to a new status."""

    status: ViolationStatus = Field(..., description="Target status")
    extra_fields: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional violation fields to write alongside the status change",
    )


class LiveViolationResponse(ViolationResponse):
    elapsed: str
    minutes_remaining: Optional[int] = Field(
        None,
        description="Minutes left before a warned violation is due for escalation",
    )


class LiveSectionResponse(BaseModel):
    status: str
    title: str
    count: int
    violations: List[LiveViolationResponse]


class ActiveAlertsResponse(BaseModel):
    count: int
    items: List[LiveViolationResponse]


class RepeatOffenderResponse(BaseModel):
    plate_number: str
    count: int
    severity: str
    latest_detected_at: datetime
    violations: List[ViolationResponse]


class ErrorResponse(BaseModel):
    """Response model for error messages."""

    detail: str


def _live_item(violation: Any, window_minutes: int) -> LiveViolationResponse:
    item = LiveViolationResponse.model_validate(
        {
            **ViolationResponse.model_validate(violation).model_dump(),
            "elapsed": elapsed_since(reference_time(violation)),
        }
    )
    if violation.status == ViolationStatus.WARNING_SENT.value:
        item.minutes_remaining = remaining_window(violation.warning_sent_at, window_minutes)
    return item


def _build_filter(
    statuses: Optional[List[ViolationStatus]],
    plate_number: Optional[str],
    location: Optional[str],
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    search: Optional[str],
) -> ViolationFilter:
    return ViolationFilter(
        status=statuses or None,
        plate_number=plate_number,
        location=location,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )


# API Endpoints

@router.get(
    "",
    response_model=List[ViolationResponse],
    summary="List violations with filtering",
    description="Retrieve violations newest first, optionally filtered by status, plate, "
                "location prefix, detection date range and free-text search.",
)
async def list_violations(
    repository: ViolationRepository = Depends(get_violation_repository),
    statuses: Optional[List[ViolationStatus]] = Query(
        None,
        alias="status",
        description="Filter by status; repeat the parameter to match several",
    ),
    plate_number: Optional[str] = Query(None, description="Exact plate number"),
    location: Optional[str] = Query(None, description="Location prefix"),
    start_date: Optional[datetime] = Query(
        None,
        description="Filter violations detected on or after this date",
    ),
    end_date: Optional[datetime] = Query(
        None,
        description="Filter violations detected on or before this date",
    ),
    search: Optional[str] = Query(None, description="Search plate, location and host name"),
) -> List[ViolationResponse]:
    violation_filter = _build_filter(statuses, plate_number, location, start_date, end_date, search)
    violations = await repository.list(violation_filter)
    logger.info(f"Listed {len(violations)} violations")
    return [ViolationResponse.model_validate(v) for v in violations]


@router.post(
    "",
    response_model=ViolationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing plate number or location"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
    summary="Log a new violation",
)
async def create_violation(
    payload: ViolationCreate,
    repository: ViolationRepository = Depends(get_violation_repository),
    actor: Optional[Actor] = Depends(get_current_actor),
) -> ViolationCreatedResponse:
    violation_id = await repository.create(payload, actor)
    return ViolationCreatedResponse(id=violation_id)


@router.get(
    "/live",
    response_model=List[LiveSectionResponse],
    summary="Live monitor sections",
    description="Escalated, warning-sent and pending violations grouped into sections, "
                "with age labels and escalation countdowns.",
)
async def live_violations(
    repository: ViolationRepository = Depends(get_violation_repository),
) -> List[LiveSectionResponse]:
    window = get_settings().warning_window_minutes
    violations = await repository.list(ViolationFilter(status=list(LIVE_STATUSES)))
    return [
        LiveSectionResponse(
            status=section.status.value,
            title=section.title,
            count=section.count,
            violations=[_live_item(v, window) for v in section.violations],
        )
        for section in group_by_status(violations)
    ]


@router.get(
    "/active",
    response_model=ActiveAlertsResponse,
    summary="Active alerts",
    description="Escalated and pending violations, newest first.",
)
async def active_alerts(
    repository: ViolationRepository = Depends(get_violation_repository),
    search: Optional[str] = Query(None, description="Search plate, location and host name"),
) -> ActiveAlertsResponse:
    window = get_settings().warning_window_minutes
    violations = await repository.list(ViolationFilter(status=list(ACTIVE_STATUSES), search=search))
    items = [_live_item(v, window) for v in violations]
    return ActiveAlertsResponse(count=len(items), items=items)


@router.get(
    "/repeat-offenders",
    response_model=List[RepeatOffenderResponse],
    summary="Repeat offenders",
    description="Plates with at least `min_count` violations, sorted by count or by most "
                "recent violation.",
)
async def list_repeat_offenders(
    repository: ViolationRepository = Depends(get_violation_repository),
    min_count: Optional[int] = Query(None, ge=1, description="Minimum violations per plate"),
    sort: Literal["count", "recent"] = Query("count", description="Sort order"),
) -> List[RepeatOffenderResponse]:
    threshold = min_count or get_settings().repeat_offender_min_count
    violations = await repository.list()
    groups = sort_offenders(offender_groups(repeat_offenders(violations, threshold)), by=sort)
    logger.info(f"Found {len(groups)} repeat offenders with at least {threshold} violations")
    return [
        RepeatOffenderResponse(
            plate_number=group.plate_number,
            count=group.count,
            severity=offender_severity(group.count),
            latest_detected_at=group.latest_violation.detected_at,
            violations=[ViolationResponse.model_validate(v) for v in group.violations],
        )
        for group in groups
    ]


@router.get(
    "/{violation_id}",
    response_model=ViolationDetailResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Violation not found"},
    },
    summary="Get violation details",
    description="Retrieve a violation together with its status change history.",
)
async def get_violation(
    violation_id: UUID,
    repository: ViolationRepository = Depends(get_violation_repository),
) -> ViolationDetailResponse:
    violation = await repository.get_by_id(violation_id)
    if violation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Violation with ID '{violation_id}' not found.",
        )

    history = await repository.history(violation_id)
    logger.info(f"Retrieved violation details for ID: {violation_id}")
    return ViolationDetailResponse(
        **ViolationResponse.model_validate(violation).model_dump(),
        history=[StatusChangeResponse.model_validate(change) for change in history],
    )


@router.patch(
    "/{violation_id}/status",
    response_model=ViolationDetailResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Rejected status change"},
        404: {"model": ErrorResponse, "description": "Violation not found"},
    },
    summary="Change violation status",
    description="Move a violation to a new status. The timestamp for that status is "
                "stamped and any extra fields are written with it.",
)
async def update_violation_status(
    violation_id: UUID,
    request: StatusUpdateRequest,
    repository: ViolationRepository = Depends(get_violation_repository),
    actor: Optional[Actor] = Depends(get_current_actor),
) -> ViolationDetailResponse:
    await repository.update_status(violation_id, request.status, request.extra_fields, actor)
    return await get_violation(violation_id, repository)


@router.post(
    "/{violation_id}/ticket",
    response_model=ViolationDetailResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Violation not found"},
    },
    summary="Issue a ticket",
    description="Resolve the violation and mark that a ticket was issued.",
)
async def issue_ticket(
    violation_id: UUID,
    repository: ViolationRepository = Depends(get_violation_repository),
    actor: Optional[Actor] = Depends(get_current_actor),
) -> ViolationDetailResponse:
    await repository.update_status(
        violation_id,
        ViolationStatus.RESOLVED,
        {"ticket_issued": True},
        actor,
    )
    logger.info(f"Ticket issued for violation {violation_id}")
    return await get_violation(violation_id, repository)


# WebSocket feeds

async def _hold_open(websocket: WebSocket) -> None:
    """Block until the client disconnects. Incoming messages are ignored."""
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Violation feed client disconnected")


@router.websocket("/ws")
async def violations_feed(
    websocket: WebSocket,
    statuses: Optional[List[ViolationStatus]] = Query(None, alias="status"),
    plate_number: Optional[str] = Query(None),
    location: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None),
    repository: ViolationRepository = Depends(get_violation_repository),
) -> None:
    """Push the full filtered violation list on connect and after every change."""
    violation_filter = _build_filter(statuses, plate_number, location, start_date, end_date, search)
    await websocket.accept()

    async def push(violations: List[Any]) -> None:
        await websocket.send_json(
            {
                "type": "snapshot",
                "violations": [
                    ViolationResponse.model_validate(v).model_dump(mode="json") for v in violations
                ],
            }
        )

    async def push_error(error: Exception) -> None:
        await websocket.send_json({"type": "error", "detail": str(error)})

    subscription = repository.subscribe(violation_filter, push, push_error)
    try:
        await _hold_open(websocket)
    finally:
        await subscription.aclose()


@router.websocket("/ws/active-count")
async def active_count_feed(
    websocket: WebSocket,
    repository: ViolationRepository = Depends(get_violation_repository),
) -> None:
    """Push the number of escalated and pending violations after every change."""
    await websocket.accept()

    async def push(count: int) -> None:
        await websocket.send_json({"type": "active_count", "count": count})

    async def push_error(error: Exception) -> None:
        await websocket.send_json({"type": "error", "detail": str(error)})

    subscription = repository.subscribe_active_count(push, push_error)
    try:
        await _hold_open(websocket)
    finally:
        await subscription.aclose()
