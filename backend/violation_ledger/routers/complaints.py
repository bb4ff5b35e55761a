"""Complaints API routes."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ConfigDict, Field

from violation_ledger.models.enums import ComplaintStatus
from violation_ledger.services.complaints import (
    ComplaintCreate,
    ComplaintService,
    get_complaint_service,
    search_complaints,
)
from violation_ledger.services.identity import Actor, get_current_actor


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/complaints", tags=["Complaints"])


class ComplaintResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    reporter_name: Optional[str] = None
    reporter_phone: Optional[str] = None
    location: Optional[str] = None
    plate_number: Optional[str] = None
    violation_id: Optional[UUID] = None
    status: str
    created_at: datetime
    updated_at: datetime
    created_by: Optional[str] = None


class ComplaintCreatedResponse(BaseModel):
    id: UUID


class ComplaintStatusRequest(BaseModel):
    status: ComplaintStatus
    extra_fields: Optional[Dict[str, Any]] = Field(None, description="Additional fields to write")


@router.get("", response_model=List[ComplaintResponse], summary="List complaints")
async def list_complaints(
    service: ComplaintService = Depends(get_complaint_service),
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Search title, description, plate and location"),
) -> List[ComplaintResponse]:
    complaints = await service.list(status_filter)
    if search:
        complaints = search_complaints(complaints, search)
    logger.info(f"Listed {len(complaints)} complaints")
    return [ComplaintResponse.model_validate(c) for c in complaints]


@router.post(
    "",
    response_model=ComplaintCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="File a complaint",
)
async def create_complaint(
    payload: ComplaintCreate,
    service: ComplaintService = Depends(get_complaint_service),
    actor: Optional[Actor] = Depends(get_current_actor),
) -> ComplaintCreatedResponse:
    complaint_id = await service.create(payload, actor)
    return ComplaintCreatedResponse(id=complaint_id)


@router.patch(
    "/{complaint_id}/status",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change complaint status",
)
async def update_complaint_status(
    complaint_id: UUID,
    request: ComplaintStatusRequest,
    service: ComplaintService = Depends(get_complaint_service),
) -> None:
    await service.update_status(complaint_id, request.status, request.extra_fields)


@router.websocket("/ws")
async def complaints_feed(
    websocket: WebSocket,
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status"),
    service: ComplaintService = Depends(get_complaint_service),
) -> None:
    """Push the full complaint list on connect and after every change."""
    await websocket.accept()

    async def push(complaints: List[Any]) -> None:
        await websocket.send_json(
            {
                "type": "snapshot",
                "complaints": [
                    ComplaintResponse.model_validate(c).model_dump(mode="json") for c in complaints
                ],
            }
        )

    async def push_error(error: Exception) -> None:
        await websocket.send_json({"type": "error", "detail": str(error)})

    subscription = service.subscribe(status_filter, push, push_error)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Complaint feed client disconnected")
    finally:
        await subscription.aclose()
