"""Visitor registration API routes."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from violation_ledger.services.identity import Actor, get_current_actor
from violation_ledger.services.visitors import VisitorCreate, VisitorService, get_visitor_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/visitors", tags=["Visitors"])


class VisitorCreatedResponse(BaseModel):
    id: UUID


@router.post(
    "",
    response_model=VisitorCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a visitor",
)
async def register_visitor(
    payload: VisitorCreate,
    service: VisitorService = Depends(get_visitor_service),
    actor: Optional[Actor] = Depends(get_current_actor),
) -> VisitorCreatedResponse:
    visitor_id = await service.create(payload, actor)
    return VisitorCreatedResponse(id=visitor_id)
