"""Host directory API routes."""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from violation_ledger.services.hosts import HostService, get_host_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/hosts", tags=["Hosts"])


class HostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


@router.get("", response_model=List[HostResponse], summary="List or search hosts")
async def list_hosts(
    service: HostService = Depends(get_host_service),
    search: Optional[str] = Query(None, description="Host name prefix"),
) -> List[HostResponse]:
    hosts = await service.search(search) if search else await service.list()
    return [HostResponse.model_validate(h) for h in hosts]
