"""Vehicle lookup API routes."""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict

from violation_ledger.routers.violations import ViolationResponse
from violation_ledger.services.repository import ViolationRepository
from violation_ledger.services.vehicles import VehicleLookupService
from violation_ledger.services.violations import get_violation_repository
from violation_ledger.services.visitors import VisitorService, get_visitor_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vehicles", tags=["Vehicles"])


class VisitorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    host_id: str
    host_name: str
    plate_number: str
    vehicle_category: str
    gps_id: str
    created_at: datetime


class HostInfoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    host_id: Optional[str] = None
    host_name: Optional[str] = None
    host_phone: Optional[str] = None


class VehicleInfoResponse(BaseModel):
    plate_number: str
    visitor: Optional[VisitorResponse] = None
    host: Optional[HostInfoResponse] = None
    violation_count: int
    violations: List[ViolationResponse]


def get_vehicle_lookup_service(
    repository: ViolationRepository = Depends(get_violation_repository),
    visitors: VisitorService = Depends(get_visitor_service),
) -> VehicleLookupService:
    return VehicleLookupService(repository, visitors)


def _not_found(plate_number: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"No records found for plate '{plate_number}'.",
    )


@router.get(
    "/{plate_number}",
    response_model=VehicleInfoResponse,
    summary="Look up a vehicle by plate",
)
async def get_vehicle(
    plate_number: str,
    service: VehicleLookupService = Depends(get_vehicle_lookup_service),
) -> VehicleInfoResponse:
    info = await service.search_by_plate(plate_number)
    if info is None:
        raise _not_found(plate_number)

    return VehicleInfoResponse(
        plate_number=info.plate_number,
        visitor=VisitorResponse.model_validate(info.visitor) if info.visitor else None,
        host=HostInfoResponse.model_validate(info.host) if info.host else None,
        violation_count=info.violation_count,
        violations=[ViolationResponse.model_validate(v) for v in info.violations],
    )


@router.get(
    "/{plate_number}/host",
    response_model=HostInfoResponse,
    summary="Host responsible for a vehicle",
)
async def get_vehicle_host(
    plate_number: str,
    service: VehicleLookupService = Depends(get_vehicle_lookup_service),
) -> HostInfoResponse:
    host = await service.host_by_plate(plate_number)
    if host is None:
        raise _not_found(plate_number)
    return HostInfoResponse.model_validate(host)
