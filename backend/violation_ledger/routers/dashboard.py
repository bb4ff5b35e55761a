"""Dashboard API routes for the patrol overview.

This module provides FastAPI endpoints for the patrol dashboard:
- Violation counts grouped by status
- Active alert, escalated and repeat-offender counts
- Open complaint count and tickets issued

Counts are computed from the configured violation repository, so the
dashboard works the same on the SQL and in-memory backends.
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from violation_ledger.config import get_settings
from violation_ledger.core.aggregation import count_by_status, repeat_offenders
from violation_ledger.core.filters import ACTIVE_STATUSES
from violation_ledger.models.enums import ViolationStatus
from violation_ledger.services.complaints import ComplaintService, get_complaint_service
from violation_ledger.services.repository import ViolationRepository
from violation_ledger.services.violations import get_violation_repository


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


# Pydantic Models

class DashboardSummaryResponse(BaseModel):
    """Response model for dashboard summary statistics.

    Provides an overview of patrol activity including:
    - Total violation count and counts per status
    - Active alerts (escalated and pending) and escalated cases
    - Plates with repeated violations
    - Complaints still awaiting review
    """

    model_config = ConfigDict(from_attributes=True)

    total_violations: int = Field(default=0, description="Total number of violations")
    by_status: Dict[str, int] = Field(
        default_factory=dict,
        description="Violation counts grouped by status",
    )
    active_count: int = Field(default=0, description="Escalated plus pending violations")
    escalated_count: int = Field(default=0, description="Number of escalated violations")
    repeat_offender_count: int = Field(
        default=0,
        description="Plates with at least the configured minimum of violations",
    )
    tickets_issued: int = Field(default=0, description="Violations resolved with a ticket")
    open_complaints: Optional[int] = Field(
        default=None,
        description="Complaints pending or in review; null when complaints are not stored",
    )


class ErrorResponse(BaseModel):
    """Response model for error messages."""

    detail: str


def get_complaint_source() -> Optional[ComplaintService]:
    """Complaint service for the open-complaint count, or None on the memory backend."""
    if get_settings().storage_backend == "memory":
        return None
    return get_complaint_service()


# API Endpoints

@router.get(
    "/summary",
    response_model=DashboardSummaryResponse,
    responses={
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
    summary="Get patrol overview statistics",
)
async def get_dashboard_summary(
    repository: ViolationRepository = Depends(get_violation_repository),
    complaints: Optional[ComplaintService] = Depends(get_complaint_source),
) -> DashboardSummaryResponse:
    """Get patrol overview statistics for the dashboard.

    Args:
        repository: Violation repository (injected)
        complaints: Complaint service, absent on the memory backend (injected)

    Returns:
        DashboardSummaryResponse with counts for the overview cards

    Raises:
        BackendUnavailableError: If storage cannot be read (served as 503)
    """
    violations = await repository.list()
    by_status = count_by_status(violations)
    offenders = repeat_offenders(violations, get_settings().repeat_offender_min_count)
    open_complaints = await complaints.count_open() if complaints is not None else None

    total_violations = len(violations)
    active_count = sum(by_status[s.value] for s in ACTIVE_STATUSES)

    logger.info(
        f"Dashboard summary retrieved: {total_violations} total violations, "
        f"{active_count} active, {len(offenders)} repeat offenders"
    )

    return DashboardSummaryResponse(
        total_violations=total_violations,
        by_status=by_status,
        active_count=active_count,
        escalated_count=by_status[ViolationStatus.ESCALATED.value],
        repeat_offender_count=len(offenders),
        tickets_issued=sum(1 for v in violations if v.ticket_issued),
        open_complaints=open_complaints,
    )
