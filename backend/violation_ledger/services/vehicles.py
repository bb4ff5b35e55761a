"""Vehicle lookup by plate number.

Combines the visitor registry with the violation history so a guard can see
who a vehicle belongs to and how often it has been reported.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from violation_ledger.core.filters import ViolationFilter, normalize_plate
from violation_ledger.models.violation import Violation
from violation_ledger.models.visitor import Visitor
from violation_ledger.services.repository import ViolationRepository
from violation_ledger.services.visitors import VisitorService

logger = logging.getLogger(__name__)


@dataclass
class HostInfo:
    host_id: Optional[str]
    host_name: Optional[str]
    host_phone: Optional[str] = None


@dataclass
class VehicleInfo:
    """Everything known about a plate."""
    plate_number: str
    visitor: Optional[Visitor]
    host: Optional[HostInfo]
    violations: List[Violation] = field(default_factory=list)

    @property
    def violation_count(self) -> int:
        return len(self.violations)


def host_from_records(visitor: Optional[Visitor], violations: List[Violation]) -> Optional[HostInfo]:
    """Host details from the visitor record, else from the newest violation."""
    if visitor is not None:
        return HostInfo(host_id=visitor.host_id, host_name=visitor.host_name)
    if violations:
        newest = violations[0]
        return HostInfo(
            host_id=newest.host_id,
            host_name=newest.host_name,
            host_phone=newest.host_phone,
        )
    return None


class VehicleLookupService:
    def __init__(self, repository: ViolationRepository, visitors: VisitorService):
        self._repository = repository
        self._visitors = visitors

    async def history(self, plate_number: str) -> List[Violation]:
        """All violations for a plate, newest first."""
        return await self._repository.list(ViolationFilter(plate_number=plate_number))

    async def search_by_plate(self, plate_number: str) -> Optional[VehicleInfo]:
        """Visitor record and violation history for a plate; None if neither exists."""
        plate = normalize_plate(plate_number)
        if not plate:
            return None

        visitor = await self._visitors.find_by_plate(plate)
        violations = await self.history(plate)
        if visitor is None and not violations:
            logger.info(f"No records found for plate {plate}")
            return None

        return VehicleInfo(
            plate_number=plate,
            visitor=visitor,
            host=host_from_records(visitor, violations),
            violations=violations,
        )

    async def host_by_plate(self, plate_number: str) -> Optional[HostInfo]:
        info = await self.search_by_plate(plate_number)
        return info.host if info else None
