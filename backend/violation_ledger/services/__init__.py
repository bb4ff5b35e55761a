"""Services package for storage adapters and business logic components."""

from violation_ledger.services.complaints import ComplaintService, get_complaint_service
from violation_ledger.services.hosts import HostService, get_host_service
from violation_ledger.services.identity import Actor, get_current_actor
from violation_ledger.services.repository import ViolationCreate, ViolationRepository
from violation_ledger.services.subscriptions import ChangeFeed, Subscription, get_change_feed
from violation_ledger.services.vehicles import VehicleInfo, VehicleLookupService
from violation_ledger.services.violations import (
    SQLViolationRepository,
    get_violation_repository,
)
from violation_ledger.services.visitors import VisitorService, get_visitor_service

__all__ = [
    "Actor",
    "get_current_actor",
    "ViolationCreate",
    "ViolationRepository",
    "SQLViolationRepository",
    "get_violation_repository",
    "ChangeFeed",
    "Subscription",
    "get_change_feed",
    "ComplaintService",
    "get_complaint_service",
    "VisitorService",
    "get_visitor_service",
    "HostService",
    "get_host_service",
    "VehicleInfo",
    "VehicleLookupService",
]
