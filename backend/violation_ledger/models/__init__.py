"""Database models package for SQLAlchemy ORM.

This module exports all SQLAlchemy models and enums used by ViolationLedger.
"""

from violation_ledger.models.complaint import Complaint
from violation_ledger.models.enums import ComplaintStatus, UserRole, ViolationStatus
from violation_ledger.models.host import Host
from violation_ledger.models.status_change import StatusChange
from violation_ledger.models.violation import Violation
from violation_ledger.models.visitor import Visitor

__all__ = [
    # Models
    "Violation",
    "StatusChange",
    "Complaint",
    "Visitor",
    "Host",
    # Enums
    "ViolationStatus",
    "ComplaintStatus",
    "UserRole",
]
