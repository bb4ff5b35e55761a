"""Enum definitions for the ViolationLedger models."""

from enum import Enum


class ViolationStatus(str, Enum):
    """Lifecycle status of a parking/access violation."""
    PENDING = "pending"
    WARNING_SENT = "warning_sent"
    ESCALATED = "escalated"
    RESOLVED = "resolved"
    HOST_COMPLIED = "host_complied"


class ComplaintStatus(str, Enum):
    """Review status of a submitted complaint."""
    PENDING = "pending"
    IN_REVIEW = "in_review"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class UserRole(str, Enum):
    """Role claim carried by identity provider tokens."""
    GUARD = "guard"
    BPSO = "bpso"
    ADMIN = "admin"
    UNRECOGNIZED = "unrecognized"
