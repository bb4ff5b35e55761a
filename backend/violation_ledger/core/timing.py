"""Derived time values for display: age labels and warning countdowns."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

WARNING_WINDOW_MINUTES = 30


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def elapsed_since(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """Human label for the time since ``timestamp``.

    The largest non-zero unit wins, each floored: ``"2d ago"``, ``"5h ago"``,
    ``"12m ago"``, or ``"Just now"`` under a minute.
    """
    elapsed = _now(now) - timestamp
    minutes = int(elapsed.total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d ago"
    if hours > 0:
        return f"{hours}h ago"
    if minutes > 0:
        return f"{minutes}m ago"
    return "Just now"


def remaining_window(
    timestamp: Optional[datetime],
    window_minutes: int = WARNING_WINDOW_MINUTES,
    now: Optional[datetime] = None,
) -> Optional[int]:
    """Whole minutes left in a window that opened at ``timestamp``.

    Returns None when there is no timestamp or the window has run out.
    """
    if timestamp is None:
        return None
    remaining = timestamp + timedelta(minutes=window_minutes) - _now(now)
    if remaining <= timedelta(0):
        return None
    return int(remaining.total_seconds() // 60)


def reference_time(violation: Any) -> datetime:
    """Timestamp an open alert's age is measured from: its latest stage change."""
    return violation.escalated_at or violation.warning_sent_at or violation.detected_at
