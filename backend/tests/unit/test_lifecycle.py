"""Unit tests for the violation status state machine."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from violation_ledger.core.errors import InvalidTransitionError, ValidationError
from violation_ledger.core.lifecycle import (
    ALLOWED_TRANSITIONS,
    apply_transition,
    can_transition,
    is_terminal,
    parse_status,
    timestamp_field_for,
)
from violation_ledger.models.enums import ViolationStatus


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _violation(status: str = "pending"):
    return SimpleNamespace(status=status)


class TestParseStatus:
    """Tests for coercing raw status values."""

    def test_accepts_enum_and_string(self):
        assert parse_status(ViolationStatus.ESCALATED) is ViolationStatus.ESCALATED
        assert parse_status("host_complied") is ViolationStatus.HOST_COMPLIED

    def test_rejects_unknown_status(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_status("towed")
        assert "Invalid status 'towed'" in str(exc_info.value)
        assert "warning_sent" in str(exc_info.value)


class TestApplyTransition:
    """Tests for building status update payloads."""

    def test_warning_stamps_only_warning_timestamp(self):
        payload = apply_transition(_violation(), ViolationStatus.WARNING_SENT, now=NOW)

        assert payload == {"status": "warning_sent", "warning_sent_at": NOW}

    def test_escalation_stamps_escalated_at(self):
        payload = apply_transition(_violation("warning_sent"), "escalated", now=NOW)

        assert payload == {"status": "escalated", "escalated_at": NOW}

    @pytest.mark.parametrize("target", [ViolationStatus.RESOLVED, ViolationStatus.HOST_COMPLIED])
    def test_closing_statuses_stamp_resolved_at(self, target):
        payload = apply_transition(_violation("escalated"), target, now=NOW)

        assert payload["status"] == target.value
        assert payload["resolved_at"] == NOW
        assert set(payload) == {"status", "resolved_at"}

    def test_pending_stamps_nothing(self):
        payload = apply_transition(_violation("warning_sent"), ViolationStatus.PENDING, now=NOW)

        assert payload == {"status": "pending"}

    def test_ticket_extra_fields_are_merged(self):
        payload = apply_transition(
            _violation("escalated"),
            ViolationStatus.RESOLVED,
            {"ticket_issued": True},
            now=NOW,
        )

        assert payload == {"status": "resolved", "resolved_at": NOW, "ticket_issued": True}

    def test_extra_fields_win_over_stamped_values(self):
        earlier = datetime(2024, 5, 31, tzinfo=timezone.utc)
        payload = apply_transition(
            _violation(),
            ViolationStatus.WARNING_SENT,
            {"warning_sent_at": earlier},
            now=NOW,
        )

        assert payload["warning_sent_at"] == earlier

    def test_defaults_to_current_time(self):
        before = datetime.now(timezone.utc)
        payload = apply_transition(_violation(), ViolationStatus.WARNING_SENT)
        after = datetime.now(timezone.utc)

        assert before <= payload["warning_sent_at"] <= after

    @pytest.mark.parametrize("field", ["id", "detected_at", "created_by"])
    def test_immutable_fields_rejected(self, field):
        with pytest.raises(ValidationError):
            apply_transition(_violation(), ViolationStatus.WARNING_SENT, {field: "x"}, now=NOW)

    def test_status_in_extra_fields_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            apply_transition(
                _violation(), ViolationStatus.WARNING_SENT, {"status": "resolved"}, now=NOW
            )
        assert "status" in str(exc_info.value)

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            apply_transition(_violation(), "impounded", now=NOW)

    def test_skipping_states_allowed_by_default(self):
        payload = apply_transition(_violation("pending"), ViolationStatus.HOST_COMPLIED, now=NOW)

        assert payload["status"] == "host_complied"

    def test_enforced_mode_rejects_skips(self):
        with pytest.raises(InvalidTransitionError):
            apply_transition(
                _violation("pending"),
                ViolationStatus.HOST_COMPLIED,
                now=NOW,
                enforce=True,
            )

    def test_enforced_mode_allows_documented_edges(self):
        payload = apply_transition(
            _violation("pending"),
            ViolationStatus.RESOLVED,
            {"ticket_issued": True},
            now=NOW,
            enforce=True,
        )

        assert payload["status"] == "resolved"


class TestTransitionTable:
    def test_terminal_statuses_have_no_exits(self):
        for status in (ViolationStatus.RESOLVED, ViolationStatus.HOST_COMPLIED):
            assert is_terminal(status)
            assert ALLOWED_TRANSITIONS[status] == frozenset()

    def test_documented_lifecycle(self):
        assert can_transition("pending", "warning_sent")
        assert can_transition("warning_sent", "escalated")
        assert can_transition("escalated", "host_complied")
        assert not can_transition("pending", "escalated")
        assert not can_transition("resolved", "pending")

    def test_timestamp_field_lookup(self):
        assert timestamp_field_for("warning_sent") == "warning_sent_at"
        assert timestamp_field_for(ViolationStatus.HOST_COMPLIED) == "resolved_at"
        assert timestamp_field_for("pending") is None
