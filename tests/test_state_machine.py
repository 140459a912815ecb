"""Tests for payroll and debt run state machines."""

import pytest

from payout_engine.errors import InvalidTransitionError, ValidationError
from payout_engine.services.state_machine import (
    DebtRunStateMachine,
    DebtRunStatus,
    PayrollRunStateMachine,
    PayrollRunStatus,
)


class TestPayrollRunStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        assert PayrollRunStateMachine.can_transition("DRAFT", "PENDING") is True
        assert PayrollRunStateMachine.can_transition("PENDING", "DRAFT") is True
        assert PayrollRunStateMachine.can_transition("PENDING", "PROCESSED") is True
        assert PayrollRunStateMachine.can_transition("PENDING", "CANCELLED") is True
        assert PayrollRunStateMachine.can_transition("PROCESSED", "PAID") is True

        # reverts
        assert PayrollRunStateMachine.can_transition("PROCESSED", "PENDING") is True
        assert PayrollRunStateMachine.can_transition("PAID", "PENDING") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Must be processed before paid
        assert PayrollRunStateMachine.can_transition("PENDING", "PAID") is False
        assert PayrollRunStateMachine.can_transition("DRAFT", "PROCESSED") is False

        # Paid runs are never cancelled
        assert PayrollRunStateMachine.can_transition("PAID", "CANCELLED") is False
        assert PayrollRunStateMachine.can_transition("PROCESSED", "CANCELLED") is False

        # Cancelled is terminal
        for status in PayrollRunStatus:
            assert PayrollRunStateMachine.can_transition("CANCELLED", status.value) is False

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            PayrollRunStateMachine.validate_transition("PENDING", "PAID")

        assert exc_info.value.from_status == "PENDING"
        assert exc_info.value.to_status == "PAID"

    def test_unknown_status(self):
        """Unknown target statuses are rejected as validation errors."""
        with pytest.raises(ValidationError, match="unknown status"):
            PayrollRunStateMachine.validate_transition("PENDING", "ARCHIVED")

    def test_is_revert(self):
        assert PayrollRunStateMachine.is_revert("PAID", "PENDING") is True
        assert PayrollRunStateMachine.is_revert("PROCESSED", "PENDING") is True
        assert PayrollRunStateMachine.is_revert("DRAFT", "PENDING") is False

    def test_editing_only_when_pending(self):
        assert PayrollRunStateMachine.can_edit_payments("PENDING") is True
        for status in ("DRAFT", "PROCESSED", "PAID", "CANCELLED"):
            assert PayrollRunStateMachine.can_edit_payments(status) is False

    def test_rerun_statuses(self):
        """Paid and draft runs cannot be re-run."""
        assert PayrollRunStateMachine.can_rerun("PENDING") is True
        assert PayrollRunStateMachine.can_rerun("PROCESSED") is True
        assert PayrollRunStateMachine.can_rerun("CANCELLED") is True
        assert PayrollRunStateMachine.can_rerun("PAID") is False
        assert PayrollRunStateMachine.can_rerun("DRAFT") is False

    def test_get_next_statuses(self):
        next_statuses = PayrollRunStateMachine.get_next_statuses("PROCESSED")
        assert set(next_statuses) == {PayrollRunStatus.PAID, PayrollRunStatus.PENDING}
        assert PayrollRunStateMachine.get_next_statuses("CANCELLED") == []


class TestDebtRunStateMachine:
    def test_valid_transitions(self):
        assert DebtRunStateMachine.can_transition("PENDING", "PROCESSED") is True
        assert DebtRunStateMachine.can_transition("PENDING", "CANCELLED") is True
        assert DebtRunStateMachine.can_transition("PROCESSED", "PAID") is True
        assert DebtRunStateMachine.can_transition("PROCESSED", "PENDING") is True

    def test_paid_is_terminal(self):
        for status in DebtRunStatus:
            assert DebtRunStateMachine.can_transition("PAID", status.value) is False

    def test_cannot_skip_processing(self):
        with pytest.raises(InvalidTransitionError):
            DebtRunStateMachine.validate_transition("PENDING", "PAID")
