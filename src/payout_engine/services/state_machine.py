"""Payroll run and debt run state machines with transition validation."""

from __future__ import annotations

from enum import Enum

from payout_engine.errors import InvalidTransitionError


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class DebtRunStatus(str, Enum):
    """Debt run status values."""

    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PayrollRunStateMachine:
    """State machine for payroll run status transitions.

    Allowed transitions:
    - pending ↔ draft
    - pending → processed
    - pending → cancelled
    - processed → paid
    - processed → pending (revert)
    - paid → pending (revert, audited correction)

    Paid and cancelled accept no forward transitions.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollRunStatus.DRAFT: [PayrollRunStatus.PENDING],
        PayrollRunStatus.PENDING: [
            PayrollRunStatus.DRAFT,
            PayrollRunStatus.PROCESSED,
            PayrollRunStatus.CANCELLED,
        ],
        PayrollRunStatus.PROCESSED: [PayrollRunStatus.PAID, PayrollRunStatus.PENDING],
        PayrollRunStatus.PAID: [PayrollRunStatus.PENDING],
        PayrollRunStatus.CANCELLED: [],  # Terminal state
    }

    # Statuses where payment inputs can be edited
    EDITABLE = {PayrollRunStatus.PENDING}

    # Statuses from which a run can be superseded by a re-run
    RERUNNABLE = {
        PayrollRunStatus.PENDING,
        PayrollRunStatus.PROCESSED,
        PayrollRunStatus.CANCELLED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if to_status not in cls.VALID_TRANSITIONS:
            raise InvalidTransitionError(from_status, to_status, "unknown status")
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_revert(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition moves a processed or paid run back to pending."""
        return to_status == PayrollRunStatus.PENDING and from_status in (
            PayrollRunStatus.PROCESSED,
            PayrollRunStatus.PAID,
        )

    @classmethod
    def can_edit_payments(cls, status: str) -> bool:
        return status in cls.EDITABLE

    @classmethod
    def can_rerun(cls, status: str) -> bool:
        return status in cls.RERUNNABLE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])


class DebtRunStateMachine:
    """State machine for debt run status transitions.

    Allowed transitions:
    - pending → processed
    - pending → cancelled
    - processed → paid
    - processed → pending
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        DebtRunStatus.PENDING: [DebtRunStatus.PROCESSED, DebtRunStatus.CANCELLED],
        DebtRunStatus.PROCESSED: [DebtRunStatus.PAID, DebtRunStatus.PENDING],
        DebtRunStatus.PAID: [],
        DebtRunStatus.CANCELLED: [],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        return to_status in cls.VALID_TRANSITIONS.get(from_status, [])

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if to_status not in cls.VALID_TRANSITIONS:
            raise InvalidTransitionError(from_status, to_status, "unknown status")
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
