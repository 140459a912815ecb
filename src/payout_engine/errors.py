"""Exception hierarchy for payout operations.

Validation and lookup failures are raised before anything is written.
``ConcurrencyNoOp`` is an expected outcome of idempotent posting and is
caught by the orchestrators; it never reaches API callers.
"""

from __future__ import annotations

from typing import Any


class PayoutError(Exception):
    """Base class for payout engine errors."""


class ValidationError(PayoutError):
    """Request rejected before any write (bad input, balance exceeded, wrong state)."""


class InvalidTransitionError(ValidationError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class NotFoundError(PayoutError):
    """Referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConcurrencyNoOp(PayoutError):
    """A posting for this link already exists; nothing was written."""

    def __init__(self, link: Any, what: str = "posting"):
        self.link = link
        self.what = what
        super().__init__(f"{what} already recorded for {link}")


class FatalPersistenceError(PayoutError):
    """The unit of work failed or timed out and was rolled back."""


class ImmutabilityViolationError(PayoutError):
    """Attempt to modify or delete an append-only record."""

    def __init__(self, entity: str, entity_id: Any, detail: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} is immutable: {detail}")
