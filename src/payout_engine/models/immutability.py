"""ORM-level enforcement of append-only records.

Ledger rows and audit events reject any UPDATE or DELETE issued through
the ORM. Payment-like rows may change amounts and status, but their bank
snapshot columns are frozen after insert.

Listeners are registered when ``payout_engine.models`` is imported.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event, inspect

from payout_engine.errors import ImmutabilityViolationError
from payout_engine.models.audit import AuditEvent
from payout_engine.models.base import SNAPSHOT_COLUMNS
from payout_engine.models.debt import DebtPayment
from payout_engine.models.ledger import AccountTransaction, DebtTransaction, LeaveTransaction
from payout_engine.models.manual import ManualPayment
from payout_engine.models.payroll import Payment

APPEND_ONLY_MODELS = (AccountTransaction, LeaveTransaction, DebtTransaction, AuditEvent)
SNAPSHOT_MODELS = (Payment, DebtPayment, ManualPayment)

_registered = False


def _identity(target: Any) -> Any:
    identity = inspect(target).identity
    return identity[0] if identity else None


def _changed_attributes(target: Any, names: tuple[str, ...] | None = None) -> list[str]:
    state = inspect(target)
    keys = names if names is not None else tuple(state.attrs.keys())
    return [key for key in keys if state.attrs[key].history.has_changes()]


def _reject_append_only_update(mapper, connection, target) -> None:
    changed = _changed_attributes(target)
    if changed:
        raise ImmutabilityViolationError(
            type(target).__name__,
            _identity(target),
            f"append-only, attempted to change {', '.join(sorted(changed))}",
        )


def _reject_append_only_delete(mapper, connection, target) -> None:
    raise ImmutabilityViolationError(
        type(target).__name__, _identity(target), "append-only, delete not allowed"
    )


def _reject_snapshot_update(mapper, connection, target) -> None:
    changed = _changed_attributes(target, SNAPSHOT_COLUMNS)
    if changed:
        raise ImmutabilityViolationError(
            type(target).__name__,
            _identity(target),
            f"bank snapshot is frozen, attempted to change {', '.join(sorted(changed))}",
        )


def register_immutability_listeners() -> None:
    """Attach the listeners once per process."""
    global _registered
    if _registered:
        return
    for model in APPEND_ONLY_MODELS:
        event.listen(model, "before_update", _reject_append_only_update)
        event.listen(model, "before_delete", _reject_append_only_delete)
    for model in SNAPSHOT_MODELS:
        event.listen(model, "before_update", _reject_snapshot_update)
    _registered = True
