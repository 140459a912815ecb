"""ORM models."""

from payout_engine.models.audit import AuditEvent
from payout_engine.models.base import Base, TimestampMixin
from payout_engine.models.debt import DebtPayment, DebtRun
from payout_engine.models.ledger import (
    AccountTransaction,
    DebtTransaction,
    LeaveTransaction,
    LedgerLink,
    LinkKind,
    TransactionCategory,
    TransactionType,
)
from payout_engine.models.manual import ManualPayment, ManualPaymentCategory
from payout_engine.models.payroll import Payment, PaymentStatus, PayrollRun, RunOrigin
from payout_engine.models.tax import FilingStatus, TaxPeriodRecord
from payout_engine.models.worker import PaySchedule, Worker, WorkerStatus
from payout_engine.models.immutability import register_immutability_listeners

register_immutability_listeners()

__all__ = [
    "AccountTransaction",
    "AuditEvent",
    "Base",
    "DebtPayment",
    "DebtRun",
    "DebtTransaction",
    "FilingStatus",
    "LeaveTransaction",
    "LedgerLink",
    "LinkKind",
    "ManualPayment",
    "ManualPaymentCategory",
    "PaySchedule",
    "Payment",
    "PaymentStatus",
    "PayrollRun",
    "RunOrigin",
    "TaxPeriodRecord",
    "TimestampMixin",
    "TransactionCategory",
    "TransactionType",
    "Worker",
    "WorkerStatus",
]
