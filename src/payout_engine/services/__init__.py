"""Payout engine services."""

from payout_engine.services.balance_tracker import BalanceTracker
from payout_engine.services.debt_run_service import DebtItem, DebtRunService
from payout_engine.services.ledger_service import AccountStatement, LedgerService
from payout_engine.services.manual_payment_service import (
    ManualPaymentResult,
    ManualPaymentService,
)
from payout_engine.services.payroll_run_service import (
    PaymentItem,
    PaymentUpdate,
    PayrollRunService,
)
from payout_engine.services.state_machine import (
    DebtRunStateMachine,
    DebtRunStatus,
    PayrollRunStateMachine,
    PayrollRunStatus,
)
from payout_engine.services.tax_period_service import PeriodSummary, TaxPeriodService

__all__ = [
    "AccountStatement",
    "BalanceTracker",
    "DebtItem",
    "DebtRunService",
    "DebtRunStateMachine",
    "DebtRunStatus",
    "LedgerService",
    "ManualPaymentResult",
    "ManualPaymentService",
    "PaymentItem",
    "PaymentUpdate",
    "PayrollRunService",
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "PeriodSummary",
    "TaxPeriodService",
]
