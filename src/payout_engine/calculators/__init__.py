"""Payout calculations."""

from payout_engine.calculators.amounts import AmountCalculator
from payout_engine.calculators.periods import (
    customer_reference,
    is_eligible_for_run,
    next_run_date,
    overdue_run_dates,
    pay_period,
)
from payout_engine.calculators.types import (
    BankSnapshot,
    PayPeriod,
    PaymentBreakdown,
    PayTerms,
    TaxedAmount,
)

__all__ = [
    "AmountCalculator",
    "BankSnapshot",
    "PayPeriod",
    "PaymentBreakdown",
    "PayTerms",
    "TaxedAmount",
    "customer_reference",
    "is_eligible_for_run",
    "next_run_date",
    "overdue_run_dates",
    "pay_period",
]
