"""Value types for payout calculations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class BankSnapshot:
    """Worker identity and bank details as they were when a payment was created."""

    pan: str
    aadhaar: str | None
    bank_account: str
    ifsc_code: str
    bank_name: str
    is_axis_bank: bool


@dataclass(frozen=True)
class PayTerms:
    """Inputs taken from the worker record at calculation time."""

    gross_salary: Decimal
    tds_rate: Decimal  # percent, 0-100
    account_balance: Decimal  # signed; negative means the worker owes
    bank: BankSnapshot


@dataclass(frozen=True)
class PaymentBreakdown:
    """Computed amounts for one worker in one payroll run."""

    gross_salary: Decimal
    tds_rate: Decimal
    leave_days: Decimal
    leave_cashout: Decimal
    debt_payout: Decimal
    taxable_amount: Decimal
    tds: Decimal
    net_before_recovery: Decimal
    recovery: Decimal
    net: Decimal
    bank: BankSnapshot

    @property
    def total_gross(self) -> Decimal:
        """Salary plus leave cashout plus debt payout."""
        return self.gross_salary + self.leave_cashout + self.debt_payout


@dataclass(frozen=True)
class TaxedAmount:
    """A one-off amount with its withholding (debt payouts, manual payments)."""

    amount: Decimal
    tds_rate: Decimal
    tds: Decimal
    net: Decimal


@dataclass(frozen=True)
class PayPeriod:
    """Inclusive date range covered by a run."""

    start: date
    end: date
