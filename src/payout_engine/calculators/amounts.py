"""Pure amount calculations: withholding, leave cashout, recovery, net pay."""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from payout_engine.calculators.types import PaymentBreakdown, PayTerms, TaxedAmount
from payout_engine.errors import ValidationError

ZERO = Decimal("0")


class AmountCalculator:
    """Deterministic payout arithmetic. No I/O, no clamping of inputs.

    Rounding policy:
    - Withholding is always rounded UP to a whole currency unit.
    - Leave cashout is rounded half-up to 2 decimals.
    - Everything else is exact sums and differences of those values.

    Callers validate leave days and debt amounts against the worker's
    balances before calling in here.
    """

    OUTPUT_PRECISION = Decimal("0.01")
    HUNDRED = Decimal("100")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places."""
        return amount.quantize(AmountCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @classmethod
    def tax(cls, amount: Decimal, rate: Decimal) -> Decimal:
        """Withholding on ``amount`` at ``rate`` percent, rounded up.

        tax(1000, 10) == 100 and tax(1001, 10) == 101.
        """
        return (Decimal(amount) * Decimal(rate) / cls.HUNDRED).to_integral_value(
            rounding=ROUND_CEILING
        )

    @classmethod
    def leave_cashout(cls, cycle_pay: Decimal, days: Decimal, cycle_days: int) -> Decimal:
        """Pay for ``days`` of leave at the per-day rate of one cycle."""
        if cycle_days <= 0:
            raise ValidationError(f"cycle length must be positive, got {cycle_days}")
        return cls.round_to_cents(Decimal(cycle_pay) / Decimal(cycle_days) * Decimal(days))

    @staticmethod
    def recovery(balance: Decimal, net_before_recovery: Decimal) -> Decimal:
        """Amount withheld to settle a negative account balance.

        Zero unless the balance is negative; never more than the net due.
        """
        if balance >= ZERO:
            return ZERO
        return max(min(-balance, net_before_recovery), ZERO)

    @classmethod
    def compute_payment(
        cls,
        terms: PayTerms,
        leave_days: Decimal,
        debt_amount: Decimal,
        cycle_days: int,
    ) -> PaymentBreakdown:
        """Full breakdown for a regular payroll payment.

        Salary, leave cashout and debt payout are taxed together.
        """
        leave_days = Decimal(leave_days)
        debt_amount = Decimal(debt_amount)
        leave_cashout = (
            cls.leave_cashout(terms.gross_salary, leave_days, cycle_days)
            if leave_days
            else ZERO
        )
        taxable = terms.gross_salary + leave_cashout + debt_amount
        tds = cls.tax(taxable, terms.tds_rate)
        net_before = taxable - tds
        recovery = cls.recovery(terms.account_balance, net_before)

        return PaymentBreakdown(
            gross_salary=terms.gross_salary,
            tds_rate=terms.tds_rate,
            leave_days=leave_days,
            leave_cashout=leave_cashout,
            debt_payout=debt_amount,
            taxable_amount=taxable,
            tds=tds,
            net_before_recovery=net_before,
            recovery=recovery,
            net=net_before - recovery,
            bank=terms.bank,
        )

    @classmethod
    def compute_rerun_payment(
        cls,
        terms: PayTerms,
        leave_days: Decimal,
        debt_amount: Decimal,
        cycle_days: int,
    ) -> PaymentBreakdown:
        """Breakdown for a re-run payment.

        Withholding is recomputed on salary and leave cashout only, at the
        worker's current rate; the debt payout is carried over untaxed.
        """
        leave_days = Decimal(leave_days)
        debt_amount = Decimal(debt_amount)
        leave_cashout = (
            cls.leave_cashout(terms.gross_salary, leave_days, cycle_days)
            if leave_days
            else ZERO
        )
        taxable = terms.gross_salary + leave_cashout
        tds = cls.tax(taxable, terms.tds_rate)
        net_before = taxable - tds + debt_amount
        recovery = cls.recovery(terms.account_balance, net_before)

        return PaymentBreakdown(
            gross_salary=terms.gross_salary,
            tds_rate=terms.tds_rate,
            leave_days=leave_days,
            leave_cashout=leave_cashout,
            debt_payout=debt_amount,
            taxable_amount=taxable,
            tds=tds,
            net_before_recovery=net_before,
            recovery=recovery,
            net=net_before - recovery,
            bank=terms.bank,
        )

    @classmethod
    def compute_taxed_amount(
        cls,
        amount: Decimal,
        rate: Decimal,
        taxable: bool = True,
    ) -> TaxedAmount:
        """Withholding and net for a debt payout or manual payment."""
        amount = Decimal(amount)
        tds = cls.tax(amount, rate) if taxable else ZERO
        return TaxedAmount(amount=amount, tds_rate=Decimal(rate), tds=tds, net=amount - tds)
