"""Payroll run and payment models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, composite, mapped_column, relationship

from payout_engine.calculators.types import BankSnapshot, PaymentBreakdown
from payout_engine.models.base import Base, BankSnapshotMixin, TimestampMixin


class PaymentStatus(str, Enum):
    """Status of an individual payment line."""

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class RunOrigin(str, Enum):
    """How a payroll run came into existence."""

    MANUAL = "MANUAL"
    GENERATED = "GENERATED"
    RERUN = "RERUN"


class PayrollRun(Base, TimestampMixin):
    """One payroll batch covering a single pay period."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_schedule_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("pay_schedule.pay_schedule_id"),
        nullable=True,
    )
    run_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    cycle_days: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    origin: Mapped[str] = mapped_column(String, nullable=False, default=RunOrigin.MANUAL.value)
    # "creation" or "settlement"; fixed when the run is built
    posting_timing: Mapped[str] = mapped_column(String, nullable=False, default="creation")

    # Aggregates, always the sum over payments
    total_gross: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_tds: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_net: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_leave_cashout: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    total_debt_payout: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    total_recovery: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    worker_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_by: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Month the withholding was posted to when the run was settled
    tax_period_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tax_period_month: Mapped[int | None] = mapped_column(Integer, nullable=True)

    rerun_of_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'PENDING', 'PROCESSED', 'PAID', 'CANCELLED')",
            name="payroll_run_status_check",
        ),
        CheckConstraint(
            "origin IN ('MANUAL', 'GENERATED', 'RERUN')",
            name="payroll_run_origin_check",
        ),
        CheckConstraint("period_start <= period_end", name="payroll_run_period_check"),
        CheckConstraint(
            "posting_timing IN ('creation', 'settlement')",
            name="payroll_run_posting_timing_check",
        ),
    )

    # Relationships
    payments: Mapped[list[Payment]] = relationship(
        lazy="selectin",
        order_by="Payment.sequence",
    )


class Payment(Base, TimestampMixin, BankSnapshotMixin):
    """One worker's payout within a payroll run."""

    __tablename__ = "payment"

    payment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_reference: Mapped[str] = mapped_column(String, nullable=False, unique=True)

    gross_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    tds_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    leave_days: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))
    leave_cashout: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    debt_payout: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    taxable_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    tds: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net_before_recovery: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    recovery: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    net: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    status: Mapped[str] = mapped_column(String, nullable=False, default=PaymentStatus.PENDING.value)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    bank_snapshot: Mapped[BankSnapshot] = composite(
        BankSnapshot,
        "snapshot_pan",
        "snapshot_aadhaar",
        "snapshot_bank_account",
        "snapshot_ifsc_code",
        "snapshot_bank_name",
        "snapshot_is_axis_bank",
    )

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "worker_id", name="payment_run_worker_unique"),
        CheckConstraint("status IN ('PENDING', 'PAID', 'FAILED')", name="payment_status_check"),
        CheckConstraint("leave_days >= 0", name="payment_leave_days_check"),
        CheckConstraint("debt_payout >= 0", name="payment_debt_payout_check"),
        CheckConstraint("recovery >= 0", name="payment_recovery_check"),
    )

    @property
    def total_gross(self) -> Decimal:
        """Salary plus leave cashout plus debt payout."""
        return self.gross_salary + self.leave_cashout + self.debt_payout

    def apply_breakdown(self, breakdown: PaymentBreakdown) -> None:
        """Copy computed amounts onto this payment. The bank snapshot is untouched."""
        self.gross_salary = breakdown.gross_salary
        self.tds_rate = breakdown.tds_rate
        self.leave_days = breakdown.leave_days
        self.leave_cashout = breakdown.leave_cashout
        self.debt_payout = breakdown.debt_payout
        self.taxable_amount = breakdown.taxable_amount
        self.tds = breakdown.tds
        self.net_before_recovery = breakdown.net_before_recovery
        self.recovery = breakdown.recovery
        self.net = breakdown.net

    @classmethod
    def from_breakdown(
        cls,
        breakdown: PaymentBreakdown,
        *,
        worker_id: UUID,
        sequence: int,
        customer_reference: str,
    ) -> Payment:
        """New pending payment carrying the breakdown and its bank snapshot."""
        payment = cls(
            worker_id=worker_id,
            sequence=sequence,
            customer_reference=customer_reference,
            status=PaymentStatus.PENDING.value,
            bank_snapshot=breakdown.bank,
        )
        payment.apply_breakdown(breakdown)
        return payment
