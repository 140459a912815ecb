"""Debt run and debt payment models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
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

from payout_engine.calculators.types import BankSnapshot
from payout_engine.models.base import Base, BankSnapshotMixin, TimestampMixin


class DebtRun(Base, TimestampMixin):
    """Batch settling outstanding salary debt outside the regular cycle."""

    __tablename__ = "debt_run"

    debt_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    run_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_tds: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_net: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    worker_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_by: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    tax_period_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tax_period_month: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'PROCESSED', 'PAID', 'CANCELLED')",
            name="debt_run_status_check",
        ),
    )

    payments: Mapped[list[DebtPayment]] = relationship(
        lazy="selectin",
        order_by="DebtPayment.sequence",
    )


class DebtPayment(Base, TimestampMixin, BankSnapshotMixin):
    """One worker's debt payout within a debt run."""

    __tablename__ = "debt_payment"

    debt_payment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    debt_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("debt_run.debt_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    worker_id: Mapped[UUID] = mapped_column(ForeignKey("worker.worker_id"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_reference: Mapped[str] = mapped_column(String, nullable=False, unique=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    tds_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    tds: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    # Debt balance the worker was left with when the payout was recorded
    balance_after: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
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
        UniqueConstraint("debt_run_id", "worker_id", name="debt_payment_run_worker_unique"),
        CheckConstraint("amount > 0", name="debt_payment_amount_check"),
        CheckConstraint(
            "status IN ('PENDING', 'PAID', 'FAILED')",
            name="debt_payment_status_check",
        ),
    )
