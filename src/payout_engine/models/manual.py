"""Manual (off-cycle) payment model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, composite, mapped_column

from payout_engine.calculators.types import BankSnapshot
from payout_engine.models.base import Base, BankSnapshotMixin, TimestampMixin


class ManualPaymentCategory(str, Enum):
    """Kinds of one-off payment; each maps to one account ledger category."""

    ADVANCE_SALARY = "ADVANCE_SALARY"
    BONUS = "BONUS"
    REIMBURSEMENT = "REIMBURSEMENT"
    LOAN_DISBURSEMENT = "LOAN_DISBURSEMENT"
    ADJUSTMENT = "ADJUSTMENT"


class ManualPayment(Base, TimestampMixin, BankSnapshotMixin):
    """Advance, bonus, reimbursement, loan or adjustment paid outside a run."""

    __tablename__ = "manual_payment"

    manual_payment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    worker_id: Mapped[UUID] = mapped_column(ForeignKey("worker.worker_id"), nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    is_taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tds_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    tds: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    customer_reference: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

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
        CheckConstraint("gross_amount > 0", name="manual_payment_amount_check"),
        CheckConstraint(
            "category IN ('ADVANCE_SALARY', 'BONUS', 'REIMBURSEMENT', "
            "'LOAN_DISBURSEMENT', 'ADJUSTMENT')",
            name="manual_payment_category_check",
        ),
    )
