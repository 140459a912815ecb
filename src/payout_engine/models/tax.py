"""Monthly withholding (TDS) filing records."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payout_engine.models.base import Base, TimestampMixin


class FilingStatus(str, Enum):
    """Filing progress of a month's withholding."""

    PENDING = "PENDING"
    WAITING_FOR_FILING = "WAITING_FOR_FILING"
    FILED = "FILED"
    PAID = "PAID"


class TaxPeriodRecord(Base, TimestampMixin):
    """Per-worker withholding totals for one calendar month."""

    __tablename__ = "tax_period_record"

    tax_period_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    worker_id: Mapped[UUID] = mapped_column(ForeignKey("worker.worker_id"), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    total_gross: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_tds: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_net: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_tds_payable: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    interest_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    payment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    filing_status: Mapped[str] = mapped_column(
        String, nullable=False, default=FilingStatus.PENDING.value
    )
    challan_number: Mapped[str | None] = mapped_column(String, nullable=True)
    filed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint("year", "month", "worker_id", name="tax_period_record_unique"),
        CheckConstraint("month >= 1 AND month <= 12", name="tax_period_record_month_check"),
        CheckConstraint("payment_count >= 0", name="tax_period_record_count_check"),
        CheckConstraint(
            "filing_status IN ('PENDING', 'WAITING_FOR_FILING', 'FILED', 'PAID')",
            name="tax_period_record_filing_status_check",
        ),
    )
