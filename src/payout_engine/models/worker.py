"""Worker registry and pay schedule models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from payout_engine.calculators.types import BankSnapshot, PayTerms
from payout_engine.models.base import Base, TimestampMixin


class WorkerStatus(str, Enum):
    """Worker employment status."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    TERMINATED = "TERMINATED"


class Worker(Base, TimestampMixin):
    """Contractor paid through payroll runs.

    The three balances are only changed through single-statement
    increments issued by the ledger and balance tracker services.
    """

    __tablename__ = "worker"

    worker_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    pan: Mapped[str] = mapped_column(String(10), nullable=False)
    aadhaar: Mapped[str | None] = mapped_column(String(12), nullable=True)
    bank_account: Mapped[str] = mapped_column(String, nullable=False)
    ifsc_code: Mapped[str] = mapped_column(String(11), nullable=False)
    bank_name: Mapped[str] = mapped_column(String, nullable=False)
    is_axis_bank: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    nature_of_work: Mapped[str | None] = mapped_column(String, nullable=True)

    gross_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    tds_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("10")
    )
    leave_balance: Mapped[Decimal] = mapped_column(
        Numeric(8, 2), nullable=False, default=Decimal("0")
    )
    debt_balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    # Positive: employer owes the worker. Negative: the worker owes the employer.
    account_balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )

    status: Mapped[str] = mapped_column(String, nullable=False, default=WorkerStatus.ACTIVE.value)
    joined_date: Mapped[date] = mapped_column(Date, nullable=False)
    terminated_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint("tds_rate >= 0 AND tds_rate <= 100", name="worker_tds_rate_check"),
        CheckConstraint("gross_salary >= 0", name="worker_gross_salary_check"),
        CheckConstraint("leave_balance >= 0", name="worker_leave_balance_check"),
        CheckConstraint("debt_balance >= 0", name="worker_debt_balance_check"),
        CheckConstraint(
            "status IN ('ACTIVE', 'INACTIVE', 'TERMINATED')",
            name="worker_status_check",
        ),
    )

    def bank_snapshot(self) -> BankSnapshot:
        """Current identity and bank details, frozen."""
        return BankSnapshot(
            pan=self.pan,
            aadhaar=self.aadhaar,
            bank_account=self.bank_account,
            ifsc_code=self.ifsc_code,
            bank_name=self.bank_name,
            is_axis_bank=self.is_axis_bank,
        )

    def pay_terms(self) -> PayTerms:
        """Calculator inputs as of now."""
        return PayTerms(
            gross_salary=self.gross_salary,
            tds_rate=self.tds_rate,
            account_balance=self.account_balance,
            bank=self.bank_snapshot(),
        )


class PaySchedule(Base, TimestampMixin):
    """Pay cycle definition.

    Run dates only ever move forward; see PayrollRunService.
    """

    __tablename__ = "pay_schedule"

    pay_schedule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, default="default")
    cycle_days: Mapped[int] = mapped_column(Integer, nullable=False, default=14)
    last_run_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    next_run_date: Mapped[date] = mapped_column(Date, nullable=False)
    generation_time: Mapped[str] = mapped_column(String(5), nullable=False, default="09:00")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("cycle_days > 0", name="pay_schedule_cycle_days_check"),
    )
