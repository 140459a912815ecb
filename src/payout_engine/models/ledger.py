"""Append-only per-worker ledgers: account, leave and debt.

Rows in these tables are never updated or deleted (see
``payout_engine.models.immutability``). Corrections are new rows that
point at the row they reverse through ``reversal_of_id``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from payout_engine.models.base import Base, TimestampMixin


class TransactionType(str, Enum):
    """Direction of an account ledger row."""

    CREDIT = "CREDIT"
    DEBIT = "DEBIT"


class TransactionCategory(str, Enum):
    """Closed set of reasons an account balance moves."""

    SALARY = "SALARY"
    SALARY_DEBT = "SALARY_DEBT"
    ADVANCE_SALARY = "ADVANCE_SALARY"
    BONUS = "BONUS"
    REIMBURSEMENT = "REIMBURSEMENT"
    LOAN_DISBURSEMENT = "LOAN_DISBURSEMENT"
    ADJUSTMENT = "ADJUSTMENT"
    REVERSAL = "REVERSAL"


class LinkKind(str, Enum):
    """Kind of record a ledger row originates from."""

    PAYMENT = "PAYMENT"
    DEBT_PAYMENT = "DEBT_PAYMENT"
    MANUAL_PAYMENT = "MANUAL_PAYMENT"


@dataclass(frozen=True)
class LedgerLink:
    """Originating record of a posting. At most one posting is active per link."""

    kind: LinkKind
    id: UUID

    @classmethod
    def payment(cls, payment_id: UUID) -> LedgerLink:
        return cls(LinkKind.PAYMENT, payment_id)

    @classmethod
    def debt_payment(cls, debt_payment_id: UUID) -> LedgerLink:
        return cls(LinkKind.DEBT_PAYMENT, debt_payment_id)

    @classmethod
    def manual_payment(cls, manual_payment_id: UUID) -> LedgerLink:
        return cls(LinkKind.MANUAL_PAYMENT, manual_payment_id)

    def __str__(self) -> str:
        return f"{self.kind.value.lower()}:{self.id}"


class LinkColumnsMixin:
    """Nullable pointers to the originating record; at most one is set."""

    payment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payment.payment_id"),
        nullable=True,
    )
    debt_payment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("debt_payment.debt_payment_id"),
        nullable=True,
    )

    @property
    def link(self) -> LedgerLink | None:
        if self.payment_id is not None:
            return LedgerLink.payment(self.payment_id)
        if self.debt_payment_id is not None:
            return LedgerLink.debt_payment(self.debt_payment_id)
        return None


class AccountTransaction(Base, TimestampMixin, LinkColumnsMixin):
    """One movement of a worker's signed account balance.

    Invariant: for every worker, sum(CREDIT) - sum(DEBIT) equals
    ``Worker.account_balance``.
    """

    __tablename__ = "account_transaction"

    account_transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    worker_id: Mapped[UUID] = mapped_column(ForeignKey("worker.worker_id"), nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    manual_payment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("manual_payment.manual_payment_id"),
        nullable=True,
    )
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("account_transaction.account_transaction_id"),
        nullable=True,
        unique=True,
    )
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="account_transaction_amount_check"),
        CheckConstraint("type IN ('CREDIT', 'DEBIT')", name="account_transaction_type_check"),
        CheckConstraint(
            "category IN ('SALARY', 'SALARY_DEBT', 'ADVANCE_SALARY', 'BONUS', "
            "'REIMBURSEMENT', 'LOAN_DISBURSEMENT', 'ADJUSTMENT', 'REVERSAL')",
            name="account_transaction_category_check",
        ),
        CheckConstraint(
            "(CASE WHEN payment_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN debt_payment_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN manual_payment_id IS NULL THEN 0 ELSE 1 END) <= 1",
            name="account_transaction_single_link_check",
        ),
        Index("ix_account_transaction_worker", "worker_id", "created_at"),
    )

    @property
    def link(self) -> LedgerLink | None:
        if self.manual_payment_id is not None:
            return LedgerLink.manual_payment(self.manual_payment_id)
        return super().link

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == TransactionType.CREDIT.value else -self.amount


class LeaveTransaction(Base, TimestampMixin, LinkColumnsMixin):
    """Signed change of a worker's leave-day balance."""

    __tablename__ = "leave_transaction"

    leave_transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    worker_id: Mapped[UUID] = mapped_column(ForeignKey("worker.worker_id"), nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    days: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("leave_transaction.leave_transaction_id"),
        nullable=True,
        unique=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "kind IN ('CASHOUT', 'REVERSAL', 'ADJUSTMENT')",
            name="leave_transaction_kind_check",
        ),
    )


class DebtTransaction(Base, TimestampMixin, LinkColumnsMixin):
    """Signed change of a worker's outstanding salary debt."""

    __tablename__ = "debt_transaction"

    debt_transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    worker_id: Mapped[UUID] = mapped_column(ForeignKey("worker.worker_id"), nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("debt_transaction.debt_transaction_id"),
        nullable=True,
        unique=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "kind IN ('PAYOUT', 'REVERSAL', 'ADJUSTMENT')",
            name="debt_transaction_kind_check",
        ),
    )
