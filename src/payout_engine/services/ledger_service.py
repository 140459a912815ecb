"""Account ledger service - append-only per-worker balance postings.

Provides idempotent posting of account transactions with:
- Balance increment and row insert in the caller's unit of work
- At most one active posting per originating record (LedgerLink)
- Reversal-based corrections (no updates/deletes)
- Statements and balance reconciliation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import assert_never
from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from payout_engine.errors import ConcurrencyNoOp, ValidationError
from payout_engine.models import (
    AccountTransaction,
    LedgerLink,
    LinkKind,
    TransactionCategory,
    TransactionType,
    Worker,
)
from payout_engine.services.balances import increment_balance, load_worker

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def signed_amount(type_: TransactionType, amount: Decimal) -> Decimal:
    """Balance delta of a posting."""
    match type_:
        case TransactionType.CREDIT:
            return amount
        case TransactionType.DEBIT:
            return -amount
        case _:
            assert_never(type_)


def opposite(type_: TransactionType) -> TransactionType:
    match type_:
        case TransactionType.CREDIT:
            return TransactionType.DEBIT
        case TransactionType.DEBIT:
            return TransactionType.CREDIT
        case _:
            assert_never(type_)


def category_label(category: TransactionCategory) -> str:
    """Human-readable name used in statements."""
    match category:
        case TransactionCategory.SALARY:
            return "Salary"
        case TransactionCategory.SALARY_DEBT:
            return "Salary debt"
        case TransactionCategory.ADVANCE_SALARY:
            return "Salary advance"
        case TransactionCategory.BONUS:
            return "Bonus"
        case TransactionCategory.REIMBURSEMENT:
            return "Reimbursement"
        case TransactionCategory.LOAN_DISBURSEMENT:
            return "Loan disbursement"
        case TransactionCategory.ADJUSTMENT:
            return "Adjustment"
        case TransactionCategory.REVERSAL:
            return "Reversal"
        case _:
            assert_never(category)


def _link_column(kind: LinkKind):
    match kind:
        case LinkKind.PAYMENT:
            return AccountTransaction.payment_id
        case LinkKind.DEBT_PAYMENT:
            return AccountTransaction.debt_payment_id
        case LinkKind.MANUAL_PAYMENT:
            return AccountTransaction.manual_payment_id
        case _:
            assert_never(kind)


def _link_values(link: LedgerLink | None) -> dict[str, UUID]:
    if link is None:
        return {}
    return {_link_column(link.kind).key: link.id}


@dataclass(frozen=True)
class StatementLine:
    """One row of an account statement."""

    transaction: AccountTransaction
    label: str


@dataclass(frozen=True)
class AccountStatement:
    """Ledger rows for one worker, newest first, with totals over all rows."""

    worker: Worker
    lines: list[StatementLine]
    total_credits: Decimal
    total_debits: Decimal

    @property
    def balance(self) -> Decimal:
        return self.worker.account_balance

    @property
    def is_consistent(self) -> bool:
        return self.total_credits - self.total_debits == self.worker.account_balance


class LedgerService:
    """Append-only account ledger.

    Notes:
    - account_transaction is append-only (ORM listeners enforce).
    - Every posting updates Worker.account_balance by a single increment
      and records the resulting balance on the row.
    - Amounts are never negative; direction comes from the type.
    - Nothing here commits. Callers wrap postings in ``database.atomic``.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def post(
        self,
        *,
        worker_id: UUID,
        type: TransactionType | str,
        category: TransactionCategory | str,
        amount: Decimal,
        description: str,
        link: LedgerLink | None = None,
        created_by: str | None = None,
    ) -> AccountTransaction:
        """Post one transaction and move the balance accordingly.

        Raises ConcurrencyNoOp (without writing) when ``link`` already has an
        active posting.
        """
        type_ = TransactionType(type)
        category_ = TransactionCategory(category)
        amount = Decimal(amount)
        if amount < 0:
            raise ValidationError(f"Ledger amount must not be negative, got {amount}")
        if category_ is TransactionCategory.REVERSAL:
            raise ValidationError("Reversals are posted through reverse_postings")

        if link is not None and await self.has_posting(link):
            raise ConcurrencyNoOp(link, "account posting")

        return await self._append(
            worker_id=worker_id,
            type_=type_,
            category=category_,
            amount=amount,
            description=description,
            link=link,
            created_by=created_by,
        )

    async def has_posting(self, link: LedgerLink) -> bool:
        """Whether ``link`` has a posting that has not been reversed."""
        return bool(await self.active_postings(link))

    async def active_postings(self, link: LedgerLink) -> list[AccountTransaction]:
        """Forward postings for ``link`` with no reversal pointing at them."""
        reversal = aliased(AccountTransaction)
        result = await self.session.execute(
            select(AccountTransaction)
            .where(
                _link_column(link.kind) == link.id,
                AccountTransaction.reversal_of_id.is_(None),
                ~exists().where(
                    reversal.reversal_of_id == AccountTransaction.account_transaction_id
                ),
            )
            .order_by(AccountTransaction.created_at)
        )
        return list(result.scalars().all())

    async def reverse_postings(
        self,
        link: LedgerLink,
        reason: str,
        created_by: str | None = None,
    ) -> list[AccountTransaction]:
        """Append an opposite-direction REVERSAL row for each active posting of ``link``."""
        reversals: list[AccountTransaction] = []
        for original in await self.active_postings(link):
            reversals.append(
                await self._append(
                    worker_id=original.worker_id,
                    type_=opposite(TransactionType(original.type)),
                    category=TransactionCategory.REVERSAL,
                    amount=original.amount,
                    description=f"Reversal: {reason}",
                    link=link,
                    reversal_of_id=original.account_transaction_id,
                    created_by=created_by,
                )
            )
        if reversals:
            logger.info("Reversed %d account posting(s) for %s: %s", len(reversals), link, reason)
        return reversals

    async def statement(self, worker_id: UUID, limit: int | None = None) -> AccountStatement:
        """Account statement for a worker."""
        worker = await load_worker(self.session, worker_id)

        query = (
            select(AccountTransaction)
            .where(AccountTransaction.worker_id == worker_id)
            .order_by(AccountTransaction.created_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        rows = (await self.session.execute(query)).scalars().all()

        totals = await self.session.execute(
            select(AccountTransaction.type, func.coalesce(func.sum(AccountTransaction.amount), 0))
            .where(AccountTransaction.worker_id == worker_id)
            .group_by(AccountTransaction.type)
        )
        sums = {type_: Decimal(str(total)).quantize(CENTS) for type_, total in totals.all()}

        return AccountStatement(
            worker=worker,
            lines=[
                StatementLine(transaction=row, label=category_label(TransactionCategory(row.category)))
                for row in rows
            ],
            total_credits=sums.get(TransactionType.CREDIT.value, Decimal("0")),
            total_debits=sums.get(TransactionType.DEBIT.value, Decimal("0")),
        )

    async def verify_balance(self, worker_id: UUID) -> bool:
        """Check that credits minus debits equals the stored balance."""
        statement = await self.statement(worker_id, limit=0)
        if not statement.is_consistent:
            logger.error(
                "Ledger mismatch for worker %s: credits %s - debits %s != balance %s",
                worker_id,
                statement.total_credits,
                statement.total_debits,
                statement.balance,
            )
        return statement.is_consistent

    async def _append(
        self,
        *,
        worker_id: UUID,
        type_: TransactionType,
        category: TransactionCategory,
        amount: Decimal,
        description: str,
        link: LedgerLink | None,
        created_by: str | None,
        reversal_of_id: UUID | None = None,
    ) -> AccountTransaction:
        balance_after = await increment_balance(
            self.session, worker_id, "account_balance", signed_amount(type_, amount)
        )
        txn = AccountTransaction(
            worker_id=worker_id,
            type=type_.value,
            category=category.value,
            amount=amount,
            balance_after=balance_after,
            description=description,
            reversal_of_id=reversal_of_id,
            created_by=created_by,
            **_link_values(link),
        )
        self.session.add(txn)
        await self.session.flush()
        return txn
