"""Leave-day and salary-debt balance tracking.

Each change is one increment of the worker's balance plus one audit row
carrying the resulting balance. Decrements tied to a payment happen at
most once per link; reversals restore the balance with their own rows.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from payout_engine.errors import ConcurrencyNoOp, ValidationError
from payout_engine.models import DebtTransaction, LeaveTransaction, LedgerLink, LinkKind
from payout_engine.services.audit import record_audit
from payout_engine.services.balances import increment_balance, load_worker

logger = logging.getLogger(__name__)

CASHOUT = "CASHOUT"
PAYOUT = "PAYOUT"
REVERSAL = "REVERSAL"
ADJUSTMENT = "ADJUSTMENT"


def _debt_link_filter(link: LedgerLink):
    if link.kind is LinkKind.PAYMENT:
        return DebtTransaction.payment_id == link.id
    if link.kind is LinkKind.DEBT_PAYMENT:
        return DebtTransaction.debt_payment_id == link.id
    raise ValidationError(f"Debt payouts cannot be linked to {link.kind.value}")


def _debt_link_values(link: LedgerLink) -> dict[str, UUID]:
    if link.kind is LinkKind.PAYMENT:
        return {"payment_id": link.id}
    return {"debt_payment_id": link.id}


class BalanceTracker:
    """Atomic decrements and restorations of leave and debt balances."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Leave
    # ------------------------------------------------------------------

    async def apply_leave_cashout(
        self,
        worker_id: UUID,
        days: Decimal,
        payment_id: UUID,
        created_by: str | None = None,
    ) -> LeaveTransaction:
        """Deduct cashed-out leave days for a payment."""
        days = Decimal(days)
        if days <= 0:
            raise ValidationError(f"Leave days must be positive, got {days}")
        link = LedgerLink.payment(payment_id)
        if await self.active_leave_cashouts(payment_id):
            raise ConcurrencyNoOp(link, "leave cashout")

        worker = await load_worker(self.session, worker_id)
        if days > worker.leave_balance:
            raise ValidationError(
                f"Leave days {days} exceed balance {worker.leave_balance} for worker {worker_id}"
            )

        balance_after = await increment_balance(self.session, worker_id, "leave_balance", -days)
        row = LeaveTransaction(
            worker_id=worker_id,
            kind=CASHOUT,
            days=-days,
            balance_after=balance_after,
            payment_id=payment_id,
            notes="Leave cashout",
            created_by=created_by,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def active_leave_cashouts(self, payment_id: UUID) -> list[LeaveTransaction]:
        reversal = aliased(LeaveTransaction)
        result = await self.session.execute(
            select(LeaveTransaction).where(
                LeaveTransaction.payment_id == payment_id,
                LeaveTransaction.kind == CASHOUT,
                ~exists().where(
                    reversal.reversal_of_id == LeaveTransaction.leave_transaction_id
                ),
            )
        )
        return list(result.scalars().all())

    async def reverse_leave(
        self,
        payment_id: UUID,
        reason: str,
        created_by: str | None = None,
    ) -> list[LeaveTransaction]:
        """Restore leave days taken by a payment's active cashout."""
        reversals: list[LeaveTransaction] = []
        for original in await self.active_leave_cashouts(payment_id):
            restored = -original.days
            balance_after = await increment_balance(
                self.session, original.worker_id, "leave_balance", restored
            )
            row = LeaveTransaction(
                worker_id=original.worker_id,
                kind=REVERSAL,
                days=restored,
                balance_after=balance_after,
                payment_id=payment_id,
                reversal_of_id=original.leave_transaction_id,
                notes=f"Reversal: {reason}",
                created_by=created_by,
            )
            self.session.add(row)
            reversals.append(row)
        if reversals:
            await self.session.flush()
            logger.info("Restored leave for payment %s: %s", payment_id, reason)
        return reversals

    async def adjust_leave(
        self,
        worker_id: UUID,
        days: Decimal,
        notes: str,
        created_by: str | None = None,
    ) -> LeaveTransaction:
        """Manual correction of the leave balance by a signed number of days."""
        days = Decimal(days)
        if days == 0:
            raise ValidationError("Leave adjustment must be non-zero")
        worker = await load_worker(self.session, worker_id)
        if worker.leave_balance + days < 0:
            raise ValidationError(
                f"Adjustment {days} would make leave balance negative for worker {worker_id}"
            )
        balance_after = await increment_balance(self.session, worker_id, "leave_balance", days)
        row = LeaveTransaction(
            worker_id=worker_id,
            kind=ADJUSTMENT,
            days=days,
            balance_after=balance_after,
            notes=notes,
            created_by=created_by,
        )
        self.session.add(row)
        record_audit(
            self.session,
            action="ADJUST_LEAVE",
            entity_type="worker",
            entity_id=worker_id,
            actor_id=created_by,
            old_values={"leave_balance": balance_after - days},
            new_values={"leave_balance": balance_after, "notes": notes},
        )
        await self.session.flush()
        return row

    # ------------------------------------------------------------------
    # Debt
    # ------------------------------------------------------------------

    async def apply_debt_payout(
        self,
        worker_id: UUID,
        amount: Decimal,
        link: LedgerLink,
        created_by: str | None = None,
    ) -> DebtTransaction:
        """Reduce outstanding debt by an amount paid out through ``link``."""
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationError(f"Debt payout must be positive, got {amount}")
        if await self.active_debt_payouts(link):
            raise ConcurrencyNoOp(link, "debt payout")

        worker = await load_worker(self.session, worker_id)
        if amount > worker.debt_balance:
            raise ValidationError(
                f"Debt payout {amount} exceeds balance {worker.debt_balance} for worker {worker_id}"
            )

        balance_after = await increment_balance(self.session, worker_id, "debt_balance", -amount)
        row = DebtTransaction(
            worker_id=worker_id,
            kind=PAYOUT,
            amount=-amount,
            balance_after=balance_after,
            notes="Debt payout",
            created_by=created_by,
            **_debt_link_values(link),
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def active_debt_payouts(self, link: LedgerLink) -> list[DebtTransaction]:
        reversal = aliased(DebtTransaction)
        result = await self.session.execute(
            select(DebtTransaction).where(
                _debt_link_filter(link),
                DebtTransaction.kind == PAYOUT,
                ~exists().where(
                    reversal.reversal_of_id == DebtTransaction.debt_transaction_id
                ),
            )
        )
        return list(result.scalars().all())

    async def reverse_debt(
        self,
        link: LedgerLink,
        reason: str,
        created_by: str | None = None,
    ) -> list[DebtTransaction]:
        """Restore debt paid out through ``link``."""
        reversals: list[DebtTransaction] = []
        for original in await self.active_debt_payouts(link):
            restored = -original.amount
            balance_after = await increment_balance(
                self.session, original.worker_id, "debt_balance", restored
            )
            row = DebtTransaction(
                worker_id=original.worker_id,
                kind=REVERSAL,
                amount=restored,
                balance_after=balance_after,
                reversal_of_id=original.debt_transaction_id,
                notes=f"Reversal: {reason}",
                created_by=created_by,
                **_debt_link_values(link),
            )
            self.session.add(row)
            reversals.append(row)
        if reversals:
            await self.session.flush()
            logger.info("Restored debt for %s: %s", link, reason)
        return reversals

    async def adjust_debt(
        self,
        worker_id: UUID,
        amount: Decimal,
        notes: str,
        created_by: str | None = None,
    ) -> DebtTransaction:
        """Manual correction of outstanding debt by a signed amount."""
        amount = Decimal(amount)
        if amount == 0:
            raise ValidationError("Debt adjustment must be non-zero")
        worker = await load_worker(self.session, worker_id)
        if worker.debt_balance + amount < 0:
            raise ValidationError(
                f"Adjustment {amount} would make debt balance negative for worker {worker_id}"
            )
        balance_after = await increment_balance(self.session, worker_id, "debt_balance", amount)
        row = DebtTransaction(
            worker_id=worker_id,
            kind=ADJUSTMENT,
            amount=amount,
            balance_after=balance_after,
            notes=notes,
            created_by=created_by,
        )
        self.session.add(row)
        record_audit(
            self.session,
            action="ADJUST_DEBT",
            entity_type="worker",
            entity_id=worker_id,
            actor_id=created_by,
            old_values={"debt_balance": balance_after - amount},
            new_values={"debt_balance": balance_after, "notes": notes},
        )
        await self.session.flush()
        return row
