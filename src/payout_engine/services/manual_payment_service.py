"""Manual payments: advances, bonuses, reimbursements, loans and adjustments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import assert_never
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payout_engine.calculators import AmountCalculator, customer_reference
from payout_engine.config import Settings, get_settings
from payout_engine.database import atomic
from payout_engine.errors import ValidationError
from payout_engine.models import (
    AccountTransaction,
    LedgerLink,
    ManualPayment,
    ManualPaymentCategory,
    TransactionCategory,
    TransactionType,
)
from payout_engine.services.audit import record_audit
from payout_engine.services.balances import load_worker
from payout_engine.services.ledger_service import LedgerService
from payout_engine.services.tax_period_service import TaxPeriodService

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "MAN"


def ledger_direction(category: ManualPaymentCategory) -> TransactionType:
    """Money the worker now owes is a DEBIT; money owed to the worker is a CREDIT."""
    match category:
        case ManualPaymentCategory.ADVANCE_SALARY | ManualPaymentCategory.LOAN_DISBURSEMENT:
            return TransactionType.DEBIT
        case (
            ManualPaymentCategory.BONUS
            | ManualPaymentCategory.REIMBURSEMENT
            | ManualPaymentCategory.ADJUSTMENT
        ):
            return TransactionType.CREDIT
        case _:
            assert_never(category)


@dataclass(frozen=True)
class ManualPaymentResult:
    payment: ManualPayment
    transaction: AccountTransaction


class ManualPaymentService:
    """Records one-off payments and their account ledger posting."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.ledger = LedgerService(session)
        self.tax_periods = TaxPeriodService(session)

    async def record_manual_payment(
        self,
        worker_id: UUID,
        category: ManualPaymentCategory | str,
        gross_amount: Decimal,
        is_taxable: bool = True,
        payment_date: date | None = None,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> ManualPaymentResult:
        """Record a manual payment and post it to the worker's account.

        Withholding is computed only for taxable payments and is added to
        the month of ``payment_date``.
        """
        try:
            category_ = ManualPaymentCategory(category)
        except ValueError as exc:
            raise ValidationError(f"Unknown manual payment category: {category}") from exc
        gross_amount = Decimal(gross_amount)
        if gross_amount <= 0:
            raise ValidationError("Manual payment amount must be positive")
        payment_date = payment_date or date.today()

        async with atomic(self.session, self.settings.transaction_timeout_seconds):
            worker = await load_worker(self.session, worker_id)
            taxed = AmountCalculator.compute_taxed_amount(gross_amount, worker.tds_rate, is_taxable)
            sequence = await self._next_sequence(payment_date)

            payment = ManualPayment(
                worker_id=worker_id,
                category=category_.value,
                gross_amount=taxed.amount,
                is_taxable=is_taxable,
                tds_rate=taxed.tds_rate,
                tds=taxed.tds,
                net=taxed.net,
                payment_date=payment_date,
                customer_reference=customer_reference(REFERENCE_PREFIX, payment_date, sequence),
                notes=notes,
                created_by=actor_id,
                bank_snapshot=worker.bank_snapshot(),
            )
            self.session.add(payment)
            await self.session.flush()

            transaction = await self.ledger.post(
                worker_id=worker_id,
                type=ledger_direction(category_),
                category=TransactionCategory(category_.value),
                amount=gross_amount,
                description=notes or f"{category_.value} {payment.customer_reference}",
                link=LedgerLink.manual_payment(payment.manual_payment_id),
                created_by=actor_id,
            )

            if taxed.tds > 0:
                await self.tax_periods.post_to_period(
                    worker_id,
                    payment_date.year,
                    payment_date.month,
                    gross=taxed.amount,
                    tds=taxed.tds,
                    net=taxed.net,
                )

            record_audit(
                self.session,
                action="CREATE_MANUAL_PAYMENT",
                entity_type="manual_payment",
                entity_id=payment.manual_payment_id,
                actor_id=actor_id,
                new_values={
                    "worker_id": worker_id,
                    "category": category_.value,
                    "gross_amount": gross_amount,
                    "tds": taxed.tds,
                    "balance_after": transaction.balance_after,
                },
            )

        logger.info(
            "Recorded %s %s for worker %s", category_.value, payment.customer_reference, worker_id
        )
        return ManualPaymentResult(payment=payment, transaction=transaction)

    async def list_manual_payments(
        self,
        worker_id: UUID | None = None,
        limit: int = 50,
    ) -> list[ManualPayment]:
        query = select(ManualPayment).order_by(
            ManualPayment.payment_date.desc(), ManualPayment.created_at.desc()
        )
        if worker_id is not None:
            query = query.where(ManualPayment.worker_id == worker_id)
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def _next_sequence(self, on: date) -> int:
        count = await self.session.scalar(
            select(func.count())
            .select_from(ManualPayment)
            .where(ManualPayment.customer_reference.like(f"{REFERENCE_PREFIX}-{on:%Y%m%d}-%"))
        )
        return (count or 0) + 1
