"""Debt run service - settles outstanding salary debt outside the regular cycle."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payout_engine.calculators import AmountCalculator, customer_reference
from payout_engine.config import PostingTiming, Settings, get_settings
from payout_engine.database import atomic
from payout_engine.errors import ConcurrencyNoOp, NotFoundError, ValidationError
from payout_engine.models import DebtPayment, DebtRun, LedgerLink, PaymentStatus
from payout_engine.services.audit import record_audit
from payout_engine.services.balance_tracker import BalanceTracker
from payout_engine.services.balances import load_workers
from payout_engine.services.state_machine import DebtRunStateMachine, DebtRunStatus
from payout_engine.services.tax_period_service import TaxPeriodService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
REFERENCE_PREFIX = "DEBT"


@dataclass(frozen=True)
class DebtItem:
    """Per-worker input when creating a debt run."""

    worker_id: UUID
    amount: Decimal
    notes: str | None = None


class DebtRunService:
    """Service for debt run lifecycle.

    The worker's debt balance is reduced when the run is created (or at
    PAID under settlement timing), restored when the run is cancelled.
    Withholding lands in the month the run is paid.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.tracker = BalanceTracker(session)
        self.tax_periods = TaxPeriodService(session)

    async def get_debt_run(self, run_id: UUID) -> DebtRun:
        result = await self.session.execute(
            select(DebtRun)
            .where(DebtRun.debt_run_id == run_id)
            .execution_options(populate_existing=True)
        )
        run = result.scalar_one_or_none()
        if run is None:
            raise NotFoundError("Debt run", run_id)
        return run

    async def list_debt_runs(self, status: str | None = None, limit: int = 20) -> list[DebtRun]:
        query = select(DebtRun).order_by(DebtRun.run_date.desc(), DebtRun.created_at.desc())
        if status:
            query = query.where(DebtRun.status == status)
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def create_debt_run(
        self,
        run_date: date,
        items: Sequence[DebtItem],
        actor_id: str | None = None,
        notes: str | None = None,
    ) -> DebtRun:
        """Create a PENDING debt run, one payout per item.

        Raises ValidationError for an empty or duplicated batch, non-positive
        amounts, or amounts above the worker's outstanding debt.
        """
        self._validate_items(items)

        async with atomic(self.session, self.settings.transaction_timeout_seconds):
            workers = await load_workers(self.session, [item.worker_id for item in items])
            for item in items:
                worker = workers[item.worker_id]
                if Decimal(item.amount) > worker.debt_balance:
                    raise ValidationError(
                        f"Debt payout {item.amount} exceeds balance {worker.debt_balance} "
                        f"for worker {worker.worker_id}"
                    )

            sequence = await self._next_sequence(run_date)
            run = DebtRun(
                run_date=run_date,
                status=DebtRunStatus.PENDING.value,
                created_by=actor_id,
                notes=notes,
            )
            for offset, item in enumerate(items):
                worker = workers[item.worker_id]
                taxed = AmountCalculator.compute_taxed_amount(item.amount, worker.tds_rate)
                run.payments.append(
                    DebtPayment(
                        worker_id=worker.worker_id,
                        sequence=sequence + offset,
                        customer_reference=customer_reference(
                            REFERENCE_PREFIX, run_date, sequence + offset
                        ),
                        amount=taxed.amount,
                        tds_rate=taxed.tds_rate,
                        tds=taxed.tds,
                        net=taxed.net,
                        balance_after=worker.debt_balance - taxed.amount,
                        status=PaymentStatus.PENDING.value,
                        notes=item.notes,
                        bank_snapshot=worker.bank_snapshot(),
                    )
                )
            self._recompute_totals(run)
            self.session.add(run)
            await self.session.flush()

            if self.settings.posting_timing is PostingTiming.CREATION:
                for payment in run.payments:
                    await self._apply_payout(payment, actor_id)

            record_audit(
                self.session,
                action="CREATE_DEBT_RUN",
                entity_type="debt_run",
                entity_id=run.debt_run_id,
                actor_id=actor_id,
                new_values={
                    "run_date": run_date,
                    "worker_count": run.worker_count,
                    "total_amount": run.total_amount,
                    "total_tds": run.total_tds,
                },
            )
            run_id = run.debt_run_id

        logger.info("Created debt run %s for %s", run_id, run_date)
        return await self.get_debt_run(run_id)

    async def transition_debt_run(
        self,
        run_id: UUID,
        to_status: DebtRunStatus | str,
        actor_id: str | None = None,
        notes: str | None = None,
        today: date | None = None,
    ) -> DebtRun:
        """Move a debt run to ``to_status`` with its side effects.

        - paid: post any debt decrement still missing, add withholding to
          the current month, mark payouts paid
        - cancelled: restore the debt balances
        """
        to_status = (
            to_status.value if isinstance(to_status, DebtRunStatus) else str(to_status).upper()
        )

        async with atomic(self.session, self.settings.transaction_timeout_seconds):
            run = await self.get_debt_run(run_id)
            from_status = run.status

            if from_status == to_status:
                logger.info("Debt run %s already %s, nothing to do", run_id, to_status)
                return run

            DebtRunStateMachine.validate_transition(from_status, to_status)
            now = datetime.now(timezone.utc)

            if to_status == DebtRunStatus.PROCESSED:
                run.processed_at = now
                run.processed_by = actor_id

            elif to_status == DebtRunStatus.PAID:
                today = today or date.today()
                for payment in run.payments:
                    await self._apply_payout(payment, actor_id)
                    await self.tax_periods.post_to_period(
                        payment.worker_id,
                        today.year,
                        today.month,
                        gross=payment.amount,
                        tds=payment.tds,
                        net=payment.net,
                    )
                    payment.status = PaymentStatus.PAID.value
                    payment.paid_at = now
                run.tax_period_year = today.year
                run.tax_period_month = today.month
                run.paid_at = now
                run.paid_by = actor_id

            elif to_status == DebtRunStatus.CANCELLED:
                for payment in run.payments:
                    await self.tracker.reverse_debt(
                        LedgerLink.debt_payment(payment.debt_payment_id),
                        "debt run cancelled",
                        created_by=actor_id,
                    )
                    payment.status = PaymentStatus.FAILED.value

            run.status = to_status
            if notes is not None:
                run.notes = notes

            record_audit(
                self.session,
                action=f"UPDATE_DEBT_RUN_{to_status}",
                entity_type="debt_run",
                entity_id=run_id,
                actor_id=actor_id,
                old_values={"status": from_status},
                new_values={"status": to_status, "notes": notes},
            )

        logger.info("Debt run %s: %s -> %s", run_id, from_status, to_status)
        return await self.get_debt_run(run_id)

    async def _apply_payout(self, payment: DebtPayment, actor_id: str | None) -> None:
        try:
            txn = await self.tracker.apply_debt_payout(
                payment.worker_id,
                payment.amount,
                LedgerLink.debt_payment(payment.debt_payment_id),
                created_by=actor_id,
            )
        except ConcurrencyNoOp as exc:
            logger.info("Skipping: %s", exc)
            return
        payment.balance_after = txn.balance_after

    @staticmethod
    def _validate_items(items: Sequence[DebtItem]) -> None:
        if not items:
            raise ValidationError("A debt run needs at least one payout")
        seen: set[UUID] = set()
        for item in items:
            if item.worker_id in seen:
                raise ValidationError(f"Worker {item.worker_id} appears more than once")
            seen.add(item.worker_id)
            if Decimal(item.amount) <= 0:
                raise ValidationError(f"Debt payout must be positive for worker {item.worker_id}")

    async def _next_sequence(self, on: date) -> int:
        count = await self.session.scalar(
            select(func.count())
            .select_from(DebtPayment)
            .where(DebtPayment.customer_reference.like(f"{REFERENCE_PREFIX}-{on:%Y%m%d}-%"))
        )
        return (count or 0) + 1

    @staticmethod
    def _recompute_totals(run: DebtRun) -> None:
        run.total_amount = sum((p.amount for p in run.payments), ZERO)
        run.total_tds = sum((p.tds for p in run.payments), ZERO)
        run.total_net = sum((p.net for p in run.payments), ZERO)
        run.worker_count = len(run.payments)
