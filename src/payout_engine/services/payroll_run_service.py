"""Payroll run service - main orchestrator for payout operations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from payout_engine.calculators import (
    AmountCalculator,
    PaymentBreakdown,
    PayTerms,
    customer_reference,
    is_eligible_for_run,
    next_run_date,
    overdue_run_dates,
    pay_period,
)
from payout_engine.config import PostingTiming, Settings, get_settings
from payout_engine.database import atomic
from payout_engine.errors import (
    ConcurrencyNoOp,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from payout_engine.models import (
    AccountTransaction,
    LedgerLink,
    PaySchedule,
    Payment,
    PaymentStatus,
    PayrollRun,
    RunOrigin,
    TransactionCategory,
    TransactionType,
    Worker,
)
from payout_engine.services.audit import record_audit
from payout_engine.services.balance_tracker import BalanceTracker
from payout_engine.services.balances import load_worker, load_workers
from payout_engine.services.ledger_service import LedgerService
from payout_engine.services.state_machine import PayrollRunStateMachine, PayrollRunStatus
from payout_engine.services.tax_period_service import TaxPeriodService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENTS = Decimal("0.01")

Calculate = Callable[[PayTerms, Decimal, Decimal, int], PaymentBreakdown]


@dataclass(frozen=True)
class PaymentItem:
    """Per-worker input when creating a run."""

    worker_id: UUID
    leave_days: Decimal = ZERO
    debt_amount: Decimal = ZERO


@dataclass(frozen=True)
class PaymentUpdate:
    """New leave and debt inputs for an existing payment."""

    payment_id: UUID
    leave_days: Decimal = ZERO
    debt_amount: Decimal = ZERO


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _payment_amounts(payment: Payment) -> dict[str, Any]:
    return {
        "leave_days": payment.leave_days,
        "leave_cashout": payment.leave_cashout,
        "debt_payout": payment.debt_payout,
        "tds": payment.tds,
        "recovery": payment.recovery,
        "net": payment.net,
    }


class PayrollRunService:
    """Service for managing the payroll run lifecycle.

    Operations:
    - create_run: validate inputs, compute payments, persist the run
    - generate_pending_runs: create runs for overdue schedule dates
    - transition_run: drive PENDING/PROCESSED/PAID/CANCELLED with side effects
    - edit_payment / edit_payments: change leave and debt on a pending run
    - rerun: cancel a run and recreate it with current worker data

    Every balance effect of a payment (salary ledger row, leave cashout,
    debt payout) is posted at most once per payment. Whether it is posted
    at creation or at settlement is fixed per run when it is built: explicit
    runs follow ``posting_timing``, generated runs always wait for PAID, and
    re-runs keep the timing of the run they replace. The move to PAID always
    posts whatever is still missing.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.ledger = LedgerService(session)
        self.tracker = BalanceTracker(session)
        self.tax_periods = TaxPeriodService(session)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_run(self, run_id: UUID) -> PayrollRun:
        """Load a payroll run with its payments."""
        result = await self.session.execute(
            select(PayrollRun)
            .where(PayrollRun.payroll_run_id == run_id)
            .execution_options(populate_existing=True)
        )
        run = result.scalar_one_or_none()
        if run is None:
            raise NotFoundError("Payroll run", run_id)
        return run

    async def list_runs(
        self,
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[PayrollRun], int]:
        """Runs newest first, with the total count for pagination."""
        query = select(PayrollRun)
        if status:
            query = query.where(PayrollRun.status == status)

        total = await self.session.scalar(select(func.count()).select_from(query.subquery())) or 0
        result = await self.session.execute(
            query.order_by(PayrollRun.run_date.desc(), PayrollRun.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_payment(self, payment_id: UUID) -> Payment:
        payment = await self.session.get(Payment, payment_id, populate_existing=True)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_run(
        self,
        run_date: date,
        items: Sequence[PaymentItem],
        schedule_id: UUID | None = None,
        actor_id: str | None = None,
        notes: str | None = None,
    ) -> PayrollRun:
        """Create a PENDING run for ``run_date`` with one payment per item.

        Raises ValidationError for an empty or duplicated batch, negative
        inputs, or leave/debt above the worker's balance. Raises
        NotFoundError for unknown workers or schedule.
        """
        async with atomic(self.session, self.settings.transaction_timeout_seconds):
            cycle_days = self.settings.default_cycle_days
            if schedule_id is not None:
                schedule = await self._get_schedule(schedule_id)
                cycle_days = schedule.cycle_days

            if await self._has_active_run_on(run_date):
                raise ValidationError(f"A payroll run already exists for {run_date}")

            run = await self._build_run(
                run_date,
                items,
                cycle_days=cycle_days,
                pay_schedule_id=schedule_id,
                origin=RunOrigin.MANUAL,
                posting_timing=self.settings.posting_timing,
                actor_id=actor_id,
            )
            run.notes = notes

            if self._posts_at_creation(run):
                for payment in run.payments:
                    await self._post_payment_effects(payment, actor_id)

            record_audit(
                self.session,
                action="CREATE_PAYROLL_RUN",
                entity_type="payroll_run",
                entity_id=run.payroll_run_id,
                actor_id=actor_id,
                new_values=self._run_summary(run),
            )
            run_id = run.payroll_run_id

        logger.info("Created payroll run %s for %s", run_id, run_date)
        return await self.get_run(run_id)

    async def generate_pending_runs(
        self,
        schedule_id: UUID,
        today: date | None = None,
        actor_id: str | None = None,
    ) -> list[PayrollRun]:
        """Create runs for every overdue date of a schedule.

        Dates step from ``next_run_date`` by the cycle length while on or
        before ``today``; dates that already have a run are skipped. Balance
        effects of generated runs are always posted at settlement.
        """
        today = today or date.today()
        created_ids: list[UUID] = []

        async with atomic(self.session, self.settings.transaction_timeout_seconds):
            schedule = await self._get_schedule(schedule_id)
            if not schedule.is_active:
                logger.info("Schedule %s is inactive, nothing generated", schedule_id)
                return []

            dates = overdue_run_dates(schedule.next_run_date, schedule.cycle_days, today)
            workers = (await self.session.execute(select(Worker))).scalars().all()

            for run_date in dates:
                if await self._has_active_run_on(run_date):
                    logger.info("Run already exists for %s, skipping", run_date)
                    continue

                period = pay_period(run_date, schedule.cycle_days)
                items = [
                    PaymentItem(worker_id=w.worker_id)
                    for w in workers
                    if is_eligible_for_run(
                        w.status, w.joined_date, w.terminated_date, run_date, period.start
                    )
                ]
                if not items:
                    logger.info("No eligible workers for %s, skipping", run_date)
                    continue

                run = await self._build_run(
                    run_date,
                    items,
                    cycle_days=schedule.cycle_days,
                    pay_schedule_id=schedule.pay_schedule_id,
                    origin=RunOrigin.GENERATED,
                    posting_timing=PostingTiming.SETTLEMENT,
                    actor_id=actor_id,
                )
                record_audit(
                    self.session,
                    action="AUTO_GENERATE_PAYROLL",
                    entity_type="payroll_run",
                    entity_id=run.payroll_run_id,
                    actor_id=actor_id,
                    new_values=self._run_summary(run),
                )
                created_ids.append(run.payroll_run_id)

            if dates:
                following = next_run_date(dates[-1], schedule.cycle_days)
                if following > schedule.next_run_date:
                    schedule.next_run_date = following

        logger.info("Generated %d payroll run(s) for schedule %s", len(created_ids), schedule_id)
        return [await self.get_run(run_id) for run_id in created_ids]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def transition_run(
        self,
        run_id: UUID,
        to_status: PayrollRunStatus | str,
        actor_id: str | None = None,
        notes: str | None = None,
        today: date | None = None,
    ) -> PayrollRun:
        """Move a run to ``to_status`` and apply the side effects.

        - processed: stamp processed_at/by
        - paid: post missing balance effects, add withholding to the current
          month, mark payments paid, advance the schedule
        - cancelled: mark payments failed, reverse any posted effects
        - pending (revert): take withholding back out of its month and,
          with ``symmetric_revert``, reverse the balance effects

        Requesting the run's current status is a no-op.
        """
        to_status = (
            to_status.value if isinstance(to_status, PayrollRunStatus) else str(to_status).upper()
        )

        async with atomic(self.session, self.settings.transaction_timeout_seconds):
            run = await self.get_run(run_id)
            from_status = run.status

            if from_status == to_status:
                logger.info("Payroll run %s already %s, nothing to do", run_id, to_status)
                return run

            PayrollRunStateMachine.validate_transition(from_status, to_status)

            if to_status == PayrollRunStatus.PROCESSED:
                run.processed_at = _utcnow()
                run.processed_by = actor_id

            elif to_status == PayrollRunStatus.PAID:
                await self._settle(run, actor_id, today or date.today())

            elif to_status == PayrollRunStatus.CANCELLED:
                await self._cancel(run, actor_id, reason="run cancelled")

            elif PayrollRunStateMachine.is_revert(from_status, to_status):
                await self._revert(run, from_status, actor_id)

            run.status = to_status
            if notes is not None:
                run.notes = notes

            record_audit(
                self.session,
                action=f"UPDATE_PAYROLL_RUN_{to_status}",
                entity_type="payroll_run",
                entity_id=run_id,
                actor_id=actor_id,
                old_values={"status": from_status},
                new_values={"status": to_status, "notes": notes},
            )

        logger.info("Payroll run %s: %s -> %s", run_id, from_status, to_status)
        return await self.get_run(run_id)

    async def edit_payment(
        self,
        payment_id: UUID,
        leave_days: Decimal,
        debt_amount: Decimal,
        actor_id: str | None = None,
    ) -> Payment:
        """Change leave days and debt payout of one payment in a PENDING run."""
        async with atomic(self.session, self.settings.transaction_timeout_seconds):
            payment = await self.get_payment(payment_id)
            run = await self.get_run(payment.payroll_run_id)
            self._require_editable(run)

            before = _payment_amounts(payment)
            await self._edit_payment(run, payment, Decimal(leave_days), Decimal(debt_amount), actor_id)
            self._recompute_totals(run)

            record_audit(
                self.session,
                action="UPDATE_PAYROLL_PAYMENTS",
                entity_type="payroll_run",
                entity_id=run.payroll_run_id,
                actor_id=actor_id,
                old_values={str(payment_id): before},
                new_values={str(payment_id): _payment_amounts(payment)},
            )

        return await self.get_payment(payment_id)

    async def edit_payments(
        self,
        run_id: UUID,
        updates: Sequence[PaymentUpdate],
        actor_id: str | None = None,
    ) -> PayrollRun:
        """Apply several payment edits to a PENDING run in one unit of work."""
        if not updates:
            raise ValidationError("No payment updates given")
        ids = [u.payment_id for u in updates]
        if len(set(ids)) != len(ids):
            raise ValidationError("Duplicate payment in update batch")

        async with atomic(self.session, self.settings.transaction_timeout_seconds):
            run = await self.get_run(run_id)
            self._require_editable(run)
            payments = {p.payment_id: p for p in run.payments}

            old_values: dict[str, Any] = {}
            new_values: dict[str, Any] = {}
            for update in updates:
                payment = payments.get(update.payment_id)
                if payment is None:
                    raise NotFoundError("Payment", update.payment_id)
                old_values[str(payment.payment_id)] = _payment_amounts(payment)
                await self._edit_payment(
                    run,
                    payment,
                    Decimal(update.leave_days),
                    Decimal(update.debt_amount),
                    actor_id,
                )
                new_values[str(payment.payment_id)] = _payment_amounts(payment)

            self._recompute_totals(run)
            record_audit(
                self.session,
                action="UPDATE_PAYROLL_PAYMENTS",
                entity_type="payroll_run",
                entity_id=run_id,
                actor_id=actor_id,
                old_values=old_values,
                new_values=new_values,
            )

        return await self.get_run(run_id)

    async def rerun(self, run_id: UUID, actor_id: str | None = None) -> PayrollRun:
        """Cancel a run and create a replacement for the same period.

        The replacement uses fresh bank snapshots and current tax rates;
        withholding is recomputed on salary and leave cashout, debt payouts
        are carried over untaxed. Paid and draft runs cannot be re-run.
        """
        async with atomic(self.session, self.settings.transaction_timeout_seconds):
            original = await self.get_run(run_id)
            if not PayrollRunStateMachine.can_rerun(original.status):
                raise InvalidTransitionError(
                    original.status,
                    PayrollRunStatus.CANCELLED,
                    f"cannot re-run a {original.status} run",
                )

            items = [
                PaymentItem(
                    worker_id=p.worker_id,
                    leave_days=p.leave_days,
                    debt_amount=p.debt_payout,
                )
                for p in original.payments
            ]

            if original.status != PayrollRunStatus.CANCELLED:
                from_status = original.status
                await self._cancel(original, actor_id, reason="superseded by re-run")
                original.status = PayrollRunStatus.CANCELLED.value
                record_audit(
                    self.session,
                    action="UPDATE_PAYROLL_RUN_CANCELLED",
                    entity_type="payroll_run",
                    entity_id=run_id,
                    actor_id=actor_id,
                    old_values={"status": from_status},
                    new_values={"status": PayrollRunStatus.CANCELLED.value},
                )

            replacement = await self._build_run(
                original.run_date,
                items,
                cycle_days=original.cycle_days,
                pay_schedule_id=original.pay_schedule_id,
                origin=RunOrigin.RERUN,
                posting_timing=PostingTiming(original.posting_timing),
                actor_id=actor_id,
                rerun_of_id=original.payroll_run_id,
                calculate=AmountCalculator.compute_rerun_payment,
            )
            if self._posts_at_creation(replacement):
                for payment in replacement.payments:
                    await self._post_payment_effects(payment, actor_id)

            record_audit(
                self.session,
                action="RERUN_PAYROLL",
                entity_type="payroll_run",
                entity_id=replacement.payroll_run_id,
                actor_id=actor_id,
                old_values={"rerun_of": run_id},
                new_values=self._run_summary(replacement),
            )
            replacement_id = replacement.payroll_run_id

        logger.info("Payroll run %s re-run as %s", run_id, replacement_id)
        return await self.get_run(replacement_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _build_run(
        self,
        run_date: date,
        items: Sequence[PaymentItem],
        *,
        cycle_days: int,
        pay_schedule_id: UUID | None,
        origin: RunOrigin,
        posting_timing: PostingTiming,
        actor_id: str | None,
        rerun_of_id: UUID | None = None,
        calculate: Calculate = AmountCalculator.compute_payment,
    ) -> PayrollRun:
        self._validate_items(items)
        workers = await load_workers(self.session, [item.worker_id for item in items])
        for item in items:
            self._check_balances(workers[item.worker_id], item.leave_days, item.debt_amount)

        period = pay_period(run_date, cycle_days)
        prefix = self.settings.payroll_reference_prefix
        sequence = await self._next_sequence(prefix, run_date)

        run = PayrollRun(
            pay_schedule_id=pay_schedule_id,
            run_date=run_date,
            period_start=period.start,
            period_end=period.end,
            cycle_days=cycle_days,
            status=PayrollRunStatus.PENDING.value,
            origin=origin.value,
            posting_timing=posting_timing.value,
            created_by=actor_id,
            rerun_of_id=rerun_of_id,
        )
        for offset, item in enumerate(items):
            worker = workers[item.worker_id]
            terms = worker.pay_terms()
            held = await self._unposted_recovery(worker.worker_id)
            if held:
                terms = replace(terms, account_balance=terms.account_balance + held)
            breakdown = calculate(
                terms,
                Decimal(item.leave_days),
                Decimal(item.debt_amount),
                cycle_days,
            )
            run.payments.append(
                Payment.from_breakdown(
                    breakdown,
                    worker_id=worker.worker_id,
                    sequence=sequence + offset,
                    customer_reference=customer_reference(prefix, run_date, sequence + offset),
                )
            )
        self._recompute_totals(run)

        self.session.add(run)
        await self.session.flush()
        return run

    @staticmethod
    def _validate_items(items: Sequence[PaymentItem]) -> None:
        if not items:
            raise ValidationError("A payroll run needs at least one payment")
        seen: set[UUID] = set()
        for item in items:
            if item.worker_id in seen:
                raise ValidationError(f"Worker {item.worker_id} appears more than once")
            seen.add(item.worker_id)
            if Decimal(item.leave_days) < 0:
                raise ValidationError(f"Leave days must not be negative for worker {item.worker_id}")
            if Decimal(item.debt_amount) < 0:
                raise ValidationError(f"Debt amount must not be negative for worker {item.worker_id}")

    @staticmethod
    def _check_balances(
        worker: Worker,
        leave_days: Decimal,
        debt_amount: Decimal,
        reclaim_leave: Decimal = ZERO,
        reclaim_debt: Decimal = ZERO,
    ) -> None:
        available_leave = worker.leave_balance + reclaim_leave
        available_debt = worker.debt_balance + reclaim_debt
        if Decimal(leave_days) > available_leave:
            raise ValidationError(
                f"Leave days {leave_days} exceed balance {available_leave} "
                f"for worker {worker.worker_id}"
            )
        if Decimal(debt_amount) > available_debt:
            raise ValidationError(
                f"Debt amount {debt_amount} exceeds balance {available_debt} "
                f"for worker {worker.worker_id}"
            )

    def _require_editable(self, run: PayrollRun) -> None:
        if not PayrollRunStateMachine.can_edit_payments(run.status):
            raise ValidationError(
                f"Payments can only be edited on PENDING runs (run is {run.status})"
            )

    async def _edit_payment(
        self,
        run: PayrollRun,
        payment: Payment,
        leave_days: Decimal,
        debt_amount: Decimal,
        actor_id: str | None,
    ) -> None:
        if leave_days < 0 or debt_amount < 0:
            raise ValidationError("Leave days and debt amount must not be negative")

        # Amounts this payment already took from the balances come back on reversal
        reclaim_leave = sum(
            (-row.days for row in await self.tracker.active_leave_cashouts(payment.payment_id)),
            ZERO,
        )
        link = LedgerLink.payment(payment.payment_id)
        reclaim_debt = sum(
            (-row.amount for row in await self.tracker.active_debt_payouts(link)),
            ZERO,
        )
        worker = await load_worker(self.session, payment.worker_id)
        self._check_balances(worker, leave_days, debt_amount, reclaim_leave, reclaim_debt)

        await self._reverse_payment_effects(payment, actor_id, reason="payment edited")

        worker = await load_worker(self.session, payment.worker_id)
        held = await self._unposted_recovery(payment.worker_id, exclude=payment.payment_id)
        terms = PayTerms(
            gross_salary=payment.gross_salary,
            tds_rate=payment.tds_rate,
            account_balance=worker.account_balance + held,
            bank=payment.bank_snapshot,
        )
        payment.apply_breakdown(
            AmountCalculator.compute_payment(terms, leave_days, debt_amount, run.cycle_days)
        )
        await self.session.flush()

        if self._posts_at_creation(run):
            await self._post_payment_effects(payment, actor_id)

    @staticmethod
    def _posts_at_creation(run: PayrollRun) -> bool:
        return run.posting_timing == PostingTiming.CREATION.value

    async def _unposted_recovery(self, worker_id: UUID, exclude: UUID | None = None) -> Decimal:
        """Recovery already withheld by the worker's payments that are not yet credited.

        Counted against the owed balance so one debt is recovered once across
        several unsettled runs.
        """
        await self.session.flush()
        reversal = aliased(AccountTransaction)
        credited = exists().where(
            AccountTransaction.payment_id == Payment.payment_id,
            AccountTransaction.reversal_of_id.is_(None),
            ~exists().where(reversal.reversal_of_id == AccountTransaction.account_transaction_id),
        )
        query = (
            select(func.coalesce(func.sum(Payment.recovery), 0))
            .join(PayrollRun, Payment.payroll_run_id == PayrollRun.payroll_run_id)
            .where(
                Payment.worker_id == worker_id,
                Payment.recovery > 0,
                PayrollRun.status != PayrollRunStatus.CANCELLED.value,
                ~credited,
            )
        )
        if exclude is not None:
            query = query.where(Payment.payment_id != exclude)
        return Decimal(str(await self.session.scalar(query))).quantize(CENTS)

    async def _post_payment_effects(self, payment: Payment, actor_id: str | None) -> None:
        """Post whatever balance effects of ``payment`` are not yet active."""
        link = LedgerLink.payment(payment.payment_id)

        try:
            await self.ledger.post(
                worker_id=payment.worker_id,
                type=TransactionType.CREDIT,
                category=TransactionCategory.SALARY,
                amount=payment.recovery,
                description=f"Salary {payment.customer_reference}",
                link=link,
                created_by=actor_id,
            )
        except ConcurrencyNoOp as exc:
            logger.info("Skipping: %s", exc)

        if payment.leave_days > 0:
            try:
                await self.tracker.apply_leave_cashout(
                    payment.worker_id, payment.leave_days, payment.payment_id, created_by=actor_id
                )
            except ConcurrencyNoOp as exc:
                logger.info("Skipping: %s", exc)

        if payment.debt_payout > 0:
            try:
                await self.tracker.apply_debt_payout(
                    payment.worker_id, payment.debt_payout, link, created_by=actor_id
                )
            except ConcurrencyNoOp as exc:
                logger.info("Skipping: %s", exc)

    async def _reverse_payment_effects(
        self,
        payment: Payment,
        actor_id: str | None,
        reason: str,
    ) -> None:
        link = LedgerLink.payment(payment.payment_id)
        await self.ledger.reverse_postings(link, reason, created_by=actor_id)
        await self.tracker.reverse_leave(payment.payment_id, reason, created_by=actor_id)
        await self.tracker.reverse_debt(link, reason, created_by=actor_id)

    async def _settle(self, run: PayrollRun, actor_id: str | None, today: date) -> None:
        paid_at = _utcnow()
        for payment in run.payments:
            await self._post_payment_effects(payment, actor_id)
            await self.tax_periods.post_to_period(
                payment.worker_id,
                today.year,
                today.month,
                gross=payment.total_gross,
                tds=payment.tds,
                net=payment.net,
            )
            payment.status = PaymentStatus.PAID.value
            payment.paid_at = paid_at

        run.tax_period_year = today.year
        run.tax_period_month = today.month
        run.paid_at = paid_at
        run.paid_by = actor_id

        if run.pay_schedule_id is not None:
            await self._advance_schedule(run)

    async def _cancel(self, run: PayrollRun, actor_id: str | None, reason: str) -> None:
        for payment in run.payments:
            await self._reverse_payment_effects(payment, actor_id, reason)
            payment.status = PaymentStatus.FAILED.value

    async def _revert(self, run: PayrollRun, from_status: str, actor_id: str | None) -> None:
        if from_status != PayrollRunStatus.PAID:
            return

        year, month = run.tax_period_year, run.tax_period_month
        for payment in run.payments:
            if year is not None and month is not None:
                await self.tax_periods.reverse_period(
                    payment.worker_id,
                    year,
                    month,
                    gross=payment.total_gross,
                    tds=payment.tds,
                    net=payment.net,
                )
            if self.settings.symmetric_revert:
                await self._reverse_payment_effects(payment, actor_id, reason="run reverted")
            payment.status = PaymentStatus.PENDING.value
            payment.paid_at = None

        run.tax_period_year = None
        run.tax_period_month = None
        run.paid_at = None
        run.paid_by = None

    async def _advance_schedule(self, run: PayrollRun) -> None:
        """Move the schedule forward; never backward."""
        schedule = await self._get_schedule(run.pay_schedule_id)
        if schedule.last_run_date is None or run.run_date > schedule.last_run_date:
            schedule.last_run_date = run.run_date
        following = next_run_date(run.run_date, schedule.cycle_days)
        if following > schedule.next_run_date:
            schedule.next_run_date = following

    async def _get_schedule(self, schedule_id: UUID) -> PaySchedule:
        schedule = await self.session.get(PaySchedule, schedule_id)
        if schedule is None:
            raise NotFoundError("Pay schedule", schedule_id)
        return schedule

    async def _has_active_run_on(self, run_date: date) -> bool:
        count = await self.session.scalar(
            select(func.count())
            .select_from(PayrollRun)
            .where(
                PayrollRun.run_date == run_date,
                PayrollRun.status != PayrollRunStatus.CANCELLED.value,
            )
        )
        return bool(count)

    async def _next_sequence(self, prefix: str, on: date) -> int:
        count = await self.session.scalar(
            select(func.count())
            .select_from(Payment)
            .where(Payment.customer_reference.like(f"{prefix}-{on:%Y%m%d}-%"))
        )
        return (count or 0) + 1

    @staticmethod
    def _recompute_totals(run: PayrollRun) -> None:
        payments = run.payments
        run.total_gross = sum((p.gross_salary + p.leave_cashout for p in payments), ZERO)
        run.total_leave_cashout = sum((p.leave_cashout for p in payments), ZERO)
        run.total_debt_payout = sum((p.debt_payout for p in payments), ZERO)
        run.total_tds = sum((p.tds for p in payments), ZERO)
        run.total_recovery = sum((p.recovery for p in payments), ZERO)
        run.total_net = sum((p.net for p in payments), ZERO)
        run.worker_count = len(payments)

    @staticmethod
    def _run_summary(run: PayrollRun) -> dict[str, Any]:
        return {
            "run_date": run.run_date,
            "status": run.status,
            "origin": run.origin,
            "worker_count": run.worker_count,
            "total_gross": run.total_gross,
            "total_tds": run.total_tds,
            "total_net": run.total_net,
        }
