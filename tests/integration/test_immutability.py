"""Append-only and frozen-snapshot enforcement."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from payout_engine.errors import ImmutabilityViolationError
from payout_engine.models import TransactionCategory, TransactionType
from payout_engine.services.audit import record_audit
from payout_engine.services.balance_tracker import BalanceTracker
from payout_engine.services.ledger_service import LedgerService
from payout_engine.services.payroll_run_service import PaymentItem, PayrollRunService

pytestmark = pytest.mark.asyncio


async def _posting(session, worker):
    txn = await LedgerService(session).post(
        worker_id=worker.worker_id,
        type=TransactionType.CREDIT,
        category=TransactionCategory.BONUS,
        amount=Decimal("100"),
        description="bonus",
    )
    await session.commit()
    return txn


class TestAppendOnly:
    """Ledger rows and audit events cannot change."""

    async def test_account_transaction_update_rejected(self, session, make_worker):
        txn = await _posting(session, await make_worker())

        txn.amount = Decimal("1")
        with pytest.raises(ImmutabilityViolationError, match="amount"):
            await session.flush()
        await session.rollback()

    async def test_account_transaction_delete_rejected(self, session, make_worker):
        txn = await _posting(session, await make_worker())

        await session.delete(txn)
        with pytest.raises(ImmutabilityViolationError):
            await session.flush()
        await session.rollback()

    async def test_leave_transaction_update_rejected(self, session, make_worker):
        worker = await make_worker()
        row = await BalanceTracker(session).adjust_leave(worker.worker_id, Decimal("5"), "grant")
        await session.commit()

        row.notes = "edited"
        with pytest.raises(ImmutabilityViolationError):
            await session.flush()
        await session.rollback()

    async def test_audit_event_delete_rejected(self, session):
        event = record_audit(session, action="TEST", entity_type="thing", entity_id="1")
        await session.commit()

        await session.delete(event)
        with pytest.raises(ImmutabilityViolationError):
            await session.flush()
        await session.rollback()


class TestFrozenSnapshots:
    """Payments keep the bank details they were created with."""

    async def test_snapshot_change_rejected(self, session, settings, make_worker):
        worker = await make_worker()
        run = await PayrollRunService(session, settings).create_run(
            date(2024, 1, 14), [PaymentItem(worker_id=worker.worker_id)]
        )
        payment = run.payments[0]

        payment.bank_snapshot = replace(payment.bank_snapshot, bank_account="000000000000")
        with pytest.raises(ImmutabilityViolationError, match="snapshot_bank_account"):
            await session.flush()
        await session.rollback()

    async def test_worker_bank_change_does_not_touch_payment(self, session, settings, make_worker):
        worker = await make_worker()
        service = PayrollRunService(session, settings)
        run = await service.create_run(date(2024, 1, 14), [PaymentItem(worker_id=worker.worker_id)])

        worker.bank_account = "111122223333"
        await session.commit()

        run = await service.get_run(run.payroll_run_id)
        assert run.payments[0].bank_snapshot.bank_account != "111122223333"

    async def test_status_change_allowed(self, session, settings, make_worker):
        worker = await make_worker()
        run = await PayrollRunService(session, settings).create_run(
            date(2024, 1, 14), [PaymentItem(worker_id=worker.worker_id)]
        )

        run.payments[0].status = "FAILED"
        await session.flush()
        await session.commit()
        assert run.payments[0].status == "FAILED"
