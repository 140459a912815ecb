"""Manual payment tests."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from payout_engine.errors import NotFoundError, ValidationError
from payout_engine.models import AuditEvent, ManualPaymentCategory, TaxPeriodRecord, TransactionType
from payout_engine.services.manual_payment_service import ManualPaymentService, ledger_direction

pytestmark = pytest.mark.asyncio


class TestLedgerDirection:
    def test_money_owed_by_worker_is_debit(self):
        assert ledger_direction(ManualPaymentCategory.ADVANCE_SALARY) is TransactionType.DEBIT
        assert ledger_direction(ManualPaymentCategory.LOAN_DISBURSEMENT) is TransactionType.DEBIT

    def test_money_owed_to_worker_is_credit(self):
        for category in (
            ManualPaymentCategory.BONUS,
            ManualPaymentCategory.REIMBURSEMENT,
            ManualPaymentCategory.ADJUSTMENT,
        ):
            assert ledger_direction(category) is TransactionType.CREDIT


class TestRecordManualPayment:
    async def test_advance_is_recovered_later(self, session, settings, make_worker):
        """A non-taxable advance leaves the worker owing the full amount."""
        worker = await make_worker()
        service = ManualPaymentService(session, settings)

        result = await service.record_manual_payment(
            worker.worker_id,
            ManualPaymentCategory.ADVANCE_SALARY,
            Decimal("5000"),
            is_taxable=False,
            payment_date=date(2024, 1, 5),
            actor_id="ops",
        )

        assert result.payment.tds == Decimal("0")
        assert result.payment.net == Decimal("5000")
        assert result.payment.customer_reference == "MAN-20240105-001"
        assert result.transaction.type == "DEBIT"
        assert result.transaction.category == "ADVANCE_SALARY"
        assert result.transaction.manual_payment_id == result.payment.manual_payment_id
        assert result.transaction.balance_after == Decimal("-5000")
        assert worker.account_balance == Decimal("-5000")
        assert (await session.execute(select(TaxPeriodRecord))).scalars().all() == []

    async def test_taxable_bonus_posts_to_payment_month(self, session, settings, make_worker):
        worker = await make_worker(tds_rate=Decimal("10"))
        service = ManualPaymentService(session, settings)

        result = await service.record_manual_payment(
            worker.worker_id,
            "BONUS",
            Decimal("1001"),
            payment_date=date(2024, 3, 28),
        )

        assert result.payment.tds == Decimal("101")
        assert result.payment.net == Decimal("900")
        assert result.transaction.type == "CREDIT"
        record = (await session.execute(select(TaxPeriodRecord))).scalar_one()
        assert (record.year, record.month) == (2024, 3)
        assert record.total_tds == Decimal("101")

    async def test_snapshot_and_audit(self, session, settings, make_worker):
        worker = await make_worker(bank_name="HDFC Bank", is_axis_bank=False)
        result = await ManualPaymentService(session, settings).record_manual_payment(
            worker.worker_id, ManualPaymentCategory.REIMBURSEMENT, Decimal("750"), is_taxable=False
        )

        assert result.payment.bank_snapshot.bank_name == "HDFC Bank"
        assert result.payment.bank_snapshot.is_axis_bank is False
        event = (
            await session.execute(
                select(AuditEvent).where(AuditEvent.action == "CREATE_MANUAL_PAYMENT")
            )
        ).scalar_one()
        assert event.entity_id == str(result.payment.manual_payment_id)

    async def test_unknown_category(self, session, settings, make_worker):
        worker = await make_worker()
        with pytest.raises(ValidationError):
            await ManualPaymentService(session, settings).record_manual_payment(
                worker.worker_id, "GIFT", Decimal("10")
            )

    async def test_non_positive_amount(self, session, settings, make_worker):
        worker = await make_worker()
        with pytest.raises(ValidationError):
            await ManualPaymentService(session, settings).record_manual_payment(
                worker.worker_id, "BONUS", Decimal("0")
            )

    async def test_unknown_worker(self, session, settings):
        with pytest.raises(NotFoundError):
            await ManualPaymentService(session, settings).record_manual_payment(
                uuid4(), "BONUS", Decimal("10")
            )

    async def test_list_by_worker(self, session, settings, make_worker):
        first = await make_worker()
        second = await make_worker()
        service = ManualPaymentService(session, settings)
        await service.record_manual_payment(first.worker_id, "BONUS", Decimal("10"))
        await service.record_manual_payment(second.worker_id, "BONUS", Decimal("20"))
        await service.record_manual_payment(first.worker_id, "REIMBURSEMENT", Decimal("30"))

        payments = await service.list_manual_payments(worker_id=first.worker_id)
        assert len(payments) == 2
        assert {p.worker_id for p in payments} == {first.worker_id}
