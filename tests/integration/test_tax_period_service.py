"""Tests for monthly TDS aggregation."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from payout_engine.errors import NotFoundError, ValidationError
from payout_engine.models import AuditEvent, FilingStatus
from payout_engine.services.tax_period_service import TaxPeriodService

pytestmark = pytest.mark.asyncio


async def _post(service, worker_id, year=2024, month=1, gross="37500", tds="3750", net="33750"):
    return await service.post_to_period(
        worker_id,
        year,
        month,
        gross=Decimal(gross),
        tds=Decimal(tds),
        net=Decimal(net),
    )


class TestPostToPeriod:
    async def test_creates_record(self, session, make_worker):
        worker = await make_worker()
        service = TaxPeriodService(session)

        record = await _post(service, worker.worker_id)
        await session.commit()

        assert record.total_gross == Decimal("37500")
        assert record.total_tds == Decimal("3750")
        assert record.total_tds_payable == Decimal("3750")
        assert record.payment_count == 1
        assert record.filing_status == FilingStatus.PENDING.value

    async def test_accumulates_within_month(self, session, make_worker):
        """Two payments in a month share one record."""
        worker = await make_worker()
        service = TaxPeriodService(session)

        await _post(service, worker.worker_id)
        record = await _post(service, worker.worker_id, gross="1000", tds="100", net="900")
        await session.commit()

        assert record.total_gross == Decimal("38500")
        assert record.total_tds == Decimal("3850")
        assert record.payment_count == 2
        summary = await service.get_period(2024, 1)
        assert len(summary.records) == 1

    async def test_months_are_separate(self, session, make_worker):
        worker = await make_worker()
        service = TaxPeriodService(session)
        await _post(service, worker.worker_id, month=1)
        await _post(service, worker.worker_id, month=2)
        await session.commit()

        assert (await service.get_period(2024, 1)).payment_count == 1
        assert (await service.get_period(2024, 2)).payment_count == 1

    async def test_invalid_month(self, session, make_worker):
        worker = await make_worker()
        with pytest.raises(ValidationError):
            await _post(TaxPeriodService(session), worker.worker_id, month=13)


class TestReversePeriod:
    async def test_partial_reversal(self, session, make_worker):
        worker = await make_worker()
        service = TaxPeriodService(session)
        await _post(service, worker.worker_id)
        await _post(service, worker.worker_id, gross="1000", tds="100", net="900")

        record = await service.reverse_period(
            worker.worker_id, 2024, 1, gross=Decimal("1000"), tds=Decimal("100"), net=Decimal("900")
        )
        await session.commit()

        assert record is not None
        assert record.total_tds == Decimal("3750")
        assert record.payment_count == 1

    async def test_last_payment_removes_record(self, session, make_worker):
        worker = await make_worker()
        service = TaxPeriodService(session)
        await _post(service, worker.worker_id)

        result = await service.reverse_period(
            worker.worker_id, 2024, 1, gross=Decimal("37500"), tds=Decimal("3750"), net=Decimal("33750")
        )
        await session.commit()

        assert result is None
        assert await service.find_record(worker.worker_id, 2024, 1) is None

    async def test_cannot_go_negative(self, session, make_worker):
        worker = await make_worker()
        service = TaxPeriodService(session)
        await _post(service, worker.worker_id, gross="100", tds="10", net="90")

        with pytest.raises(ValidationError):
            await service.reverse_period(
                worker.worker_id, 2024, 1, gross=Decimal("200"), tds=Decimal("20"), net=Decimal("180")
            )

    async def test_reversal_from_filed_month_warns(self, session, make_worker, caplog):
        worker = await make_worker()
        service = TaxPeriodService(session)
        await _post(service, worker.worker_id)
        await _post(service, worker.worker_id, gross="1000", tds="100", net="900")
        await service.update_filing_status(2024, 1, FilingStatus.FILED, today=date(2024, 2, 7))

        with caplog.at_level("WARNING", logger="payout_engine.services.tax_period_service"):
            record = await service.reverse_period(
                worker.worker_id, 2024, 1, gross=Decimal("1000"), tds=Decimal("100"), net=Decimal("900")
            )

        assert record.payment_count == 1
        assert "Reversing from 2024-01" in caplog.text
        assert "FILED" in caplog.text

    async def test_missing_record(self, session):
        with pytest.raises(ValidationError):
            await TaxPeriodService(session).reverse_period(
                uuid4(), 2024, 1, gross=Decimal("1"), tds=Decimal("0"), net=Decimal("1")
            )


class TestFilingStatus:
    async def test_summary_totals(self, session, make_worker):
        first = await make_worker()
        second = await make_worker()
        service = TaxPeriodService(session)
        await _post(service, first.worker_id)
        await _post(service, second.worker_id, gross="50000", tds="5000", net="45000")
        await session.commit()

        summary = await service.get_period(2024, 1)

        assert summary.total_gross == Decimal("87500")
        assert summary.total_tds == Decimal("8750")
        assert summary.total_net == Decimal("78750")
        assert summary.payment_count == 2
        assert summary.filing_status == FilingStatus.PENDING.value

    async def test_empty_month(self, session):
        summary = await TaxPeriodService(session).get_period(2024, 6)
        assert summary.records == []
        assert summary.total_tds == Decimal("0")
        assert summary.filing_status is None

    async def test_mark_filed_then_paid(self, session, make_worker):
        """Filing dates default to today; interest is added to the payable."""
        worker = await make_worker()
        service = TaxPeriodService(session)
        await _post(service, worker.worker_id)

        await service.update_filing_status(
            2024, 1, FilingStatus.FILED, today=date(2024, 2, 7), actor_id="accounts"
        )
        summary = await service.update_filing_status(
            2024,
            1,
            "PAID",
            challan_number="CH-0001",
            interest_amount=Decimal("45"),
            today=date(2024, 2, 10),
        )
        await session.commit()

        record = summary.records[0]
        assert record.filing_status == FilingStatus.PAID.value
        assert record.filed_date == date(2024, 2, 7)
        assert record.paid_date == date(2024, 2, 10)
        assert record.challan_number == "CH-0001"
        assert record.total_tds_payable == Decimal("3795")

        audits = (
            await session.execute(
                select(AuditEvent).where(AuditEvent.action == "UPDATE_TDS_STATUS")
            )
        ).scalars().all()
        assert len(audits) == 2

    async def test_status_for_empty_month(self, session):
        with pytest.raises(NotFoundError):
            await TaxPeriodService(session).update_filing_status(2024, 3, FilingStatus.FILED)

    async def test_unknown_status(self, session, make_worker):
        worker = await make_worker()
        service = TaxPeriodService(session)
        await _post(service, worker.worker_id)
        with pytest.raises(ValidationError):
            await service.update_filing_status(2024, 1, "SUBMITTED")
