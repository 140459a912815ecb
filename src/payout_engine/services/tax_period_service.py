"""Monthly withholding (TDS) aggregation per worker."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payout_engine.errors import NotFoundError, ValidationError
from payout_engine.models import FilingStatus, TaxPeriodRecord
from payout_engine.services.audit import record_audit

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class PeriodSummary:
    """All records of one month with their totals."""

    year: int
    month: int
    records: list[TaxPeriodRecord]

    @property
    def total_gross(self) -> Decimal:
        return sum((r.total_gross for r in self.records), ZERO)

    @property
    def total_tds(self) -> Decimal:
        return sum((r.total_tds for r in self.records), ZERO)

    @property
    def total_net(self) -> Decimal:
        return sum((r.total_net for r in self.records), ZERO)

    @property
    def payment_count(self) -> int:
        return sum(r.payment_count for r in self.records)

    @property
    def filing_status(self) -> str | None:
        statuses = {r.filing_status for r in self.records}
        if not statuses:
            return None
        if len(statuses) == 1:
            return statuses.pop()
        return "MIXED"


def _validate_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month {month}")
    if year < 2000:
        raise ValidationError(f"Invalid year {year}")


class TaxPeriodService:
    """Find-or-create and increment monthly TDS records.

    Records are keyed by (year, month, worker). Posting uses the month of
    settlement, not the run date. Nothing here commits.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_record(self, worker_id: UUID, year: int, month: int) -> TaxPeriodRecord | None:
        result = await self.session.execute(
            select(TaxPeriodRecord)
            .where(
                TaxPeriodRecord.worker_id == worker_id,
                TaxPeriodRecord.year == year,
                TaxPeriodRecord.month == month,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def post_to_period(
        self,
        worker_id: UUID,
        year: int,
        month: int,
        *,
        gross: Decimal,
        tds: Decimal,
        net: Decimal,
        count: int = 1,
    ) -> TaxPeriodRecord:
        """Add a settled payment's amounts to the worker's month."""
        _validate_month(year, month)
        record = await self.find_record(worker_id, year, month)
        if record is None:
            record = TaxPeriodRecord(
                worker_id=worker_id,
                year=year,
                month=month,
                total_gross=ZERO,
                total_tds=ZERO,
                total_net=ZERO,
                total_tds_payable=ZERO,
                interest_amount=ZERO,
                payment_count=0,
                filing_status=FilingStatus.PENDING.value,
            )
            self.session.add(record)
        elif record.filing_status in (FilingStatus.FILED.value, FilingStatus.PAID.value):
            logger.warning(
                "Posting to %04d-%02d for worker %s after it was %s",
                year,
                month,
                worker_id,
                record.filing_status,
            )

        record.total_gross += Decimal(gross)
        record.total_tds += Decimal(tds)
        record.total_net += Decimal(net)
        record.total_tds_payable += Decimal(tds)
        record.payment_count += count
        await self.session.flush()
        return record

    async def reverse_period(
        self,
        worker_id: UUID,
        year: int,
        month: int,
        *,
        gross: Decimal,
        tds: Decimal,
        net: Decimal,
        count: int = 1,
    ) -> TaxPeriodRecord | None:
        """Take a payment's amounts back out of a month.

        The record is removed once it no longer counts any payment. Returns
        the remaining record, or None when it was removed.
        """
        _validate_month(year, month)
        record = await self.find_record(worker_id, year, month)
        if record is None:
            raise ValidationError(
                f"No tax record for worker {worker_id} in {year:04d}-{month:02d} to reverse"
            )
        if record.filing_status in (FilingStatus.FILED.value, FilingStatus.PAID.value):
            logger.warning(
                "Reversing from %04d-%02d for worker %s after it was %s",
                year,
                month,
                worker_id,
                record.filing_status,
            )

        new_gross = record.total_gross - Decimal(gross)
        new_tds = record.total_tds - Decimal(tds)
        new_net = record.total_net - Decimal(net)
        new_payable = record.total_tds_payable - Decimal(tds)
        new_count = record.payment_count - count
        if min(new_gross, new_tds, new_net, new_payable) < 0 or new_count < 0:
            raise ValidationError(
                f"Reversal would drive tax record {year:04d}-{month:02d} "
                f"for worker {worker_id} negative"
            )

        if new_count == 0:
            await self.session.delete(record)
            await self.session.flush()
            logger.info("Removed empty tax record %04d-%02d for worker %s", year, month, worker_id)
            return None

        record.total_gross = new_gross
        record.total_tds = new_tds
        record.total_net = new_net
        record.total_tds_payable = new_payable
        record.payment_count = new_count
        await self.session.flush()
        return record

    async def get_period(self, year: int, month: int) -> PeriodSummary:
        """All worker records for a month."""
        _validate_month(year, month)
        result = await self.session.execute(
            select(TaxPeriodRecord)
            .where(TaxPeriodRecord.year == year, TaxPeriodRecord.month == month)
            .order_by(TaxPeriodRecord.created_at)
            .execution_options(populate_existing=True)
        )
        return PeriodSummary(year=year, month=month, records=list(result.scalars().all()))

    async def update_filing_status(
        self,
        year: int,
        month: int,
        status: FilingStatus | str,
        *,
        challan_number: str | None = None,
        filed_date: date | None = None,
        paid_date: date | None = None,
        interest_amount: Decimal | None = None,
        actor_id: str | None = None,
        today: date | None = None,
    ) -> PeriodSummary:
        """Set filing details on every record of the month."""
        try:
            status_ = FilingStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown filing status: {status}") from exc

        summary = await self.get_period(year, month)
        if not summary.records:
            raise NotFoundError("Tax period", f"{year:04d}-{month:02d}")

        today = today or date.today()
        if status_ is FilingStatus.FILED and filed_date is None:
            filed_date = today
        if status_ is FilingStatus.PAID and paid_date is None:
            paid_date = today

        old_status = summary.filing_status
        for record in summary.records:
            record.filing_status = status_.value
            if challan_number is not None:
                record.challan_number = challan_number
            if filed_date is not None:
                record.filed_date = filed_date
            if paid_date is not None:
                record.paid_date = paid_date
            if interest_amount is not None:
                record.interest_amount = Decimal(interest_amount)
                record.total_tds_payable = record.total_tds + record.interest_amount

        record_audit(
            self.session,
            action="UPDATE_TDS_STATUS",
            entity_type="tax_period",
            entity_id=f"{year:04d}-{month:02d}",
            actor_id=actor_id,
            old_values={"filing_status": old_status},
            new_values={
                "filing_status": status_.value,
                "challan_number": challan_number,
                "filed_date": filed_date,
                "paid_date": paid_date,
            },
        )
        await self.session.flush()
        return summary
