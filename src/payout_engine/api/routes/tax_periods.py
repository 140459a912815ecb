"""TDS tax period API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path

from payout_engine.api.dependencies import ActorId, AppSettings, DbSession
from payout_engine.api.schemas import (
    ErrorResponse,
    FilingStatusUpdate,
    TaxPeriodResponse,
    TaxRecordResponse,
)
from payout_engine.database import atomic
from payout_engine.services.tax_period_service import PeriodSummary, TaxPeriodService

router = APIRouter(prefix="/tax-periods", tags=["tax-periods"])

Year = Annotated[int, Path(ge=2000, le=2100)]
Month = Annotated[int, Path(ge=1, le=12)]


def _to_response(summary: PeriodSummary) -> TaxPeriodResponse:
    return TaxPeriodResponse(
        year=summary.year,
        month=summary.month,
        filing_status=summary.filing_status,
        total_gross=summary.total_gross,
        total_tds=summary.total_tds,
        total_net=summary.total_net,
        payment_count=summary.payment_count,
        records=[TaxRecordResponse.model_validate(r) for r in summary.records],
    )


@router.get("/{year}/{month}", response_model=TaxPeriodResponse)
async def get_tax_period(db: DbSession, year: Year, month: Month) -> TaxPeriodResponse:
    """Withholding totals per worker for a calendar month."""
    summary = await TaxPeriodService(db).get_period(year, month)
    return _to_response(summary)


@router.patch(
    "/{year}/{month}",
    response_model=TaxPeriodResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_tax_period(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    year: Year,
    month: Month,
    payload: FilingStatusUpdate,
) -> TaxPeriodResponse:
    """Record filing and payment of a month's withholding."""
    service = TaxPeriodService(db)
    async with atomic(db, settings.transaction_timeout_seconds):
        await service.update_filing_status(
            year,
            month,
            payload.status,
            challan_number=payload.challan_number,
            filed_date=payload.filed_date,
            paid_date=payload.paid_date,
            interest_amount=payload.interest_amount,
            actor_id=actor_id,
        )
    return _to_response(await service.get_period(year, month))
