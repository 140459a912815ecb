"""Manual payment API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from payout_engine.api.dependencies import ActorId, AppSettings, DbSession
from payout_engine.api.schemas import (
    AccountTransactionResponse,
    ErrorResponse,
    ManualPaymentCreate,
    ManualPaymentCreated,
    ManualPaymentResponse,
)
from payout_engine.services.manual_payment_service import ManualPaymentService

router = APIRouter(prefix="/manual-payments", tags=["manual-payments"])


@router.post(
    "",
    response_model=ManualPaymentCreated,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_manual_payment(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    payload: ManualPaymentCreate,
) -> ManualPaymentCreated:
    """Record an advance, bonus, reimbursement, loan or adjustment."""
    result = await ManualPaymentService(db, settings).record_manual_payment(
        payload.worker_id,
        payload.category,
        payload.gross_amount,
        is_taxable=payload.is_taxable,
        payment_date=payload.payment_date,
        notes=payload.notes,
        actor_id=actor_id,
    )
    return ManualPaymentCreated(
        payment=ManualPaymentResponse.model_validate(result.payment),
        transaction=AccountTransactionResponse.model_validate(result.transaction),
    )


@router.get("", response_model=list[ManualPaymentResponse])
async def list_manual_payments(
    db: DbSession,
    settings: AppSettings,
    worker_id: UUID | None = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[ManualPaymentResponse]:
    payments = await ManualPaymentService(db, settings).list_manual_payments(
        worker_id=worker_id, limit=limit
    )
    return [ManualPaymentResponse.model_validate(p) for p in payments]
