"""Payroll run API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from payout_engine.api.dependencies import ActorId, AppSettings, DbSession
from payout_engine.api.schemas import (
    ErrorResponse,
    GenerateRunsRequest,
    PaymentsUpdateRequest,
    PayrollRunCreate,
    PayrollRunListResponse,
    PayrollRunResponse,
    StatusUpdate,
)
from payout_engine.services.payroll_run_service import (
    PaymentItem,
    PaymentUpdate,
    PayrollRunService,
)

router = APIRouter(prefix="/payroll-runs", tags=["payroll-runs"])


# ============================================================================
# Payroll Run CRUD
# ============================================================================


@router.post(
    "",
    response_model=PayrollRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_payroll_run(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    payload: PayrollRunCreate,
) -> PayrollRunResponse:
    """Create a PENDING payroll run with one payment per worker."""
    service = PayrollRunService(db, settings)
    run = await service.create_run(
        payload.run_date,
        [
            PaymentItem(
                worker_id=item.worker_id,
                leave_days=item.leave_days,
                debt_amount=item.debt_amount,
            )
            for item in payload.items
        ],
        schedule_id=payload.schedule_id,
        actor_id=actor_id,
        notes=payload.notes,
    )
    return PayrollRunResponse.model_validate(run)


@router.post(
    "/generate",
    response_model=list[PayrollRunResponse],
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def generate_payroll_runs(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    payload: GenerateRunsRequest,
) -> list[PayrollRunResponse]:
    """Create runs for every overdue date of a pay schedule."""
    service = PayrollRunService(db, settings)
    runs = await service.generate_pending_runs(
        payload.schedule_id, today=payload.today, actor_id=actor_id
    )
    return [PayrollRunResponse.model_validate(run) for run in runs]


@router.get("", response_model=PayrollRunListResponse)
async def list_payroll_runs(
    db: DbSession,
    settings: AppSettings,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> PayrollRunListResponse:
    """List payroll runs, newest first."""
    service = PayrollRunService(db, settings)
    runs, total = await service.list_runs(
        status=status_filter.upper() if status_filter else None,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return PayrollRunListResponse(
        items=[PayrollRunResponse.model_validate(run) for run in runs],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/{payroll_run_id}",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_run(
    db: DbSession,
    settings: AppSettings,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunResponse:
    """Get a payroll run with its payments."""
    run = await PayrollRunService(db, settings).get_run(payroll_run_id)
    return PayrollRunResponse.model_validate(run)


# ============================================================================
# Lifecycle
# ============================================================================


@router.patch(
    "/{payroll_run_id}",
    response_model=PayrollRunResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_payroll_run_status(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    payroll_run_id: Annotated[UUID, Path()],
    payload: StatusUpdate,
) -> PayrollRunResponse:
    """Move a payroll run to a new status.

    PAID posts withholding to the current month; PAID -> PENDING takes it
    back out. CANCELLED reverses every posted balance effect.
    """
    run = await PayrollRunService(db, settings).transition_run(
        payroll_run_id, payload.status, actor_id=actor_id, notes=payload.notes
    )
    return PayrollRunResponse.model_validate(run)


@router.patch(
    "/{payroll_run_id}/payments",
    response_model=PayrollRunResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_payroll_payments(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    payroll_run_id: Annotated[UUID, Path()],
    payload: PaymentsUpdateRequest,
) -> PayrollRunResponse:
    """Change leave days and debt payouts of payments in a PENDING run."""
    run = await PayrollRunService(db, settings).edit_payments(
        payroll_run_id,
        [
            PaymentUpdate(
                payment_id=update.payment_id,
                leave_days=update.leave_days,
                debt_amount=update.debt_amount,
            )
            for update in payload.updates
        ],
        actor_id=actor_id,
    )
    return PayrollRunResponse.model_validate(run)


@router.post(
    "/{payroll_run_id}/rerun",
    response_model=PayrollRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def rerun_payroll(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunResponse:
    """Cancel a run and recreate it with current worker data."""
    run = await PayrollRunService(db, settings).rerun(payroll_run_id, actor_id=actor_id)
    return PayrollRunResponse.model_validate(run)
