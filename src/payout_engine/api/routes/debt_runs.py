"""Debt run API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from payout_engine.api.dependencies import ActorId, AppSettings, DbSession
from payout_engine.api.schemas import (
    DebtRunCreate,
    DebtRunResponse,
    ErrorResponse,
    StatusUpdate,
)
from payout_engine.services.debt_run_service import DebtItem, DebtRunService

router = APIRouter(prefix="/debt-runs", tags=["debt-runs"])


@router.post(
    "",
    response_model=DebtRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_debt_run(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    payload: DebtRunCreate,
) -> DebtRunResponse:
    """Pay out outstanding salary debt to a set of workers."""
    run = await DebtRunService(db, settings).create_debt_run(
        payload.run_date,
        [DebtItem(worker_id=i.worker_id, amount=i.amount, notes=i.notes) for i in payload.items],
        actor_id=actor_id,
        notes=payload.notes,
    )
    return DebtRunResponse.model_validate(run)


@router.get("", response_model=list[DebtRunResponse])
async def list_debt_runs(
    db: DbSession,
    settings: AppSettings,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[DebtRunResponse]:
    runs = await DebtRunService(db, settings).list_debt_runs(
        status=status_filter.upper() if status_filter else None, limit=limit
    )
    return [DebtRunResponse.model_validate(run) for run in runs]


@router.get(
    "/{debt_run_id}",
    response_model=DebtRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_debt_run(
    db: DbSession,
    settings: AppSettings,
    debt_run_id: Annotated[UUID, Path()],
) -> DebtRunResponse:
    run = await DebtRunService(db, settings).get_debt_run(debt_run_id)
    return DebtRunResponse.model_validate(run)


@router.patch(
    "/{debt_run_id}",
    response_model=DebtRunResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_debt_run_status(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    debt_run_id: Annotated[UUID, Path()],
    payload: StatusUpdate,
) -> DebtRunResponse:
    """Move a debt run to PROCESSED, PAID or CANCELLED."""
    run = await DebtRunService(db, settings).transition_debt_run(
        debt_run_id, payload.status, actor_id=actor_id, notes=payload.notes
    )
    return DebtRunResponse.model_validate(run)
