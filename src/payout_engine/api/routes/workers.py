"""Worker account endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from payout_engine.api.dependencies import ActorId, AppSettings, DbSession
from payout_engine.api.schemas import (
    AccountStatementResponse,
    AccountTransactionResponse,
    ErrorResponse,
    LeaveAdjustmentRequest,
    LeaveTransactionResponse,
    StatementLineResponse,
)
from payout_engine.database import atomic
from payout_engine.services.balance_tracker import BalanceTracker
from payout_engine.services.ledger_service import LedgerService

router = APIRouter(prefix="/workers", tags=["workers"])


@router.get(
    "/{worker_id}/account-statement",
    response_model=AccountStatementResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_account_statement(
    db: DbSession,
    worker_id: Annotated[UUID, Path()],
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
) -> AccountStatementResponse:
    """Ledger history of a worker with credit/debit totals."""
    statement = await LedgerService(db).statement(worker_id, limit=limit)
    worker = statement.worker
    return AccountStatementResponse(
        worker_id=worker.worker_id,
        name=worker.name,
        employee_code=worker.employee_code,
        account_balance=worker.account_balance,
        total_credits=statement.total_credits,
        total_debits=statement.total_debits,
        is_consistent=statement.is_consistent,
        transactions=[
            StatementLineResponse(
                **AccountTransactionResponse.model_validate(line.transaction).model_dump(),
                label=line.label,
            )
            for line in statement.lines
        ],
    )


@router.post(
    "/{worker_id}/leave-adjustments",
    response_model=LeaveTransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def adjust_leave_balance(
    db: DbSession,
    settings: AppSettings,
    actor_id: ActorId,
    worker_id: Annotated[UUID, Path()],
    payload: LeaveAdjustmentRequest,
) -> LeaveTransactionResponse:
    """Correct a worker's leave balance by a signed number of days."""
    async with atomic(db, settings.transaction_timeout_seconds):
        row = await BalanceTracker(db).adjust_leave(
            worker_id, payload.days, payload.notes, created_by=actor_id
        )
    return LeaveTransactionResponse.model_validate(row)
