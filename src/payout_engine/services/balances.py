"""Worker lookup and single-statement balance increments."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from payout_engine.errors import NotFoundError
from payout_engine.models import Worker

BALANCE_COLUMNS = ("account_balance", "leave_balance", "debt_balance")


async def load_worker(session: AsyncSession, worker_id: UUID) -> Worker:
    """Worker with balances re-read from the database."""
    worker = await session.get(Worker, worker_id, populate_existing=True)
    if worker is None:
        raise NotFoundError("Worker", worker_id)
    return worker


async def load_workers(session: AsyncSession, worker_ids: Iterable[UUID]) -> dict[UUID, Worker]:
    """Workers keyed by id; raises NotFoundError naming the first missing one."""
    ids = list(worker_ids)
    result = await session.execute(
        select(Worker)
        .where(Worker.worker_id.in_(ids))
        .execution_options(populate_existing=True)
    )
    workers = {w.worker_id: w for w in result.scalars().all()}
    for worker_id in ids:
        if worker_id not in workers:
            raise NotFoundError("Worker", worker_id)
    return workers


async def increment_balance(
    session: AsyncSession,
    worker_id: UUID,
    column: str,
    delta: Decimal,
) -> Decimal:
    """Add ``delta`` to one of the worker's balances and return the new value.

    Issued as ``UPDATE worker SET col = col + :delta`` so concurrent writers
    never overwrite each other. The in-session Worker, if loaded, is kept in
    step without being marked dirty.
    """
    if column not in BALANCE_COLUMNS:
        raise ValueError(f"Unknown balance column: {column}")

    # Pending inserts (e.g. a worker created in this unit of work) must hit the DB first
    await session.flush()

    attr = getattr(Worker, column)
    result = await session.execute(
        update(Worker)
        .where(Worker.worker_id == worker_id)
        .values({attr: attr + delta})
        .returning(attr)
        .execution_options(synchronize_session=False)
    )
    new_value = result.scalar_one_or_none()
    if new_value is None:
        raise NotFoundError("Worker", worker_id)
    new_value = Decimal(new_value)

    cached = session.identity_map.get(session.identity_key(Worker, worker_id))
    if cached is not None:
        set_committed_value(cached, column, new_value)
    return new_value
