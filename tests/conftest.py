"""Pytest fixtures for payout engine tests."""

from __future__ import annotations

import itertools
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from payout_engine.config import PostingTiming, Settings
from payout_engine.database import make_session_factory
from payout_engine.models import Base, PaySchedule, Worker

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "database_url": TEST_DATABASE_URL,
        "host": "127.0.0.1",
        "port": 8000,
        "debug": False,
        "log_level": "INFO",
        "isolation_level": "SERIALIZABLE",
        "transaction_timeout_seconds": 30.0,
        "posting_timing": PostingTiming.CREATION,
        "symmetric_revert": True,
        "default_cycle_days": 14,
        "payroll_reference_prefix": "PAY",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    """Settings with effects posted at creation."""
    return make_settings()


@pytest.fixture
def settlement_settings() -> Settings:
    """Settings with effects deferred to PAID."""
    return make_settings(posting_timing=PostingTiming.SETTLEMENT)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with make_session_factory(engine)() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_worker(session: AsyncSession) -> Callable[..., Awaitable[Worker]]:
    """Factory committing a worker; keyword arguments override the defaults."""
    counter = itertools.count(1)

    async def _make(**overrides: Any) -> Worker:
        n = next(counter)
        values: dict[str, Any] = {
            "employee_code": f"EMP{n:03d}",
            "name": f"Worker {n}",
            "pan": f"ABCDE{n:04d}F",
            "bank_account": f"9180200{n:05d}",
            "ifsc_code": "UTIB0000123",
            "bank_name": "Axis Bank",
            "is_axis_bank": True,
            "gross_salary": Decimal("37500.00"),
            "tds_rate": Decimal("10"),
            "leave_balance": Decimal("0"),
            "debt_balance": Decimal("0"),
            "account_balance": Decimal("0"),
            "joined_date": date(2024, 1, 1),
        }
        values.update(overrides)
        worker = Worker(**values)
        session.add(worker)
        await session.commit()
        return worker

    return _make


@pytest_asyncio.fixture
async def worker(make_worker) -> Worker:
    """Worker from the reference payroll example: owes 5000, 10 leave days."""
    return await make_worker(
        leave_balance=Decimal("10"),
        account_balance=Decimal("-5000.00"),
    )


@pytest_asyncio.fixture
async def schedule(session: AsyncSession) -> PaySchedule:
    """Biweekly schedule whose next run is 2024-01-14."""
    schedule = PaySchedule(name="biweekly", cycle_days=14, next_run_date=date(2024, 1, 14))
    session.add(schedule)
    await session.commit()
    return schedule
