"""Pay-cycle date arithmetic and customer references."""

from __future__ import annotations

from datetime import date, timedelta

from payout_engine.calculators.types import PayPeriod
from payout_engine.errors import ValidationError


def pay_period(run_date: date, cycle_days: int) -> PayPeriod:
    """Period ending on ``run_date`` and spanning ``cycle_days`` days inclusive."""
    if cycle_days <= 0:
        raise ValidationError(f"cycle length must be positive, got {cycle_days}")
    return PayPeriod(start=run_date - timedelta(days=cycle_days - 1), end=run_date)


def next_run_date(run_date: date, cycle_days: int) -> date:
    """Run date of the cycle after ``run_date``."""
    return run_date + timedelta(days=cycle_days)


def overdue_run_dates(next_date: date, cycle_days: int, today: date) -> list[date]:
    """All scheduled run dates from ``next_date`` up to and including ``today``."""
    if cycle_days <= 0:
        raise ValidationError(f"cycle length must be positive, got {cycle_days}")
    dates: list[date] = []
    current = next_date
    while current <= today:
        dates.append(current)
        current = next_run_date(current, cycle_days)
    return dates


def customer_reference(prefix: str, on: date, sequence: int) -> str:
    """Bank-facing reference, e.g. ``PAY-20240115-007``."""
    return f"{prefix}-{on:%Y%m%d}-{sequence:03d}"


def is_eligible_for_run(
    status: str,
    joined_date: date,
    terminated_date: date | None,
    run_date: date,
    period_start: date,
) -> bool:
    """Whether a worker is paid in a generated run.

    Active workers who joined on or before the run date, plus terminated
    workers whose termination falls after the period start.
    """
    if joined_date > run_date:
        return False
    if status == "ACTIVE":
        return True
    if status == "TERMINATED":
        return terminated_date is not None and terminated_date > period_start
    return False
