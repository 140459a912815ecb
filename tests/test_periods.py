"""Tests for pay-cycle dates, references and eligibility."""

from datetime import date

import pytest

from payout_engine.calculators import (
    customer_reference,
    is_eligible_for_run,
    next_run_date,
    overdue_run_dates,
    pay_period,
)
from payout_engine.errors import ValidationError


class TestPayPeriod:
    def test_biweekly_period(self):
        """A 14-day period ends on the run date."""
        period = pay_period(date(2024, 1, 14), 14)
        assert period.start == date(2024, 1, 1)
        assert period.end == date(2024, 1, 14)

    def test_single_day_cycle(self):
        period = pay_period(date(2024, 3, 5), 1)
        assert period.start == period.end == date(2024, 3, 5)

    def test_rejects_zero_cycle(self):
        with pytest.raises(ValidationError):
            pay_period(date(2024, 1, 14), 0)


class TestOverdueRunDates:
    def test_next_run_date(self):
        assert next_run_date(date(2024, 1, 14), 14) == date(2024, 1, 28)

    def test_catches_up_missed_cycles(self):
        """Every missed cycle up to today is returned, oldest first."""
        dates = overdue_run_dates(date(2024, 1, 14), 14, date(2024, 2, 12))
        assert dates == [date(2024, 1, 14), date(2024, 1, 28), date(2024, 2, 11)]

    def test_today_inclusive(self):
        assert overdue_run_dates(date(2024, 1, 14), 14, date(2024, 1, 14)) == [date(2024, 1, 14)]

    def test_nothing_due(self):
        assert overdue_run_dates(date(2024, 1, 14), 14, date(2024, 1, 13)) == []


class TestCustomerReference:
    def test_format(self):
        """Prefix, run date and a zero-padded sequence."""
        assert customer_reference("PAY", date(2024, 1, 15), 7) == "PAY-20240115-007"


class TestEligibility:
    """Which workers a generated run pays."""

    def test_active_worker(self):
        assert is_eligible_for_run("ACTIVE", date(2024, 1, 1), None, date(2024, 1, 14), date(2024, 1, 1))

    def test_not_yet_joined(self):
        assert not is_eligible_for_run(
            "ACTIVE", date(2024, 1, 15), None, date(2024, 1, 14), date(2024, 1, 1)
        )

    def test_terminated_during_period(self):
        """Workers leaving mid-period are paid for it."""
        assert is_eligible_for_run(
            "TERMINATED", date(2023, 1, 1), date(2024, 1, 5), date(2024, 1, 14), date(2024, 1, 1)
        )

    def test_terminated_before_period(self):
        assert not is_eligible_for_run(
            "TERMINATED", date(2023, 1, 1), date(2023, 12, 20), date(2024, 1, 14), date(2024, 1, 1)
        )

    def test_inactive_worker(self):
        assert not is_eligible_for_run(
            "INACTIVE", date(2023, 1, 1), None, date(2024, 1, 14), date(2024, 1, 1)
        )
