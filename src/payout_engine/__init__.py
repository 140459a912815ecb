"""Payout engine: contractor payroll runs, debt payouts and TDS tracking."""

__version__ = "0.1.0"
