"""API routes."""

from payout_engine.api.routes.debt_runs import router as debt_runs_router
from payout_engine.api.routes.health import router as health_router
from payout_engine.api.routes.manual_payments import router as manual_payments_router
from payout_engine.api.routes.payroll_runs import router as payroll_runs_router
from payout_engine.api.routes.tax_periods import router as tax_periods_router
from payout_engine.api.routes.workers import router as workers_router

__all__ = [
    "debt_runs_router",
    "health_router",
    "manual_payments_router",
    "payroll_runs_router",
    "tax_periods_router",
    "workers_router",
]
