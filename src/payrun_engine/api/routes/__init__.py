"""API routes."""

from payrun_engine.api.routes.health import router as health_router
from payrun_engine.api.routes.pay_periods import router as pay_periods_router
from payrun_engine.api.routes.pay_runs import router as pay_runs_router

__all__ = ["health_router", "pay_periods_router", "pay_runs_router"]
