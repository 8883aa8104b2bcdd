"""API routes."""

from rota_payroll.api.routes.health import router as health_router
from rota_payroll.api.routes.payroll import router as payroll_router
from rota_payroll.api.routes.timeclock import router as timeclock_router

__all__ = ["health_router", "payroll_router", "timeclock_router"]
