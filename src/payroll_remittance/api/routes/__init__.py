"""API routes."""

from payroll_remittance.api.routes.border import router as border_router
from payroll_remittance.api.routes.health import router as health_router
from payroll_remittance.api.routes.payroll import router as payroll_router

__all__ = ["border_router", "health_router", "payroll_router"]
