"""API routers."""

from debt_ledger.api.routes.dashboard import router as dashboard_router
from debt_ledger.api.routes.people import router as people_router
from debt_ledger.api.routes.transactions import router as transactions_router

__all__ = ["dashboard_router", "people_router", "transactions_router"]
