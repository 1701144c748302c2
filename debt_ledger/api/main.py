"""
REST API for the Debt Ledger

Exposes the same store the Streamlit UI uses:
- /api/people, /api/transactions, /api/dashboard
- /health for liveness plus a store round trip

Run with:
    uvicorn debt_ledger.api.main:app --reload
"""

from fastapi import Depends, FastAPI

from debt_ledger import __version__
from debt_ledger.api.deps import get_storage
from debt_ledger.api.routes import dashboard_router, people_router, transactions_router
from debt_ledger.audit import configure_logging
from debt_ledger.config import get_settings
from debt_ledger.services.storage import LedgerStorageInterface, StorageError

configure_logging(get_settings().app.log_level)

app = FastAPI(
    title="Debt Ledger API",
    version=__version__,
    description="People, debts and payments, with dashboard aggregates.",
)

app.include_router(people_router, prefix="/api")
app.include_router(transactions_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")


@app.get("/health")
async def health(storage: LedgerStorageInterface = Depends(get_storage)):
    """Liveness plus a store round trip."""
    try:
        store_ok = await storage.ping()
    except StorageError:
        store_ok = False
    return {
        "status": "ok" if store_ok else "degraded",
        "version": app.version,
        "store": store_ok,
    }
