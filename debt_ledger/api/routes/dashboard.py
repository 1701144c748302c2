"""Dashboard endpoint: every overview card in one payload."""

from fastapi import APIRouter, Depends

from debt_ledger.api.deps import get_app_settings, get_storage
from debt_ledger.api.errors import store_call
from debt_ledger.config import AppSettings
from debt_ledger.dashboard import summarize
from debt_ledger.models import DashboardSummary
from debt_ledger.services.storage import LedgerStorageInterface

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardSummary)
async def get_dashboard(
    storage: LedgerStorageInterface = Depends(get_storage),
    settings: AppSettings = Depends(get_app_settings),
):
    async with store_call("Failed to load people", "list_people"):
        people = await storage.list_people()
    async with store_call("Failed to load transactions", "list_transactions"):
        transactions = await storage.list_transactions()
    return summarize(people, transactions, recent_limit=settings.recent_activity_limit)
