"""Transaction endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from debt_ledger.api.deps import get_audit_logger, get_storage, get_validator
from debt_ledger.api.errors import store_call
from debt_ledger.audit import AuditLogger, create_correlation_id
from debt_ledger.models import Transaction, TransactionCreate, TransactionUpdate
from debt_ledger.services.storage import LedgerStorageInterface
from debt_ledger.validation import LedgerValidator

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _check_amount(amount, validator: LedgerValidator) -> None:
    _, issue = validator.parse_amount(amount)
    if issue:
        raise HTTPException(status_code=422, detail=issue.message)


@router.get("", response_model=list[Transaction])
async def list_transactions(storage: LedgerStorageInterface = Depends(get_storage)):
    """Every transaction, newest first."""
    async with store_call("Failed to load transactions", "list_transactions"):
        return await storage.list_transactions()


@router.get("/person/{person_id}", response_model=list[Transaction])
async def list_person_transactions(
    person_id: UUID,
    storage: LedgerStorageInterface = Depends(get_storage),
):
    async with store_call("Failed to load transactions", "list_transactions"):
        return await storage.list_transactions(person_id)


@router.post("", response_model=Transaction, status_code=201)
async def create_transaction(
    payload: TransactionCreate,
    storage: LedgerStorageInterface = Depends(get_storage),
    audit_logger: AuditLogger = Depends(get_audit_logger),
    validator: LedgerValidator = Depends(get_validator),
):
    """Record a debt or payment; the owner's total is updated by the store."""
    _check_amount(payload.amount, validator)
    correlation_id = create_correlation_id()
    async with store_call("Failed to add transaction", "create_transaction"):
        if await storage.get_person(payload.person_id) is None:
            raise HTTPException(
                status_code=404, detail=f"Person not found: {payload.person_id}"
            )
        created = await storage.create_transaction(payload)
    await audit_logger.log_transaction_created(
        created.id, created.person_id, created.kind.value, created.amount, correlation_id
    )
    return created


@router.patch("/{transaction_id}", response_model=Transaction)
async def update_transaction(
    transaction_id: UUID,
    changes: TransactionUpdate,
    storage: LedgerStorageInterface = Depends(get_storage),
    audit_logger: AuditLogger = Depends(get_audit_logger),
    validator: LedgerValidator = Depends(get_validator),
):
    if changes.is_empty:
        raise HTTPException(status_code=422, detail="No fields to update")
    if changes.amount is not None:
        _check_amount(changes.amount, validator)
    async with store_call("Failed to edit transaction", "update_transaction"):
        updated = await storage.update_transaction(transaction_id, changes)
    await audit_logger.log_transaction_updated(updated.id, changes.changes())
    return updated


@router.delete("/{transaction_id}", status_code=204)
async def delete_transaction(
    transaction_id: UUID,
    storage: LedgerStorageInterface = Depends(get_storage),
    audit_logger: AuditLogger = Depends(get_audit_logger),
):
    async with store_call("Failed to delete transaction", "delete_transaction"):
        deleted = await storage.delete_transaction(transaction_id)
    if not deleted:
        raise HTTPException(
            status_code=404, detail=f"Transaction not found: {transaction_id}"
        )
    await audit_logger.log_transaction_deleted(transaction_id, None)
