"""
People endpoints.

Mirrors the shell's person operations for clients other than the
Streamlit UI.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from debt_ledger.api.deps import get_audit_logger, get_storage, get_validator
from debt_ledger.api.errors import store_call
from debt_ledger.audit import AuditLogger
from debt_ledger.dashboard import leaderboard
from debt_ledger.models import LeaderboardEntry, Person, PersonCreate
from debt_ledger.services.storage import LedgerStorageInterface
from debt_ledger.validation import LedgerValidator

router = APIRouter(prefix="/people", tags=["people"])


def _clean_name(payload: PersonCreate, validator: LedgerValidator) -> str:
    check = validator.validate_name(payload.name)
    if not check.is_valid:
        raise HTTPException(status_code=422, detail=check.first_message)
    return check.cleaned["name"]


@router.get("", response_model=list[Person])
async def list_people(storage: LedgerStorageInterface = Depends(get_storage)):
    """All people, sorted by name."""
    async with store_call("Failed to load people", "list_people"):
        return await storage.list_people()


@router.get("/ranking/debt", response_model=list[LeaderboardEntry])
async def debt_ranking(storage: LedgerStorageInterface = Depends(get_storage)):
    """People ranked by total debt, highest first."""
    async with store_call("Failed to load people", "list_people"):
        people = await storage.list_people()
    return leaderboard(people)


@router.post("", response_model=Person, status_code=201)
async def create_person(
    payload: PersonCreate,
    storage: LedgerStorageInterface = Depends(get_storage),
    audit_logger: AuditLogger = Depends(get_audit_logger),
    validator: LedgerValidator = Depends(get_validator),
):
    name = _clean_name(payload, validator)
    async with store_call("Failed to add person", "create_person"):
        person = await storage.create_person(name)
    await audit_logger.log_person_created(person.id, person.name)
    return person


@router.put("/{person_id}", response_model=Person)
async def rename_person(
    person_id: UUID,
    payload: PersonCreate,
    storage: LedgerStorageInterface = Depends(get_storage),
    audit_logger: AuditLogger = Depends(get_audit_logger),
    validator: LedgerValidator = Depends(get_validator),
):
    name = _clean_name(payload, validator)
    async with store_call("Failed to update person", "get_person"):
        existing = await storage.get_person(person_id)
    if existing is None:
        raise HTTPException(status_code=404, detail=f"Person not found: {person_id}")
    async with store_call("Failed to update person", "rename_person"):
        person = await storage.rename_person(person_id, name)
    await audit_logger.log_person_renamed(person.id, existing.name, person.name)
    return person


@router.delete("/{person_id}", status_code=204)
async def delete_person(
    person_id: UUID,
    storage: LedgerStorageInterface = Depends(get_storage),
    audit_logger: AuditLogger = Depends(get_audit_logger),
):
    """Delete a person and, with them, all of their transactions."""
    async with store_call("Failed to delete person", "delete_person"):
        existing = await storage.get_person(person_id)
        if existing is None:
            raise HTTPException(status_code=404, detail=f"Person not found: {person_id}")
        history = await storage.list_transactions(person_id)
        await storage.delete_person(person_id)
    await audit_logger.log_person_deleted(person_id, existing.name, len(history))
