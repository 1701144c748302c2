"""Tests for the in-memory ledger store."""

import asyncio

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from debt_ledger.models import TransactionCreate, TransactionKind, TransactionUpdate
from debt_ledger.services.storage import InMemoryLedgerStorage, NotFoundError, StorageError


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def store() -> InMemoryLedgerStorage:
    return InMemoryLedgerStorage()


def add(store, person, amount, kind=TransactionKind.DEBT, day=date(2024, 1, 1)):
    return run(store.create_transaction(TransactionCreate(
        person_id=person.id,
        amount=Decimal(amount),
        kind=kind,
        transaction_date=day,
    )))


class TestPeople:
    def test_create_and_list_sorted_by_name(self, store):
        """People come back in name order regardless of case."""
        run(store.create_person("bao"))
        run(store.create_person("Ann"))
        names = [p.name for p in run(store.list_people())]
        assert names == ["Ann", "bao"]

    def test_new_person_has_zero_total(self, store):
        person = run(store.create_person("Ann"))
        assert person.total_debt == Decimal("0")
        assert run(store.get_person(person.id)).name == "Ann"

    def test_rename(self, store):
        person = run(store.create_person("Ann"))
        renamed = run(store.rename_person(person.id, "Anh"))
        assert renamed.id == person.id
        assert renamed.name == "Anh"

    def test_rename_missing_person(self, store):
        with pytest.raises(NotFoundError):
            run(store.rename_person(uuid4(), "Ghost"))

    def test_delete_cascades_transactions(self, store):
        """Deleting a person removes their transactions too."""
        ann = run(store.create_person("Ann"))
        bao = run(store.create_person("Bao"))
        add(store, ann, "100")
        add(store, bao, "200")

        assert run(store.delete_person(ann.id)) is True
        remaining = run(store.list_transactions())
        assert [t.person_id for t in remaining] == [bao.id]
        assert run(store.delete_person(ann.id)) is False


class TestTransactions:
    def test_debt_raises_total(self, store):
        """A debt of A raises the total by A."""
        ann = run(store.create_person("Ann"))
        add(store, ann, "50000")
        assert run(store.get_person(ann.id)).total_debt == Decimal("50000")

    def test_payment_lowers_total(self, store):
        ann = run(store.create_person("Ann"))
        add(store, ann, "50000")
        add(store, ann, "20000", kind=TransactionKind.PAYMENT)
        assert run(store.get_person(ann.id)).total_debt == Decimal("30000")

    def test_update_recomputes_total(self, store):
        ann = run(store.create_person("Ann"))
        txn = add(store, ann, "50000")
        updated = run(store.update_transaction(
            txn.id, TransactionUpdate(kind=TransactionKind.PAYMENT)
        ))
        assert updated.kind == TransactionKind.PAYMENT
        assert updated.amount == Decimal("50000")
        assert run(store.get_person(ann.id)).total_debt == Decimal("-50000")

    def test_delete_recomputes_total(self, store):
        ann = run(store.create_person("Ann"))
        txn = add(store, ann, "50000")
        add(store, ann, "1000")
        assert run(store.delete_transaction(txn.id)) is True
        assert run(store.get_person(ann.id)).total_debt == Decimal("1000")
        assert run(store.delete_transaction(txn.id)) is False

    def test_delete_only_touches_one_history(self, store):
        """Removing a transaction leaves other people's history alone."""
        ann = run(store.create_person("Ann"))
        bao = run(store.create_person("Bao"))
        txn = add(store, ann, "1")
        add(store, bao, "2")
        run(store.delete_transaction(txn.id))
        assert run(store.list_transactions(ann.id)) == []
        assert len(run(store.list_transactions(bao.id))) == 1

    def test_list_newest_date_first(self, store):
        ann = run(store.create_person("Ann"))
        add(store, ann, "1", day=date(2024, 1, 1))
        add(store, ann, "2", day=date(2024, 3, 1))
        add(store, ann, "3", day=date(2024, 2, 1))
        days = [t.transaction_date.month for t in run(store.list_transactions(ann.id))]
        assert days == [3, 2, 1]

    def test_unknown_person(self, store):
        """Writing against a missing person fails like a foreign key would."""
        with pytest.raises(StorageError):
            run(store.create_transaction(
                TransactionCreate(person_id=uuid4(), amount=Decimal("1"))
            ))

    def test_empty_update(self, store):
        ann = run(store.create_person("Ann"))
        txn = add(store, ann, "1")
        with pytest.raises(ValueError):
            run(store.update_transaction(txn.id, TransactionUpdate()))

    def test_update_missing_transaction(self, store):
        with pytest.raises(NotFoundError):
            run(store.update_transaction(uuid4(), TransactionUpdate(description="x")))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
