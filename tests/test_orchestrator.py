"""
Tests for the application shell.

The shell runs against an in-memory store whose operations can be
switched to fail, so every error path is reachable without a network.
"""

import asyncio

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from conftest import TEST_PIN
from debt_ledger.audit import AuditLogger
from debt_ledger.config import AppSettings, Settings
from debt_ledger.models import AuditEventType, TransactionKind, TransactionUpdate
from debt_ledger.orchestrator import (
    ERROR_ADD_PERSON,
    ERROR_ADD_TRANSACTION,
    ERROR_DELETE_PERSON,
    ERROR_DELETE_TRANSACTION,
    ERROR_EDIT_TRANSACTION,
    ERROR_INITIALIZE,
    ERROR_LOAD_PEOPLE,
    ERROR_LOAD_TRANSACTIONS,
    ERROR_NO_CHANGES,
    ERROR_UPDATE_PERSON,
    EditModeLockedError,
    LedgerShell,
    ShellStatus,
    create_app_components,
)
from debt_ledger.services.storage import InMemoryLedgerStorage


def run(coro):
    return asyncio.run(coro)


def unlocked(shell: LedgerShell) -> LedgerShell:
    assert run(shell.unlock_edit_mode(TEST_PIN)) is True
    return shell


@pytest.fixture
def seeded(shell, storage):
    """Shell over a store holding Ann (50000) and Bao (120000)."""
    unlocked(shell)
    run(shell.initialize())
    ann = run(shell.add_person("Ann"))
    bao = run(shell.add_person("Bao"))
    run(shell.select_person(ann.id))
    run(shell.add_transaction("50000", TransactionKind.DEBT, "rice", date(2024, 1, 2)))
    run(shell.select_person(bao.id))
    run(shell.add_transaction("120000", TransactionKind.DEBT, "rent", date(2024, 1, 3)))
    shell.deselect()
    return shell


class TestInitialize:
    def test_loads_people_and_transactions(self, seeded, storage, audit_storage, app_settings):
        """A fresh shell over a populated store sees everything."""
        shell = LedgerShell(storage, AuditLogger(audit_storage), settings=app_settings)
        assert shell.status == ShellStatus.UNINITIALIZED

        assert run(shell.initialize()) is True

        assert shell.status == ShellStatus.READY
        assert [p.name for p in shell.people] == ["Ann", "Bao"]
        assert len(shell.all_transactions) == 2
        assert shell.error is None

    def test_ping_failure(self, shell, storage):
        storage.fail("ping")
        assert run(shell.initialize()) is False
        assert shell.error == ERROR_INITIALIZE
        assert shell.status == ShellStatus.READY

    def test_people_failure(self, shell, storage):
        storage.fail("list_people")
        run(shell.initialize())
        assert shell.error == ERROR_LOAD_PEOPLE
        assert "list_transactions" not in storage.calls

    def test_transactions_failure(self, shell, storage):
        storage.fail("list_transactions")
        run(shell.initialize())
        assert shell.error == ERROR_LOAD_TRANSACTIONS

    def test_failure_is_audited(self, shell, storage, audit_storage):
        """Store faults are recorded as storage_error events."""
        storage.fail("ping")
        run(shell.initialize())
        assert audit_storage.events[-1].event_type == AuditEventType.STORAGE_ERROR
        assert audit_storage.events[-1].error_message == "ping unavailable"

    def test_reinitialize_clears_error(self, shell, storage):
        storage.fail("ping")
        run(shell.initialize())
        storage.heal()
        run(shell.initialize())
        assert shell.error is None


class TestEditMode:
    def test_correct_pin_unlocks(self, shell, audit_storage):
        assert run(shell.unlock_edit_mode(TEST_PIN)) is True
        assert shell.edit_mode is True
        assert audit_storage.events[-1].event_type == AuditEventType.EDIT_MODE_UNLOCKED

    def test_wrong_pin_stays_locked(self, shell, audit_storage):
        assert run(shell.unlock_edit_mode("0000")) is False
        assert shell.edit_mode is False
        assert audit_storage.events[-1].event_type == AuditEventType.EDIT_MODE_DENIED

    def test_no_configured_pin_never_unlocks(self, storage, locked_settings):
        """Without APP_EDIT_PIN, nothing unlocks edit mode, not even an empty PIN."""
        shell = LedgerShell(storage, settings=locked_settings)
        assert run(shell.unlock_edit_mode("")) is False
        assert run(shell.unlock_edit_mode(TEST_PIN)) is False

    def test_lock(self, shell):
        unlocked(shell).lock_edit_mode()
        assert shell.edit_mode is False

    def test_mutations_require_edit_mode(self, shell, storage):
        """Nothing reaches the store while locked."""
        run(shell.initialize())
        with pytest.raises(EditModeLockedError):
            run(shell.add_person("Ann"))
        with pytest.raises(EditModeLockedError):
            run(shell.delete_transaction(uuid4()))
        assert "create_person" not in storage.calls
        assert "delete_transaction" not in storage.calls


class TestSelection:
    def test_select_loads_history(self, seeded):
        bao = seeded.people[1]
        assert run(seeded.select_person(bao.id)) is True
        assert seeded.selected_person.name == "Bao"
        assert [t.description for t in seeded.transactions] == ["rent"]

    def test_deselect(self, seeded):
        run(seeded.select_person(seeded.people[0].id))
        seeded.deselect()
        assert seeded.selected_person is None
        assert seeded.transactions == []

    def test_unknown_person(self, seeded):
        assert run(seeded.select_person(uuid4())) is False

    def test_history_failure(self, seeded, storage):
        storage.fail("list_transactions")
        run(seeded.select_person(seeded.people[0].id))
        assert seeded.error == ERROR_LOAD_TRANSACTIONS
        assert seeded.transactions == []

    def test_stale_history_is_discarded(self, seeded, storage):
        """A slow response for an earlier selection never overwrites a later one."""
        ann, bao = seeded.people
        original = storage.list_transactions

        async def slow_then_switch(person_id=None):
            if person_id == ann.id:
                # the user picks Bao while Ann's history is loading
                await seeded.select_person(bao.id)
            return await original(person_id)

        storage.list_transactions = slow_then_switch
        assert run(seeded.select_person(ann.id)) is False

        assert seeded.selected_person.id == bao.id
        assert [t.description for t in seeded.transactions] == ["rent"]


class TestPeopleMutations:
    def test_add_person_keeps_name_order(self, shell):
        unlocked(shell)
        run(shell.initialize())
        run(shell.add_person("bao"))
        run(shell.add_person("Ann"))
        assert [p.name for p in shell.people] == ["Ann", "bao"]

    def test_same_name_order_matches_store(self, shell, storage):
        """People sharing a name are listed in the same order the store lists them."""
        unlocked(shell)
        run(shell.initialize())
        for _ in range(3):
            run(shell.add_person("Ann"))
        assert [p.id for p in shell.people] == [p.id for p in run(storage.list_people())]

    def test_blank_name_never_reaches_store(self, shell, storage):
        unlocked(shell)
        assert run(shell.add_person("   ")) is None
        assert shell.error == "Please enter a name"
        assert "create_person" not in storage.calls

    def test_add_person_failure(self, shell, storage):
        unlocked(shell)
        storage.fail("create_person")
        assert run(shell.add_person("Ann")) is None
        assert shell.error == ERROR_ADD_PERSON
        assert shell.people == []

    def test_rename_selected(self, seeded):
        run(seeded.select_person(seeded.people[0].id))
        renamed = run(seeded.rename_person("Anh"))
        assert renamed.name == "Anh"
        assert seeded.selected_person.name == "Anh"
        assert [p.name for p in seeded.people] == ["Anh", "Bao"]

    def test_longest_allowed_names_are_audited(self, storage, audit_storage):
        """Adding and renaming at the name length limit completes and is recorded."""
        settings = AppSettings(
            _env_file=None, edit_pin=TEST_PIN, storage_backend="memory", max_name_length=500
        )
        shell = unlocked(LedgerShell(storage, AuditLogger(audit_storage), settings=settings))
        run(shell.initialize())

        person = run(shell.add_person("A" * 495))
        run(shell.select_person(person.id))
        renamed = run(shell.rename_person("B" * 500))

        assert renamed.name == "B" * 500
        assert shell.error is None
        assert [p.name for p in shell.people] == ["B" * 500]
        types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.PERSON_CREATED in types
        assert AuditEventType.PERSON_RENAMED in types

    def test_rename_failure(self, seeded, storage):
        run(seeded.select_person(seeded.people[0].id))
        storage.fail("rename_person")
        assert run(seeded.rename_person("Anh")) is None
        assert seeded.error == ERROR_UPDATE_PERSON

    def test_rename_without_selection(self, seeded, storage):
        assert run(seeded.rename_person("Anh")) is None
        assert "rename_person" not in storage.calls

    def test_delete_selected_cascades(self, seeded, audit_storage):
        """The person, their transactions and the selection all go."""
        ann = seeded.people[0]
        run(seeded.select_person(ann.id))

        assert run(seeded.delete_person()) is True

        assert [p.name for p in seeded.people] == ["Bao"]
        assert all(t.person_id != ann.id for t in seeded.all_transactions)
        assert seeded.selected_person is None
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.PERSON_DELETED
        assert event.details["transactions_removed"] == 1

    def test_delete_failure(self, seeded, storage):
        run(seeded.select_person(seeded.people[0].id))
        storage.fail("delete_person")
        assert run(seeded.delete_person()) is False
        assert seeded.error == ERROR_DELETE_PERSON
        assert len(seeded.people) == 2


class TestTransactionMutations:
    def test_debt_raises_total(self, seeded):
        """A debt of A raises the person's total by A after refresh."""
        ann = seeded.people[0]
        run(seeded.select_person(ann.id))
        run(seeded.add_transaction("1000", TransactionKind.DEBT))
        assert seeded.selected_person.total_debt == Decimal("51000")
        assert seeded.people[0].total_debt == Decimal("51000")

    def test_payment_lowers_total(self, seeded):
        run(seeded.select_person(seeded.people[0].id))
        run(seeded.add_transaction("20000", TransactionKind.PAYMENT, "paid back"))
        assert seeded.selected_person.total_debt == Decimal("30000")

    def test_new_entry_shows_in_history_and_recent(self, seeded):
        run(seeded.select_person(seeded.people[0].id))
        created = run(seeded.add_transaction("5", "debt", "tea", date(2024, 6, 1)))
        assert seeded.transactions[0].id == created.id
        assert seeded.summary().recent_activity[0].transaction_id == created.id

    def test_chosen_date_is_kept(self, seeded):
        run(seeded.select_person(seeded.people[0].id))
        created = run(seeded.add_transaction("5", "debt", "", date(2023, 12, 24)))
        assert created.transaction_date == date(2023, 12, 24)

    def test_bad_amount_never_reaches_store(self, seeded, storage):
        run(seeded.select_person(seeded.people[0].id))
        calls_before = storage.calls.count("create_transaction")
        assert run(seeded.add_transaction("0")) is None
        assert seeded.error == "Amount must be greater than zero"
        assert storage.calls.count("create_transaction") == calls_before

    def test_add_failure(self, seeded, storage):
        run(seeded.select_person(seeded.people[0].id))
        storage.fail("create_transaction")
        assert run(seeded.add_transaction("5")) is None
        assert seeded.error == ERROR_ADD_TRANSACTION
        assert len(seeded.transactions) == 1

    def test_refresh_failure_keeps_new_entry(self, seeded, storage):
        """If re-reading the total fails, the entry stays and the error is set."""
        run(seeded.select_person(seeded.people[0].id))
        storage.fail("get_person")
        created = run(seeded.add_transaction("5"))
        assert created is not None
        assert seeded.transactions[0].id == created.id
        assert seeded.error == ERROR_ADD_TRANSACTION
        assert seeded.selected_person.total_debt == Decimal("50000")

    def test_edit_refreshes_people(self, seeded):
        ann = seeded.people[0]
        run(seeded.select_person(ann.id))
        txn = seeded.transactions[0]

        updated = run(seeded.edit_transaction(
            txn.id, TransactionUpdate(kind=TransactionKind.PAYMENT)
        ))

        assert updated.kind == TransactionKind.PAYMENT
        assert seeded.transactions[0].kind == TransactionKind.PAYMENT
        assert seeded.people[0].total_debt == Decimal("-50000")
        assert seeded.selected_person.total_debt == Decimal("-50000")

    def test_empty_edit(self, seeded, storage):
        assert run(seeded.edit_transaction(uuid4(), TransactionUpdate())) is None
        assert seeded.error == ERROR_NO_CHANGES
        assert "update_transaction" not in storage.calls

    def test_edit_failure(self, seeded, storage):
        storage.fail("update_transaction")
        txn = seeded.all_transactions[0]
        assert run(seeded.edit_transaction(txn.id, TransactionUpdate(description="x"))) is None
        assert seeded.error == ERROR_EDIT_TRANSACTION

    def test_delete_only_touches_one_history(self, seeded):
        """Deleting removes the entry from its owner's history only."""
        ann, bao = seeded.people
        run(seeded.select_person(ann.id))
        txn = seeded.transactions[0]

        assert run(seeded.delete_transaction(txn.id)) is True

        assert seeded.transactions == []
        assert seeded.selected_person.total_debt == Decimal("0")
        assert [t.person_id for t in seeded.all_transactions] == [bao.id]

    def test_delete_failure(self, seeded, storage):
        storage.fail("delete_transaction")
        txn = seeded.all_transactions[0]
        assert run(seeded.delete_transaction(txn.id)) is False
        assert seeded.error == ERROR_DELETE_TRANSACTION
        assert len(seeded.all_transactions) == 2

    def test_dismiss_error(self, seeded, storage):
        storage.fail("delete_transaction")
        run(seeded.delete_transaction(uuid4()))
        seeded.dismiss_error()
        assert seeded.error is None


class TestSummary:
    def test_example_ledger(self, seeded):
        """Ann 50000 and Bao 120000."""
        summary = seeded.summary()
        assert summary.total_debt == Decimal("170000")
        assert summary.people_with_debt == 2
        assert summary.average_debt == Decimal("85000")
        assert summary.max_debt == Decimal("120000")
        assert [entry.name for entry in summary.leaderboard] == ["Bao", "Ann"]
        assert [item.person_name for item in summary.recent_activity] == ["Bao", "Ann"]


class TestFactory:
    def test_memory_backend(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("APP_STORAGE_BACKEND", "memory")
        shell, audit_logger = create_app_components(Settings(_env_file=None))
        assert isinstance(shell.storage, InMemoryLedgerStorage)
        assert isinstance(audit_logger, AuditLogger)

    def test_unconfigured_backend_falls_back_to_memory(self, monkeypatch, tmp_path):
        """Missing Supabase credentials leave a working in-memory store."""
        monkeypatch.setenv("APP_STORAGE_BACKEND", "supabase")
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
        monkeypatch.chdir(tmp_path)
        shell, _ = create_app_components(Settings(_env_file=None))
        assert isinstance(shell.storage, InMemoryLedgerStorage)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
