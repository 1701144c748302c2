"""
Shared FastAPI dependencies.

The store and audit logger are built once per process from settings.
Tests replace them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from debt_ledger.audit import AuditLogger
from debt_ledger.config import AppSettings, get_settings
from debt_ledger.orchestrator import create_app_components
from debt_ledger.services.storage import LedgerStorageInterface
from debt_ledger.validation import LedgerValidator


@lru_cache()
def _components():
    shell, audit_logger = create_app_components()
    return shell.storage, audit_logger


def get_storage() -> LedgerStorageInterface:
    return _components()[0]


def get_audit_logger() -> AuditLogger:
    return _components()[1]


def get_app_settings() -> AppSettings:
    return get_settings().app


def get_validator() -> LedgerValidator:
    return LedgerValidator(get_app_settings())
