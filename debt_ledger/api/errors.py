"""Mapping from storage faults to HTTP errors."""

from contextlib import asynccontextmanager

import structlog
from fastapi import HTTPException

from debt_ledger.services.storage import NotFoundError, StorageError


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def store_call(message: str, operation: str):
    """
    Run a store call; a missing row becomes 404, any other store fault
    becomes 502 carrying ``message``. The fault detail only goes to the log.
    """
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        logger.warning("api_store_call_failed", operation=operation, error=str(e))
        raise HTTPException(status_code=502, detail=message)
