"""Bounded store calls.

The store is a remote service: every call gets a deadline, and a timeout or
driver error becomes StoreUnavailableError. A timed-out mutation counts as
failed for compensation purposes. Only reads and writes keyed by an
operation id are retried here; a keyless write is never repeated.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError

from config.settings import settings
from src.bw_common.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    asyncio.TimeoutError,
    OSError,
    DBAPIError,
)


async def bounded(operation: str, awaitable: Awaitable[T]) -> T:
    """Await a single store mutation with the configured deadline."""
    try:
        return await asyncio.wait_for(awaitable, timeout=settings.STORE_TIMEOUT_SECONDS)
    except _TRANSIENT_ERRORS as exc:
        logger.warning("Store call failed: op=%s error=%s", operation, type(exc).__name__)
        raise StoreUnavailableError(operation) from exc


async def _retrying(
    operation: str, call: Callable[[], Awaitable[T]], retries: int, what: str
) -> T:
    attempts = retries + 1
    for attempt in range(1, attempts):
        try:
            return await bounded(operation, call())
        except StoreUnavailableError:
            logger.info(
                "Retrying %s: op=%s attempt=%d/%d", what, operation, attempt + 1, attempts
            )
    return await bounded(operation, call())


async def bounded_read(operation: str, call: Callable[[], Awaitable[T]]) -> T:
    """Run a read-only store call, retrying transient failures."""
    return await _retrying(operation, call, settings.STORE_READ_RETRIES, "read")


async def bounded_idempotent(operation: str, call: Callable[[], Awaitable[T]]) -> T:
    """Run a write that is keyed by an operation id, retrying transient failures.

    Only for writes the store deduplicates (unique key, applied-operation
    check): repeating one after a lost reply changes nothing.
    """
    return await _retrying(operation, call, settings.STORE_WRITE_RETRIES, "keyed write")
