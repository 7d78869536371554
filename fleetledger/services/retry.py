"""Retry helper for read queries that hit transient connection failures."""

import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

from fleetledger.services.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (OperationalError, DisconnectionError, InterfaceError)


def with_retry(
    operation: Callable[[], T],
    max_attempts: int | None = None,
    base_delay: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run operation, retrying transient database errors with exponential backoff.

    Waits base_delay, then 2x, then 4x between attempts. Any other exception
    propagates immediately, as does the last transient error.

    Args:
        operation: Zero-argument callable performing the query
        max_attempts: Total attempts (default: settings.db_retry_attempts)
        base_delay: First backoff delay in seconds (default: settings.db_retry_base_delay)
        sleep: Sleep function (replaceable in tests)

    Returns:
        Whatever operation returns
    """
    attempts = max_attempts if max_attempts is not None else settings.db_retry_attempts
    delay = base_delay if base_delay is not None else settings.db_retry_base_delay

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except TRANSIENT_ERRORS as e:
            if attempt >= attempts:
                logger.error("Database operation failed after %d attempts: %s", attempt, e)
                raise
            wait = delay * (2 ** (attempt - 1))
            logger.warning(
                "Database operation failed on attempt %d, retrying in %.1fs: %s",
                attempt,
                wait,
                e,
            )
            sleep(wait)

    raise RuntimeError("with_retry called with max_attempts < 1")


__all__ = ["with_retry", "TRANSIENT_ERRORS"]
