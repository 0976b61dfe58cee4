"""Retry utilities for delivery store reads.

Retries transient database errors (dropped connections, lock timeouts)
with exponential backoff before the failure is surfaced to the caller.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import DBAPIError, OperationalError
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def is_transient_db_error(exc: BaseException) -> bool:
    """True for errors worth retrying: operational failures and invalidated connections."""
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def _log_retry(retry_state: RetryCallState) -> None:
    """Log retry attempts with context."""
    logger.warning(
        "Retrying delivery store operation",
        extra={
            "attempt": retry_state.attempt_number,
            "fn_name": retry_state.fn.__name__ if retry_state.fn else "unknown",
            "exception": str(retry_state.outcome.exception()) if retry_state.outcome else None,
        },
    )


# Only reads are retried; an outcome write that fails is left for the
# next run to redo (the record stays due).
storage_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    retry=retry_if_exception(is_transient_db_error),
    before_sleep=_log_retry,
    reraise=True,
)
