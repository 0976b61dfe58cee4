"""Batch dispatcher for due webhook deliveries.

Each ``run_batch`` call is a stateless unit of work: select up to
``batch_size`` due records (oldest ``next_attempt`` first), attempt them
all concurrently, and report counts. There is no claim step, so two
overlapping runs may attempt the same record; delivery is at-least-once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from hookrelay.logging import bind_context, unbind_context
from hookrelay.models import (
    BatchSummary,
    DeliveryOutcome,
    ErroredOutcome,
    generate_id,
    utc_now,
)

from .summary import summarize

if TYPE_CHECKING:
    from hookrelay.storage import DeliveryStore

    from .delivery import DeliveryExecutor

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


class WebhookDispatcher:
    """Selects due deliveries and runs the executor for each one.

    Example:
        ```python
        dispatcher = WebhookDispatcher(store, executor)
        summary = await dispatcher.run_batch()
        print(summary.delivered, summary.retrying, summary.failed)
        ```
    """

    def __init__(
        self,
        store: DeliveryStore,
        executor: DeliveryExecutor,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_concurrent: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            store: Delivery store to select due records from.
            executor: Runs one attempt per selected record.
            batch_size: Maximum records selected per run.
            max_concurrent: Concurrent attempts per run. Defaults to batch_size.
            clock: Source of the current time.
        """
        self._store = store
        self._executor = executor
        self._batch_size = batch_size
        self._max_concurrent = max_concurrent or batch_size
        self._clock = clock

    async def run_batch(self) -> BatchSummary:
        """Run one batch of due deliveries.

        Returns:
            Counts of this run's outcomes.

        Raises:
            StorageError: If selecting due records fails. Failures while
                handling an individual record never raise; they are counted
                as ``errored``.
        """
        batch_id = generate_id("batch")
        bind_context(batch_id=batch_id)
        try:
            now = self._clock()
            due = await self._store.find_due(now, self._batch_size)
            logger.info("Processing due webhook deliveries: %d", len(due))

            semaphore = asyncio.Semaphore(self._max_concurrent)
            results = await asyncio.gather(
                *(self._execute(delivery.id, semaphore) for delivery in due),
                return_exceptions=True,
            )
            outcomes = [
                self._settle(delivery.id, result)
                for delivery, result in zip(due, results, strict=True)
            ]

            summary = summarize(outcomes)
            logger.info(
                "Webhook batch complete: processed=%d delivered=%d retrying=%d failed=%d "
                "errored=%d skipped=%d",
                summary.processed,
                summary.delivered,
                summary.retrying,
                summary.failed,
                summary.errored,
                summary.skipped,
            )
            return summary
        finally:
            unbind_context("batch_id")

    async def _execute(self, delivery_id: str, semaphore: asyncio.Semaphore) -> DeliveryOutcome:
        async with semaphore:
            return await self._executor.execute(delivery_id)

    @staticmethod
    def _settle(
        delivery_id: str, result: DeliveryOutcome | BaseException
    ) -> DeliveryOutcome:
        """Turn an exception from one record into an ``ErroredOutcome``."""
        if isinstance(result, BaseException):
            logger.error(
                "Webhook delivery raised: %s: %s",
                delivery_id,
                result,
                exc_info=(type(result), result, result.__traceback__),
            )
            return ErroredOutcome(
                delivery_id=delivery_id,
                detail=f"{type(result).__name__}: {result}",
            )
        return result
