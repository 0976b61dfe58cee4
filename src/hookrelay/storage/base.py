"""Delivery store interface.

The dispatcher and executor only ever talk to the store through this
protocol. The store is the single source of truth for ``status``,
``attempts`` and ``next_attempt``; callers never cache it across runs.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from hookrelay.models import DeliveryStatus, WebhookDelivery


@runtime_checkable
class DeliveryStore(Protocol):
    """Persistence operations consumed by the delivery engine."""

    async def find_due(self, max_next_attempt: datetime, limit: int) -> list[WebhookDelivery]:
        """Return up to ``limit`` PENDING/RETRY records with ``next_attempt <= max_next_attempt``.

        Ordered by ``next_attempt`` ascending so the longest-waiting
        deliveries win when the cap is reached.
        """
        ...

    async def find_by_id(self, delivery_id: str) -> WebhookDelivery | None:
        """Return the record or None if it no longer exists."""
        ...

    async def update_delivery_outcome(
        self,
        delivery_id: str,
        status: DeliveryStatus,
        attempts: int,
        next_attempt: datetime | None = None,
    ) -> bool:
        """Write one attempt's outcome as a single atomic update.

        ``next_attempt=None`` leaves the stored value untouched. The write
        only applies while the record is still PENDING/RETRY.

        Returns:
            True if a row was updated, False if it was missing or terminal.
        """
        ...

    async def create_delivery(self, delivery: WebhookDelivery) -> str:
        """Persist a new record and return its id."""
        ...

    async def initialize(self) -> None: ...

    async def close(self) -> None: ...
