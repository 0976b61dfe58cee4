"""Hookrelay service layer.

``HookrelayService`` wires the delivery store, a shared HTTP client, the
executor and the dispatcher together, and owns their lifecycle: construct
once per process, ``initialize()`` on startup, ``close()`` on shutdown.

Example:
    ```python
    from hookrelay.service import HookrelayService

    async with HookrelayService.create() as relay:
        await relay.enqueue(event_id="42", url="https://example.com/hook", payload={"type": "CREATED"})
        summary = await relay.run_due_deliveries()
        print(summary.model_dump())
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from hookrelay.config import Settings
from hookrelay.models import BatchSummary, DeliveryOutcome, WebhookDelivery, utc_now
from hookrelay.storage import DeliveryStore, SqlDeliveryStore
from hookrelay.webhooks import DeliveryExecutor, WebhookDispatcher, enqueue_delivery


@dataclass
class HookrelayService:
    """High-level entry point for enqueueing and dispatching webhooks.

    Attributes:
        store: Delivery store handle.
        settings: Configuration settings.
        clock: Source of the current time (injectable for tests).
        http_transport: Optional httpx transport for outbound requests
            (proxies, client certificates, or a mock in tests).
    """

    store: DeliveryStore
    settings: Settings
    clock: Callable[[], datetime] = field(default=utc_now)
    http_transport: httpx.AsyncBaseTransport | None = None

    _http_client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)
    _executor: DeliveryExecutor | None = field(default=None, init=False, repr=False)
    _dispatcher: WebhookDispatcher | None = field(default=None, init=False, repr=False)

    @classmethod
    def create(cls, settings: Settings | None = None) -> HookrelayService:
        """Create a service backed by the SQL store from settings."""
        if settings is None:
            settings = Settings()
        return cls(
            store=SqlDeliveryStore(
                url=settings.database_url,
                echo=settings.database_echo,
                create_tables=settings.create_tables,
            ),
            settings=settings,
        )

    async def initialize(self) -> None:
        """Open the store and the shared HTTP client."""
        await self.store.initialize()
        self._http_client = httpx.AsyncClient(
            timeout=self.settings.request_timeout_seconds,
            follow_redirects=False,
            transport=self.http_transport,
        )
        self._executor = DeliveryExecutor(
            self.store,
            policy=self.settings.retry_policy(),
            timeout_seconds=self.settings.request_timeout_seconds,
            signing_secret=self.settings.signing_secret,
            http_client=self._http_client,
            clock=self.clock,
        )
        self._dispatcher = WebhookDispatcher(
            self.store,
            self._executor,
            batch_size=self.settings.batch_size,
            max_concurrent=self.settings.effective_max_concurrent,
            clock=self.clock,
        )

    async def close(self) -> None:
        """Close the HTTP client and the store."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        self._executor = None
        self._dispatcher = None
        await self.store.close()

    async def __aenter__(self) -> HookrelayService:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def executor(self) -> DeliveryExecutor:
        if self._executor is None:
            raise RuntimeError("Service not initialized. Call initialize() first.")
        return self._executor

    @property
    def dispatcher(self) -> WebhookDispatcher:
        if self._dispatcher is None:
            raise RuntimeError("Service not initialized. Call initialize() first.")
        return self._dispatcher

    async def run_due_deliveries(self) -> BatchSummary:
        """Run one dispatcher batch."""
        return await self.dispatcher.run_batch()

    async def process_delivery(self, delivery_id: str) -> DeliveryOutcome:
        """Run one attempt for one record, regardless of its ``next_attempt``."""
        return await self.executor.execute(delivery_id)

    async def enqueue(
        self,
        event_id: str | int,
        url: str,
        payload: bytes | Mapping[str, Any],
    ) -> WebhookDelivery:
        """Create a PENDING delivery that is due immediately."""
        return await enqueue_delivery(self.store, event_id, url, payload, now=self.clock())
