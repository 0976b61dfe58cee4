"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from hookrelay.models import DeliveryStatus, WebhookDelivery
from hookrelay.storage import SqlDeliveryStore

# Add tests directory to path so helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class FixedClock:
    """Deterministic clock that only moves when told to.

    Example:
        ```python
        clock = FixedClock(T0)
        executor = DeliveryExecutor(store, clock=clock)
        clock.advance(minutes=5)
        ```
    """

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by a ``timedelta(**kwargs)``."""
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_delivery(**overrides: Any) -> WebhookDelivery:
    """Build a due PENDING delivery created ten minutes before ``T0``."""
    fields: dict[str, Any] = {
        "event_id": "42",
        "url": "https://receiver.example.com/hooks",
        "payload": b'{"type":"CANCELLED","eventId":"42"}',
        "status": DeliveryStatus.PENDING,
        "attempts": 0,
        "next_attempt": T0 - timedelta(minutes=1),
        "created_at": T0 - timedelta(minutes=10),
    }
    fields.update(overrides)
    return WebhookDelivery(**fields)


def respond_with(
    status_code: int = 200,
    requests: list[httpx.Request] | None = None,
) -> httpx.MockTransport:
    """Mock transport answering every request with ``status_code``.

    Received requests are appended to ``requests`` when given.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(status_code, text="ok" if status_code < 400 else "nope")

    return httpx.MockTransport(handler)


def route_by_url(
    routes: dict[str, Callable[[httpx.Request], httpx.Response]],
    default: int = 200,
) -> httpx.MockTransport:
    """Mock transport dispatching on the request URL.

    Unknown URLs get ``default``. A route may raise an ``httpx`` error to
    simulate a transport failure.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(default)
        return route(request)

    return httpx.MockTransport(handler)


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at ``T0``."""
    return FixedClock(T0)


@pytest.fixture
def mock_store() -> AsyncMock:
    """Create a mock delivery store instance."""
    store = AsyncMock()
    store.find_due = AsyncMock(return_value=[])
    store.find_by_id = AsyncMock(return_value=None)
    store.update_delivery_outcome = AsyncMock(return_value=True)
    store.create_delivery = AsyncMock(side_effect=lambda delivery: delivery.id)
    return store


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite file database unique to the test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'hookrelay.sqlite'}"


@pytest_asyncio.fixture
async def sql_store(database_url: str) -> AsyncIterator[SqlDeliveryStore]:
    """Initialized SQL delivery store on a fresh SQLite file."""
    store = SqlDeliveryStore(database_url, echo=False, create_tables=True)
    await store.initialize()
    try:
        yield store
    finally:
        await store.close()
