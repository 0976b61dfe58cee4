"""Relational delivery store backed by SQLAlchemy's async ORM.

Example:
    ```python
    from hookrelay.storage import SqlDeliveryStore

    async with SqlDeliveryStore("sqlite+aiosqlite:///hookrelay.sqlite") as store:
        due = await store.find_due(utc_now(), limit=50)
    ```
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hookrelay.config import settings
from hookrelay.exceptions import StorageError
from hookrelay.models import DUE_STATUSES, DeliveryStatus, WebhookDelivery, utc_now

from .retry import storage_retry
from .tables import Base, WebhookDeliveryRow

logger = logging.getLogger(__name__)


class SqlDeliveryStore:
    """Async SQLAlchemy implementation of ``DeliveryStore``.

    Owns one ``AsyncEngine`` for its lifetime and opens a short session per
    operation. Construct once per process, ``initialize()`` before use and
    ``close()`` on shutdown (or use it as an async context manager).
    """

    def __init__(
        self,
        url: str | None = None,
        echo: bool | None = None,
        create_tables: bool | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            url: SQLAlchemy async URL. Defaults to settings.database_url.
            echo: Echo SQL. Defaults to settings.database_echo.
            create_tables: Run ``create_all`` on initialize. Defaults to settings.create_tables.
        """
        self._url = url or settings.database_url
        self._echo = settings.database_echo if echo is None else echo
        self._create_tables = settings.create_tables if create_tables is None else create_tables
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get the engine, raising if not initialized."""
        if self._engine is None:
            raise RuntimeError("Store not initialized. Call initialize() first.")
        return self._engine

    def _session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Store not initialized. Call initialize() first.")
        return self._sessionmaker()

    def _engine_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"echo": self._echo}
        url = make_url(self._url)
        if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
            # In-memory SQLite lives and dies with its connection; share one.
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        else:
            options["pool_pre_ping"] = True
        return options

    async def initialize(self) -> None:
        """Create the engine and, if configured, the deliveries table."""
        if self._engine is not None:
            return
        self._engine = create_async_engine(self._url, **self._engine_options())
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)
        if self._create_tables:
            try:
                async with self._engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to create delivery tables: {e}") from e
        logger.info("Delivery store initialized", extra={"backend": self._engine.dialect.name})

    async def close(self) -> None:
        """Dispose of the engine and its connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    async def __aenter__(self) -> SqlDeliveryStore:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def find_due(self, max_next_attempt: datetime, limit: int) -> list[WebhookDelivery]:
        """Select due PENDING/RETRY records, oldest ``next_attempt`` first.

        Raises:
            StorageError: If the query fails after retries.
        """
        try:
            return await self._find_due(max_next_attempt, limit)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to select due deliveries: {e}") from e

    @storage_retry
    async def _find_due(self, max_next_attempt: datetime, limit: int) -> list[WebhookDelivery]:
        stmt = (
            select(WebhookDeliveryRow)
            .where(
                WebhookDeliveryRow.status.in_(list(DUE_STATUSES)),
                WebhookDeliveryRow.next_attempt <= max_next_attempt,
            )
            .order_by(WebhookDeliveryRow.next_attempt.asc(), WebhookDeliveryRow.id.asc())
            .limit(limit)
        )
        async with self._session() as session:
            rows = (await session.scalars(stmt)).all()
        return [row.to_model() for row in rows]

    async def find_by_id(self, delivery_id: str) -> WebhookDelivery | None:
        """Load one record, or None if it does not exist.

        Raises:
            StorageError: If the query fails after retries.
        """
        try:
            return await self._find_by_id(delivery_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load delivery {delivery_id}: {e}") from e

    @storage_retry
    async def _find_by_id(self, delivery_id: str) -> WebhookDelivery | None:
        async with self._session() as session:
            row = await session.get(WebhookDeliveryRow, delivery_id)
            return row.to_model() if row is not None else None

    async def update_delivery_outcome(
        self,
        delivery_id: str,
        status: DeliveryStatus,
        attempts: int,
        next_attempt: datetime | None = None,
    ) -> bool:
        """Write status, attempts and next_attempt in one UPDATE statement.

        The statement is guarded on the row still being PENDING/RETRY so a
        terminal record is never moved, even by an overlapping run.

        Raises:
            StorageError: If the write fails.
        """
        values: dict[str, Any] = {
            "status": status,
            "attempts": attempts,
            "updated_at": utc_now(),
        }
        if next_attempt is not None:
            values["next_attempt"] = next_attempt

        stmt = (
            update(WebhookDeliveryRow)
            .where(
                WebhookDeliveryRow.id == delivery_id,
                WebhookDeliveryRow.status.in_(list(DUE_STATUSES)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session() as session, session.begin():
                result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update delivery {delivery_id}: {e}") from e
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def create_delivery(self, delivery: WebhookDelivery) -> str:
        """Insert a new delivery record.

        Raises:
            StorageError: If the insert fails (including duplicate ids).
        """
        try:
            async with self._session() as session, session.begin():
                session.add(WebhookDeliveryRow.from_model(delivery))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create delivery {delivery.id}: {e}") from e
        return delivery.id
