"""Delivery store for Hookrelay.

``DeliveryStore`` is the interface the engine consumes;
``SqlDeliveryStore`` implements it on SQLAlchemy's async ORM (SQLite via
aiosqlite by default, PostgreSQL via asyncpg in production).

Example:
    ```python
    from hookrelay.storage import SqlDeliveryStore

    async with SqlDeliveryStore() as store:
        delivery = await store.find_by_id("dlv_a1b2c3d4e5f6")
    ```
"""

from .base import DeliveryStore
from .client import SqlDeliveryStore
from .tables import Base, UTCDateTime, WebhookDeliveryRow

__all__ = [
    "Base",
    "DeliveryStore",
    "SqlDeliveryStore",
    "UTCDateTime",
    "WebhookDeliveryRow",
]
