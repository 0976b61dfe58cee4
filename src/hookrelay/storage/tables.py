"""SQLAlchemy table definitions for the delivery store."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, LargeBinary, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from hookrelay.models import DeliveryStatus, WebhookDelivery, ensure_utc


class Base(DeclarativeBase):
    """Declarative base for Hookrelay tables."""


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware UTC datetimes on every backend.

    SQLite has no timezone support, so values are stored there as naive UTC
    and re-tagged on the way out. Comparisons stay correct because every
    stored value uses the same offset.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        value = ensure_utc(value)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Any, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        return ensure_utc(value)


class WebhookDeliveryRow(Base):
    """One row per webhook delivery owed to one destination."""

    __tablename__ = "webhook_deliveries"
    __table_args__ = (
        # Serves the due-selection query: status filter + next_attempt range/order.
        Index("ix_webhook_deliveries_status_next_attempt", "status", "next_attempt"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    status: Mapped[DeliveryStatus] = mapped_column(
        SQLEnum(DeliveryStatus, native_enum=False, length=16),
        nullable=False,
        default=DeliveryStatus.PENDING,
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_attempt: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    @classmethod
    def from_model(cls, delivery: WebhookDelivery) -> WebhookDeliveryRow:
        return cls(
            id=delivery.id,
            event_id=delivery.event_id,
            url=delivery.url,
            payload=delivery.payload,
            status=delivery.status,
            attempts=delivery.attempts,
            next_attempt=delivery.next_attempt,
            created_at=delivery.created_at,
            updated_at=delivery.updated_at,
        )

    def to_model(self) -> WebhookDelivery:
        return WebhookDelivery(
            id=self.id,
            event_id=self.event_id,
            url=self.url,
            payload=self.payload,
            status=self.status,
            attempts=self.attempts,
            next_attempt=self.next_attempt,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<WebhookDeliveryRow(id={self.id}, status={self.status}, attempts={self.attempts})>"
