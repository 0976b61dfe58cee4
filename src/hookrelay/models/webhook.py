"""Webhook delivery models.

A ``WebhookDelivery`` is one notification owed to one destination URL.
Each delivery attempt settles into exactly one ``DeliveryOutcome``, a
tagged union discriminated on ``kind`` that the batch summary folds into
counts.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import ensure_utc, generate_id, utc_now


class DeliveryStatus(str, Enum):
    """Lifecycle of a delivery record.

    PENDING and RETRY are eligible for dispatch; DELIVERED and FAILED are
    terminal.
    """

    PENDING = "PENDING"
    RETRY = "RETRY"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


DUE_STATUSES: frozenset[DeliveryStatus] = frozenset({DeliveryStatus.PENDING, DeliveryStatus.RETRY})
TERMINAL_STATUSES: frozenset[DeliveryStatus] = frozenset(
    {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED}
)


class WebhookDelivery(BaseModel):
    """One persisted webhook notification owed to one destination.

    Attributes:
        id: Unique identifier, also sent to the receiver for de-duplication.
        event_id: Identifier of the originating domain event.
        url: Destination endpoint (immutable).
        payload: Request body bytes, sent verbatim (immutable).
        status: Current lifecycle state.
        attempts: Number of delivery attempts executed so far.
        next_attempt: When the record becomes due again.
        created_at: Creation time; anchors the failure deadline.
        updated_at: When the record was last written.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("dlv"))
    event_id: str = Field(description="Originating domain event id")
    url: str = Field(description="Destination endpoint")
    payload: bytes = Field(description="Serialized request body")
    status: DeliveryStatus = Field(default=DeliveryStatus.PENDING)
    attempts: int = Field(default=0, ge=0, description="Attempts executed so far")
    next_attempt: datetime = Field(
        default_factory=utc_now,
        description="Earliest time the record may be dispatched",
    )
    created_at: datetime = Field(default_factory=utc_now, description="Creation time")
    updated_at: datetime | None = Field(default=None, description="Last write time")

    @field_validator("next_attempt", "created_at", "updated_at")
    @classmethod
    def _normalize_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    def is_due(self, now: datetime) -> bool:
        """True if the record may be dispatched at ``now``."""
        return self.status in DUE_STATUSES and self.next_attempt <= now

    def age(self, now: datetime) -> float:
        """Seconds elapsed since creation."""
        return (now - self.created_at).total_seconds()


class DeliveredOutcome(BaseModel):
    """The destination answered 2xx."""

    kind: Literal["delivered"] = "delivered"
    delivery_id: str
    attempts: int
    response_code: int


class RetryingOutcome(BaseModel):
    """The attempt failed within the deadline; due again at ``next_attempt``."""

    kind: Literal["retrying"] = "retrying"
    delivery_id: str
    attempts: int
    next_attempt: datetime
    error: str


class FailedOutcome(BaseModel):
    """The attempt failed after the deadline; the record is terminal."""

    kind: Literal["failed"] = "failed"
    delivery_id: str
    attempts: int
    error: str


class SkippedOutcome(BaseModel):
    """No attempt was made (record vanished or is already terminal)."""

    kind: Literal["skipped"] = "skipped"
    delivery_id: str
    reason: Literal["not_found", "terminal", "superseded"]


class ErroredOutcome(BaseModel):
    """The attempt raised unexpectedly; persisted state may be stale."""

    kind: Literal["errored"] = "errored"
    delivery_id: str
    detail: str


DeliveryOutcome = Annotated[
    DeliveredOutcome | RetryingOutcome | FailedOutcome | SkippedOutcome | ErroredOutcome,
    Field(discriminator="kind"),
]


class BatchSummary(BaseModel):
    """Counts for one dispatcher run.

    ``processed`` is the number of records selected; every selected record
    lands in exactly one of the other counters.
    """

    model_config = ConfigDict(extra="forbid")

    processed: int = Field(default=0, ge=0)
    delivered: int = Field(default=0, ge=0)
    retrying: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    errored: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)


__all__ = [
    "DUE_STATUSES",
    "TERMINAL_STATUSES",
    "BatchSummary",
    "DeliveredOutcome",
    "DeliveryOutcome",
    "DeliveryStatus",
    "ErroredOutcome",
    "FailedOutcome",
    "RetryingOutcome",
    "SkippedOutcome",
    "WebhookDelivery",
]
