"""Pydantic schemas for API responses."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from hookrelay.models import BatchSummary, DeliveryOutcome


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status.
        version: API version.
        storage_connected: Whether the delivery store is open.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["healthy", "unhealthy"]
    version: str
    storage_connected: bool


class BatchSummaryResponse(BaseModel):
    """Counts returned by the cron trigger after one dispatcher run."""

    model_config = ConfigDict(extra="forbid")

    processed: int = Field(ge=0, description="Deliveries selected in this run")
    delivered: int = Field(ge=0, description="Deliveries that got a 2xx")
    retrying: int = Field(ge=0, description="Deliveries rescheduled for another attempt")
    failed: int = Field(ge=0, description="Deliveries that exceeded their deadline")
    errored: int = Field(ge=0, description="Deliveries whose handling raised unexpectedly")
    skipped: int = Field(ge=0, description="Deliveries that vanished or were settled elsewhere")

    @classmethod
    def from_summary(cls, summary: BatchSummary) -> BatchSummaryResponse:
        return cls(**summary.model_dump())


class DeliveryOutcomeResponse(BaseModel):
    """Outcome of a manually triggered single delivery attempt."""

    model_config = ConfigDict(extra="forbid")

    outcome: DeliveryOutcome
