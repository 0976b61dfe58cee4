"""Models for Hookrelay.

Records:
    - WebhookDelivery: One notification owed to one destination URL
    - DeliveryStatus: PENDING -> RETRY -> DELIVERED | FAILED

Outcomes (tagged union on ``kind``):
    - DeliveredOutcome, RetryingOutcome, FailedOutcome
    - SkippedOutcome: no attempt made
    - ErroredOutcome: attempt raised unexpectedly
    - BatchSummary: per-run counts
"""

from .base import ensure_utc, generate_id, utc_now
from .webhook import (
    DUE_STATUSES,
    TERMINAL_STATUSES,
    BatchSummary,
    DeliveredOutcome,
    DeliveryOutcome,
    DeliveryStatus,
    ErroredOutcome,
    FailedOutcome,
    RetryingOutcome,
    SkippedOutcome,
    WebhookDelivery,
)

__all__ = [
    # Helpers
    "ensure_utc",
    "generate_id",
    "utc_now",
    # Records
    "DUE_STATUSES",
    "TERMINAL_STATUSES",
    "DeliveryStatus",
    "WebhookDelivery",
    # Outcomes
    "BatchSummary",
    "DeliveredOutcome",
    "DeliveryOutcome",
    "ErroredOutcome",
    "FailedOutcome",
    "RetryingOutcome",
    "SkippedOutcome",
]
