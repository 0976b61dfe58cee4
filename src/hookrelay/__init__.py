"""Hookrelay: outbound webhooks that eventually arrive.

Deliveries are stored as records, attempted in bounded batches by a
periodically triggered dispatcher, retried on a fixed interval and given
up on once they are older than the failure deadline.

Quick Start:
    from hookrelay.service import HookrelayService

    async with HookrelayService.create() as relay:
        # Queue a notification
        await relay.enqueue(
            event_id="42",
            url="https://example.com/hooks/events",
            payload={"type": "CANCELLED", "eventId": "42"},
        )

        # Dispatch everything that is due
        summary = await relay.run_due_deliveries()

Lifecycle:
    - PENDING: queued, never attempted
    - RETRY: attempted and failed, due again later
    - DELIVERED: a 2xx was received (terminal)
    - FAILED: still failing after the deadline (terminal)
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings, settings

# Exceptions
from .exceptions import (
    AuthenticationError,
    DeliveryError,
    HookrelayError,
    NotFoundError,
    StorageError,
    ValidationError,
)

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)

# Models
from .models import (
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
    # Version
    "__version__",
    # Configuration
    "Settings",
    "settings",
    # Exceptions
    "HookrelayError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "DeliveryError",
    "AuthenticationError",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "unbind_context",
    # Models
    "DeliveryStatus",
    "WebhookDelivery",
    "BatchSummary",
    "DeliveryOutcome",
    "DeliveredOutcome",
    "RetryingOutcome",
    "FailedOutcome",
    "SkippedOutcome",
    "ErroredOutcome",
]
