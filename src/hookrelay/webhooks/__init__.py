"""Webhook delivery engine for Hookrelay.

At-least-once delivery with a fixed retry interval and an absolute
deadline measured from creation.

Example:
    ```python
    from hookrelay.webhooks import DeliveryExecutor, WebhookDispatcher, enqueue_delivery

    await enqueue_delivery(store, event_id="42", url="https://example.com/hook", payload={...})

    executor = DeliveryExecutor(store)
    summary = await WebhookDispatcher(store, executor).run_batch()
    ```
"""

from .delivery import (
    DELIVERY_ID_HEADER,
    EVENT_ID_HEADER,
    SIGNATURE_HEADER,
    DeliveryExecutor,
    build_headers,
    compute_signature,
    verify_signature,
)
from .dispatcher import WebhookDispatcher
from .policy import RetryPolicy, Transition, plan_transition
from .queue import enqueue_delivery, serialize_payload, validate_url
from .summary import summarize

__all__ = [
    "DELIVERY_ID_HEADER",
    "EVENT_ID_HEADER",
    "SIGNATURE_HEADER",
    "DeliveryExecutor",
    "RetryPolicy",
    "Transition",
    "WebhookDispatcher",
    "build_headers",
    "compute_signature",
    "enqueue_delivery",
    "plan_transition",
    "serialize_payload",
    "summarize",
    "validate_url",
    "verify_signature",
]
