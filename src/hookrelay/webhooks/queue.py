"""Enqueue webhook deliveries.

Domain code calls ``enqueue_delivery`` when something happens that a
remote endpoint should hear about. The record is created PENDING and due
immediately; the next dispatcher run picks it up.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from hookrelay.exceptions import ValidationError
from hookrelay.models import DeliveryStatus, WebhookDelivery, utc_now

if TYPE_CHECKING:
    from hookrelay.storage import DeliveryStore


def serialize_payload(payload: bytes | Mapping[str, Any]) -> bytes:
    """Serialize a payload once, at enqueue time.

    Bytes are kept verbatim. Mappings are encoded as compact UTF-8 JSON so
    every retry sends identical bytes.

    Raises:
        ValidationError: If the mapping is not JSON-serializable.
    """
    if isinstance(payload, bytes):
        return payload
    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str).encode(
            "utf-8"
        )
    except (TypeError, ValueError) as e:
        raise ValidationError("payload", f"not JSON-serializable: {e}") from e


def validate_url(url: str) -> str:
    """Accept only absolute http(s) destinations.

    Raises:
        ValidationError: If the URL has another scheme or no host.
    """
    normalized = url.strip()
    parts = urlsplit(normalized)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationError("url", "must be an absolute http:// or https:// URL")
    return normalized


async def enqueue_delivery(
    store: DeliveryStore,
    event_id: str | int,
    url: str,
    payload: bytes | Mapping[str, Any],
    now: datetime | None = None,
) -> WebhookDelivery:
    """Create a PENDING delivery that is due immediately.

    Args:
        store: Delivery store to persist into.
        event_id: Originating domain event.
        url: Destination endpoint.
        payload: Body bytes or a JSON-serializable mapping.
        now: Creation time. Defaults to the current time.

    Returns:
        The persisted delivery record.

    Example:
        ```python
        await enqueue_delivery(
            store,
            event_id=event.id,
            url=event.callback_url,
            payload={"type": "CANCELLED", "eventId": event.id, "slug": event.slug},
        )
        ```
    """
    now = now or utc_now()
    delivery = WebhookDelivery(
        event_id=str(event_id),
        url=validate_url(url),
        payload=serialize_payload(payload),
        status=DeliveryStatus.PENDING,
        attempts=0,
        next_attempt=now,
        created_at=now,
    )
    await store.create_delivery(delivery)
    return delivery
