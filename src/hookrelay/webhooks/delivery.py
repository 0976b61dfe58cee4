"""Single-attempt webhook delivery.

``DeliveryExecutor.execute`` performs exactly one POST for one delivery
record and persists exactly one outcome:

- 2xx: DELIVERED
- anything else (non-2xx, redirect, transport error, timeout):
  RETRY in a fixed interval, or FAILED once the record is past its deadline

Receivers get the delivery id in a header and are expected to de-duplicate
on it; overlapping dispatcher runs can deliver the same record twice.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

import httpx

from hookrelay import __version__
from hookrelay.exceptions import DeliveryError
from hookrelay.models import (
    DeliveredOutcome,
    DeliveryOutcome,
    DeliveryStatus,
    FailedOutcome,
    RetryingOutcome,
    SkippedOutcome,
    WebhookDelivery,
    utc_now,
)

from .policy import RetryPolicy, plan_transition

if TYPE_CHECKING:
    from hookrelay.storage import DeliveryStore

logger = logging.getLogger(__name__)

EVENT_ID_HEADER = "X-Hookrelay-Event-Id"
DELIVERY_ID_HEADER = "X-Hookrelay-Delivery-Id"
SIGNATURE_HEADER = "X-Hookrelay-Signature"

DEFAULT_TIMEOUT_SECONDS = 10.0


def compute_signature(payload: bytes, secret: str) -> str:
    """Compute the HMAC-SHA256 signature of a request body.

    Args:
        payload: Exact body bytes that will be sent.
        secret: Shared signing secret.

    Returns:
        Signature in format "sha256=<hex_digest>".
    """
    signature = hmac.new(
        key=secret.encode("utf-8"),
        msg=payload,
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"sha256={signature}"


def verify_signature(payload: bytes, secret: str, signature: str) -> bool:
    """Constant-time check of a signature produced by ``compute_signature``."""
    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected, signature)


def build_headers(delivery: WebhookDelivery, signing_secret: str | None = None) -> dict[str, str]:
    """Headers for one delivery attempt."""
    headers = {
        "Content-Type": "application/json",
        "User-Agent": f"hookrelay/{__version__}",
        EVENT_ID_HEADER: delivery.event_id,
        DELIVERY_ID_HEADER: delivery.id,
    }
    if signing_secret:
        headers[SIGNATURE_HEADER] = compute_signature(delivery.payload, signing_secret)
    return headers


class DeliveryExecutor:
    """Runs one delivery attempt and persists its outcome.

    HTTP failures of every kind are converted into RETRY/FAILED here.
    Store failures are not: they propagate to the caller, and because the
    record was not updated it stays due and is picked up again by the next
    run.

    Example:
        ```python
        executor = DeliveryExecutor(store, http_client=client)
        outcome = await executor.execute("dlv_a1b2c3d4e5f6")
        if outcome.kind == "retrying":
            print(f"next try at {outcome.next_attempt}")
        ```
    """

    def __init__(
        self,
        store: DeliveryStore,
        policy: RetryPolicy | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        signing_secret: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the executor.

        Args:
            store: Delivery store to read from and write outcomes to.
            policy: Retry policy. Defaults to 5 minutes / 1 hour.
            timeout_seconds: Total time budget for the POST.
            signing_secret: Adds a signature header when set.
            http_client: Shared client. A short-lived one is opened per
                attempt when omitted.
            clock: Source of the current time.
        """
        self._store = store
        self._policy = policy or RetryPolicy()
        self._timeout = timeout_seconds
        self._signing_secret = signing_secret
        self._client = http_client
        self._clock = clock

    async def execute(self, delivery_id: str) -> DeliveryOutcome:
        """Attempt delivery of one record.

        Args:
            delivery_id: Record to deliver.

        Returns:
            The settled outcome of this attempt.

        Raises:
            StorageError: If reading or writing the record fails.
        """
        delivery = await self._store.find_by_id(delivery_id)
        if delivery is None:
            logger.warning("Webhook delivery not found: %s", delivery_id)
            return SkippedOutcome(delivery_id=delivery_id, reason="not_found")

        if delivery.status.is_terminal:
            logger.info(
                "Webhook delivery already terminal: %s (%s)", delivery_id, delivery.status.value
            )
            return SkippedOutcome(delivery_id=delivery_id, reason="terminal")

        now = self._clock()
        fields: dict[str, object] = {
            "delivery_id": delivery.id,
            "url": delivery.url,
            "attempt": delivery.attempts + 1,
        }
        logger.info("Attempting webhook delivery", extra=fields)

        response_code: int | None = None
        error: str | None = None
        try:
            response_code = await self._post(delivery)
        except DeliveryError as e:
            response_code, error = e.response_code, e.message
        transition = plan_transition(delivery, error is None, now, self._policy)

        applied = await self._store.update_delivery_outcome(
            delivery.id,
            transition.status,
            transition.attempts,
            transition.next_attempt,
        )
        fields.update(status=transition.status.value, response_code=response_code, error=error)
        if not applied:
            # Another run settled or removed the record between our read and write.
            logger.warning("Webhook delivery outcome superseded", extra=fields)
            return SkippedOutcome(delivery_id=delivery.id, reason="superseded")

        if transition.status is DeliveryStatus.DELIVERED:
            logger.info("Webhook delivered", extra=fields)
            return DeliveredOutcome(
                delivery_id=delivery.id,
                attempts=transition.attempts,
                response_code=response_code or 200,
            )

        assert error is not None
        if transition.status is DeliveryStatus.FAILED:
            logger.warning("Webhook delivery failed permanently", extra=fields)
            return FailedOutcome(delivery_id=delivery.id, attempts=transition.attempts, error=error)

        assert transition.next_attempt is not None
        logger.warning(
            "Webhook delivery failed, retry scheduled",
            extra={**fields, "next_attempt": transition.next_attempt.isoformat()},
        )
        return RetryingOutcome(
            delivery_id=delivery.id,
            attempts=transition.attempts,
            next_attempt=transition.next_attempt,
            error=error,
        )

    async def _post(self, delivery: WebhookDelivery) -> int:
        """POST the payload once.

        Returns:
            The 2xx status code.

        Raises:
            DeliveryError: On any other status, transport error or timeout.
        """
        headers = build_headers(delivery, self._signing_secret)
        try:
            response = await asyncio.wait_for(
                self._send(delivery, headers),
                timeout=self._timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise DeliveryError(f"Request timeout after {self._timeout:g}s") from e
        except httpx.RequestError as e:
            raise DeliveryError(f"{type(e).__name__}: {e}") from e
        except httpx.InvalidURL as e:
            raise DeliveryError(f"Invalid URL: {e}") from e
        except Exception as e:
            logger.exception("Unexpected error delivering webhook %s", delivery.id)
            raise DeliveryError(f"Unexpected error: {e}") from e

        if 200 <= response.status_code < 300:
            return response.status_code
        reason = response.reason_phrase or ""
        raise DeliveryError(
            f"HTTP {response.status_code} {reason}".rstrip(),
            response_code=response.status_code,
        )

    async def _send(self, delivery: WebhookDelivery, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(delivery.url, content=delivery.payload, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(delivery.url, content=delivery.payload, headers=headers)
