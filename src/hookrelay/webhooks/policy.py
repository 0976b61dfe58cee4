"""Retry policy and state transitions for delivery attempts.

The policy is deliberately flat: a failed attempt is retried after a fixed
interval until the record is older than the failure deadline, measured from
``created_at``. With the defaults (5 minutes, 1 hour) a delivery gets at
most about a dozen attempts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from hookrelay.models import DeliveryStatus, WebhookDelivery

DEFAULT_RETRY_INTERVAL = timedelta(minutes=5)
DEFAULT_FAILURE_DEADLINE = timedelta(hours=1)


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval retry with an absolute deadline."""

    retry_interval: timedelta = DEFAULT_RETRY_INTERVAL
    failure_deadline: timedelta = DEFAULT_FAILURE_DEADLINE

    def is_expired(self, delivery: WebhookDelivery, now: datetime) -> bool:
        """True once the delivery is strictly older than the deadline."""
        return delivery.age(now) > self.failure_deadline.total_seconds()


@dataclass(frozen=True)
class Transition:
    """The single write produced by one attempt.

    ``next_attempt`` is None when the stored value should be left as is.
    """

    status: DeliveryStatus
    attempts: int
    next_attempt: datetime | None = None


def plan_transition(
    delivery: WebhookDelivery,
    delivered: bool,
    now: datetime,
    policy: RetryPolicy | None = None,
) -> Transition:
    """Decide the next state of a PENDING/RETRY delivery after one attempt.

    Args:
        delivery: The record as loaded before the attempt.
        delivered: Whether the destination answered 2xx.
        now: Time of the attempt.
        policy: Retry policy (defaults to 5 minutes / 1 hour).

    Returns:
        Transition with ``attempts`` incremented by exactly one.

    Raises:
        ValueError: If the delivery is already terminal.
    """
    if delivery.status.is_terminal:
        raise ValueError(f"Delivery {delivery.id} is terminal ({delivery.status.value})")

    policy = policy or RetryPolicy()
    attempts = delivery.attempts + 1

    if delivered:
        return Transition(status=DeliveryStatus.DELIVERED, attempts=attempts)

    if policy.is_expired(delivery, now):
        return Transition(status=DeliveryStatus.FAILED, attempts=attempts)

    return Transition(
        status=DeliveryStatus.RETRY,
        attempts=attempts,
        next_attempt=now + policy.retry_interval,
    )
