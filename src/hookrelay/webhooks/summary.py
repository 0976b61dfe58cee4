"""Fold per-record outcomes into a batch summary."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from hookrelay.models import BatchSummary, DeliveryOutcome


def summarize(outcomes: Iterable[DeliveryOutcome]) -> BatchSummary:
    """Count outcomes by kind.

    Every outcome counts towards ``processed`` and exactly one kind
    counter, so the counters always add up to ``processed``.
    """
    counts = Counter(outcome.kind for outcome in outcomes)
    return BatchSummary(
        processed=sum(counts.values()),
        delivered=counts["delivered"],
        retrying=counts["retrying"],
        failed=counts["failed"],
        errored=counts["errored"],
        skipped=counts["skipped"],
    )
