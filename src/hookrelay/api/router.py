"""FastAPI router for the Hookrelay trigger endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from hookrelay import __version__
from hookrelay.exceptions import HookrelayError, NotFoundError
from hookrelay.models import SkippedOutcome

from .auth import require_cron_auth
from .deps import ServiceDep
from .schemas import BatchSummaryResponse, DeliveryOutcomeResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check(request: Request) -> HealthResponse:
    """Check service health.

    Reports whether the lifespan has attached an initialized service.
    """
    storage_connected = getattr(request.app.state, "service", None) is not None

    return HealthResponse(
        status="healthy" if storage_connected else "unhealthy",
        version=__version__,
        storage_connected=storage_connected,
    )


@router.api_route(
    "/api/cron/webhooks",
    methods=["GET", "POST"],
    response_model=BatchSummaryResponse,
    tags=["cron"],
    dependencies=[Depends(require_cron_auth)],
)
async def run_webhook_batch(service: ServiceDep) -> BatchSummaryResponse:
    """Dispatch every due webhook delivery, up to one batch.

    Returns 200 whenever the batch ran to completion, even if individual
    deliveries failed. Failure to select due deliveries yields 500.
    """
    try:
        summary = await service.run_due_deliveries()
    except HookrelayError:
        raise
    except Exception as e:
        logger.exception("Webhook batch failed")
        raise HookrelayError("Webhook batch failed") from e

    return BatchSummaryResponse.from_summary(summary)


@router.post(
    "/api/cron/webhooks/{delivery_id}",
    response_model=DeliveryOutcomeResponse,
    tags=["cron"],
    dependencies=[Depends(require_cron_auth)],
)
async def run_single_delivery(delivery_id: str, service: ServiceDep) -> DeliveryOutcomeResponse:
    """Attempt one delivery now, ignoring its scheduled time.

    Terminal deliveries are reported as skipped and left unchanged.
    """
    try:
        outcome = await service.process_delivery(delivery_id)
    except HookrelayError:
        raise
    except Exception as e:
        logger.exception("Delivery attempt failed for %s", delivery_id)
        raise HookrelayError(f"Delivery attempt failed: {delivery_id}") from e

    if isinstance(outcome, SkippedOutcome) and outcome.reason == "not_found":
        raise NotFoundError("webhook_delivery", delivery_id)

    return DeliveryOutcomeResponse(outcome=outcome)
