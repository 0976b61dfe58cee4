"""Run one dispatcher batch from the command line.

Usage:
    python -m hookrelay
    python -m hookrelay --delivery-id dlv_a1b2c3d4e5f6

Intended for a crontab entry on hosts that do not run the HTTP API.
Exits 0 when the batch completed (whatever the individual outcomes)
and 1 when due deliveries could not be selected.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from hookrelay.config import Settings
from hookrelay.exceptions import HookrelayError
from hookrelay.logging import configure_from_settings, get_logger
from hookrelay.service import HookrelayService

logger = get_logger(__name__)


async def run(settings: Settings, delivery_id: str | None = None) -> dict[str, object]:
    """Run one batch (or one delivery) and return the JSON-ready result."""
    async with HookrelayService.create(settings) as relay:
        if delivery_id is not None:
            outcome = await relay.process_delivery(delivery_id)
            return outcome.model_dump(mode="json")
        summary = await relay.run_due_deliveries()
        return summary.model_dump(mode="json")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="hookrelay", description=__doc__.splitlines()[0])
    parser.add_argument("--delivery-id", help="attempt a single delivery instead of a batch")
    args = parser.parse_args(argv)

    settings = Settings()
    configure_from_settings(settings)

    try:
        result = asyncio.run(run(settings, args.delivery_id))
    except HookrelayError as e:
        logger.error("Dispatcher run failed", error=e.message, code=e.code)
        print(json.dumps(e.to_dict()))
        return 1

    print(json.dumps(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
