"""Authentication for the cron trigger endpoints.

Once ``cron_secret`` is set every request must carry
``Authorization: Bearer <cron_secret>``. Without a secret, and with
``allow_loopback_cron`` on, only requests coming straight from a loopback
address (a cron daemon on the same host) are allowed. Proxy headers are not
consulted: a forwarded request is never treated as local.
"""

from __future__ import annotations

import hmac
import ipaddress
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hookrelay.exceptions import AuthenticationError
from hookrelay.logging import get_logger

from .deps import ServiceDep

logger = get_logger(__name__)

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)


def is_loopback(host: str | None) -> bool:
    """True if ``host`` is a loopback IP address."""
    if not host:
        return False
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def secret_matches(provided: str, expected: str) -> bool:
    """Constant-time comparison of a presented secret."""
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_cron_auth(
    request: Request,
    service: ServiceDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> None:
    """Reject trigger calls that are neither authorized nor local.

    Raises:
        AuthenticationError: If the caller is not allowed.
    """
    settings = service.settings
    host = request.client.host if request.client else None

    if settings.cron_secret:
        if credentials is not None and secret_matches(
            credentials.credentials, settings.cron_secret
        ):
            return
        logger.warning(
            "Invalid cron credentials",
            client=host,
            has_auth=credentials is not None,
            path=request.url.path,
        )
        raise AuthenticationError(
            "Invalid cron credentials" if credentials is not None else "Missing cron credentials"
        )

    if settings.allow_loopback_cron and is_loopback(host):
        return

    logger.warning(
        "Blocked external cron attempt",
        client=host,
        has_auth=credentials is not None,
        path=request.url.path,
    )
    raise AuthenticationError("Missing cron credentials")
