"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from hookrelay.service import HookrelayService


def get_service(request: Request) -> HookrelayService:
    """Return the service handle attached to the app by its lifespan."""
    service: HookrelayService | None = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return service


ServiceDep = Annotated[HookrelayService, Depends(get_service)]
