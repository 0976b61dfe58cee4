"""FastAPI application for Hookrelay."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hookrelay import __version__
from hookrelay.config import Settings
from hookrelay.exceptions import (
    AuthenticationError,
    HookrelayError,
    NotFoundError,
    ValidationError,
)
from hookrelay.logging import configure_from_settings, get_logger
from hookrelay.service import HookrelayService

from .router import router

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Map Hookrelay exceptions to JSON error responses."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle validation errors with 400 status."""
        logger.warning(
            "Validation error", field=exc.field, error=exc.message, path=str(request.url)
        )
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        """Handle not found errors with 404 status."""
        logger.info(
            "Resource not found",
            resource_type=exc.resource_type,
            resource_id=exc.resource_id,
            path=str(request.url),
        )
        return JSONResponse(status_code=404, content=exc.to_dict())

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """Handle authentication errors with 401 status."""
        return JSONResponse(
            status_code=401,
            content=exc.to_dict(),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(HookrelayError)
    async def hookrelay_error_handler(request: Request, exc: HookrelayError) -> JSONResponse:
        """Handle all other Hookrelay errors with 500 status."""
        logger.error("Hookrelay error", error=exc.message, code=exc.code, path=str(request.url))
        return JSONResponse(status_code=500, content=exc.to_dict())


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Args:
        settings: Optional settings. Uses environment if None.

    Returns:
        Configured FastAPI application.

    Example:
        ```python
        from hookrelay.api import create_app

        app = create_app()
        # Run with: uvicorn hookrelay.api:app
        ```
    """
    if settings is None:
        settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open the delivery store on startup and close it on shutdown."""
        configure_from_settings(settings)
        logger.info(
            "Starting Hookrelay API",
            env=settings.env,
            batch_size=settings.batch_size,
            loopback_cron=settings.allow_loopback_cron,
        )

        service = HookrelayService.create(settings)
        await service.initialize()
        app.state.service = service
        try:
            yield
        finally:
            app.state.service = None
            await service.close()
            logger.info("Hookrelay API stopped")

    app = FastAPI(
        title="Hookrelay",
        description="Outbound webhook delivery with fixed-interval retries.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    register_exception_handlers(app)
    app.include_router(router)

    return app


# Default app instance for uvicorn
app = create_app()
