"""FastAPI trigger surface for Hookrelay.

A scheduler (platform cron, systemd timer, local crontab) calls
``/api/cron/webhooks`` periodically; each call runs one dispatcher batch.

Example:
    ```python
    import uvicorn
    from hookrelay.api import create_app

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
    ```

Or run directly:
    ```bash
    hookrelay-api
    uvicorn hookrelay.api:app
    ```
"""

from .app import app, create_app, register_exception_handlers
from .router import router


def main() -> None:
    """Serve the API with uvicorn on ``api_host``/``api_port``."""
    import uvicorn

    from hookrelay.config import Settings

    settings = Settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


__all__ = [
    "app",
    "create_app",
    "main",
    "register_exception_handlers",
    "router",
]
