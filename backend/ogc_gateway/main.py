"""FastAPI application entrypoint and configuration.

This module provides the main FastAPI application factory that sets up
logging, CORS middleware, includes the OGC service router, and exposes a
health check endpoint for monitoring.

Example:
    The application can be run with uvicorn:
        $ uvicorn ogc_gateway.main:app --reload

    Or imported and used programmatically:
        >>> from ogc_gateway.main import app
        >>> # Use app in ASGI server
"""

import contextlib
from collections.abc import AsyncIterator

import fastapi
from fastapi.middleware import cors

from ogc_gateway.api import service
from ogc_gateway.core import config, log


@contextlib.asynccontextmanager
async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
    """Close the shared map engine client on shutdown."""
    yield
    service.close_mediator()


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Configures the package logger, includes the OGC service router, adds
    a health check endpoint and closes the map engine client on shutdown.
    CORS origins are configured from settings, allowing map clients served
    from other domains.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = config.get_settings()
    log.configure_logging(settings)
    app = fastapi.FastAPI(title="OGC Gateway", version="0.1.0", lifespan=lifespan)

    app.include_router(service.router)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Dictionary with status "ok" if the service is running.
        """
        return {"status": "ok"}

    return app


app = create_app()
