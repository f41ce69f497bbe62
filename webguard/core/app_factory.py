"""Application factory for the FastAPI app.

Centralizes app construction (env checks, logging, middleware, handlers,
routers) so tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from webguard.api.routes import health_router, rate_limit_router
from webguard.core.config import settings
from webguard.core.env import validate_env
from webguard.core.exception_handlers import setup_exception_handlers
from webguard.core.logging import configure_logging
from webguard.core.middleware import request_id_middleware, security_headers_middleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Raises:
        ConfigurationAppError: When ``APP_VALIDATE_ENV_ON_STARTUP`` is set and
            required environment variables are missing.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    if settings.app.validate_env_on_startup:
        validate_env()

    app = FastAPI(
        title="webguard",
        description=(
            "Request throttling, security headers and configuration checks "
            "for the web application."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    # Last registered runs first: request ids must exist before throttling responds
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(rate_limit_router, prefix="/api")
    app.include_router(health_router)

    return app
