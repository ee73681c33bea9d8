"""FastAPI application factory."""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from myjantes.api.routes import (
    counter_router,
    health_router,
    invoice_item_router,
    invoice_router,
    notification_router,
    quote_item_router,
    quote_router,
    reservation_router,
    service_router,
    settings_router,
)
from myjantes.config import get_settings
from myjantes.container import get_container, reset_container
from myjantes.exceptions import MyJantesError
from myjantes.logging_config import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and open the database on startup, close it on shutdown."""
    settings = get_settings()
    configure_logging(settings)

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    )

    container = get_container()
    _ = container.database  # Force database initialization

    logger.info("application_started")

    yield

    logger.info("application_stopping")
    reset_container()
    logger.info("application_stopped")


async def log_request_middleware(request: Request, call_next):
    """Middleware to add request context to logs."""
    request_id = str(uuid.uuid4())[:8]
    bind_context(request_id=request_id, path=request.url.path, method=request.method)

    try:
        response = await call_next(request)
        logger.debug(
            "request_completed",
            status_code=response.status_code,
        )
        return response
    finally:
        clear_context()


async def exception_handler(request: Request, exc: MyJantesError) -> JSONResponse:
    """Render domain exceptions as JSON with their own status code."""
    logger.warning(
        "domain_exception",
        error_code=exc.error_code,
        message=exc.message,
        context=exc.context,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Quotes, invoices and reservations for a wheel refurbishing workshop",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(log_request_middleware)
    app.add_exception_handler(MyJantesError, exception_handler)

    app.include_router(health_router)
    app.include_router(service_router)
    app.include_router(quote_router)
    app.include_router(quote_item_router)
    app.include_router(invoice_router)
    app.include_router(invoice_item_router)
    app.include_router(reservation_router)
    app.include_router(notification_router)
    app.include_router(counter_router)
    app.include_router(settings_router)

    return app


# Create app instance for uvicorn
app = create_app()
