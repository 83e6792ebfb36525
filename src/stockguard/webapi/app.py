"""FastAPI application for alert administration."""

import uuid
from typing import Optional

from fastapi import FastAPI, Request

from ..config.logging import get_logger
from ..engine import AlertEngine
from ..services.alerts.store import AlertStore
from ..sources import QueueChangeSource
from .exceptions import setup_exception_handlers
from .health import router as health_router
from .routers import alerts_router, events_router

logger = get_logger(__name__)


async def add_request_id_middleware(request: Request, call_next):
    """Add unique request ID to each request for tracking."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    logger.debug(
        "Request started",
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    logger.info(
        "Request completed",
        request_id=request_id,
        status_code=response.status_code,
        method=request.method,
        path=request.url.path,
    )

    return response


def create_app(
    store: AlertStore,
    engine: Optional[AlertEngine] = None,
    change_source: Optional[QueueChangeSource] = None,
) -> FastAPI:
    """
    Create the admin API.

    Args:
        store: Alert store the endpoints read and transition
        engine: Running alert engine, for health and pending notifications
        change_source: Queue the stock change intake endpoint publishes to
    """
    app = FastAPI(
        title="StockGuard Alert API",
        description="Inventory alert administration: list, acknowledge, resolve and dismiss alerts.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.store = store
    app.state.engine = engine
    app.state.change_source = change_source

    app.middleware("http")(add_request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(health_router, tags=["Health & Status"])
    app.include_router(alerts_router, prefix="/alerts", tags=["Alerts"])
    app.include_router(events_router, tags=["Stock Changes"])

    return app
