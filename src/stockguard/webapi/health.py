"""Health check endpoint."""

import asyncio
import time

from fastapi import APIRouter, Request

from ..config.logging import get_logger
from ..ormdb.database import check_database_health
from .models.responses import StatusResponse

logger = get_logger(__name__)
router = APIRouter()

# Track application start time for uptime calculation
_app_start_time = time.time()


@router.get(
    "/health",
    response_model=StatusResponse,
    summary="Health Check",
    description="Database connectivity and alert engine state",
)
async def health_check(request: Request) -> StatusResponse:
    database = await asyncio.to_thread(
        check_database_health, request.app.state.store.session_factory
    )
    engine = request.app.state.engine

    services = {
        "database": database,
        "alert_engine": {
            "status": "running" if engine is not None and engine.is_running else "stopped",
            "rules": len(engine.rules) if engine is not None else 0,
        },
    }
    status = "healthy" if database["status"] == "healthy" else "unhealthy"

    if status != "healthy":
        logger.warning("Health check degraded", services=services)

    return StatusResponse.create(
        data={
            "status": status,
            "services": services,
            "uptime_seconds": round(time.time() - _app_start_time, 3),
        },
        request_id=getattr(request.state, "request_id", None),
    )
