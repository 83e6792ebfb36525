"""API routers."""

from .alerts import router as alerts_router
from .events import router as events_router

__all__ = ["alerts_router", "events_router"]
