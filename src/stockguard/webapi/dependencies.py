"""Request-scoped access to the components held on the application state."""

from typing import Optional

from fastapi import HTTPException, Request

from ..engine import AlertEngine
from ..services.alerts.store import AlertStore
from ..sources import QueueChangeSource


def get_store(request: Request) -> AlertStore:
    return request.app.state.store


def get_engine(request: Request) -> Optional[AlertEngine]:
    return request.app.state.engine


def get_change_source(request: Request) -> QueueChangeSource:
    source = request.app.state.change_source
    if source is None:
        raise HTTPException(status_code=503, detail="Stock change intake is not enabled")
    return source
