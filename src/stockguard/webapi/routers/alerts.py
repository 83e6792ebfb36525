"""Alert listing, lifecycle and maintenance endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ...config.logging import get_logger
from ...config.settings import get_settings
from ...engine import AlertEngine
from ...services.alerts.models import AlertPriority, AlertStatus, AlertType
from ...services.alerts.store import AlertStore
from ..dependencies import get_engine, get_store
from ..models.requests import (
    AlertActionRequest,
    BulkDeleteRequest,
    BulkStatusRequest,
    DismissAlertRequest,
)
from ..models.responses import (
    AlertData,
    AlertListResponse,
    AlertResponse,
    PaginationMeta,
    StatusResponse,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=AlertListResponse,
    summary="List Alerts",
    description="List alerts filtered by status, SKU, owner, priority and type",
)
async def list_alerts(
    request: Request,
    status: Optional[AlertStatus] = Query(None, description="Lifecycle status"),
    sku: Optional[str] = Query(None, description="Stock keeping unit"),
    item_id: Optional[str] = Query(None, description="Owning item"),
    variant_id: Optional[str] = Query(None, description="Owning variant"),
    priority: Optional[AlertPriority] = Query(None, description="Alert priority"),
    alert_type: Optional[AlertType] = Query(None, description="Alert type"),
    search: Optional[str] = Query(
        None, min_length=1, max_length=100, description="Text to find in SKU or message"
    ),
    limit: int = Query(50, ge=1, le=500, description="Page size"),
    offset: int = Query(0, ge=0, description="Rows to skip"),
    store: AlertStore = Depends(get_store),
) -> AlertListResponse:
    alerts = await store.list_alerts(
        status=status,
        sku=sku,
        item_id=item_id,
        variant_id=variant_id,
        priority=priority,
        alert_type=alert_type,
        search=search,
        limit=limit,
        offset=offset,
    )
    return AlertListResponse(
        data=[AlertData.from_alert(alert) for alert in alerts],
        pagination=PaginationMeta(limit=limit, offset=offset, count=len(alerts)),
        request_id=getattr(request.state, "request_id", None),
    )


@router.get(
    "/critical",
    response_model=AlertListResponse,
    summary="Critical Alerts",
    description="Active alerts with critical priority or severity of 8 and above",
)
async def critical_alerts(
    request: Request, store: AlertStore = Depends(get_store)
) -> AlertListResponse:
    alerts = await store.find_critical()
    return AlertListResponse(
        data=[AlertData.from_alert(alert) for alert in alerts],
        request_id=getattr(request.state, "request_id", None),
    )


@router.get(
    "/statistics",
    response_model=StatusResponse,
    summary="Alert Statistics",
    description="Alert counts overall, by status, type and priority",
)
async def alert_statistics(
    request: Request, store: AlertStore = Depends(get_store)
) -> StatusResponse:
    return StatusResponse.create(
        data=await store.statistics(),
        request_id=getattr(request.state, "request_id", None),
    )


@router.post(
    "/maintenance/cleanup",
    response_model=StatusResponse,
    summary="Alert Cleanup",
    description="Purge resolved and dismissed alerts older than the retention window",
)
async def cleanup_alerts(
    request: Request,
    retention_days: Optional[int] = Query(
        None, ge=0, le=3650, description="Days of closed alerts to keep"
    ),
    store: AlertStore = Depends(get_store),
) -> StatusResponse:
    if retention_days is None:
        retention_days = get_settings().alert_retention_days

    logger.info("Alert cleanup requested", retention_days=retention_days)
    deleted = await store.cleanup_older_than(retention_days)

    return StatusResponse.create(
        data={"retention_days": retention_days, "deleted": deleted},
        request_id=getattr(request.state, "request_id", None),
    )


@router.post(
    "/maintenance/pending-notifications",
    response_model=StatusResponse,
    summary="Process Pending Notifications",
    description="Dispatch notifications for active alerts that were never delivered",
)
async def process_pending_notifications(
    request: Request, engine: Optional[AlertEngine] = Depends(get_engine)
) -> StatusResponse:
    processed = await engine.process_pending_notifications() if engine else 0
    return StatusResponse.create(
        data={"processed": processed},
        request_id=getattr(request.state, "request_id", None),
    )


@router.put(
    "/bulk",
    response_model=StatusResponse,
    summary="Bulk Status Update",
    description="Acknowledge, resolve or dismiss several alerts at once",
)
async def bulk_update_status(
    request: Request,
    body: BulkStatusRequest,
    store: AlertStore = Depends(get_store),
) -> StatusResponse:
    result = await store.update_status(
        body.alert_ids, AlertStatus(body.status), body.actor, body.notes
    )
    return StatusResponse.create(
        data=result,
        message=f"{len(result['updated'])} alert(s) updated",
        request_id=getattr(request.state, "request_id", None),
    )


@router.delete(
    "/bulk",
    response_model=StatusResponse,
    summary="Bulk Delete",
    description="Delete several alerts with their notification history",
)
async def bulk_delete(
    request: Request,
    body: BulkDeleteRequest,
    store: AlertStore = Depends(get_store),
) -> StatusResponse:
    deleted = await store.delete_alerts(body.alert_ids)
    return StatusResponse.create(
        data={"requested": len(set(body.alert_ids)), "deleted": deleted},
        message=f"{deleted} alert(s) deleted",
        request_id=getattr(request.state, "request_id", None),
    )


@router.get(
    "/{alert_id}",
    response_model=AlertResponse,
    summary="Get Alert",
)
async def get_alert(
    request: Request, alert_id: int, store: AlertStore = Depends(get_store)
) -> AlertResponse:
    alert = await store.get(alert_id)
    return AlertResponse(
        data=AlertData.from_alert(alert),
        request_id=getattr(request.state, "request_id", None),
    )


@router.post(
    "/{alert_id}/acknowledge",
    response_model=AlertResponse,
    summary="Acknowledge Alert",
)
async def acknowledge_alert(
    request: Request,
    alert_id: int,
    body: AlertActionRequest,
    store: AlertStore = Depends(get_store),
) -> AlertResponse:
    alert = await store.acknowledge(alert_id, body.actor, body.notes)
    return AlertResponse(
        data=AlertData.from_alert(alert),
        message="Alert acknowledged",
        request_id=getattr(request.state, "request_id", None),
    )


@router.post(
    "/{alert_id}/resolve",
    response_model=AlertResponse,
    summary="Resolve Alert",
)
async def resolve_alert(
    request: Request,
    alert_id: int,
    body: AlertActionRequest,
    store: AlertStore = Depends(get_store),
) -> AlertResponse:
    alert = await store.resolve(alert_id, body.actor, body.notes)
    return AlertResponse(
        data=AlertData.from_alert(alert),
        message="Alert resolved",
        request_id=getattr(request.state, "request_id", None),
    )


@router.post(
    "/{alert_id}/dismiss",
    response_model=AlertResponse,
    summary="Dismiss Alert",
)
async def dismiss_alert(
    request: Request,
    alert_id: int,
    body: DismissAlertRequest,
    store: AlertStore = Depends(get_store),
) -> AlertResponse:
    alert = await store.dismiss(alert_id, body.actor, body.reason)
    return AlertResponse(
        data=AlertData.from_alert(alert),
        message="Alert dismissed",
        request_id=getattr(request.state, "request_id", None),
    )
