"""Stock change intake endpoint."""

from fastapi import APIRouter, Depends, Request

from ...config.logging import get_logger
from ...config.settings import get_settings
from ...events import StockChangeEvent
from ...sources import QueueChangeSource
from ..dependencies import get_change_source
from ..models.requests import StockChangeRequest
from ..models.responses import StatusResponse

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/stock-events",
    response_model=StatusResponse,
    status_code=202,
    summary="Publish Stock Change",
    description="Queue a stock change for evaluation by the alert engine",
)
async def publish_stock_change(
    request: Request,
    body: StockChangeRequest,
    source: QueueChangeSource = Depends(get_change_source),
) -> StatusResponse:
    threshold = body.threshold
    if threshold is None:
        threshold = get_settings().default_low_stock_threshold

    event = StockChangeEvent(
        owner_type=body.owner_type,
        owner_id=body.owner_id,
        sku=body.sku,
        current_stock=body.current_stock,
        threshold=threshold,
        parent_item_id=body.parent_item_id,
        categories=body.categories,
        brand=body.brand,
        item_type=body.item_type,
        changed_fields=body.changed_fields,
    )
    await source.publish(event)

    logger.info("Stock change queued", sku=event.sku, current_stock=event.current_stock)
    return StatusResponse.create(
        data={"event_id": event.event_id, "sku": event.sku},
        message="Stock change queued",
        request_id=getattr(request.state, "request_id", None),
    )
