"""Response models for the alert admin API."""

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from ...services.alerts.models import Alert
from ...utils.clock import utcnow

# Generic type for data responses
T = TypeVar("T")


class BaseResponse(BaseModel):
    """Base response model for all API responses."""

    success: bool = Field(..., description="Whether the request was successful")
    timestamp: datetime = Field(default_factory=utcnow, description="Response timestamp")
    request_id: Optional[str] = Field(
        None, description="Unique request identifier for tracking"
    )

    model_config = ConfigDict(use_enum_values=True)

    @field_serializer("timestamp")
    def serialize_timestamp(self, dt: datetime) -> str:
        """Serialize datetime to ISO format with Z suffix."""
        return dt.isoformat() + "Z"


class SuccessResponse(BaseResponse, Generic[T]):
    """Generic success response with typed data."""

    success: bool = Field(True, description="Always true for success responses")
    data: T = Field(..., description="Response data")
    message: Optional[str] = Field(None, description="Optional success message")


class ErrorResponse(BaseResponse):
    """Error response model."""

    success: bool = Field(False, description="Always false for error responses")
    error: Dict[str, Any] = Field(..., description="Error details")


class EstimatedImpactData(BaseModel):
    """Estimated business impact of an alert."""

    potential_lost_sales: float
    affected_orders: int
    revenue_at_risk: float


class AlertData(BaseModel):
    """Alert as returned by the API."""

    id: int
    sku: str
    item_id: Optional[str] = None
    variant_id: Optional[str] = None
    alert_type: str
    priority: str
    threshold: float
    current_stock: float
    message: str
    recommended_action: Optional[str] = None
    severity: int
    estimated_impact: Optional[EstimatedImpactData] = None
    status: str
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution_notes: Optional[str] = None
    auto_resolve: bool
    auto_resolve_threshold: Optional[float] = None
    suppress_until: Optional[datetime] = None
    suppress_similar: bool
    rule_id: Optional[str] = None
    trigger_count: int = 1
    last_triggered_at: Optional[datetime] = None
    notifications_sent: Dict[str, List[datetime]] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertData":
        impact = alert.estimated_impact
        return cls(
            id=alert.id,
            sku=alert.sku,
            item_id=alert.item_id,
            variant_id=alert.variant_id,
            alert_type=alert.alert_type.value,
            priority=alert.priority.value,
            threshold=alert.threshold,
            current_stock=alert.current_stock,
            message=alert.message,
            recommended_action=alert.recommended_action,
            severity=alert.severity,
            estimated_impact=(
                EstimatedImpactData(
                    potential_lost_sales=impact.potential_lost_sales,
                    affected_orders=impact.affected_orders,
                    revenue_at_risk=impact.revenue_at_risk,
                )
                if impact
                else None
            ),
            status=alert.status.value,
            acknowledged_at=alert.acknowledged_at,
            acknowledged_by=alert.acknowledged_by,
            resolved_at=alert.resolved_at,
            resolved_by=alert.resolved_by,
            resolution_notes=alert.resolution_notes,
            auto_resolve=alert.auto_resolve,
            auto_resolve_threshold=alert.auto_resolve_threshold,
            suppress_until=alert.suppress_until,
            suppress_similar=alert.suppress_similar,
            rule_id=alert.rule_id,
            trigger_count=alert.trigger_count,
            last_triggered_at=alert.last_triggered_at,
            notifications_sent={
                channel.value: list(history)
                for channel, history in alert.notifications_sent.items()
            },
            created_at=alert.created_at,
            updated_at=alert.updated_at,
        )


class AlertResponse(SuccessResponse[AlertData]):
    """Response model for a single alert."""

    data: AlertData = Field(..., description="Alert data")


class PaginationMeta(BaseModel):
    """Pagination of a list response."""

    limit: int
    offset: int
    count: int


class AlertListResponse(SuccessResponse[List[AlertData]]):
    """Response model for alert lists."""

    data: List[AlertData] = Field(..., description="List of alerts")
    pagination: Optional[PaginationMeta] = None


class StatusResponse(SuccessResponse[Dict[str, Any]]):
    """Generic status response."""

    data: Dict[str, Any] = Field(..., description="Status data")

    @classmethod
    def create(
        cls,
        data: Dict[str, Any],
        message: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> "StatusResponse":
        """Create a status response."""
        return cls(success=True, data=data, message=message, request_id=request_id)
