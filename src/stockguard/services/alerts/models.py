"""Data models for inventory alerts."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from ..notification.models import NotificationSettings


class AlertType(str, Enum):
    """Types of inventory alerts."""

    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    HIGH_DEMAND = "high_demand"
    RESTOCK_NEEDED = "restock_needed"
    OVERSTOCK = "overstock"


class AlertPriority(str, Enum):
    """Alert priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    """Alert lifecycle states."""

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class NotificationChannel(str, Enum):
    """Available notification channels."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    DASHBOARD = "dashboard"


# Allowed source statuses for each target status.
ALLOWED_TRANSITIONS: Dict[AlertStatus, frozenset] = {
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.ACTIVE}),
    AlertStatus.RESOLVED: frozenset({AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED}),
    AlertStatus.DISMISSED: frozenset({AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED}),
}

BASE_SEVERITY: Dict[AlertType, int] = {
    AlertType.OUT_OF_STOCK: 9,
    AlertType.RESTOCK_NEEDED: 8,
    AlertType.HIGH_DEMAND: 7,
    AlertType.LOW_STOCK: 6,
    AlertType.OVERSTOCK: 3,
}

RECOMMENDED_ACTIONS: Dict[AlertType, str] = {
    AlertType.OUT_OF_STOCK: "Restock immediately to prevent lost sales",
    AlertType.LOW_STOCK: "Consider restocking soon to avoid stockout",
    AlertType.HIGH_DEMAND: "Increase stock levels to meet demand",
    AlertType.RESTOCK_NEEDED: "Place a replenishment order with the supplier",
    AlertType.OVERSTOCK: "Review purchasing and consider promotions to reduce excess stock",
}

DEFAULT_RECOMMENDED_ACTION = "Review inventory levels and take appropriate action"

CRITICAL_SEVERITY = 8
MAX_MESSAGE_LENGTH = 1000
MAX_ACTION_LENGTH = 500
MAX_NOTES_LENGTH = 1000


@dataclass
class EstimatedImpact:
    """Estimated business impact of an inventory condition."""

    potential_lost_sales: float = 0.0
    affected_orders: int = 0
    revenue_at_risk: float = 0.0


def calculate_severity(
    alert_type: AlertType,
    threshold: float,
    current_stock: float,
    estimated_impact: Optional[EstimatedImpact] = None,
) -> int:
    """
    Derive a 1-10 severity score.

    The base score depends on the alert type. Deep deficits below the
    threshold add +2 (more than 80% below) or +1 (more than 50% below),
    and more than 1000 of revenue at risk adds +1.
    """
    severity = BASE_SEVERITY.get(alert_type, 5)

    if threshold > 0:
        deficit_ratio = (threshold - current_stock) / threshold
        if deficit_ratio > 0.8:
            severity += 2
        elif deficit_ratio > 0.5:
            severity += 1

    if estimated_impact and estimated_impact.revenue_at_risk > 1000:
        severity += 1

    return max(1, min(10, severity))


def default_message(sku: str, current_stock: float, threshold: float) -> str:
    """Build the human-readable message for an alert created without one."""
    if current_stock == 0:
        stock_status = "out of stock"
    else:
        stock_status = f"low stock ({format_quantity(current_stock)} remaining)"
    return f"Product {sku} is {stock_status}. Threshold: {format_quantity(threshold)}"


def default_recommended_action(alert_type: AlertType) -> str:
    return RECOMMENDED_ACTIONS.get(alert_type, DEFAULT_RECOMMENDED_ACTION)


def format_quantity(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


@dataclass
class AlertCreationRequest:
    """Everything the store needs to open a new alert."""

    sku: str
    alert_type: AlertType
    priority: AlertPriority
    threshold: float
    current_stock: float
    item_id: Optional[str] = None
    variant_id: Optional[str] = None
    message: Optional[str] = None
    recommended_action: Optional[str] = None
    severity: Optional[int] = None
    estimated_impact: Optional[EstimatedImpact] = None
    auto_resolve: bool = True
    auto_resolve_threshold: Optional[float] = None
    suppress_similar: bool = False
    suppress_until: Optional[datetime] = None
    rule_id: Optional[str] = None
    notifications: Optional["NotificationSettings"] = None

    def __post_init__(self):
        self.sku = (self.sku or "").strip().upper()
        self.alert_type = AlertType(self.alert_type)
        self.priority = AlertPriority(self.priority)

        if not self.sku:
            raise ValueError("SKU is required")
        if self.item_id and self.variant_id:
            raise ValueError("An alert belongs to either an item or a variant, not both")
        if self.threshold < 0:
            raise ValueError("Threshold cannot be negative")
        if self.current_stock < 0:
            raise ValueError("Current stock cannot be negative")
        if self.auto_resolve_threshold is not None and self.auto_resolve_threshold < 0:
            raise ValueError("Auto resolve threshold cannot be negative")
        if self.severity is not None and not 1 <= self.severity <= 10:
            raise ValueError("Severity must be between 1 and 10")
        if self.message and len(self.message) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")
        if self.recommended_action and len(self.recommended_action) > MAX_ACTION_LENGTH:
            raise ValueError(
                f"Recommended action cannot exceed {MAX_ACTION_LENGTH} characters"
            )


@dataclass
class Alert:
    """A persisted inventory alert."""

    id: int
    sku: str
    alert_type: AlertType
    priority: AlertPriority
    threshold: float
    current_stock: float
    message: str
    recommended_action: str
    severity: int
    status: AlertStatus
    created_at: datetime
    updated_at: datetime
    item_id: Optional[str] = None
    variant_id: Optional[str] = None
    estimated_impact: Optional[EstimatedImpact] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution_notes: Optional[str] = None
    auto_resolve: bool = True
    auto_resolve_threshold: Optional[float] = None
    suppress_until: Optional[datetime] = None
    suppress_similar: bool = False
    rule_id: Optional[str] = None
    trigger_count: int = 1
    last_triggered_at: Optional[datetime] = None
    notifications_sent: Dict[NotificationChannel, List[datetime]] = field(
        default_factory=lambda: {channel: [] for channel in NotificationChannel}
    )

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE

    @property
    def is_critical(self) -> bool:
        return self.is_active and (
            self.priority == AlertPriority.CRITICAL
            or self.severity >= CRITICAL_SEVERITY
        )

    def should_auto_resolve(self, current_stock: float) -> bool:
        """True when stock has recovered past the auto-resolve threshold of an active alert."""
        return (
            self.auto_resolve
            and self.auto_resolve_threshold is not None
            and current_stock >= self.auto_resolve_threshold
            and self.status == AlertStatus.ACTIVE
        )

    def is_suppressed(self, now: datetime) -> bool:
        """True while this alert suppresses similar alerts from being raised."""
        return (
            self.suppress_similar
            and self.suppress_until is not None
            and now < self.suppress_until
        )

    def last_notification(self, channel: NotificationChannel) -> Optional[datetime]:
        history = self.notifications_sent.get(NotificationChannel(channel), [])
        return history[-1] if history else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert alert to a JSON-friendly dictionary."""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, Enum):
                result[key] = value.value
            elif isinstance(value, datetime):
                result[key] = value.isoformat()
        result["notifications_sent"] = {
            channel.value: [sent.isoformat() for sent in history]
            for channel, history in self.notifications_sent.items()
        }
        return result
