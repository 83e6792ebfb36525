"""Domain events for the inventory alert pipeline."""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..utils.clock import utcnow


@dataclass
class DomainEvent(ABC):
    """Base class for all domain events."""

    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utcnow)
    event_version: str = "1.0"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        result = {
            "event_type": self.__class__.__name__,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "event_version": self.event_version,
            "metadata": self.metadata,
        }

        # Add event-specific fields
        for field_name, field_value in self.__dict__.items():
            if field_name not in ["event_id", "timestamp", "event_version", "metadata"]:
                if isinstance(field_value, datetime):
                    result[field_name] = field_value.isoformat()
                else:
                    result[field_name] = field_value

        return result


@dataclass
class StockChangeEvent(DomainEvent):
    """Event emitted when an item or variant quantity/stock status is written."""

    owner_type: str = "item"
    owner_id: str = ""
    sku: str = ""
    current_stock: float = 0.0
    threshold: float = 5.0
    parent_item_id: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    brand: Optional[str] = None
    item_type: str = "simple"
    changed_fields: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.sku = (self.sku or "").strip().upper()
        if self.owner_type not in ("item", "variant"):
            raise ValueError(f"Unknown owner type: {self.owner_type}")

    @property
    def item_id(self) -> Optional[str]:
        return self.owner_id if self.owner_type == "item" else None

    @property
    def variant_id(self) -> Optional[str]:
        return self.owner_id if self.owner_type == "variant" else None


@dataclass
class AlertCreatedEvent(DomainEvent):
    """Event triggered when a new alert is opened."""

    alert_id: int = 0
    sku: str = ""
    alert_type: str = ""
    priority: str = ""
    severity: int = 0
    rule_id: Optional[str] = None
    current_stock: float = 0.0
    threshold: float = 0.0


@dataclass
class AlertResolvedEvent(DomainEvent):
    """Event triggered when an alert is resolved, automatically or by an operator."""

    alert_id: int = 0
    sku: str = ""
    alert_type: str = ""
    resolved_by: str = ""
    current_stock: Optional[float] = None
    automatic: bool = False


@dataclass
class NotificationSentEvent(DomainEvent):
    """Event triggered when a notification is delivered on a channel."""

    alert_id: int = 0
    channel: str = ""
    recipients: List[str] = field(default_factory=list)
    delivery_status: str = "sent"


@dataclass
class ErrorEvent(DomainEvent):
    """Event triggered when errors occur in the pipeline."""

    error_type: str = ""
    error_message: str = ""
    component: str = ""
    operation: str = ""
    severity: str = "error"
    context: Dict[str, Any] = field(default_factory=dict)
