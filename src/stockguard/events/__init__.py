"""Domain events and the in-process event bus."""

from .event_bus import EventBus
from .event_handlers import setup_default_event_handlers
from .events import (
    AlertCreatedEvent,
    AlertResolvedEvent,
    DomainEvent,
    ErrorEvent,
    NotificationSentEvent,
    StockChangeEvent,
)

__all__ = [
    "AlertCreatedEvent",
    "AlertResolvedEvent",
    "DomainEvent",
    "ErrorEvent",
    "EventBus",
    "NotificationSentEvent",
    "StockChangeEvent",
    "setup_default_event_handlers",
]
