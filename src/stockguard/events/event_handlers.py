"""Default subscribers that turn domain events into log records."""

from ..config.logging import get_logger
from .event_bus import EventBus
from .events import (
    AlertCreatedEvent,
    AlertResolvedEvent,
    DomainEvent,
    ErrorEvent,
    NotificationSentEvent,
)

logger = get_logger(__name__)


class EventHandler:
    """Base class for event handlers."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logger.bind(handler=name)

    async def handle(self, event: DomainEvent):
        raise NotImplementedError


class AlertEventHandler(EventHandler):
    """Logs alert lifecycle and delivery events."""

    def __init__(self):
        super().__init__("alert_handler")

    async def handle(self, event: DomainEvent):
        if isinstance(event, AlertCreatedEvent):
            self.logger.info(
                "Alert opened",
                alert_id=event.alert_id,
                sku=event.sku,
                alert_type=event.alert_type,
                priority=event.priority,
                severity=event.severity,
                rule_id=event.rule_id,
            )
        elif isinstance(event, AlertResolvedEvent):
            self.logger.info(
                "Alert resolved",
                alert_id=event.alert_id,
                sku=event.sku,
                alert_type=event.alert_type,
                resolved_by=event.resolved_by,
                automatic=event.automatic,
            )
        elif isinstance(event, NotificationSentEvent):
            self.logger.debug(
                "Notification delivered",
                alert_id=event.alert_id,
                channel=event.channel,
                recipients=len(event.recipients),
            )


class ErrorEventHandler(EventHandler):
    """Logs pipeline errors published on the bus."""

    def __init__(self):
        super().__init__("error_handler")

    async def handle(self, event: DomainEvent):
        if not isinstance(event, ErrorEvent):
            return
        self.logger.error(
            "Pipeline error event received",
            error_type=event.error_type,
            component=event.component,
            operation=event.operation,
            severity=event.severity,
            message=event.error_message,
            context=event.context,
        )


def setup_default_event_handlers(event_bus: EventBus) -> None:
    """Subscribe the logging handlers to an event bus."""
    alert_handler = AlertEventHandler()
    error_handler = ErrorEventHandler()

    event_bus.subscribe(AlertCreatedEvent, alert_handler.handle)
    event_bus.subscribe(AlertResolvedEvent, alert_handler.handle)
    event_bus.subscribe(NotificationSentEvent, alert_handler.handle)
    event_bus.subscribe(ErrorEvent, error_handler.handle)

    logger.info("Default event handlers configured", bus=event_bus.name)
