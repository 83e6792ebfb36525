"""Notification transport implementations."""

from typing import Dict, Protocol

from ...config.logging import get_logger
from ..alerts.models import NotificationChannel
from .models import NotificationRequest

logger = get_logger(__name__)


class NotificationChannelProtocol(Protocol):
    """Protocol for notification transport implementations."""

    async def send_notification(self, request: NotificationRequest) -> None:
        """Deliver a notification, raising TransportError on failure."""
        ...


class _PlaceholderChannel:
    channel: NotificationChannel

    def __init__(self):
        self.logger = logger.bind(channel=self.channel.value)

    async def send_notification(self, request: NotificationRequest) -> None:
        """
        Log the notification instead of delivering it.

        Note: This is a placeholder implementation.
        """
        self.logger.info(
            f"{self.channel.value.capitalize()} notification requested (placeholder)",
            alert_id=request.alert_id,
            sku=request.sku,
            priority=request.priority.value,
            severity=request.severity,
            recipients=request.recipients,
        )


class EmailNotificationChannel(_PlaceholderChannel):
    """Email notification channel implementation (placeholder)."""

    channel = NotificationChannel.EMAIL


class SmsNotificationChannel(_PlaceholderChannel):
    """SMS notification channel implementation (placeholder)."""

    channel = NotificationChannel.SMS


class PushNotificationChannel(_PlaceholderChannel):
    """Push notification channel implementation (placeholder)."""

    channel = NotificationChannel.PUSH


def default_channels() -> Dict[NotificationChannel, NotificationChannelProtocol]:
    """Placeholder transports for every external channel."""
    return {
        NotificationChannel.EMAIL: EmailNotificationChannel(),
        NotificationChannel.SMS: SmsNotificationChannel(),
        NotificationChannel.PUSH: PushNotificationChannel(),
    }
