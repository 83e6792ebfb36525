"""Notification settings, transports and the cooldown-aware dispatcher."""

from .channels import (
    EmailNotificationChannel,
    NotificationChannelProtocol,
    PushNotificationChannel,
    SmsNotificationChannel,
    default_channels,
)
from .dispatcher import NotificationDispatcher
from .models import (
    ChannelSettings,
    NotificationRequest,
    NotificationResult,
    NotificationSettings,
)

__all__ = [
    "ChannelSettings",
    "EmailNotificationChannel",
    "NotificationChannelProtocol",
    "NotificationDispatcher",
    "NotificationRequest",
    "NotificationResult",
    "NotificationSettings",
    "PushNotificationChannel",
    "SmsNotificationChannel",
    "default_channels",
]
