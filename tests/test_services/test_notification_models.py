"""Tests for notification settings models."""

import sys

import pytest
from pydantic import ValidationError

sys.path.append("src")
from stockguard.services.alerts.models import AlertPriority, NotificationChannel
from stockguard.services.notification.channels import (
    EmailNotificationChannel,
    default_channels,
)
from stockguard.services.notification.models import (
    ChannelSettings,
    NotificationRequest,
    NotificationSettings,
)


class TestNotificationSettings:
    """Test channel settings."""

    def test_channels_disabled_by_default(self):
        settings = NotificationSettings()

        assert not settings.for_channel(NotificationChannel.EMAIL).enabled
        assert not settings.for_channel("sms").enabled

    def test_dashboard_always_enabled(self):
        dashboard = NotificationSettings().for_channel(NotificationChannel.DASHBOARD)

        assert dashboard.enabled
        assert dashboard.recipients == []
        assert dashboard.cooldown_minutes is None

    def test_negative_cooldown_rejected(self):
        with pytest.raises(ValidationError):
            ChannelSettings(enabled=True, cooldown_minutes=-5)


class TestPlaceholderChannels:
    """Test placeholder transports."""

    def test_default_channels_cover_external_transports(self):
        assert set(default_channels()) == {
            NotificationChannel.EMAIL,
            NotificationChannel.SMS,
            NotificationChannel.PUSH,
        }

    @pytest.mark.asyncio
    async def test_placeholder_send_succeeds(self):
        request = NotificationRequest(
            alert_id=1,
            sku="SKU-1",
            message="Product SKU-1 is out of stock. Threshold: 5",
            priority=AlertPriority.CRITICAL,
            severity=10,
            recipients=["ops@example.com"],
        )

        assert await EmailNotificationChannel().send_notification(request) is None
