"""Data models for notification dispatch."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..alerts.models import AlertPriority, NotificationChannel


class ChannelSettings(BaseModel):
    """Per-channel delivery settings of an alert rule."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    recipients: List[str] = Field(default_factory=list)
    cooldown_minutes: Optional[int] = Field(default=None, ge=0)


class NotificationSettings(BaseModel):
    """Channel settings for every external transport of an alert."""

    model_config = ConfigDict(frozen=True)

    email: ChannelSettings = Field(default_factory=ChannelSettings)
    sms: ChannelSettings = Field(default_factory=ChannelSettings)
    push: ChannelSettings = Field(default_factory=ChannelSettings)

    def for_channel(self, channel: NotificationChannel) -> ChannelSettings:
        """Settings for a channel; the dashboard is always enabled and has no recipients."""
        if channel == NotificationChannel.DASHBOARD:
            return ChannelSettings(enabled=True)
        return getattr(self, NotificationChannel(channel).value)


@dataclass
class NotificationRequest:
    """Outbound send request handed to a transport."""

    alert_id: int
    sku: str
    message: str
    priority: AlertPriority
    severity: int
    recipients: List[str] = field(default_factory=list)


@dataclass
class NotificationResult:
    """Outcome of one channel during a dispatch."""

    channel: NotificationChannel
    status: str  # sent, skipped or failed
    sent_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == "sent"
