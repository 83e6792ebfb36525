"""Notification fan-out with per-channel cooldown."""

from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from ...config.logging import get_logger
from ...config.settings import get_settings
from ...events import EventBus, NotificationSentEvent
from ...utils.clock import utcnow
from ..alerts.models import Alert, NotificationChannel
from ..alerts.store import AlertStore
from .channels import NotificationChannelProtocol, default_channels
from .models import NotificationRequest, NotificationResult, NotificationSettings

logger = get_logger(__name__)

# Dispatch order; the dashboard is always last and always enabled.
DISPATCH_ORDER = (
    NotificationChannel.EMAIL,
    NotificationChannel.SMS,
    NotificationChannel.PUSH,
    NotificationChannel.DASHBOARD,
)


class NotificationDispatcher:
    """Sends alert notifications through the enabled channels of a rule."""

    def __init__(
        self,
        store: AlertStore,
        channels: Optional[Dict[NotificationChannel, NotificationChannelProtocol]] = None,
        default_cooldown_minutes: Optional[int] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.channels = default_channels() if channels is None else dict(channels)
        if default_cooldown_minutes is None:
            default_cooldown_minutes = get_settings().default_cooldown_minutes
        self.default_cooldown = timedelta(minutes=default_cooldown_minutes)
        self.event_bus = event_bus
        self._clock = clock
        self.logger = logger.bind(service="notification_dispatcher")

    def add_notification_channel(
        self, channel: NotificationChannel, implementation: NotificationChannelProtocol
    ) -> None:
        """Add or replace a transport."""
        self.channels[NotificationChannel(channel)] = implementation
        self.logger.info(
            "Notification channel added",
            channel_type=NotificationChannel(channel).value,
            implementation=type(implementation).__name__,
        )

    def can_send(
        self,
        alert: Alert,
        channel: NotificationChannel,
        cooldown_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Check the cooldown of a channel.

        A channel that never sent may send. Otherwise the last send must be at
        least the cooldown ago.
        """
        last_sent = alert.last_notification(channel)
        if last_sent is None:
            return True

        cooldown = (
            self.default_cooldown
            if cooldown_minutes is None
            else timedelta(minutes=cooldown_minutes)
        )
        return last_sent <= (now or self._clock()) - cooldown

    async def dispatch(
        self, alert: Alert, settings: Optional[NotificationSettings] = None
    ) -> List[NotificationResult]:
        """
        Fan an alert out to every enabled channel that is out of cooldown.

        Safe to call repeatedly: channels within cooldown are skipped, not
        queued. A failing transport does not stop the other channels and its
        history is left untouched.

        Args:
            alert: Alert to notify about; its history is updated in place
            settings: Channel settings from the rule that raised the alert

        Returns:
            One result per enabled channel
        """
        settings = settings or NotificationSettings()
        log = self.logger.bind(alert_id=alert.id, sku=alert.sku)
        results: List[NotificationResult] = []

        for channel in DISPATCH_ORDER:
            channel_settings = settings.for_channel(channel)
            if not channel_settings.enabled:
                continue

            now = self._clock()
            if not self.can_send(alert, channel, channel_settings.cooldown_minutes, now):
                log.debug("Channel in cooldown, skipping", channel=channel.value)
                results.append(NotificationResult(channel=channel, status="skipped"))
                continue

            transport = self.channels.get(channel)
            if transport is None and channel != NotificationChannel.DASHBOARD:
                log.warning("No transport registered for channel", channel=channel.value)
                results.append(
                    NotificationResult(
                        channel=channel,
                        status="failed",
                        error=f"No transport registered for {channel.value}",
                    )
                )
                continue

            if transport is not None:
                request = NotificationRequest(
                    alert_id=alert.id,
                    sku=alert.sku,
                    message=alert.message,
                    priority=alert.priority,
                    severity=alert.severity,
                    recipients=list(channel_settings.recipients),
                )
                try:
                    await transport.send_notification(request)
                except Exception as e:
                    log.error(
                        "Notification delivery failed",
                        channel=channel.value,
                        error=str(e),
                        exc_info=True,
                    )
                    # The dashboard entry is recorded even when its transport fails
                    if channel != NotificationChannel.DASHBOARD:
                        results.append(
                            NotificationResult(channel=channel, status="failed", error=str(e))
                        )
                        continue

            sent_at = await self.store.record_notification(alert.id, channel, now)
            alert.notifications_sent.setdefault(channel, []).append(sent_at)
            results.append(NotificationResult(channel=channel, status="sent", sent_at=sent_at))

            if self.event_bus is not None:
                await self.event_bus.publish(
                    NotificationSentEvent(
                        alert_id=alert.id,
                        channel=channel.value,
                        recipients=list(channel_settings.recipients),
                    )
                )

        log.info(
            "Alert dispatch completed",
            sent=[r.channel.value for r in results if r.status == "sent"],
            skipped=[r.channel.value for r in results if r.status == "skipped"],
            failed=[r.channel.value for r in results if r.status == "failed"],
        )
        return results
