"""Tests for notification dispatch and per-channel cooldowns."""

import sys
from unittest.mock import AsyncMock

import pytest

sys.path.append("src")
from stockguard.events import NotificationSentEvent
from stockguard.services.alerts.models import NotificationChannel
from stockguard.services.notification import NotificationDispatcher
from stockguard.services.notification.models import ChannelSettings, NotificationSettings

EMAIL_ONLY = NotificationSettings(
    email=ChannelSettings(enabled=True, recipients=["ops@example.com"], cooldown_minutes=60)
)


def _statuses(results):
    return {result.channel.value: result.status for result in results}


class TestCanSend:
    """Test cooldown checks."""

    @pytest.mark.asyncio
    async def test_never_sent_can_send(self, dispatcher, store, make_request):
        alert = await store.create_alert(make_request())

        assert dispatcher.can_send(alert, NotificationChannel.EMAIL, 60)

    @pytest.mark.asyncio
    async def test_cooldown_boundary_is_inclusive(self, dispatcher, store, make_request, clock):
        alert = await store.create_alert(make_request())
        alert.notifications_sent[NotificationChannel.EMAIL].append(clock.now)

        clock.advance(minutes=59)
        assert not dispatcher.can_send(alert, NotificationChannel.EMAIL, 60)

        clock.advance(minutes=1)
        assert dispatcher.can_send(alert, NotificationChannel.EMAIL, 60)

    @pytest.mark.asyncio
    async def test_default_cooldown_applies_without_channel_cooldown(
        self, dispatcher, store, make_request, clock
    ):
        alert = await store.create_alert(make_request())
        alert.notifications_sent[NotificationChannel.DASHBOARD].append(clock.now)

        clock.advance(minutes=30)
        assert not dispatcher.can_send(alert, NotificationChannel.DASHBOARD)
        assert dispatcher.can_send(alert, NotificationChannel.DASHBOARD, cooldown_minutes=0)


class TestDispatch:
    """Test dispatch fan-out."""

    @pytest.mark.asyncio
    async def test_dispatch_sends_enabled_channels_and_dashboard(
        self, dispatcher, store, make_request, channels, clock
    ):
        alert = await store.create_alert(make_request())

        results = await dispatcher.dispatch(alert, EMAIL_ONLY)

        assert _statuses(results) == {"email": "sent", "dashboard": "sent"}
        assert [r.channel for r in results] == [
            NotificationChannel.EMAIL,
            NotificationChannel.DASHBOARD,
        ]
        assert channels["email"].requests[0].recipients == ["ops@example.com"]
        assert channels["sms"].requests == []

        stored = await store.get(alert.id)
        assert stored.notifications_sent[NotificationChannel.EMAIL] == [clock.now]
        assert stored.notifications_sent[NotificationChannel.DASHBOARD] == [clock.now]
        assert alert.notifications_sent[NotificationChannel.EMAIL] == [clock.now]

    @pytest.mark.asyncio
    async def test_repeat_dispatch_within_cooldown_sends_once(
        self, dispatcher, store, make_request, channels, clock
    ):
        alert = await store.create_alert(make_request())

        await dispatcher.dispatch(alert, EMAIL_ONLY)
        clock.advance(minutes=59)
        results = await dispatcher.dispatch(alert, EMAIL_ONLY)

        assert _statuses(results) == {"email": "skipped", "dashboard": "skipped"}
        assert len(channels["email"].requests) == 1
        stored = await store.get(alert.id)
        assert len(stored.notifications_sent[NotificationChannel.EMAIL]) == 1

    @pytest.mark.asyncio
    async def test_repeat_dispatch_after_cooldown_sends_again(
        self, dispatcher, store, make_request, channels, clock
    ):
        alert = await store.create_alert(make_request())

        await dispatcher.dispatch(alert, EMAIL_ONLY)
        clock.advance(minutes=60)
        results = await dispatcher.dispatch(alert, EMAIL_ONLY)

        assert _statuses(results)["email"] == "sent"
        assert len(channels["email"].requests) == 2
        stored = await store.get(alert.id)
        assert len(stored.notifications_sent[NotificationChannel.EMAIL]) == 2

    @pytest.mark.asyncio
    async def test_failing_transport_does_not_block_others(
        self, store, make_request, channels, clock, recording_channel
    ):
        dispatcher = NotificationDispatcher(
            store,
            channels={
                NotificationChannel.EMAIL: recording_channel(fail=True),
                NotificationChannel.PUSH: channels["push"],
            },
            default_cooldown_minutes=60,
            clock=clock,
        )
        settings = NotificationSettings(
            email=ChannelSettings(enabled=True),
            push=ChannelSettings(enabled=True, cooldown_minutes=30),
        )
        alert = await store.create_alert(make_request())

        results = await dispatcher.dispatch(alert, settings)

        assert _statuses(results) == {"email": "failed", "push": "sent", "dashboard": "sent"}
        failed = next(r for r in results if r.channel == NotificationChannel.EMAIL)
        assert failed.error == "test delivery failed: transport down"
        assert not failed.success

        stored = await store.get(alert.id)
        assert stored.notifications_sent[NotificationChannel.EMAIL] == []
        assert len(stored.notifications_sent[NotificationChannel.PUSH]) == 1

    @pytest.mark.asyncio
    async def test_missing_transport_is_reported(self, store, make_request, clock):
        dispatcher = NotificationDispatcher(
            store, channels={}, default_cooldown_minutes=60, clock=clock
        )
        settings = NotificationSettings(sms=ChannelSettings(enabled=True))
        alert = await store.create_alert(make_request())

        results = await dispatcher.dispatch(alert, settings)

        assert _statuses(results) == {"sms": "failed", "dashboard": "sent"}

    @pytest.mark.asyncio
    async def test_dispatch_without_settings_only_updates_dashboard(
        self, dispatcher, store, make_request
    ):
        alert = await store.create_alert(make_request())

        results = await dispatcher.dispatch(alert)

        assert _statuses(results) == {"dashboard": "sent"}

    @pytest.mark.asyncio
    async def test_dispatch_publishes_events(self, dispatcher, store, make_request, event_bus):
        received = []

        async def on_sent(event):
            received.append(event.channel)

        event_bus.subscribe(NotificationSentEvent, on_sent)
        alert = await store.create_alert(make_request())

        await dispatcher.dispatch(alert, EMAIL_ONLY)
        await event_bus.drain()

        assert received == ["email", "dashboard"]

    @pytest.mark.asyncio
    async def test_add_notification_channel(self, dispatcher, store, make_request):
        replacement = AsyncMock()
        dispatcher.add_notification_channel(NotificationChannel.EMAIL, replacement)
        alert = await store.create_alert(make_request())

        await dispatcher.dispatch(alert, EMAIL_ONLY)

        replacement.send_notification.assert_awaited_once()
        request = replacement.send_notification.await_args.args[0]
        assert request.alert_id == alert.id
        assert request.sku == "SKU-1"

    @pytest.mark.asyncio
    async def test_dashboard_is_recorded_when_its_transport_fails(
        self, store, make_request, clock, recording_channel
    ):
        dispatcher = NotificationDispatcher(
            store,
            channels={NotificationChannel.DASHBOARD: recording_channel(fail=True)},
            default_cooldown_minutes=60,
            clock=clock,
        )
        alert = await store.create_alert(make_request())

        results = await dispatcher.dispatch(alert)

        assert _statuses(results) == {"dashboard": "sent"}
        stored = await store.get(alert.id)
        assert stored.notifications_sent[NotificationChannel.DASHBOARD] == [clock.now]
