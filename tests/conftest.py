"""Shared test configuration and fixtures."""

import sys
from datetime import datetime, timedelta

import pytest

sys.path.append("src")
from stockguard.config.settings import get_settings
from stockguard.events import EventBus, StockChangeEvent
from stockguard.exceptions import TransportError
from stockguard.ormdb.database import create_engine_from_url, create_session_factory, create_tables
from stockguard.rules import RuleEvaluator, default_rules
from stockguard.services.alerts.models import (
    AlertCreationRequest,
    AlertPriority,
    AlertType,
    NotificationChannel,
)
from stockguard.services.alerts.store import AlertStore
from stockguard.services.alerts.sweeper import AutoResolutionSweeper
from stockguard.services.ledger import SqlStockLedger
from stockguard.services.notification import NotificationDispatcher


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = datetime(2024, 6, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingChannel:
    """Transport that records requests and optionally fails."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.requests = []

    async def send_notification(self, request):
        if self.fail:
            raise TransportError("test", "transport down")
        self.requests.append(request)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def isolated_db(tmp_path):
    """Create an isolated database for testing."""
    engine = create_engine_from_url(f"sqlite:///{tmp_path / 'alerts.db'}")
    create_tables(engine)

    yield {"engine": engine, "session_factory": create_session_factory(engine)}

    engine.dispose()


@pytest.fixture
def session_factory(isolated_db):
    return isolated_db["session_factory"]


@pytest.fixture
def store(session_factory, clock):
    return AlertStore(session_factory, clock=clock)


@pytest.fixture
def ledger(session_factory):
    return SqlStockLedger(session_factory)


@pytest.fixture
def event_bus():
    return EventBus("test")


@pytest.fixture
def recording_channel():
    return RecordingChannel


@pytest.fixture
def channels():
    return {
        "email": RecordingChannel(),
        "sms": RecordingChannel(),
        "push": RecordingChannel(),
    }


@pytest.fixture
def dispatcher(store, channels, event_bus, clock):
    return NotificationDispatcher(
        store,
        channels={NotificationChannel(name): channel for name, channel in channels.items()},
        default_cooldown_minutes=60,
        event_bus=event_bus,
        clock=clock,
    )


@pytest.fixture
def evaluator(store, ledger, clock):
    return RuleEvaluator(default_rules(), store, ledger, clock=clock)


@pytest.fixture
def sweeper(store, event_bus):
    return AutoResolutionSweeper(store, event_bus)


@pytest.fixture
def make_request():
    """Factory for alert creation requests."""

    def _make(**overrides):
        values = {
            "sku": "SKU-1",
            "alert_type": AlertType.LOW_STOCK,
            "priority": AlertPriority.HIGH,
            "threshold": 5,
            "current_stock": 3,
        }
        values.update(overrides)
        return AlertCreationRequest(**values)

    return _make


@pytest.fixture
def make_event():
    """Factory for stock change events."""

    def _make(sku: str = "SKU-1", current_stock: float = 3, **overrides):
        values = {
            "owner_type": "item",
            "owner_id": "item-1",
            "sku": sku,
            "current_stock": current_stock,
            "threshold": 5,
            "changed_fields": ["quantity"],
        }
        values.update(overrides)
        return StockChangeEvent(**values)

    return _make


@pytest.fixture(autouse=True)
def clean_lru_cache():
    """Clear LRU cache between tests to avoid state pollution."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
