"""End-to-end alert scenarios through the engine with the built-in rules."""

import sys
from datetime import timedelta

import pytest

sys.path.append("src")
from stockguard.engine import AlertEngine
from stockguard.services.alerts.models import AlertStatus, AlertType
from stockguard.sources import QueueChangeSource

pytestmark = pytest.mark.integration


@pytest.fixture
def engine(store, evaluator, dispatcher, sweeper, event_bus):
    return AlertEngine(
        source=QueueChangeSource(),
        store=store,
        evaluator=evaluator,
        dispatcher=dispatcher,
        sweeper=sweeper,
        event_bus=event_bus,
        concurrency=2,
    )


async def _active_by_type(store, sku):
    return {
        alert.alert_type: alert
        for alert in await store.find_by_sku(sku)
        if alert.status == AlertStatus.ACTIVE
    }


class TestInventoryScenarios:
    """Low stock, out of stock, recovery and demand spikes for a single item."""

    @pytest.mark.asyncio
    async def test_low_stock_then_out_of_stock_then_recovery(
        self, engine, store, clock, make_event
    ):
        # Stock dips under the item's threshold
        created = await engine.process_event(make_event("ITEM-X", current_stock=3, threshold=5))

        assert [alert.alert_type for alert in created] == [AlertType.LOW_STOCK]
        low_stock = created[0]
        assert low_stock.threshold == 5
        assert low_stock.current_stock == 3
        assert low_stock.status == AlertStatus.ACTIVE

        # Stock runs out: a second, independent alert
        clock.advance(minutes=5)
        created = await engine.process_event(make_event("ITEM-X", current_stock=0, threshold=5))

        assert [alert.alert_type for alert in created] == [AlertType.OUT_OF_STOCK]
        active = await _active_by_type(store, "ITEM-X")
        assert set(active) == {AlertType.LOW_STOCK, AlertType.OUT_OF_STOCK}
        assert active[AlertType.LOW_STOCK].id == low_stock.id

        # Restock resolves both on their own thresholds
        clock.advance(hours=2)
        created = await engine.process_event(make_event("ITEM-X", current_stock=10, threshold=5))

        assert created == []
        assert await _active_by_type(store, "ITEM-X") == {}
        for alert in await store.find_by_sku("ITEM-X"):
            assert alert.status == AlertStatus.RESOLVED
            assert alert.resolved_by == "system"
            assert alert.resolved_at == clock.now

    @pytest.mark.asyncio
    async def test_partial_recovery_resolves_only_out_of_stock(
        self, engine, store, make_event
    ):
        await engine.process_event(make_event("ITEM-X", current_stock=0, threshold=5))

        await engine.process_event(make_event("ITEM-X", current_stock=2, threshold=5))

        active = await _active_by_type(store, "ITEM-X")
        assert set(active) == {AlertType.LOW_STOCK}

    @pytest.mark.asyncio
    async def test_demand_spike_fires_once(self, engine, store, ledger, clock, make_event):
        start = clock.now

        # Three sales take 30% of the stock
        stock = 100
        for minutes_ago, sold in ((50, 10), (40, 10), (30, 10)):
            await ledger.record_movement(
                "ITEM-Y", stock, -sold, "sale", created_at=start - timedelta(minutes=minutes_ago)
            )
            stock -= sold

        created = await engine.process_event(make_event("ITEM-Y", current_stock=stock, threshold=2))
        assert created == []

        # A fourth pushes the aggregate to 55%
        await ledger.record_movement("ITEM-Y", stock, -25, "sale", created_at=start)
        stock -= 25

        created = await engine.process_event(make_event("ITEM-Y", current_stock=stock, threshold=2))
        assert [alert.alert_type for alert in created] == [AlertType.HIGH_DEMAND]

        # Same aggregate on a later event does not fire again
        clock.advance(minutes=1)
        created = await engine.process_event(make_event("ITEM-Y", current_stock=stock, threshold=2))
        assert created == []
        assert len(await store.find_by_sku("ITEM-Y")) == 1
