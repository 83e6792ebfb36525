"""Tests for rule evaluation."""

import sys
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

sys.path.append("src")
from stockguard.exceptions import LedgerError
from stockguard.rules import AlertRule, RuleEvaluator, RuleSet, default_rules
from stockguard.services.alerts.models import AlertPriority, AlertType


def _rule(rule_id="custom", conditions=None, **actions):
    action_values = {"alert_type": "low_stock", "priority": "medium"}
    action_values.update(actions)
    return AlertRule.model_validate(
        {"id": rule_id, "name": rule_id, "conditions": conditions or [], "actions": action_values}
    )


def _evaluator(store, ledger, clock, *rules):
    return RuleEvaluator(RuleSet(list(rules)), store, ledger, clock=clock)


class TestDefaultRules:
    """Test evaluation of the built-in rules."""

    @pytest.mark.asyncio
    async def test_low_stock(self, evaluator, make_event):
        requests = await evaluator.evaluate(make_event(current_stock=3, threshold=5))

        assert len(requests) == 1
        request = requests[0]
        assert request.alert_type == AlertType.LOW_STOCK
        assert request.priority == AlertPriority.HIGH
        assert request.rule_id == "low-stock"
        assert request.threshold == 5
        assert request.current_stock == 3
        assert request.auto_resolve is True
        assert request.auto_resolve_threshold == 6
        assert request.item_id == "item-1"
        assert request.variant_id is None
        assert request.notifications.email.enabled
        assert request.notifications.email.cooldown_minutes == 240

    @pytest.mark.asyncio
    async def test_out_of_stock_also_matches_low_stock(self, evaluator, make_event):
        requests = await evaluator.evaluate(make_event(current_stock=0, threshold=5))

        by_type = {request.alert_type: request for request in requests}
        assert set(by_type) == {AlertType.OUT_OF_STOCK, AlertType.LOW_STOCK}
        assert by_type[AlertType.OUT_OF_STOCK].priority == AlertPriority.CRITICAL
        assert by_type[AlertType.OUT_OF_STOCK].auto_resolve_threshold == 1

    @pytest.mark.asyncio
    async def test_healthy_stock_matches_nothing(self, evaluator, make_event):
        assert await evaluator.evaluate(make_event(current_stock=20, threshold=5)) == []

    @pytest.mark.asyncio
    async def test_variant_owner(self, evaluator, make_event):
        requests = await evaluator.evaluate(
            make_event(owner_type="variant", owner_id="variant-9", parent_item_id="item-1")
        )

        assert requests[0].variant_id == "variant-9"
        assert requests[0].item_id is None

    @pytest.mark.asyncio
    async def test_active_alert_blocks_new_request(self, evaluator, store, make_event):
        first = await evaluator.evaluate(make_event(current_stock=3))
        await store.create_alert(first[0])

        assert await evaluator.evaluate(make_event(current_stock=2)) == []

    @pytest.mark.asyncio
    async def test_repeat_match_bumps_active_alert(self, evaluator, store, clock, make_event):
        alert = await store.create_alert((await evaluator.evaluate(make_event(current_stock=3)))[0])
        clock.advance(minutes=5)

        await evaluator.evaluate(make_event(current_stock=2))

        refreshed = await store.get(alert.id)
        assert refreshed.trigger_count == 2
        assert refreshed.current_stock == 2
        assert refreshed.last_triggered_at == clock.now

    @pytest.mark.asyncio
    async def test_out_of_stock_uses_owner_threshold(self, evaluator, make_event):
        requests = await evaluator.evaluate(make_event(current_stock=0, threshold=8))

        by_type = {request.alert_type: request for request in requests}
        assert by_type[AlertType.OUT_OF_STOCK].threshold == 8
        assert by_type[AlertType.LOW_STOCK].threshold == 8

    @pytest.mark.asyncio
    async def test_high_demand_from_ledger(self, evaluator, ledger, clock, make_event):
        await ledger.record_movement(
            "SKU-1", 10, -6, "sale", created_at=clock.now - timedelta(minutes=10)
        )

        requests = await evaluator.evaluate(make_event(current_stock=4, threshold=2))

        assert [r.alert_type for r in requests] == [AlertType.HIGH_DEMAND]
        assert requests[0].auto_resolve_threshold is None

    @pytest.mark.asyncio
    async def test_small_decrease_does_not_match(self, evaluator, ledger, clock, make_event):
        await ledger.record_movement(
            "SKU-1", 10, -2, "sale", created_at=clock.now - timedelta(minutes=10)
        )

        assert await evaluator.evaluate(make_event(current_stock=8, threshold=2)) == []

    @pytest.mark.asyncio
    async def test_movements_outside_timeframe_are_ignored(
        self, evaluator, ledger, clock, make_event
    ):
        await ledger.record_movement(
            "SKU-1", 10, -6, "sale", created_at=clock.now - timedelta(minutes=61)
        )

        assert await evaluator.evaluate(make_event(current_stock=4, threshold=2)) == []


class TestConditions:
    """Test condition handling for custom rules."""

    @pytest.mark.asyncio
    async def test_filter_by_item_type(self, store, ledger, clock, make_event):
        rule = _rule(
            conditions=[
                {"kind": "filter", "item_types": ["configurable"]},
                {"kind": "stock_level", "operator": "lte", "value": 10},
            ]
        )
        evaluator = _evaluator(store, ledger, clock, rule)

        assert await evaluator.evaluate(make_event(item_type="simple")) == []
        assert len(await evaluator.evaluate(make_event(item_type="configurable"))) == 1

    @pytest.mark.asyncio
    async def test_filter_by_category_and_brand(self, store, ledger, clock, make_event):
        rule = _rule(
            conditions=[
                {"kind": "filter", "categories": ["shoes", "boots"], "brands": ["Acme"]},
            ]
        )
        evaluator = _evaluator(store, ledger, clock, rule)

        assert await evaluator.evaluate(make_event(categories=["hats"], brand="Acme")) == []
        assert await evaluator.evaluate(make_event(categories=["boots"], brand=None)) == []
        assert len(await evaluator.evaluate(make_event(categories=["boots"], brand="Acme"))) == 1

    @pytest.mark.asyncio
    async def test_stock_level_operators(self, store, ledger, clock, make_event):
        gte = _rule(
            "overstock",
            conditions=[{"kind": "stock_level", "operator": "gte", "value": 100}],
            alert_type="overstock",
        )
        evaluator = _evaluator(store, ledger, clock, gte)

        assert await evaluator.evaluate(make_event(current_stock=99)) == []
        requests = await evaluator.evaluate(make_event(current_stock=100))
        assert requests[0].alert_type == AlertType.OVERSTOCK
        assert requests[0].threshold == 5

    @pytest.mark.asyncio
    async def test_misconfigured_rule_is_skipped(self, store, ledger, clock, make_event):
        broken = _rule("broken", conditions=[{"kind": "stock_level", "operator": "lte"}])
        working = _rule(
            "working",
            conditions=[{"kind": "stock_level", "operator": "lte", "value": 10}],
            alert_type="restock_needed",
        )
        evaluator = _evaluator(store, ledger, clock, broken, working)

        requests = await evaluator.evaluate(make_event(current_stock=3))

        assert [r.rule_id for r in requests] == ["working"]

    @pytest.mark.asyncio
    async def test_ledger_failure_fails_closed(self, store, clock, make_event):
        ledger = Mock()
        ledger.movements_since = AsyncMock(side_effect=LedgerError("ledger offline"))
        rule = _rule(
            conditions=[{"kind": "stock_velocity", "operator": "decrease"}],
            alert_type="high_demand",
        )
        evaluator = _evaluator(store, ledger, clock, rule)

        assert await evaluator.evaluate(make_event(current_stock=1)) == []

    @pytest.mark.asyncio
    async def test_velocity_sums_every_movement(self, store, ledger, clock, make_event):
        for minute in range(1, 8):
            await ledger.record_movement(
                "SKU-1", 20 - minute, -1, created_at=clock.now - timedelta(minutes=minute)
            )
        await ledger.record_movement("SKU-1", 13, 5, created_at=clock.now)
        rule = _rule(
            conditions=[{"kind": "stock_velocity", "operator": "increase"}],
            alert_type="overstock",
        )
        evaluator = _evaluator(store, ledger, clock, rule)

        # Seven units out, five in: a net decrease
        assert await evaluator.evaluate(make_event(current_stock=18)) == []

    @pytest.mark.asyncio
    async def test_disabled_and_non_creating_rules(self, store, ledger, clock, make_event):
        disabled = AlertRule.model_validate(
            {"id": "off", "enabled": False, "actions": {"alert_type": "low_stock"}}
        )
        silent = _rule("silent", create_alert=False, alert_type="overstock")
        evaluator = _evaluator(store, ledger, clock, disabled, silent)

        assert await evaluator.evaluate(make_event()) == []

    @pytest.mark.asyncio
    async def test_suppress_minutes(self, store, ledger, clock, make_event):
        rule = _rule(suppress_minutes=30)
        evaluator = _evaluator(store, ledger, clock, rule)

        request = (await evaluator.evaluate(make_event()))[0]
        assert request.suppress_similar is True
        assert request.suppress_until == clock.now + timedelta(minutes=30)

        alert = await store.create_alert(request)
        await store.resolve(alert.id, "alice")

        assert await evaluator.evaluate(make_event()) == []
        clock.advance(minutes=30)
        assert len(await evaluator.evaluate(make_event())) == 1

    @pytest.mark.asyncio
    async def test_auto_resolve_disabled(self, store, ledger, clock, make_event):
        rule = _rule(auto_resolve={"enabled": False, "threshold": 10})
        evaluator = _evaluator(store, ledger, clock, rule)

        request = (await evaluator.evaluate(make_event()))[0]

        assert request.auto_resolve is False
        assert request.auto_resolve_threshold is None

    @pytest.mark.asyncio
    async def test_replace_rules(self, evaluator, make_event):
        evaluator.replace_rules(RuleSet([]))

        assert len(evaluator.rules) == 0
        assert await evaluator.evaluate(make_event(current_stock=0)) == []

    def test_default_rules_are_loaded(self, evaluator):
        assert [rule.id for rule in evaluator.rules] == [
            "out-of-stock",
            "low-stock",
            "high-demand",
        ]
        assert default_rules().find_by_id("low-stock") is not None
