"""Rule evaluation against stock change events."""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from ..config.logging import get_logger
from ..events import StockChangeEvent
from ..exceptions import RuleConfigurationError
from ..services.alerts.models import AlertCreationRequest
from ..services.alerts.store import AlertStore
from ..services.ledger import StockLedger
from ..utils.clock import utcnow
from .models import (
    AlertRule,
    ItemFilterCondition,
    RuleSet,
    StockLevelCondition,
    StockVelocityCondition,
)

logger = get_logger(__name__)


class RuleEvaluator:
    """Decides which rules raise an alert for a stock change."""

    def __init__(
        self,
        rules: RuleSet,
        store: AlertStore,
        ledger: StockLedger,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._rules = rules
        self.store = store
        self.ledger = ledger
        self._clock = clock
        self.logger = logger.bind(component="rule_evaluator")

    @property
    def rules(self) -> RuleSet:
        return self._rules

    def replace_rules(self, rules: RuleSet) -> None:
        """Swap in a new rule set; evaluations in flight keep the old one."""
        self._rules = rules
        self.logger.info("Rule set replaced", rules=len(rules))

    async def evaluate(self, event: StockChangeEvent) -> List[AlertCreationRequest]:
        """
        Evaluate every enabled rule against a stock change.

        Rules fire independently. A misconfigured rule is skipped with a
        warning and does not affect the others.

        Returns:
            Creation requests for the rules that matched, in rule order
        """
        requests: List[AlertCreationRequest] = []

        for rule in self._rules.enabled_rules():
            try:
                request = await self._evaluate_rule(rule, event)
            except RuleConfigurationError as e:
                self.logger.warning(
                    "Skipping misconfigured rule", rule_id=rule.id, error=e.message
                )
                continue

            if request is not None:
                requests.append(request)

        return requests

    async def _evaluate_rule(
        self, rule: AlertRule, event: StockChangeEvent
    ) -> Optional[AlertCreationRequest]:
        if not rule.actions.create_alert:
            return None

        log = self.logger.bind(rule_id=rule.id, sku=event.sku)

        for condition in rule.conditions:
            if isinstance(condition, ItemFilterCondition) and not condition.matches(
                event.item_type, event.categories, event.brand
            ):
                return None

        for condition in rule.conditions:
            if not isinstance(condition, StockLevelCondition):
                continue
            comparison = condition.comparison_value(event.threshold)
            if comparison is None:
                raise RuleConfigurationError(
                    rule.id, "stock_level condition needs a value or use_threshold"
                )
            if not condition.matches(event.current_stock, comparison):
                return None

        for condition in rule.conditions:
            if isinstance(condition, StockVelocityCondition) and not await self._velocity_matches(
                condition, event, log
            ):
                return None

        alert_type = rule.actions.alert_type
        if await self.store.record_trigger(event.sku, alert_type, event.current_stock):
            log.debug("Active alert already exists, trigger recorded", alert_type=alert_type.value)
            return None
        if await self.store.is_suppressed(event.sku, alert_type):
            log.debug("Similar alerts suppressed", alert_type=alert_type.value)
            return None

        return self._build_request(rule, event)

    async def _velocity_matches(
        self, condition: StockVelocityCondition, event: StockChangeEvent, log
    ) -> bool:
        since = self._clock() - timedelta(minutes=condition.timeframe_minutes)
        try:
            movements = await self.ledger.movements_since(event.sku, since)
        except Exception as e:
            log.warning("Ledger query failed, rule does not match", error=str(e))
            return False

        if not movements:
            return False

        total_change = sum(movement.quantity_change for movement in movements)
        return condition.matches(event.current_stock, total_change)

    def _build_request(self, rule: AlertRule, event: StockChangeEvent) -> AlertCreationRequest:
        # The alert carries the owner's low-stock threshold; rule values only gate matching
        actions = rule.actions
        auto_resolve = actions.auto_resolve

        suppress_until = None
        if actions.suppress_minutes:
            suppress_until = self._clock() + timedelta(minutes=actions.suppress_minutes)

        return AlertCreationRequest(
            sku=event.sku,
            alert_type=actions.alert_type,
            priority=actions.priority,
            threshold=event.threshold,
            current_stock=event.current_stock,
            item_id=event.item_id,
            variant_id=event.variant_id,
            auto_resolve=auto_resolve.enabled,
            auto_resolve_threshold=(
                auto_resolve.resolve_threshold(event.threshold) if auto_resolve.enabled else None
            ),
            suppress_similar=suppress_until is not None,
            suppress_until=suppress_until,
            rule_id=rule.id,
            notifications=actions.notifications,
        )
