"""Alert rule schema: tagged conditions and actions."""

import math
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..services.alerts.models import AlertPriority, AlertType
from ..services.notification.models import NotificationSettings


class StockLevelCondition(BaseModel):
    """Compare current stock with a fixed value or the owner's low-stock threshold."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["stock_level"] = "stock_level"
    operator: Literal["lte", "gte", "eq"]
    value: Optional[float] = None
    use_threshold: bool = False

    def comparison_value(self, event_threshold: float) -> Optional[float]:
        """Value current stock is compared with, or None when the rule gives none."""
        if self.use_threshold:
            return event_threshold
        return self.value

    def matches(self, current_stock: float, comparison: float) -> bool:
        if self.operator == "lte":
            return current_stock <= comparison
        if self.operator == "gte":
            return current_stock >= comparison
        return current_stock == comparison


class StockVelocityCondition(BaseModel):
    """Require the summed ledger movement within a timeframe to move in one direction."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["stock_velocity"] = "stock_velocity"
    operator: Literal["increase", "decrease"]
    percentage: Optional[float] = Field(default=None, gt=0)
    timeframe_minutes: int = Field(default=60, gt=0)

    def matches(self, current_stock: float, total_change: float) -> bool:
        """
        Check an aggregate change against the direction and optional percentage.

        The percentage is relative to the stock before the window; a zero
        starting stock always passes.
        """
        if self.operator == "decrease" and total_change >= 0:
            return False
        if self.operator == "increase" and total_change <= 0:
            return False

        if self.percentage is None:
            return True

        stock_before = current_stock - total_change
        if stock_before == 0:
            return True
        return abs(total_change) / abs(stock_before) * 100 >= self.percentage


class ItemFilterCondition(BaseModel):
    """Restrict a rule to item types, categories or brands."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["filter"] = "filter"
    item_types: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    brands: List[str] = Field(default_factory=list)

    def matches(self, item_type: str, categories: List[str], brand: Optional[str]) -> bool:
        if self.item_types and (item_type or "simple") not in self.item_types:
            return False
        if self.categories and not set(self.categories) & set(categories or []):
            return False
        if self.brands and (not brand or brand not in self.brands):
            return False
        return True


Condition = Annotated[
    Union[StockLevelCondition, StockVelocityCondition, ItemFilterCondition],
    Field(discriminator="kind"),
]


class AutoResolveSettings(BaseModel):
    """When an alert raised by the rule resolves itself."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    threshold: Optional[float] = Field(default=None, ge=0)
    use_threshold: bool = False

    def resolve_threshold(self, event_threshold: float) -> Optional[float]:
        """
        Stock level at which an alert raised by the rule resolves itself.

        With ``use_threshold`` the alert resolves at the first whole unit
        strictly above the owner's low-stock threshold, so stock sitting
        exactly at the threshold keeps the alert active instead of resolving
        and re-raising it on every delivery.
        """
        if self.threshold is not None:
            return self.threshold
        if self.use_threshold:
            return float(math.floor(event_threshold) + 1)
        return None


class RuleActions(BaseModel):
    """What a matching rule does."""

    model_config = ConfigDict(frozen=True)

    create_alert: bool = True
    alert_type: AlertType
    priority: AlertPriority = AlertPriority.MEDIUM
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    auto_resolve: AutoResolveSettings = Field(default_factory=AutoResolveSettings)
    suppress_minutes: Optional[int] = Field(default=None, gt=0)


class AlertRule(BaseModel):
    """
    A declarative alert rule.

    Conditions are a list of tagged variants. The camelCase dictionary form
    (``stockLevel``, ``stockChange``, ``productTypes`` ...) is accepted too and
    converted on validation.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    enabled: bool = True
    conditions: List[Condition] = Field(default_factory=list)
    actions: RuleActions

    @model_validator(mode="before")
    @classmethod
    def _convert_legacy_format(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = dict(data)
        conditions = data.get("conditions")
        if isinstance(conditions, dict):
            data["conditions"] = _conditions_from_mapping(conditions)

        actions = data.get("actions")
        if isinstance(actions, dict):
            data["actions"] = _actions_from_mapping(actions)
        return data

    def condition(self, kind: str) -> Optional[BaseModel]:
        """First condition of a kind, if any."""
        for condition in self.conditions:
            if condition.kind == kind:
                return condition
        return None


def _conditions_from_mapping(conditions: Dict[str, Any]) -> List[Dict[str, Any]]:
    result: List[Dict[str, Any]] = []

    item_types = conditions.get("productTypes") or conditions.get("item_types")
    categories = conditions.get("categories")
    brands = conditions.get("brands")
    if item_types or categories or brands:
        result.append(
            {
                "kind": "filter",
                "item_types": item_types or [],
                "categories": categories or [],
                "brands": brands or [],
            }
        )

    level = conditions.get("stockLevel") or conditions.get("stock_level")
    if level:
        use_threshold = level.get("useThreshold", level.get("use_threshold", False))
        result.append(
            {
                "kind": "stock_level",
                "operator": level.get("operator"),
                "value": None if use_threshold else level.get("value"),
                "use_threshold": use_threshold,
            }
        )

    change = conditions.get("stockChange") or conditions.get("stock_velocity")
    if change:
        result.append(
            {
                "kind": "stock_velocity",
                "operator": change.get("operator"),
                "percentage": change.get("percentage"),
                "timeframe_minutes": change.get(
                    "timeframe", change.get("timeframe_minutes", 60)
                ),
            }
        )

    return result


_ACTION_KEYS = {
    "createAlert": "create_alert",
    "alertType": "alert_type",
    "autoResolve": "auto_resolve",
    "suppressMinutes": "suppress_minutes",
}


def _actions_from_mapping(actions: Dict[str, Any]) -> Dict[str, Any]:
    converted = {_ACTION_KEYS.get(key, key): value for key, value in actions.items()}

    notifications = converted.get("notifications")
    if isinstance(notifications, dict):
        converted["notifications"] = {
            channel: {
                "enabled": settings.get("enabled", False),
                "recipients": settings.get("recipients", []),
                "cooldown_minutes": settings.get(
                    "cooldownMinutes", settings.get("cooldown_minutes")
                ),
            }
            for channel, settings in notifications.items()
            if channel in ("email", "sms", "push") and isinstance(settings, dict)
        }

    auto_resolve = converted.get("auto_resolve")
    if isinstance(auto_resolve, dict) and "useThreshold" in auto_resolve:
        auto_resolve = dict(auto_resolve)
        auto_resolve["use_threshold"] = auto_resolve.pop("useThreshold")
        converted["auto_resolve"] = auto_resolve

    return converted


class RuleSet:
    """Ordered, read-only collection of alert rules."""

    def __init__(self, rules: List[AlertRule]):
        self._rules = tuple(rules)

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rules(self) -> List[AlertRule]:
        return list(self._rules)

    def enabled_rules(self) -> List[AlertRule]:
        return [rule for rule in self._rules if rule.enabled]

    def find_by_id(self, rule_id: str) -> Optional[AlertRule]:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    def find_for_alert_type(self, alert_type: AlertType) -> Optional[AlertRule]:
        """First enabled rule raising alerts of a type."""
        for rule in self.enabled_rules():
            if rule.actions.alert_type == AlertType(alert_type):
                return rule
        return None
