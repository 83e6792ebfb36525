"""Declarative alert rules and their evaluation."""

from .evaluator import RuleEvaluator
from .loader import default_rules, load_configured_rules, load_rules, parse_rules
from .models import (
    AlertRule,
    AutoResolveSettings,
    ItemFilterCondition,
    RuleActions,
    RuleSet,
    StockLevelCondition,
    StockVelocityCondition,
)

__all__ = [
    "AlertRule",
    "AutoResolveSettings",
    "ItemFilterCondition",
    "RuleActions",
    "RuleEvaluator",
    "RuleSet",
    "StockLevelCondition",
    "StockVelocityCondition",
    "default_rules",
    "load_configured_rules",
    "load_rules",
    "parse_rules",
]
