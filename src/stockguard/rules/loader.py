"""Loading alert rules from YAML."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from ..config.logging import get_logger
from .models import AlertRule, RuleSet

logger = get_logger(__name__)

DEFAULT_RULES_FILE = Path(__file__).parent / "default_rules.yaml"


def parse_rules(definitions: List[Dict[str, Any]]) -> RuleSet:
    """
    Build a rule set from rule definitions.

    Invalid definitions and duplicate ids are skipped with a configuration
    warning; the remaining rules keep their order.
    """
    rules: List[AlertRule] = []
    seen_ids = set()

    for index, definition in enumerate(definitions or []):
        try:
            rule = AlertRule.model_validate(definition)
        except ValidationError as e:
            rule_id = definition.get("id") if isinstance(definition, dict) else None
            logger.warning(
                "Skipping invalid alert rule",
                index=index,
                rule_id=rule_id,
                errors=e.errors(include_url=False),
            )
            continue

        if rule.id in seen_ids:
            logger.warning("Skipping duplicate alert rule", rule_id=rule.id)
            continue

        seen_ids.add(rule.id)
        rules.append(rule)

    return RuleSet(rules)


def load_rules(path: Union[str, Path]) -> RuleSet:
    """
    Load a rule set from a YAML file.

    The file holds either a list of rules or a mapping with a ``rules`` list.

    Raises:
        FileNotFoundError: If the rules file doesn't exist
        yaml.YAMLError: If the YAML file is malformed
    """
    rules_file = Path(path)

    try:
        with open(rules_file, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Alert rules file not found: {rules_file}")
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Error parsing alert rules YAML file: {e}")

    if isinstance(content, dict):
        content = content.get("rules", [])
    if not isinstance(content, list):
        raise ValueError(f"Alert rules file must contain a list of rules: {rules_file}")

    rule_set = parse_rules(content)
    logger.info("Alert rules loaded", path=str(rules_file), rules=len(rule_set))
    return rule_set


def default_rules() -> RuleSet:
    """Built-in out-of-stock, low-stock and high-demand rules."""
    return load_rules(DEFAULT_RULES_FILE)


def load_configured_rules(rules_file: Optional[str] = None) -> RuleSet:
    """Rules from the configured file, or the built-in ones when none is set."""
    if rules_file:
        return load_rules(rules_file)
    return default_rules()
