"""Tests for loading alert rules from YAML."""

import sys
from unittest.mock import patch

import pytest
import yaml

sys.path.append("src")
from stockguard.rules import default_rules, load_configured_rules, load_rules, parse_rules


@pytest.fixture
def rules_yaml(tmp_path):
    """Write a rules file and return its path."""

    def _write(content):
        path = tmp_path / "rules.yaml"
        with open(path, "w") as f:
            yaml.dump(content, f)
        return path

    return _write


class TestParseRules:
    """Test rule set construction."""

    def test_invalid_rules_are_skipped(self):
        rules = parse_rules(
            [
                {"id": "ok", "actions": {"alert_type": "low_stock"}},
                {"id": "no-actions"},
                {"id": "bad-type", "actions": {"alert_type": "nonsense"}},
                "not a mapping",
            ]
        )

        assert [rule.id for rule in rules] == ["ok"]

    def test_duplicate_ids_keep_first(self):
        rules = parse_rules(
            [
                {"id": "dup", "actions": {"alert_type": "low_stock"}},
                {"id": "dup", "actions": {"alert_type": "overstock"}},
            ]
        )

        assert len(rules) == 1
        assert rules.find_by_id("dup").actions.alert_type.value == "low_stock"

    def test_empty_definitions(self):
        assert len(parse_rules([])) == 0
        assert len(parse_rules(None)) == 0


class TestLoadRules:
    """Test YAML loading."""

    def test_load_list_form(self, rules_yaml):
        path = rules_yaml([{"id": "r1", "actions": {"alert_type": "overstock"}}])

        assert [rule.id for rule in load_rules(path)] == ["r1"]

    def test_load_mapping_form(self, rules_yaml):
        path = rules_yaml({"rules": [{"id": "r2", "actions": {"alert_type": "low_stock"}}]})

        assert [rule.id for rule in load_rules(str(path))] == ["r2"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Alert rules file not found"):
            load_rules(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("rules: [unclosed")

        with pytest.raises(yaml.YAMLError, match="Error parsing alert rules YAML file"):
            load_rules(path)

    def test_scalar_content_rejected(self, tmp_path):
        path = tmp_path / "scalar.yaml"
        path.write_text("just a string")

        with pytest.raises(ValueError):
            load_rules(path)


class TestDefaultRules:
    """Test the built-in rule set."""

    def test_default_rules(self):
        rules = default_rules()

        assert [rule.id for rule in rules] == ["out-of-stock", "low-stock", "high-demand"]
        out_of_stock = rules.find_by_id("out-of-stock")
        assert out_of_stock.actions.priority.value == "critical"
        assert out_of_stock.actions.notifications.email.cooldown_minutes == 60
        assert out_of_stock.actions.notifications.push.cooldown_minutes == 30
        assert out_of_stock.actions.auto_resolve.threshold == 1
        assert rules.find_by_id("low-stock").actions.auto_resolve.use_threshold is True
        assert rules.find_by_id("high-demand").actions.notifications.email.cooldown_minutes == 480

    def test_configured_rules_file(self, rules_yaml):
        path = rules_yaml([{"id": "only", "actions": {"alert_type": "overstock"}}])

        assert [rule.id for rule in load_configured_rules(str(path))] == ["only"]

    def test_configured_rules_fall_back_to_defaults(self):
        with patch("stockguard.rules.loader.default_rules") as mock_defaults:
            load_configured_rules(None)

        mock_defaults.assert_called_once()
