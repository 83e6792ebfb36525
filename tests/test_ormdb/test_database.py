"""Tests for database setup and the alert repository."""

import sys
from datetime import datetime

import pytest
from sqlalchemy import inspect

sys.path.append("src")
from stockguard.exceptions import DuplicateAlertError
from stockguard.ormdb import (
    StockAlertRepository,
    check_database_health,
    create_engine_from_url,
    create_session_factory,
    create_tables,
    drop_tables,
)

NOW = datetime(2024, 6, 1, 12, 0, 0)


def _fields(**overrides):
    values = {
        "sku": "SKU-1",
        "alert_type": "low_stock",
        "priority": "high",
        "threshold": 5,
        "current_stock": 2,
        "message": "Product SKU-1 is low stock (2 remaining). Threshold: 5",
        "recommended_action": "Consider restocking soon to avoid stockout",
        "severity": 7,
        "status": "active",
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return values


class TestDatabaseSetup:
    """Test table management and health checks."""

    def test_create_and_drop_tables(self, tmp_path):
        engine = create_engine_from_url(f"sqlite:///{tmp_path / 'setup.db'}")

        create_tables(engine)
        tables = set(inspect(engine).get_table_names())
        assert {"stock_alerts", "alert_notifications", "stock_movements"} <= tables

        drop_tables(engine)
        assert inspect(engine).get_table_names() == []
        engine.dispose()

    def test_health_check(self, session_factory):
        health = check_database_health(session_factory)

        assert health == {"status": "healthy", "connectivity": True}

    def test_in_memory_database(self):
        engine = create_engine_from_url("sqlite:///:memory:")
        create_tables(engine)

        with StockAlertRepository(create_session_factory(engine)()) as repo:
            assert repo.add_alert(**_fields()).id == 1
            assert len(repo.find_active()) == 1


class TestStockAlertRepository:
    """Test repository operations that the store relies on."""

    def test_active_uniqueness_is_enforced(self, session_factory):
        with StockAlertRepository(session_factory(), close_on_exit=True) as repo:
            repo.add_alert(**_fields())

            with pytest.raises(DuplicateAlertError):
                repo.add_alert(**_fields(current_stock=1))

            # Closed alerts do not take part in the constraint
            repo.add_alert(**_fields(status="resolved", resolved_at=NOW))
            assert len(repo.find_by_sku("sku-1")) == 2

    def test_conditional_transition(self, session_factory):
        with StockAlertRepository(session_factory(), close_on_exit=True) as repo:
            alert = repo.add_alert(**_fields())

            assert repo.transition(alert.id, ["active"], {"status": "acknowledged"}) == 1
            assert repo.transition(alert.id, ["active"], {"status": "acknowledged"}) == 0
            assert repo.get_by_id(alert.id).status == "acknowledged"

    def test_count_by(self, session_factory):
        with StockAlertRepository(session_factory(), close_on_exit=True) as repo:
            repo.add_alert(**_fields())
            repo.add_alert(**_fields(sku="SKU-2", priority="low"))

            assert repo.count_by("priority") == {"high": 1, "low": 1}
