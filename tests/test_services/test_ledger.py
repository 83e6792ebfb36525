"""Tests for the SQL stock movement ledger."""

import sys
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

sys.path.append("src")
from stockguard.exceptions import LedgerError
from stockguard.ormdb.repositories import StockMovementRepository


class TestSqlStockLedger:
    """Test ledger reads and writes."""

    @pytest.mark.asyncio
    async def test_record_movement(self, ledger, clock):
        movement = await ledger.record_movement("sku-1", 10, -4, "sale", created_at=clock.now)

        assert movement.sku == "SKU-1"
        assert movement.quantity_after == 6
        assert movement.movement_type == "sale"
        assert movement.created_at == clock.now

    @pytest.mark.asyncio
    async def test_movements_since_filters_by_sku_and_time(self, ledger, clock):
        start = clock.now
        await ledger.record_movement("SKU-1", 10, -2, created_at=start - timedelta(hours=2))
        await ledger.record_movement("SKU-1", 8, -3, created_at=start - timedelta(minutes=30))
        await ledger.record_movement("SKU-1", 5, -1, created_at=start)
        await ledger.record_movement("SKU-2", 5, -5, created_at=start)

        movements = await ledger.movements_since("sku-1", start - timedelta(hours=1))

        assert [m.quantity_change for m in movements] == [-1, -3]

    @pytest.mark.asyncio
    async def test_every_movement_in_window_is_returned(self, ledger, clock):
        for minute in range(8):
            await ledger.record_movement(
                "SKU-1", 100 - minute, -1, created_at=clock.now - timedelta(minutes=minute)
            )

        movements = await ledger.movements_since("SKU-1", clock.now - timedelta(minutes=30))

        assert len(movements) == 8

    @pytest.mark.asyncio
    async def test_database_errors_become_ledger_errors(self, ledger, clock):
        with patch.object(
            StockMovementRepository,
            "get_movements_since",
            side_effect=OperationalError("SELECT", {}, Exception("disk I/O error")),
        ):
            with pytest.raises(LedgerError):
                await ledger.movements_since("SKU-1", clock.now)
