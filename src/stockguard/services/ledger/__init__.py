"""Historical stock movement ledger."""

from .base import StockLedger, StockMovement
from .sql import SqlStockLedger

__all__ = ["SqlStockLedger", "StockLedger", "StockMovement"]
