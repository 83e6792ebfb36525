"""Services for the inventory alert engine."""

from .alerts import AlertStore, AutoResolutionSweeper
from .ledger import SqlStockLedger, StockLedger, StockMovement
from .notification import NotificationDispatcher, NotificationSettings

__all__ = [
    "AlertStore",
    "AutoResolutionSweeper",
    "NotificationDispatcher",
    "NotificationSettings",
    "SqlStockLedger",
    "StockLedger",
    "StockMovement",
]
