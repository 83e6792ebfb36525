"""Stock movement ledger contract."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Protocol


@dataclass
class StockMovement:
    """One signed stock quantity change."""

    sku: str
    quantity_change: float
    quantity_before: float
    quantity_after: float
    movement_type: str
    created_at: datetime


class StockLedger(Protocol):
    """Read access to historical stock movements."""

    async def movements_since(self, sku: str, since: datetime) -> List[StockMovement]:
        """Movements for a SKU at or after ``since``, raising LedgerError on failure."""
        ...
