"""Repository for stock movement ledger operations."""

from datetime import datetime
from typing import List, Optional

from ..models import StockMovementRecord
from .base import BaseRepository


class StockMovementRepository(BaseRepository):
    """Repository for stock movement ledger operations."""

    def add_movement(
        self,
        sku: str,
        quantity_before: float,
        quantity_change: float,
        movement_type: str = "adjustment",
        item_id: Optional[str] = None,
        variant_id: Optional[str] = None,
        source: str = "system",
        created_at: Optional[datetime] = None,
    ) -> StockMovementRecord:
        """Append a movement to the ledger."""
        movement = StockMovementRecord(
            sku=sku.upper(),
            item_id=item_id,
            variant_id=variant_id,
            movement_type=movement_type,
            quantity_before=quantity_before,
            quantity_change=quantity_change,
            quantity_after=quantity_before + quantity_change,
            source=source,
        )
        if created_at is not None:
            movement.created_at = created_at

        self.session.add(movement)
        self.session.commit()
        self.session.refresh(movement)

        return movement

    def get_movements_since(
        self, sku: str, since: datetime, limit: Optional[int] = None
    ) -> List[StockMovementRecord]:
        """Get movements for a SKU created at or after a point in time, newest first."""
        query = (
            self.session.query(StockMovementRecord)
            .filter(
                StockMovementRecord.sku == sku.upper(),
                StockMovementRecord.created_at >= since,
            )
            .order_by(StockMovementRecord.created_at.desc())
        )
        if limit:
            query = query.limit(limit)
        return query.all()
