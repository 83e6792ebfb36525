"""Stock movement ledger backed by the stock_movements table."""

import asyncio
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ...config.logging import get_logger
from ...exceptions import LedgerError
from ...ormdb.database import get_session_factory
from ...ormdb.repositories import StockMovementRepository
from .base import StockMovement

logger = get_logger(__name__)


class SqlStockLedger:
    """Ledger reading and appending movements through SQLAlchemy."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or get_session_factory()
        self.logger = logger.bind(component="stock_ledger")

    def _repository(self) -> StockMovementRepository:
        return StockMovementRepository(self._session_factory(), close_on_exit=True)

    async def movements_since(self, sku: str, since: datetime) -> List[StockMovement]:
        return await asyncio.to_thread(self._movements_since, sku, since)

    def _movements_since(self, sku: str, since: datetime) -> List[StockMovement]:
        try:
            with self._repository() as repo:
                return [
                    StockMovement(
                        sku=record.sku,
                        quantity_change=record.quantity_change,
                        quantity_before=record.quantity_before,
                        quantity_after=record.quantity_after,
                        movement_type=record.movement_type,
                        created_at=record.created_at,
                    )
                    for record in repo.get_movements_since(sku, since)
                ]
        except SQLAlchemyError as e:
            self.logger.error("Ledger query failed", sku=sku, error=str(e))
            raise LedgerError(f"Could not read movements for {sku}: {e}") from e

    async def record_movement(
        self,
        sku: str,
        quantity_before: float,
        quantity_change: float,
        movement_type: str = "adjustment",
        created_at: Optional[datetime] = None,
    ) -> StockMovement:
        """Append a movement to the ledger."""
        return await asyncio.to_thread(
            self._record_movement,
            sku,
            quantity_before,
            quantity_change,
            movement_type,
            created_at,
        )

    def _record_movement(
        self,
        sku: str,
        quantity_before: float,
        quantity_change: float,
        movement_type: str,
        created_at: Optional[datetime],
    ) -> StockMovement:
        with self._repository() as repo:
            record = repo.add_movement(
                sku,
                quantity_before,
                quantity_change,
                movement_type=movement_type,
                created_at=created_at,
            )
            return StockMovement(
                sku=record.sku,
                quantity_change=record.quantity_change,
                quantity_before=record.quantity_before,
                quantity_after=record.quantity_after,
                movement_type=record.movement_type,
                created_at=record.created_at,
            )
