"""Repository classes for database operations using SQLAlchemy ORM."""

from .base import BaseRepository
from .stock_alert import StockAlertRepository
from .stock_movement import StockMovementRepository

__all__ = [
    "BaseRepository",
    "StockAlertRepository",
    "StockMovementRepository",
]
