"""Database module for SQLAlchemy ORM integration."""

from .database import (
    Base,
    check_database_health,
    create_engine_from_url,
    create_session_factory,
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    get_session_sync,
)
from .models import AlertNotification, StockAlertRecord, StockMovementRecord
from .repositories import (
    BaseRepository,
    StockAlertRepository,
    StockMovementRepository,
)

__all__ = [
    # Database components
    "Base",
    "check_database_health",
    "create_engine_from_url",
    "create_session_factory",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session_factory",
    "get_session_sync",
    # Models
    "AlertNotification",
    "StockAlertRecord",
    "StockMovementRecord",
    # Repositories
    "BaseRepository",
    "StockAlertRepository",
    "StockMovementRepository",
]
