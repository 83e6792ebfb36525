"""Stock change sources."""

from .base import ChangeSource
from .polling import PollingChangeSource, SnapshotProvider, StockSnapshot
from .queue import QueueChangeSource

__all__ = [
    "ChangeSource",
    "PollingChangeSource",
    "QueueChangeSource",
    "SnapshotProvider",
    "StockSnapshot",
]
