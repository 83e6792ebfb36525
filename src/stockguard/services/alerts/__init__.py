"""Alert records, lifecycle and auto-resolution."""

from .models import (
    Alert,
    AlertCreationRequest,
    AlertPriority,
    AlertStatus,
    AlertType,
    EstimatedImpact,
    NotificationChannel,
    calculate_severity,
)
from .store import AlertStore
from .sweeper import AutoResolutionSweeper

__all__ = [
    "Alert",
    "AlertCreationRequest",
    "AlertPriority",
    "AlertStatus",
    "AlertStore",
    "AlertType",
    "AutoResolutionSweeper",
    "EstimatedImpact",
    "NotificationChannel",
    "calculate_severity",
]
