"""Configuration management for the stockguard alert engine."""

from .logging import get_logger, log_audit_event, setup_logging, stock_change_context
from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "get_logger",
    "log_audit_event",
    "stock_change_context",
]
