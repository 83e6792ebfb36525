"""StockGuard: rule-driven inventory alert engine."""

__version__ = "1.0.0"
