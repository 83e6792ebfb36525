"""Domain exceptions for the alert engine."""

from typing import Any, Dict, Optional


class StockGuardError(Exception):
    """Base exception for stockguard."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AlertNotFoundError(StockGuardError):
    """Raised when an alert id does not exist."""

    def __init__(self, alert_id: int):
        super().__init__(
            f"Alert with identifier '{alert_id}' not found",
            details={"alert_id": alert_id},
        )
        self.alert_id = alert_id


class InvalidTransitionError(StockGuardError):
    """Raised when a lifecycle transition is not allowed from the current status."""

    def __init__(self, alert_id: int, current_status: str, target_status: str):
        super().__init__(
            f"Alert {alert_id} cannot move from '{current_status}' to '{target_status}'",
            details={
                "alert_id": alert_id,
                "current_status": current_status,
                "target_status": target_status,
            },
        )
        self.current_status = current_status
        self.target_status = target_status


class DuplicateAlertError(StockGuardError):
    """Raised by the repository when an active alert already exists for a (sku, type)."""

    def __init__(self, sku: str, alert_type: str):
        super().__init__(
            f"Active {alert_type} alert already exists for {sku}",
            details={"sku": sku, "alert_type": alert_type},
        )


class RuleConfigurationError(StockGuardError):
    """Raised when a rule cannot be evaluated because of its configuration."""

    def __init__(self, rule_id: str, message: str):
        super().__init__(
            f"Rule '{rule_id}' is misconfigured: {message}",
            details={"rule_id": rule_id},
        )
        self.rule_id = rule_id


class LedgerError(StockGuardError):
    """Raised when the stock movement ledger cannot be queried."""


class TransportError(StockGuardError):
    """Raised by a notification transport when delivery fails."""

    def __init__(self, channel: str, message: str):
        super().__init__(
            f"{channel} delivery failed: {message}", details={"channel": channel}
        )
        self.channel = channel
