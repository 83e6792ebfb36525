"""Auto-resolution of alerts whose trigger condition no longer holds."""

from typing import Optional

from ...config.logging import get_logger
from ...events import AlertResolvedEvent, EventBus
from ...exceptions import AlertNotFoundError, InvalidTransitionError
from .models import format_quantity
from .store import AlertStore

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"


class AutoResolutionSweeper:
    """Resolves active alerts once stock recovers past their auto-resolve threshold."""

    def __init__(self, store: AlertStore, event_bus: Optional[EventBus] = None):
        self.store = store
        self.event_bus = event_bus
        self.logger = logger.bind(component="auto_resolution_sweeper")

    async def reconcile(self, sku: str, current_stock: float) -> int:
        """
        Resolve every active alert for a SKU that should auto-resolve at this stock.

        Args:
            sku: SKU whose stock changed
            current_stock: Stock level now in effect

        Returns:
            Number of alerts resolved
        """
        candidates = await self.store.find_auto_resolvable(sku, current_stock)
        resolved = 0

        for alert in candidates:
            if not alert.should_auto_resolve(current_stock):
                continue

            notes = (
                f"Auto-resolved: stock level ({format_quantity(current_stock)}) "
                f"reached threshold ({format_quantity(alert.auto_resolve_threshold)})"
            )
            try:
                await self.store.resolve(alert.id, SYSTEM_ACTOR, notes)
            except (InvalidTransitionError, AlertNotFoundError) as e:
                # Someone else closed it first
                self.logger.debug(
                    "Alert no longer resolvable", alert_id=alert.id, reason=e.message
                )
                continue

            resolved += 1
            if self.event_bus is not None:
                await self.event_bus.publish(
                    AlertResolvedEvent(
                        alert_id=alert.id,
                        sku=alert.sku,
                        alert_type=alert.alert_type.value,
                        resolved_by=SYSTEM_ACTOR,
                        current_stock=current_stock,
                        automatic=True,
                    )
                )

        if resolved:
            self.logger.info(
                "Alerts auto-resolved",
                sku=sku.upper(),
                current_stock=current_stock,
                resolved=resolved,
            )
        return resolved
