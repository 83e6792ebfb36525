"""Change source that polls a catalog snapshot provider."""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from ..config.logging import get_logger
from ..events import StockChangeEvent

logger = get_logger(__name__)


@dataclass
class StockSnapshot:
    """Current stock facts of one catalog item or variant."""

    owner_type: str
    owner_id: str
    sku: str
    quantity: float
    in_stock: bool = True
    threshold: Optional[float] = None
    parent_item_id: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    brand: Optional[str] = None
    item_type: str = "simple"

    def to_event(self, changed_fields: List[str], default_threshold: float) -> StockChangeEvent:
        return StockChangeEvent(
            owner_type=self.owner_type,
            owner_id=self.owner_id,
            sku=self.sku,
            current_stock=self.quantity,
            threshold=self.threshold if self.threshold is not None else default_threshold,
            parent_item_id=self.parent_item_id,
            categories=list(self.categories),
            brand=self.brand,
            item_type=self.item_type or "simple",
            changed_fields=changed_fields,
        )


SnapshotProvider = Callable[[], Awaitable[List[StockSnapshot]]]


class PollingChangeSource:
    """
    Emits an event whenever a polled quantity or stock status differs from the
    previous poll. The first poll emits every snapshot.
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        interval_seconds: float = 30.0,
        default_threshold: float = 5,
    ):
        self.provider = provider
        self.interval_seconds = interval_seconds
        self.default_threshold = default_threshold
        self._last_seen: Dict[Tuple[str, str], Tuple[float, bool]] = {}
        self._stop = asyncio.Event()
        self.logger = logger.bind(source="polling")

    async def poll(self) -> List[StockChangeEvent]:
        """Take one snapshot and return events for what changed since the last one."""
        events: List[StockChangeEvent] = []

        for snapshot in await self.provider():
            key = (snapshot.owner_type, snapshot.owner_id)
            previous = self._last_seen.get(key)
            current = (snapshot.quantity, snapshot.in_stock)

            if previous is None:
                changed = ["quantity", "stock_status"]
            else:
                changed = []
                if previous[0] != current[0]:
                    changed.append("quantity")
                if previous[1] != current[1]:
                    changed.append("stock_status")

            self._last_seen[key] = current
            if changed:
                events.append(snapshot.to_event(changed, self.default_threshold))

        return events

    async def subscribe(self) -> AsyncIterator[StockChangeEvent]:
        while not self._stop.is_set():
            try:
                events = await self.poll()
            except Exception as e:
                self.logger.error("Snapshot poll failed", error=str(e), exc_info=True)
                events = []

            for event in events:
                yield event

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def close(self) -> None:
        self._stop.set()
        self.logger.info("Change source closed")
