"""In-memory change source fed by publishers."""

import asyncio
from typing import AsyncIterator

from ..config.logging import get_logger
from ..events import StockChangeEvent

logger = get_logger(__name__)

_CLOSED = object()


class QueueChangeSource:
    """Change source backed by an asyncio queue."""

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.logger = logger.bind(source="queue")

    @property
    def closed(self) -> bool:
        return self._closed

    async def publish(self, event: StockChangeEvent) -> None:
        """Enqueue a change event."""
        if self._closed:
            raise RuntimeError("Change source is closed")
        await self._queue.put(event)
        self.logger.debug("Stock change published", sku=event.sku, stock=event.current_stock)

    async def subscribe(self) -> AsyncIterator[StockChangeEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                break
            yield item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)
        self.logger.info("Change source closed")
