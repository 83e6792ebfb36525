"""Stock change source contract."""

from typing import AsyncIterator, Protocol

from ..events import StockChangeEvent


class ChangeSource(Protocol):
    """
    Delivers stock change events.

    Delivery is at-least-once and unordered across SKUs.
    """

    def subscribe(self) -> AsyncIterator[StockChangeEvent]:
        """Async iterator over change events, ending once the source is closed."""
        ...

    async def close(self) -> None:
        """Stop delivering events."""
        ...
