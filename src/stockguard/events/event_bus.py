"""Event bus for managing and dispatching domain events."""

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable, Dict, List, Set, Type, Union

from ..config.logging import get_logger
from ..utils.clock import utcnow
from .events import DomainEvent

logger = get_logger(__name__)


class EventBus:
    """Event bus for publishing and subscribing to domain events."""

    def __init__(self, name: str = "default"):
        self.name = name
        self.logger = logger.bind(event_bus=name)

        # Event handlers registry: event_type -> list of handlers
        self._handlers: Dict[Type[DomainEvent], List[Callable]] = defaultdict(list)

        # Fire-and-forget handler tasks still running
        self._pending: Set[asyncio.Task] = set()

        # Event history for debugging and monitoring
        self._event_history: List[Dict[str, Any]] = []
        self._max_history_size = 1000

        self._stats = {
            "events_published": 0,
            "events_processed": 0,
            "handlers_executed": 0,
            "errors_count": 0,
            "last_event_time": None,
        }

        self.logger.info("Event bus initialized", name=name)

    def subscribe(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], Union[None, asyncio.Task]],
    ) -> None:
        """
        Subscribe a handler to an event type.

        Args:
            event_type: Type of event to subscribe to
            handler: Handler function (sync or async)
        """
        self._handlers[event_type].append(handler)

        self.logger.info(
            "Event handler subscribed",
            event_type=event_type.__name__,
            handler=getattr(handler, "__name__", repr(handler)),
            total_handlers=len(self._handlers[event_type]),
        )

    def unsubscribe(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], Union[None, asyncio.Task]],
    ) -> bool:
        """
        Unsubscribe a handler from an event type.

        Returns:
            True if handler was found and removed
        """
        if event_type in self._handlers and handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)
            self.logger.info(
                "Event handler unsubscribed",
                event_type=event_type.__name__,
                remaining_handlers=len(self._handlers[event_type]),
            )
            return True

        return False

    async def publish(
        self, event: DomainEvent, wait_for_handlers: bool = False
    ) -> Dict[str, Any]:
        """
        Publish an event to all subscribed handlers.

        Args:
            event: Domain event to publish
            wait_for_handlers: Whether to wait for all handlers to complete

        Returns:
            Dictionary with publication results
        """
        start_time = utcnow()
        event_type = type(event)

        self.logger.debug(
            "Publishing event",
            event_type=event_type.__name__,
            event_id=event.event_id,
            wait_for_handlers=wait_for_handlers,
        )

        self._stats["events_published"] += 1
        self._stats["last_event_time"] = start_time
        self._add_to_history(event, "published")

        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            return {
                "event_id": event.event_id,
                "handlers_executed": 0,
                "successful_handlers": 0,
                "failed_handlers": 0,
                "execution_time_ms": 0,
            }

        results = await self._execute_handlers(event, handlers, wait_for_handlers)
        results["execution_time_ms"] = (utcnow() - start_time).total_seconds() * 1000
        return results

    async def _execute_handlers(
        self, event: DomainEvent, handlers: List[Callable], wait_for_completion: bool
    ) -> Dict[str, Any]:
        """Execute all handlers for an event."""
        tasks = []
        successful_handlers = 0
        failed_handlers = 0

        for handler in handlers:
            if inspect.iscoroutinefunction(handler):
                task = asyncio.create_task(handler(event))
            else:
                # Wrap sync handler in async task
                task = asyncio.create_task(asyncio.to_thread(handler, event))
            tasks.append(task)

        if wait_for_completion:
            results = await asyncio.gather(*tasks, return_exceptions=True)

            for handler, result in zip(handlers, results):
                if isinstance(result, Exception):
                    failed_handlers += 1
                    self._stats["errors_count"] += 1
                    self.logger.error(
                        "Handler execution failed",
                        event_type=type(event).__name__,
                        handler=getattr(handler, "__name__", repr(handler)),
                        error=str(result),
                    )
                else:
                    successful_handlers += 1
        else:
            # Fire and forget, keep a reference so drain() can await them
            for task in tasks:
                self._pending.add(task)
                task.add_done_callback(self._on_task_done)
            successful_handlers = len(tasks)

        self._stats["handlers_executed"] += len(handlers)
        self._stats["events_processed"] += 1

        return {
            "event_id": event.event_id,
            "handlers_executed": len(handlers),
            "successful_handlers": successful_handlers,
            "failed_handlers": failed_handlers,
        }

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._stats["errors_count"] += 1
            self.logger.error("Background handler failed", error=str(error))

    async def drain(self) -> None:
        """Wait for fire-and-forget handlers still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _add_to_history(self, event: DomainEvent, action: str):
        """Add event to history for debugging."""
        self._event_history.append(
            {
                "action": action,
                "event_type": type(event).__name__,
                "event_id": event.event_id,
                "timestamp": event.timestamp.isoformat(),
                "recorded_at": utcnow().isoformat(),
            }
        )

        if len(self._event_history) > self._max_history_size:
            self._event_history = self._event_history[-self._max_history_size :]

    def get_statistics(self) -> Dict[str, Any]:
        """Get event bus statistics."""
        return {
            **self._stats,
            "registered_event_types": len(self._handlers),
            "total_handlers": sum(len(handlers) for handlers in self._handlers.values()),
            "pending_handlers": len(self._pending),
            "history_size": len(self._event_history),
        }

    def get_event_history(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Get recent event history."""
        return self._event_history[-limit:] if self._event_history else []
