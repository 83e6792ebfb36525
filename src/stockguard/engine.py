"""Alert engine: consumes stock changes and drives the alert pipeline."""

import asyncio
import traceback
import weakref
from typing import List, Optional, Set

from .config.logging import get_logger, stock_change_context
from .config.settings import get_settings
from .events import AlertCreatedEvent, ErrorEvent, EventBus, StockChangeEvent
from .rules import RuleEvaluator, RuleSet
from .services.alerts.models import Alert
from .services.alerts.store import AlertStore
from .services.alerts.sweeper import AutoResolutionSweeper
from .services.notification import NotificationDispatcher
from .sources import ChangeSource, SnapshotProvider

logger = get_logger(__name__)


class AlertEngine:
    """
    Runs the alert pipeline for a change source.

    Events for different SKUs are processed in parallel, bounded by the
    worker concurrency; events for the same SKU are processed one at a time.
    For each event the sweeper runs first, then the rules are evaluated and
    new alerts are created and dispatched.
    """

    def __init__(
        self,
        source: ChangeSource,
        store: AlertStore,
        evaluator: RuleEvaluator,
        dispatcher: NotificationDispatcher,
        sweeper: Optional[AutoResolutionSweeper] = None,
        event_bus: Optional[EventBus] = None,
        concurrency: Optional[int] = None,
        snapshot_provider: Optional[SnapshotProvider] = None,
    ):
        settings = get_settings()

        self.source = source
        self.store = store
        self.evaluator = evaluator
        self.dispatcher = dispatcher
        self.event_bus = event_bus or EventBus("alert_engine")
        self.sweeper = sweeper or AutoResolutionSweeper(store, self.event_bus)
        self.snapshot_provider = snapshot_provider
        self.concurrency = concurrency or settings.worker_concurrency

        self._semaphore = asyncio.Semaphore(self.concurrency)
        self._sku_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )
        self._tasks: Set[asyncio.Task] = set()
        self._consumer: Optional[asyncio.Task] = None
        self.logger = logger.bind(component="alert_engine")

    @property
    def rules(self) -> RuleSet:
        return self.evaluator.rules

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def reload_rules(self, rules: RuleSet) -> None:
        """Replace the rule set atomically."""
        self.evaluator.replace_rules(rules)

    def _sku_lock(self, sku: str) -> asyncio.Lock:
        lock = self._sku_locks.get(sku)
        if lock is None:
            lock = asyncio.Lock()
            self._sku_locks[sku] = lock
        return lock

    # Event processing

    async def process_event(self, event: StockChangeEvent) -> List[Alert]:
        """
        Run one stock change through the pipeline.

        Returns:
            Alerts created for this event
        """
        async with self._sku_lock(event.sku):
            log = self.logger.bind(sku=event.sku, current_stock=event.current_stock)

            await self.sweeper.reconcile(event.sku, event.current_stock)

            created: List[Alert] = []
            for request in await self.evaluator.evaluate(event):
                alert = await self.store.create_alert(request)
                if alert is None:
                    continue

                created.append(alert)
                await self.event_bus.publish(
                    AlertCreatedEvent(
                        alert_id=alert.id,
                        sku=alert.sku,
                        alert_type=alert.alert_type.value,
                        priority=alert.priority.value,
                        severity=alert.severity,
                        rule_id=alert.rule_id,
                        current_stock=alert.current_stock,
                        threshold=alert.threshold,
                    )
                )

                try:
                    await self.dispatcher.dispatch(alert, request.notifications)
                except Exception as e:
                    log.error(
                        "Notification dispatch failed",
                        alert_id=alert.id,
                        error=str(e),
                        exc_info=True,
                    )

            if created:
                log.info("Stock change raised alerts", alerts=[a.id for a in created])
            return created

    async def _handle_event(self, event: StockChangeEvent) -> None:
        try:
            with stock_change_context(event.sku, event.event_id):
                await self.process_event(event)
        except Exception as e:
            self.logger.error(
                "Failed to process stock change",
                sku=event.sku,
                error=str(e),
                exc_info=True,
            )
            await self.event_bus.publish(
                ErrorEvent(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    component="alert_engine",
                    operation="process_event",
                    context={"sku": event.sku, "event_id": event.event_id},
                    metadata={"stack_trace": traceback.format_exc()},
                )
            )
        finally:
            self._semaphore.release()

    # Lifecycle

    async def run(self) -> None:
        """Consume the change source until it ends or the engine stops."""
        self.logger.info("Alert engine consuming", concurrency=self.concurrency)

        async for event in self.source.subscribe():
            await self._semaphore.acquire()
            task = asyncio.create_task(self._handle_event(event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        self.logger.info("Change source exhausted")

    def start(self) -> asyncio.Task:
        """Start consuming in the background."""
        if self.is_running:
            return self._consumer

        self._consumer = asyncio.create_task(self.run())
        return self._consumer

    async def shutdown(self) -> None:
        """Stop accepting events, close the source and drain in-flight work."""
        self.logger.info("Alert engine shutting down", in_flight=len(self._tasks))
        await self.source.close()

        if self._consumer is not None:
            await asyncio.gather(self._consumer, return_exceptions=True)
            self._consumer = None

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

        await self.event_bus.drain()
        self.logger.info("Alert engine stopped")

    # Maintenance

    async def process_pending_notifications(self) -> int:
        """
        Dispatch notifications for active alerts that were never delivered.

        The rule that raised an alert provides its channel settings; alerts
        whose rule is gone fall back to the first rule of the same type.

        Returns:
            Number of alerts processed
        """
        processed = 0

        for alert in await self.store.find_pending_notification():
            rule = self.rules.find_by_id(alert.rule_id) if alert.rule_id else None
            if rule is None:
                rule = self.rules.find_for_alert_type(alert.alert_type)
            if rule is None:
                continue

            try:
                await self.dispatcher.dispatch(alert, rule.actions.notifications)
            except Exception as e:
                self.logger.error(
                    "Pending notification dispatch failed",
                    alert_id=alert.id,
                    error=str(e),
                    exc_info=True,
                )
                continue
            processed += 1

        self.logger.info("Pending notifications processed", processed=processed)
        return processed

    async def cleanup(self, retention_days: Optional[int] = None) -> int:
        """Purge closed alerts older than the retention window."""
        if retention_days is None:
            retention_days = get_settings().alert_retention_days
        return await self.store.cleanup_older_than(retention_days)

    async def reconcile_snapshots(self) -> int:
        """
        Run the sweeper over every item of the snapshot provider.

        Catches alerts for items that have not changed recently.

        Returns:
            Number of alerts resolved
        """
        if self.snapshot_provider is None:
            return 0

        resolved = 0
        for snapshot in await self.snapshot_provider():
            sku = snapshot.sku.strip().upper()
            async with self._sku_lock(sku):
                try:
                    resolved += await self.sweeper.reconcile(sku, snapshot.quantity)
                except Exception as e:
                    self.logger.error(
                        "Snapshot reconcile failed", sku=sku, error=str(e), exc_info=True
                    )

        self.logger.info("Snapshot reconcile completed", resolved=resolved)
        return resolved
