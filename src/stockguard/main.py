"""
StockGuard - Main application entry point.

Runs the inventory alert engine: stock changes posted to the API are
evaluated against the alert rules, alerts are deduplicated, scored and
notified, and recover automatically once stock does.
"""

import asyncio
import sys
from typing import Optional

import uvicorn
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from stockguard.config.logging import get_logger
from stockguard.config.settings import Settings, get_settings
from stockguard.engine import AlertEngine
from stockguard.events import EventBus, setup_default_event_handlers
from stockguard.rules import RuleEvaluator, load_configured_rules
from stockguard.scheduler import add_maintenance_jobs, create_scheduler, list_scheduled_jobs
from stockguard.services import (
    AlertStore,
    AutoResolutionSweeper,
    NotificationDispatcher,
    SqlStockLedger,
)
from stockguard.sources import QueueChangeSource, SnapshotProvider
from stockguard.utils.config import initialize_application
from stockguard.webapi import create_app


def build_engine(
    settings: Settings,
    source: QueueChangeSource,
    snapshot_provider: Optional[SnapshotProvider] = None,
) -> AlertEngine:
    """
    Wire the engine with its SQL-backed collaborators.

    Cold-item reconciliation is scheduled only when a catalog
    ``snapshot_provider`` is supplied.
    """
    event_bus = EventBus("stockguard")
    setup_default_event_handlers(event_bus)
    store = AlertStore()
    rules = load_configured_rules(settings.rules_file)

    return AlertEngine(
        source=source,
        store=store,
        evaluator=RuleEvaluator(rules, store, SqlStockLedger()),
        dispatcher=NotificationDispatcher(
            store,
            default_cooldown_minutes=settings.default_cooldown_minutes,
            event_bus=event_bus,
        ),
        sweeper=AutoResolutionSweeper(store, event_bus),
        event_bus=event_bus,
        concurrency=settings.worker_concurrency,
        snapshot_provider=snapshot_provider,
    )


async def serve(settings: Optional[Settings] = None) -> None:
    """Run the engine, its maintenance jobs and the admin API until interrupted."""
    settings = settings or get_settings()
    logger = get_logger(__name__)

    source = QueueChangeSource()
    engine = build_engine(settings, source)
    app = create_app(engine.store, engine=engine, change_source=source)

    scheduler = create_scheduler()
    add_maintenance_jobs(scheduler, engine, settings)

    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=settings.endpoint_host,
            port=settings.endpoint_port,
            log_level=settings.api_log_level.lower(),
        )
    )

    engine.start()
    scheduler.start()
    logger.info("Scheduled jobs", jobs=list_scheduled_jobs(scheduler))

    try:
        await server.serve()
    finally:
        logger.info("Shutting down scheduler")
        scheduler.shutdown(wait=False)
        await engine.shutdown()


def main() -> None:
    """Main application entry point."""
    initialize_application()

    logger = get_logger(__name__)
    settings = get_settings()

    if "-check-rules" in sys.argv:
        # Validate the rule set and exit
        rules = load_configured_rules(settings.rules_file)
        for rule in rules:
            state = "enabled" if rule.enabled else "disabled"
            print(f"{rule.id}: {rule.name} [{state}] -> {rule.actions.alert_type.value}")
        sys.exit(0 if len(rules) else 1)

    logger.info(
        "Starting alert engine",
        host=settings.endpoint_host,
        port=settings.endpoint_port,
        rules_file=settings.rules_file or "built-in",
    )

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")


if __name__ == "__main__":
    main()
