"""Durable alert store with lifecycle transitions and dedup."""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from ...config.logging import get_logger, log_audit_event
from ...exceptions import AlertNotFoundError, DuplicateAlertError, InvalidTransitionError
from ...ormdb.database import get_session_factory
from ...ormdb.models import StockAlertRecord
from ...ormdb.repositories import StockAlertRepository
from ...utils.clock import utcnow
from .models import (
    ALLOWED_TRANSITIONS,
    CRITICAL_SEVERITY,
    MAX_NOTES_LENGTH,
    Alert,
    AlertCreationRequest,
    AlertPriority,
    AlertStatus,
    AlertType,
    EstimatedImpact,
    NotificationChannel,
    calculate_severity,
    default_message,
    default_recommended_action,
)

logger = get_logger(__name__)


def record_to_alert(record: StockAlertRecord) -> Alert:
    """Convert a database record into an Alert."""
    impact = None
    if any(
        value is not None
        for value in (
            record.potential_lost_sales,
            record.affected_orders,
            record.revenue_at_risk,
        )
    ):
        impact = EstimatedImpact(
            potential_lost_sales=record.potential_lost_sales or 0.0,
            affected_orders=record.affected_orders or 0,
            revenue_at_risk=record.revenue_at_risk or 0.0,
        )

    history: Dict[NotificationChannel, List[datetime]] = {
        channel: [] for channel in NotificationChannel
    }
    for notification in record.notifications:
        history[NotificationChannel(notification.channel)].append(notification.sent_at)

    return Alert(
        id=record.id,
        sku=record.sku,
        alert_type=AlertType(record.alert_type),
        priority=AlertPriority(record.priority),
        threshold=record.threshold,
        current_stock=record.current_stock,
        message=record.message,
        recommended_action=record.recommended_action,
        severity=record.severity,
        status=AlertStatus(record.status),
        created_at=record.created_at,
        updated_at=record.updated_at,
        item_id=record.item_id,
        variant_id=record.variant_id,
        estimated_impact=impact,
        acknowledged_at=record.acknowledged_at,
        acknowledged_by=record.acknowledged_by,
        resolved_at=record.resolved_at,
        resolved_by=record.resolved_by,
        resolution_notes=record.resolution_notes,
        auto_resolve=record.auto_resolve,
        auto_resolve_threshold=record.auto_resolve_threshold,
        suppress_until=record.suppress_until,
        suppress_similar=record.suppress_similar,
        rule_id=record.rule_id,
        trigger_count=record.trigger_count or 1,
        last_triggered_at=record.last_triggered_at,
        notifications_sent=history,
    )


class AlertStore:
    """
    Persistence for alert records.

    Every public method is a coroutine; the blocking SQLAlchemy work runs in a
    worker thread with its own session. Each mutation is a single atomic
    write, and at most one alert per (sku, alert_type) can be active: the
    storage layer rejects a second one and ``create_alert`` returns None.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock
        self.logger = logger.bind(component="alert_store")

    @property
    def session_factory(self) -> sessionmaker:
        return self._session_factory

    def _repository(self) -> StockAlertRepository:
        return StockAlertRepository(self._session_factory(), close_on_exit=True)

    async def _run(self, func: Callable, *args, **kwargs):
        return await asyncio.to_thread(func, *args, **kwargs)

    # Creation

    async def create_alert(self, request: AlertCreationRequest) -> Optional[Alert]:
        """
        Open a new alert.

        Returns:
            The created alert, or None when an active alert already exists for
            the same (sku, alert_type)
        """
        return await self._run(self._create_alert, request)

    def _create_alert(self, request: AlertCreationRequest) -> Optional[Alert]:
        now = self._clock()
        severity = request.severity
        if severity is None:
            severity = calculate_severity(
                request.alert_type,
                request.threshold,
                request.current_stock,
                request.estimated_impact,
            )

        impact = request.estimated_impact
        fields: Dict[str, Any] = {
            "sku": request.sku,
            "item_id": request.item_id,
            "variant_id": request.variant_id,
            "alert_type": request.alert_type.value,
            "priority": request.priority.value,
            "threshold": request.threshold,
            "current_stock": request.current_stock,
            "message": request.message
            or default_message(request.sku, request.current_stock, request.threshold),
            "recommended_action": request.recommended_action
            or default_recommended_action(request.alert_type),
            "severity": severity,
            "potential_lost_sales": impact.potential_lost_sales if impact else None,
            "affected_orders": impact.affected_orders if impact else None,
            "revenue_at_risk": impact.revenue_at_risk if impact else None,
            "status": AlertStatus.ACTIVE.value,
            "auto_resolve": request.auto_resolve,
            "auto_resolve_threshold": request.auto_resolve_threshold,
            "suppress_similar": request.suppress_similar,
            "suppress_until": request.suppress_until,
            "rule_id": request.rule_id,
            "trigger_count": 1,
            "last_triggered_at": now,
            "created_at": now,
            "updated_at": now,
        }

        try:
            with self._repository() as repo:
                record = repo.add_alert(**fields)
                alert = record_to_alert(record)
        except DuplicateAlertError:
            self.logger.debug(
                "Active alert already exists, discarding duplicate",
                sku=request.sku,
                alert_type=request.alert_type.value,
            )
            self._record_trigger(request.sku, request.alert_type, request.current_stock)
            return None

        self.logger.info(
            "Alert created",
            alert_id=alert.id,
            sku=alert.sku,
            alert_type=alert.alert_type.value,
            priority=alert.priority.value,
            severity=alert.severity,
        )
        return alert

    # Lifecycle

    async def acknowledge(
        self, alert_id: int, actor: str, notes: Optional[str] = None
    ) -> Alert:
        """Acknowledge an active alert."""
        values: Dict[str, Any] = {"acknowledged_by": actor}
        if notes:
            values["resolution_notes"] = notes
        return await self._run(
            self._transition, alert_id, AlertStatus.ACKNOWLEDGED, actor, values
        )

    async def resolve(self, alert_id: int, actor: str, notes: Optional[str] = None) -> Alert:
        """Resolve an active or acknowledged alert."""
        values: Dict[str, Any] = {"resolved_by": actor}
        if notes:
            values["resolution_notes"] = notes
        return await self._run(self._transition, alert_id, AlertStatus.RESOLVED, actor, values)

    async def dismiss(self, alert_id: int, actor: str, reason: Optional[str] = None) -> Alert:
        """Dismiss an active or acknowledged alert."""
        values: Dict[str, Any] = {"resolved_by": actor}
        if reason:
            values["resolution_notes"] = f"Dismissed: {reason}"
        return await self._run(self._transition, alert_id, AlertStatus.DISMISSED, actor, values)

    def _transition(
        self,
        alert_id: int,
        target: AlertStatus,
        actor: str,
        values: Dict[str, Any],
    ) -> Alert:
        notes = values.get("resolution_notes")
        if notes and len(notes) > MAX_NOTES_LENGTH:
            raise ValueError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")

        now = self._clock()
        values = dict(values, status=target.value, updated_at=now)
        if target == AlertStatus.ACKNOWLEDGED:
            values["acknowledged_at"] = now
        else:
            values["resolved_at"] = now

        allowed = [status.value for status in ALLOWED_TRANSITIONS[target]]

        with self._repository() as repo:
            updated = repo.transition(alert_id, allowed, values)
            record = repo.get_by_id(alert_id)
            if record is None:
                raise AlertNotFoundError(alert_id)
            if not updated:
                raise InvalidTransitionError(alert_id, record.status, target.value)
            alert = record_to_alert(record)

        log_audit_event(
            f"alert_{target.value}",
            actor=actor,
            alert_id=alert_id,
            sku=alert.sku,
            alert_type=alert.alert_type.value,
        )
        return alert

    async def update_status(
        self,
        alert_ids: List[int],
        status: AlertStatus,
        actor: str,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Move several alerts to one status.

        Each alert goes through the same lifecycle checks as a single
        transition, so one missing or closed alert does not block the rest.

        Returns:
            ``updated`` ids and ``failed`` entries with the reason per id
        """
        status = AlertStatus(status)
        if status not in ALLOWED_TRANSITIONS:
            raise ValueError(f"Cannot move alerts to '{status.value}'")

        updated: List[int] = []
        failed: List[Dict[str, Any]] = []
        for alert_id in dict.fromkeys(alert_ids):
            try:
                if status == AlertStatus.ACKNOWLEDGED:
                    await self.acknowledge(alert_id, actor, notes)
                elif status == AlertStatus.RESOLVED:
                    await self.resolve(alert_id, actor, notes)
                else:
                    await self.dismiss(alert_id, actor, notes)
            except (AlertNotFoundError, InvalidTransitionError) as e:
                failed.append({"alert_id": alert_id, "error": e.message})
                continue
            updated.append(alert_id)

        self.logger.info(
            "Bulk status update completed",
            status=status.value,
            actor=actor,
            updated=len(updated),
            failed=len(failed),
        )
        return {"updated": updated, "failed": failed}

    async def delete_alerts(self, alert_ids: List[int]) -> int:
        """Delete alerts with their notification history, returning how many existed."""
        return await self._run(self._delete_alerts, alert_ids)

    def _delete_alerts(self, alert_ids: List[int]) -> int:
        with self._repository() as repo:
            deleted = repo.delete_by_ids(set(alert_ids))

        log_audit_event("alerts_deleted", alert_ids=sorted(set(alert_ids)), deleted=deleted)
        return deleted

    async def record_trigger(
        self, sku: str, alert_type: AlertType, current_stock: float
    ) -> bool:
        """
        Count a repeat firing of a condition against its active alert.

        Refreshes the alert's current stock and last trigger time and bumps
        its trigger count in one UPDATE.

        Returns:
            True when an active alert for (sku, alert_type) absorbed the trigger
        """
        return await self._run(self._record_trigger, sku, alert_type, current_stock)

    def _record_trigger(self, sku: str, alert_type: AlertType, current_stock: float) -> bool:
        with self._repository() as repo:
            updated = repo.record_trigger(
                sku, AlertType(alert_type).value, current_stock, self._clock()
            )
        return updated > 0

    async def record_notification(
        self,
        alert_id: int,
        channel: NotificationChannel,
        sent_at: Optional[datetime] = None,
    ) -> datetime:
        """Append a timestamp to an alert's notification history for a channel."""
        return await self._run(self._record_notification, alert_id, channel, sent_at)

    def _record_notification(
        self, alert_id: int, channel: NotificationChannel, sent_at: Optional[datetime]
    ) -> datetime:
        sent_at = sent_at or self._clock()
        with self._repository() as repo:
            if repo.get_by_id(alert_id) is None:
                raise AlertNotFoundError(alert_id)
            repo.add_notification(alert_id, NotificationChannel(channel).value, sent_at)
        return sent_at

    # Queries

    async def get(self, alert_id: int) -> Alert:
        """Get an alert by id, raising AlertNotFoundError when missing."""
        return await self._run(self._get, alert_id)

    def _get(self, alert_id: int) -> Alert:
        with self._repository() as repo:
            record = repo.get_by_id(alert_id)
            if record is None:
                raise AlertNotFoundError(alert_id)
            return record_to_alert(record)

    def _query(self, method: str, *args, **kwargs) -> List[Alert]:
        with self._repository() as repo:
            return [record_to_alert(record) for record in getattr(repo, method)(*args, **kwargs)]

    async def find_active(self) -> List[Alert]:
        return await self._run(self._query, "find_active")

    async def find_by_sku(self, sku: str) -> List[Alert]:
        return await self._run(self._query, "find_by_sku", sku)

    async def find_by_item(self, item_id: str) -> List[Alert]:
        return await self._run(self._query, "find_by_owner", item_id=item_id)

    async def find_by_variant(self, variant_id: str) -> List[Alert]:
        return await self._run(self._query, "find_by_owner", variant_id=variant_id)

    async def find_critical(self) -> List[Alert]:
        return await self._run(self._query, "find_critical", CRITICAL_SEVERITY)

    async def find_pending_notification(self) -> List[Alert]:
        return await self._run(self._query, "find_pending_notification")

    async def find_auto_resolvable(self, sku: str, current_stock: float) -> List[Alert]:
        """Active alerts for a SKU whose auto-resolve threshold stock has reached."""
        return await self._run(self._query, "find_auto_resolvable", sku, current_stock)

    async def list_alerts(
        self,
        status: Optional[AlertStatus] = None,
        sku: Optional[str] = None,
        item_id: Optional[str] = None,
        variant_id: Optional[str] = None,
        priority: Optional[AlertPriority] = None,
        alert_type: Optional[AlertType] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Alert]:
        """List alerts matching all given filters, newest first."""
        return await self._run(
            self._query,
            "list_alerts",
            status=AlertStatus(status).value if status else None,
            sku=sku,
            item_id=item_id,
            variant_id=variant_id,
            priority=AlertPriority(priority).value if priority else None,
            alert_type=AlertType(alert_type).value if alert_type else None,
            search=search,
            limit=limit,
            offset=offset,
        )

    async def has_active(self, sku: str, alert_type: AlertType) -> bool:
        """Whether an active alert exists for (sku, alert_type)."""
        return await self._run(self._has_active, sku, alert_type)

    def _has_active(self, sku: str, alert_type: AlertType) -> bool:
        with self._repository() as repo:
            return repo.get_active(sku, AlertType(alert_type).value) is not None

    async def is_suppressed(self, sku: str, alert_type: AlertType) -> bool:
        """Whether a suppressing alert blocks new alerts for (sku, alert_type)."""
        return await self._run(self._is_suppressed, sku, alert_type)

    def _is_suppressed(self, sku: str, alert_type: AlertType) -> bool:
        with self._repository() as repo:
            record = repo.get_suppressing(sku, AlertType(alert_type).value, self._clock())
            return record is not None

    # Maintenance

    async def cleanup_older_than(self, days: int) -> int:
        """Purge resolved and dismissed alerts closed more than ``days`` ago."""
        return await self._run(self._cleanup_older_than, days)

    def _cleanup_older_than(self, days: int) -> int:
        if days < 0:
            raise ValueError("Retention days cannot be negative")
        cutoff = self._clock() - timedelta(days=days)
        with self._repository() as repo:
            deleted = repo.delete_closed_before(cutoff)

        self.logger.info("Alert cleanup completed", retention_days=days, deleted=deleted)
        return deleted

    async def statistics(self) -> Dict[str, Any]:
        """Counts of alerts overall, by status, by type and by priority."""
        return await self._run(self._statistics)

    def _statistics(self) -> Dict[str, Any]:
        with self._repository() as repo:
            by_status = repo.count_by("status")
            by_type = repo.count_by("alert_type")
            return {
                "total": sum(by_status.values()),
                "active": by_status.get(AlertStatus.ACTIVE.value, 0),
                "critical": len(repo.find_critical(CRITICAL_SEVERITY)),
                "by_status": by_status,
                "by_type": by_type,
                "by_priority": repo.count_by("priority"),
            }
