"""Repository for inventory alert operations."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError

from ...exceptions import DuplicateAlertError
from ..models import AlertNotification, StockAlertRecord
from .base import BaseRepository

ACTIVE = "active"
CLOSED_STATUSES = ("resolved", "dismissed")


class StockAlertRepository(BaseRepository):
    """Repository for inventory alert operations."""

    def add_alert(self, **fields: Any) -> StockAlertRecord:
        """
        Insert a new alert.

        Raises:
            DuplicateAlertError: an active alert already exists for the same
                (sku, alert_type); the partial unique index rejected the row.
        """
        alert = StockAlertRecord(**fields)
        self.session.add(alert)

        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise DuplicateAlertError(fields["sku"], fields["alert_type"])

        self.session.refresh(alert)
        return alert

    def get_by_id(self, alert_id: int) -> Optional[StockAlertRecord]:
        """Get an alert by id."""
        return (
            self.session.query(StockAlertRecord)
            .filter(StockAlertRecord.id == alert_id)
            .populate_existing()
            .first()
        )

    def get_active(self, sku: str, alert_type: str) -> Optional[StockAlertRecord]:
        """Get the active alert for a (sku, alert_type) pair, if any."""
        return (
            self.session.query(StockAlertRecord)
            .filter(
                StockAlertRecord.sku == sku.upper(),
                StockAlertRecord.alert_type == alert_type,
                StockAlertRecord.status == ACTIVE,
            )
            .first()
        )

    def get_suppressing(
        self, sku: str, alert_type: str, now: datetime
    ) -> Optional[StockAlertRecord]:
        """Get an alert that still suppresses new alerts of the same kind."""
        return (
            self.session.query(StockAlertRecord)
            .filter(
                StockAlertRecord.sku == sku.upper(),
                StockAlertRecord.alert_type == alert_type,
                StockAlertRecord.suppress_similar.is_(True),
                StockAlertRecord.suppress_until > now,
            )
            .order_by(StockAlertRecord.suppress_until.desc())
            .first()
        )

    def transition(
        self, alert_id: int, from_statuses: Iterable[str], values: Dict[str, Any]
    ) -> int:
        """
        Apply a status change as one conditional UPDATE.

        Returns:
            Number of rows changed (0 when the alert is missing or not in one
            of ``from_statuses``)
        """
        updated = (
            self.session.query(StockAlertRecord)
            .filter(
                StockAlertRecord.id == alert_id,
                StockAlertRecord.status.in_(list(from_statuses)),
            )
            .update(values, synchronize_session=False)
        )
        self.session.commit()
        self.session.expire_all()
        return updated

    def record_trigger(
        self, sku: str, alert_type: str, current_stock: float, now: datetime
    ) -> int:
        """
        Count a repeat firing against the active alert of a (sku, alert_type) pair.

        Returns:
            Number of rows changed (0 when no alert of the pair is active)
        """
        updated = (
            self.session.query(StockAlertRecord)
            .filter(
                StockAlertRecord.sku == sku.upper(),
                StockAlertRecord.alert_type == alert_type,
                StockAlertRecord.status == ACTIVE,
            )
            .update(
                {
                    StockAlertRecord.trigger_count: StockAlertRecord.trigger_count + 1,
                    StockAlertRecord.last_triggered_at: now,
                    StockAlertRecord.current_stock: current_stock,
                    StockAlertRecord.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def delete_by_ids(self, alert_ids: Iterable[int]) -> int:
        """Delete alerts and their notification history."""
        alert_ids = list(alert_ids)
        if not alert_ids:
            return 0

        self.session.query(AlertNotification).filter(
            AlertNotification.alert_id.in_(alert_ids)
        ).delete(synchronize_session=False)
        deleted = (
            self.session.query(StockAlertRecord)
            .filter(StockAlertRecord.id.in_(alert_ids))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted

    def add_notification(
        self, alert_id: int, channel: str, sent_at: datetime
    ) -> AlertNotification:
        """Append a notification timestamp to an alert's history."""
        notification = AlertNotification(alert_id=alert_id, channel=channel, sent_at=sent_at)
        self.session.add(notification)
        self.session.query(StockAlertRecord).filter(
            StockAlertRecord.id == alert_id
        ).update({"updated_at": sent_at}, synchronize_session=False)
        self.session.commit()
        self.session.expire_all()
        return notification

    def find_active(self) -> List[StockAlertRecord]:
        """Get active alerts, most severe and newest first."""
        return (
            self.session.query(StockAlertRecord)
            .filter(StockAlertRecord.status == ACTIVE)
            .order_by(StockAlertRecord.severity.desc(), StockAlertRecord.created_at.desc())
            .all()
        )

    def find_by_sku(self, sku: str) -> List[StockAlertRecord]:
        """Get all alerts for a SKU, newest first."""
        return (
            self.session.query(StockAlertRecord)
            .filter(StockAlertRecord.sku == sku.upper())
            .order_by(StockAlertRecord.created_at.desc())
            .all()
        )

    def find_by_owner(
        self, item_id: Optional[str] = None, variant_id: Optional[str] = None
    ) -> List[StockAlertRecord]:
        """Get alerts for an item or a variant, most severe first."""
        query = self.session.query(StockAlertRecord)
        if item_id is not None:
            query = query.filter(StockAlertRecord.item_id == item_id)
        if variant_id is not None:
            query = query.filter(StockAlertRecord.variant_id == variant_id)
        return query.order_by(
            StockAlertRecord.severity.desc(), StockAlertRecord.created_at.desc()
        ).all()

    def find_critical(self, min_severity: int) -> List[StockAlertRecord]:
        """Get active alerts that are critical by priority or severity."""
        return (
            self.session.query(StockAlertRecord)
            .filter(
                StockAlertRecord.status == ACTIVE,
                or_(
                    StockAlertRecord.priority == "critical",
                    StockAlertRecord.severity >= min_severity,
                ),
            )
            .order_by(StockAlertRecord.severity.desc(), StockAlertRecord.created_at.desc())
            .all()
        )

    def find_pending_notification(self) -> List[StockAlertRecord]:
        """Get active alerts missing an email or a dashboard notification."""

        def has_channel(channel: str):
            return StockAlertRecord.notifications.any(AlertNotification.channel == channel)

        return (
            self.session.query(StockAlertRecord)
            .filter(
                StockAlertRecord.status == ACTIVE,
                or_(~has_channel("email"), ~has_channel("dashboard")),
            )
            .order_by(StockAlertRecord.severity.desc(), StockAlertRecord.created_at.asc())
            .all()
        )

    def find_auto_resolvable(self, sku: str, current_stock: float) -> List[StockAlertRecord]:
        """Get active alerts for a SKU whose auto-resolve threshold has been reached."""
        return (
            self.session.query(StockAlertRecord)
            .filter(
                StockAlertRecord.sku == sku.upper(),
                StockAlertRecord.status == ACTIVE,
                StockAlertRecord.auto_resolve.is_(True),
                StockAlertRecord.auto_resolve_threshold.isnot(None),
                StockAlertRecord.auto_resolve_threshold <= current_stock,
            )
            .all()
        )

    def list_alerts(
        self,
        status: Optional[str] = None,
        sku: Optional[str] = None,
        item_id: Optional[str] = None,
        variant_id: Optional[str] = None,
        priority: Optional[str] = None,
        alert_type: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[StockAlertRecord]:
        """
        List alerts matching all given filters, newest first.

        ``search`` is a case-insensitive substring match on SKU or message.
        """
        conditions = []
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(
                or_(StockAlertRecord.sku.ilike(pattern), StockAlertRecord.message.ilike(pattern))
            )
        if status:
            conditions.append(StockAlertRecord.status == status)
        if sku:
            conditions.append(StockAlertRecord.sku == sku.upper())
        if item_id:
            conditions.append(StockAlertRecord.item_id == item_id)
        if variant_id:
            conditions.append(StockAlertRecord.variant_id == variant_id)
        if priority:
            conditions.append(StockAlertRecord.priority == priority)
        if alert_type:
            conditions.append(StockAlertRecord.alert_type == alert_type)

        query = self.session.query(StockAlertRecord)
        if conditions:
            query = query.filter(and_(*conditions))

        return (
            query.order_by(StockAlertRecord.created_at.desc(), StockAlertRecord.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def delete_closed_before(self, cutoff: datetime) -> int:
        """Purge resolved/dismissed alerts closed before the cutoff."""
        expired_ids = [
            row.id
            for row in self.session.query(StockAlertRecord.id).filter(
                StockAlertRecord.status.in_(CLOSED_STATUSES),
                StockAlertRecord.resolved_at < cutoff,
            )
        ]
        return self.delete_by_ids(expired_ids)

    def count_by(self, column_name: str) -> Dict[str, int]:
        """Count alerts grouped by a column."""
        column = getattr(StockAlertRecord, column_name)
        rows = self.session.query(column, func.count(StockAlertRecord.id)).group_by(column)
        return {value: count for value, count in rows}

