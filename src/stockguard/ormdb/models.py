"""SQLAlchemy ORM models for alert records and the stock movement ledger."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from ..utils.clock import utcnow
from .database import Base


class StockAlertRecord(Base):
    """Inventory alert entity."""

    __tablename__ = "stock_alerts"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(String, nullable=True, index=True)
    variant_id = Column(String, nullable=True, index=True)
    sku = Column(String, nullable=False, index=True)

    alert_type = Column(String(32), nullable=False, index=True)
    priority = Column(String(16), nullable=False, index=True)

    threshold = Column(Float, nullable=False)
    current_stock = Column(Float, nullable=False)
    recommended_action = Column(String(500), nullable=True)
    message = Column(Text, nullable=False)
    severity = Column(Integer, nullable=False, default=5)

    # Estimated impact, all nullable when no estimate was supplied
    potential_lost_sales = Column(Float, nullable=True)
    affected_orders = Column(Integer, nullable=True)
    revenue_at_risk = Column(Float, nullable=True)

    status = Column(String(16), nullable=False, default="active", index=True)
    acknowledged_at = Column(DateTime, nullable=True)
    acknowledged_by = Column(String, nullable=True)
    resolved_at = Column(DateTime, nullable=True, index=True)
    resolved_by = Column(String, nullable=True)
    resolution_notes = Column(Text, nullable=True)

    auto_resolve = Column(Boolean, nullable=False, default=True)
    auto_resolve_threshold = Column(Float, nullable=True)

    suppress_until = Column(DateTime, nullable=True)
    suppress_similar = Column(Boolean, nullable=False, default=False)

    rule_id = Column(String, nullable=True)

    # Recurrence: bumped each time the condition fires again while active
    trigger_count = Column(Integer, nullable=False, default=1)
    last_triggered_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    notifications = relationship(
        "AlertNotification",
        back_populates="alert",
        cascade="all, delete-orphan",
        order_by="AlertNotification.sent_at",
        lazy="selectin",
    )

    __table_args__ = (
        # At most one active alert per (sku, alert_type)
        Index(
            "uq_stock_alerts_active_sku_type",
            "sku",
            "alert_type",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
        Index("ix_stock_alerts_sku_status", "sku", "status"),
        Index("ix_stock_alerts_status_created", "status", "created_at"),
        Index("ix_stock_alerts_priority_status", "priority", "status"),
    )

    def __repr__(self):
        return (
            f"<StockAlertRecord(id={self.id}, sku='{self.sku}', "
            f"type='{self.alert_type}', status='{self.status}')>"
        )


class AlertNotification(Base):
    """One delivered notification for an alert on a channel."""

    __tablename__ = "alert_notifications"

    id = Column(Integer, primary_key=True, index=True)
    alert_id = Column(
        Integer,
        ForeignKey("stock_alerts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    channel = Column(String(16), nullable=False)
    sent_at = Column(DateTime, default=utcnow, nullable=False)

    alert = relationship("StockAlertRecord", back_populates="notifications")

    __table_args__ = (Index("ix_alert_notifications_alert_channel", "alert_id", "channel"),)

    def __repr__(self):
        return f"<AlertNotification(alert_id={self.alert_id}, channel='{self.channel}')>"


class StockMovementRecord(Base):
    """Ledger entry recording one signed stock quantity change."""

    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String, nullable=False, index=True)
    item_id = Column(String, nullable=True)
    variant_id = Column(String, nullable=True)
    movement_type = Column(String(32), nullable=False, default="adjustment")
    quantity_before = Column(Float, nullable=False)
    quantity_change = Column(Float, nullable=False)  # Negative for decrease
    quantity_after = Column(Float, nullable=False)
    source = Column(String(32), nullable=False, default="system")
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (Index("ix_stock_movements_sku_created", "sku", "created_at"),)

    def __repr__(self):
        return (
            f"<StockMovementRecord(sku='{self.sku}', change={self.quantity_change}, "
            f"type='{self.movement_type}')>"
        )
