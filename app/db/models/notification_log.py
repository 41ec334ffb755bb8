"""Append-only log of delivered notifications."""
import uuid

from sqlalchemy import Column, DateTime, Enum, Index, String, Text, func, literal_column, text
from sqlalchemy.dialects.postgresql import UUID

from app.core.notifications import NotificationStatus, NotificationType
from app.db.base import Base


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class NotificationLogEntry(Base):
    """One row per notification handed to at least one device."""

    __tablename__ = "notification_log"
    __table_args__ = (
        Index(
            "ix_notification_log_dedup",
            "user_id",
            "notification_type",
            "schedule_slot",
            "status",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    notification_type = Column(
        Enum(
            NotificationType,
            name="notification_type",
            native_enum=False,
            length=32,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    # NULL for one-shot types, "YYYY-MM-DD:period" for scheduled sends
    schedule_slot = Column(String(24), nullable=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    status = Column(
        Enum(
            NotificationStatus,
            name="notification_status",
            native_enum=False,
            length=16,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=NotificationStatus.SENT,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# At most one "sent" row per dedup key; NULL slots collapse to '' so one-shot
# types are covered too.
Index(
    "uq_notification_log_sent_once",
    NotificationLogEntry.__table__.c.user_id,
    NotificationLogEntry.__table__.c.notification_type,
    func.coalesce(NotificationLogEntry.__table__.c.schedule_slot, literal_column("''")),
    unique=True,
    postgresql_where=text("status = 'sent'"),
    sqlite_where=text("status = 'sent'"),
)
