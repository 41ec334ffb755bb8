"""Per-user notification preference model."""
from sqlalchemy import Boolean, Column, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.db.base import Base


class NotificationPreference(Base):
    """Opt-out switch owned by the settings screen.

    A missing row means push is enabled; the delivery subsystem only reads
    this table.
    """

    __tablename__ = "notification_preferences"

    user_id = Column(UUID(as_uuid=True), primary_key=True)
    push_enabled = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
