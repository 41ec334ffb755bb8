"""Push Notification Subscription model."""
import uuid

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from app.db.base import Base


class PushSubscription(Base):
    """Stores Web Push API subscription details for one browser endpoint."""

    __tablename__ = "push_subscriptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    household_id = Column(UUID(as_uuid=True), nullable=True)

    # Natural key; registration is an upsert on this column
    endpoint = Column(Text, nullable=False, unique=True)
    p256dh = Column(Text, nullable=False)
    auth = Column(Text, nullable=False)

    user_agent = Column(String(512))
    failure_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_successful_push = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def keys(self) -> dict[str, str]:
        return {"p256dh": self.p256dh, "auth": self.auth}

    def __repr__(self) -> str:
        return f"<PushSubscription id={self.id} user_id={self.user_id} failures={self.failure_count}>"
