"""At-most-once sends backed by the notification log."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.notifications import NotificationStatus, NotificationType, ScheduleSlot
from app.db.models.notification_log import NotificationLogEntry
from app.schemas.notification import PushPayload
from app.services.delivery import DeliveryEngine
from app.utils.exceptions import StoreError

WELCOME_PAYLOAD = PushPayload(
    title="You're all set!",
    body="Notifications are live! You'll get budget reminders and spending nudges from My2cents.",
    tag="welcome",
    data={"url": "/"},
)


@dataclass
class SendOnceResult:
    sent: int = 0
    failed: int = 0
    skipped: bool = False


class NotificationLog:
    """Append-only access to ``notification_log``."""

    def __init__(self, db: Session):
        self.db = db

    def has_sent(
        self,
        user_id: uuid.UUID,
        notification_type: NotificationType,
        slot: Optional[ScheduleSlot] = None,
    ) -> bool:
        stmt = (
            select(NotificationLogEntry.id)
            .where(NotificationLogEntry.user_id == user_id)
            .where(NotificationLogEntry.notification_type == notification_type)
            .where(NotificationLogEntry.status == NotificationStatus.SENT)
            .limit(1)
        )
        if slot is None:
            stmt = stmt.where(NotificationLogEntry.schedule_slot.is_(None))
        else:
            stmt = stmt.where(NotificationLogEntry.schedule_slot == slot.key)
        try:
            return self.db.scalars(stmt).first() is not None
        except SQLAlchemyError as exc:
            logger.error("Failed to read notification log", error=str(exc))
            raise StoreError("Notification log could not be read") from exc

    def record_sent(
        self,
        user_id: uuid.UUID,
        notification_type: NotificationType,
        payload: PushPayload,
        slot: Optional[ScheduleSlot] = None,
    ) -> Optional[NotificationLogEntry]:
        """Append a ``sent`` row, or return ``None`` if a concurrent send logged it first."""

        entry = NotificationLogEntry(
            user_id=user_id,
            notification_type=notification_type,
            schedule_slot=slot.key if slot else None,
            title=payload.title,
            body=payload.body,
            status=NotificationStatus.SENT,
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(
                "Notification already logged by a concurrent send",
                user_id=str(user_id),
                notification_type=notification_type.value,
                slot=slot.key if slot else None,
            )
            return None
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to append notification log", error=str(exc))
            raise StoreError("Notification log could not be written") from exc
        return entry


class DedupGuard:
    """Gate sends on the absence of a ``sent`` log row.

    One-shot types are keyed by ``(user, type)``; recurring types additionally
    by schedule slot, so a trigger firing twice for the same slot delivers
    once. A row is only written when at least one device accepted the
    message, which lets a user who had no devices be targeted again later.
    """

    def __init__(self, log: NotificationLog, engine: DeliveryEngine):
        self.log = log
        self.engine = engine

    def send_once(
        self,
        user_id: uuid.UUID,
        notification_type: NotificationType,
        payload: PushPayload,
        slot: Optional[ScheduleSlot] = None,
    ) -> SendOnceResult:
        if notification_type.is_one_shot and slot is not None:
            raise ValueError(f"{notification_type.value} is one-shot and takes no schedule slot")
        if not notification_type.is_one_shot and slot is None:
            raise ValueError(f"{notification_type.value} requires a schedule slot")

        if self.log.has_sent(user_id, notification_type, slot):
            logger.info(
                "Notification already sent, skipping",
                user_id=str(user_id),
                notification_type=notification_type.value,
                slot=slot.key if slot else None,
            )
            return SendOnceResult(skipped=True)

        delivery = self.engine.deliver(user_id, payload)
        if delivery.sent > 0:
            self.log.record_sent(user_id, notification_type, payload, slot)
        return SendOnceResult(sent=delivery.sent, failed=delivery.failed)

    def send_welcome(self, user_id: uuid.UUID) -> SendOnceResult:
        return self.send_once(user_id, NotificationType.WELCOME, WELCOME_PAYLOAD)
