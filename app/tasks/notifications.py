"""Celery tasks for scheduled and one-shot push notifications."""
from __future__ import annotations

from uuid import UUID

from loguru import logger

from app.celery_app import celery_app
from app.config import settings
from app.db.session import SessionLocal
from app.services.dedup import DedupGuard, NotificationLog
from app.services.delivery import DeliveryEngine
from app.services.push_transport import WebPushTransport
from app.services.schedule_trigger import ScheduleTrigger
from app.services.subscription_registry import SubscriptionRegistry


@celery_app.task(name="app.tasks.notifications.run_scheduled_notifications")
def run_scheduled_notifications() -> dict[str, int | str]:
    """Beat entry point; authenticates with the configured trigger secret."""

    transport = WebPushTransport.from_settings(settings) if settings.push_configured else None
    trigger = ScheduleTrigger(
        session_factory=SessionLocal,
        secret=settings.CRON_SECRET,
        transport=transport,
    )
    summary = trigger.run(f"Bearer {settings.CRON_SECRET or ''}")
    return summary.model_dump(by_alias=True)


@celery_app.task(name="app.tasks.notifications.send_welcome_notification")
def send_welcome_notification(user_id: str) -> dict[str, int | bool]:
    """Queue-backed variant of the welcome endpoint for server-side flows."""

    try:
        user_uuid = UUID(user_id)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid user id {user_id!r}") from exc

    db = SessionLocal()
    try:
        engine = DeliveryEngine(SubscriptionRegistry(db), WebPushTransport.from_settings(settings))
        outcome = DedupGuard(NotificationLog(db), engine).send_welcome(user_uuid)

        logger.info(
            "Welcome notification task finished",
            user_id=user_id,
            sent=outcome.sent,
            skipped=outcome.skipped,
        )
        return {"sent": outcome.sent, "skipped": outcome.skipped}

    finally:
        db.close()
