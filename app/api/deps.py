"""Shared API dependencies."""
from __future__ import annotations

import uuid
from typing import Callable, Optional, Sequence

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import settings
from app.db.session import SessionLocal
from app.schemas.notification import OneShotRequest
from app.services.push_transport import PushTransport, WebPushTransport
from app.services.schedule_trigger import NotificationEvaluator, ScheduleTrigger
from app.utils.exceptions import (
    TransportNotConfiguredError,
    ValidationError,
    handle_transport_not_configured,
    handle_validation_error,
)

_push_transport_singleton: WebPushTransport | None = None


def get_db() -> Session:
    """Yield a database session for request lifetime."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> Callable[[], Session]:
    """Return the factory used for per-user sessions during fan-out."""

    return SessionLocal


def get_push_transport() -> PushTransport:
    """Return a cached Web Push transport or raise if VAPID keys are missing."""

    global _push_transport_singleton
    if _push_transport_singleton is None:
        try:
            _push_transport_singleton = WebPushTransport.from_settings(settings)
        except TransportNotConfiguredError as exc:
            raise handle_transport_not_configured(exc) from exc
    return _push_transport_singleton


def get_optional_push_transport() -> Optional[PushTransport]:
    """Like :func:`get_push_transport` but ``None`` when push is unconfigured."""

    if not settings.push_configured:
        return None
    return get_push_transport()


def get_notification_evaluators() -> Sequence[NotificationEvaluator]:
    """Content evaluators run by the schedule trigger; none are registered yet."""

    return ()


def get_schedule_trigger(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    transport: Optional[PushTransport] = Depends(get_optional_push_transport),
    evaluators: Sequence[NotificationEvaluator] = Depends(get_notification_evaluators),
) -> ScheduleTrigger:
    return ScheduleTrigger(
        session_factory=session_factory,
        secret=settings.CRON_SECRET,
        transport=transport,
        evaluators=evaluators,
    )


def get_one_shot_user_id(payload: Optional[OneShotRequest] = None) -> uuid.UUID:
    """Extract ``userId`` from a one-shot send body, rejecting it before any store access."""

    raw = payload.user_id if payload is not None else None
    if not raw:
        raise handle_validation_error(ValidationError("userId required"))
    if not isinstance(raw, str):
        raise handle_validation_error(ValidationError("userId must be a string"))
    try:
        return uuid.UUID(raw)
    except ValueError as exc:
        raise handle_validation_error(ValidationError("userId must be a valid UUID")) from exc
