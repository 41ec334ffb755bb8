"""Opt-out filtering for scheduled notifications."""
from __future__ import annotations

import uuid
from typing import Iterable

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.notification_preference import NotificationPreference
from app.utils.exceptions import StoreError


class EligibilityFilter:
    """Decide which subscribed users receive scheduled notifications.

    Holding a subscription is itself a browser permission grant, so a user is
    eligible unless a preference row explicitly disables push.
    """

    def __init__(self, db: Session):
        self.db = db

    def eligible_users(self, candidate_user_ids: Iterable[uuid.UUID]) -> list[uuid.UUID]:
        """Return candidates without an opt-out, preserving input order."""

        candidates = list(dict.fromkeys(candidate_user_ids))
        if not candidates:
            return []

        stmt = select(NotificationPreference.user_id).where(
            NotificationPreference.user_id.in_(candidates),
            NotificationPreference.push_enabled.is_(False),
        )
        try:
            opted_out = set(self.db.scalars(stmt))
        except SQLAlchemyError as exc:
            logger.error("Failed to read notification preferences", error=str(exc))
            raise StoreError("Notification preferences could not be read") from exc

        return [user_id for user_id in candidates if user_id not in opted_out]
