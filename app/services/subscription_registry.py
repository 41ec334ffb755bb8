"""Durable registry of browser push endpoints and their delivery health."""
from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Mapping

from loguru import logger
from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.config import settings
from app.db.models.push_subscription import PushSubscription
from app.utils.exceptions import StoreError

_UPSERT_DIALECTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


class SubscriptionRegistry:
    """Owns endpoint uniqueness and the failure-count lifecycle of subscriptions.

    Every mutation is a single-row statement committed on its own. Deleting a
    row that is already gone is a no-op, so an eviction racing an unsubscribe
    is harmless.
    """

    def __init__(self, db: Session, max_failures: int | None = None) -> None:
        self.db = db
        self.max_failures = max_failures or settings.PUSH_MAX_FAILURES

    @contextmanager
    def _unit(self, action: str, commit: bool = True) -> Iterator[None]:
        try:
            yield
            if commit:
                self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Subscription registry failure", action=action, error=str(exc))
            raise StoreError(f"Subscription registry {action} failed") from exc

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _UPSERT_DIALECTS[dialect]
        except KeyError as exc:
            raise StoreError(f"Endpoint upsert is not supported on {dialect}") from exc

    def upsert_subscription(
        self,
        endpoint: str,
        keys: Mapping[str, str],
        user_id: uuid.UUID,
        household_id: uuid.UUID | None = None,
        user_agent: str | None = None,
    ) -> uuid.UUID:
        """Insert or take over the row for ``endpoint`` and return its id."""

        insert = self._insert()
        stmt = insert(PushSubscription).values(
            id=uuid.uuid4(),
            user_id=user_id,
            household_id=household_id,
            endpoint=endpoint,
            p256dh=keys["p256dh"],
            auth=keys["auth"],
            user_agent=user_agent,
            failure_count=0,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["endpoint"],
            set_={
                "user_id": stmt.excluded.user_id,
                "household_id": stmt.excluded.household_id,
                "p256dh": stmt.excluded.p256dh,
                "auth": stmt.excluded.auth,
                "user_agent": stmt.excluded.user_agent,
                "updated_at": func.now(),
            },
        ).returning(PushSubscription.id)

        with self._unit("upsert"):
            subscription_id = self.db.execute(stmt).scalar_one()

        logger.info("Push subscription registered", subscription_id=str(subscription_id), user_id=str(user_id))
        return subscription_id

    def get(self, subscription_id: uuid.UUID) -> PushSubscription | None:
        stmt = (
            select(PushSubscription)
            .where(PushSubscription.id == subscription_id)
            .execution_options(populate_existing=True)
        )
        with self._unit("get", commit=False):
            return self.db.scalars(stmt).first()

    def list_subscriptions(self, user_id: uuid.UUID) -> list[PushSubscription]:
        """Return every live subscription of ``user_id`` in no particular order."""

        stmt = (
            select(PushSubscription)
            .where(PushSubscription.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        with self._unit("list", commit=False):
            return list(self.db.scalars(stmt))

    def subscribed_user_ids(self) -> list[uuid.UUID]:
        """Distinct users owning at least one live subscription."""

        stmt = select(PushSubscription.user_id).distinct().order_by(PushSubscription.user_id)
        with self._unit("list users", commit=False):
            return list(self.db.scalars(stmt))

    def record_success(self, subscription_id: uuid.UUID) -> None:
        stmt = (
            update(PushSubscription)
            .where(PushSubscription.id == subscription_id)
            .values(failure_count=0, last_successful_push=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        with self._unit("record success"):
            self.db.execute(stmt)

    def record_failure(self, subscription_id: uuid.UUID) -> bool:
        """Count a transient failure; evict and return ``True`` at the threshold."""

        stmt = (
            update(PushSubscription)
            .where(PushSubscription.id == subscription_id)
            .values(failure_count=PushSubscription.failure_count + 1)
            .returning(PushSubscription.failure_count)
            .execution_options(synchronize_session=False)
        )
        with self._unit("record failure"):
            failure_count = self.db.execute(stmt).scalar_one_or_none()
            if failure_count is None:
                logger.debug("Failure recorded for missing subscription", subscription_id=str(subscription_id))
                return False
            if failure_count < self.max_failures:
                return False
            self.db.execute(self._delete_by_id(subscription_id))

        logger.info(
            "Push subscription evicted after repeated failures",
            subscription_id=str(subscription_id),
            failure_count=failure_count,
        )
        return True

    def evict(self, subscription_id: uuid.UUID) -> bool:
        """Delete unconditionally; returns whether a row was removed."""

        with self._unit("evict"):
            removed = self.db.execute(self._delete_by_id(subscription_id)).rowcount
        if removed:
            logger.info("Push subscription evicted", subscription_id=str(subscription_id))
        return bool(removed)

    def delete_by_endpoint(self, endpoint: str) -> bool:
        stmt = (
            delete(PushSubscription)
            .where(PushSubscription.endpoint == endpoint)
            .execution_options(synchronize_session=False)
        )
        with self._unit("delete by endpoint"):
            removed = self.db.execute(stmt).rowcount
        return bool(removed)

    @staticmethod
    def _delete_by_id(subscription_id: uuid.UUID):
        return (
            delete(PushSubscription)
            .where(PushSubscription.id == subscription_id)
            .execution_options(synchronize_session=False)
        )
