"""Periodic coordinator for scheduled push notifications."""
from __future__ import annotations

import hmac
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from loguru import logger
from sqlalchemy.orm import Session

from app.config import settings
from app.core.notifications import NotificationType, ScheduleSlot, compute_schedule_slot
from app.schemas.notification import PushPayload, TriggerSummary
from app.services.dedup import DedupGuard, NotificationLog
from app.services.delivery import DeliveryEngine, DeliveryResult
from app.services.eligibility import EligibilityFilter
from app.services.push_transport import PushTransport
from app.services.subscription_registry import SubscriptionRegistry
from app.utils.exceptions import AuthorizationError, TransportNotConfiguredError


class NotificationEvaluator(Protocol):
    """Decides whether a user gets a recurring notification in a slot."""

    notification_type: NotificationType

    def evaluate(self, user_id: uuid.UUID, slot: ScheduleSlot) -> Optional[PushPayload]:  # pragma: no cover - interface definition
        """Return the payload to send, or ``None`` to send nothing."""


class ScheduleTrigger:
    """Resolve the slot and audience, then fan evaluators out over eligible users.

    With no evaluators registered the run only reports the slot and audience
    sizes. Each eligible user is processed in its own database session on a
    bounded worker pool; one user failing is logged and does not stop the run.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        secret: Optional[str],
        transport: Optional[PushTransport] = None,
        evaluators: Sequence[NotificationEvaluator] = (),
        tz_name: Optional[str] = None,
        user_concurrency: Optional[int] = None,
    ) -> None:
        self.session_factory = session_factory
        self.secret = secret
        self.transport = transport
        self.evaluators = tuple(evaluators)
        self.tz_name = tz_name or settings.SCHEDULE_TIMEZONE
        self.user_concurrency = user_concurrency or settings.PUSH_USER_CONCURRENCY

    def authorize(self, authorization: Optional[str]) -> None:
        """Check an ``Authorization: Bearer <secret>`` header value."""

        if not self.secret:
            raise AuthorizationError("Trigger secret is not configured")
        scheme, _, token = (authorization or "").partition(" ")
        if scheme.lower() != "bearer" or not hmac.compare_digest(
            token.strip().encode("utf-8"), self.secret.encode("utf-8")
        ):
            raise AuthorizationError("Invalid trigger credential")

    def run(self, authorization: Optional[str], now: Optional[datetime] = None) -> TriggerSummary:
        self.authorize(authorization)
        slot = compute_schedule_slot(now, self.tz_name)

        with self.session_factory() as db:
            candidates = SubscriptionRegistry(db).subscribed_user_ids()
            eligible = EligibilityFilter(db).eligible_users(candidates)

        totals = DeliveryResult()
        if not self.evaluators:
            logger.debug("No notification evaluators configured", slot=slot.key)
        elif eligible:
            totals = self._fan_out(eligible, slot)

        summary = TriggerSummary(
            slot=slot.key,
            subscribed_users=len(candidates),
            eligible_users=len(eligible),
            sent=totals.sent,
            failed=totals.failed,
        )
        logger.info(
            "Scheduled notification run",
            slot=summary.slot,
            subscribed_users=summary.subscribed_users,
            eligible_users=summary.eligible_users,
            sent=summary.sent,
            failed=summary.failed,
        )
        return summary

    def _fan_out(self, user_ids: Sequence[uuid.UUID], slot: ScheduleSlot) -> DeliveryResult:
        if self.transport is None:
            raise TransportNotConfiguredError("Evaluators are registered but no push transport is available")

        totals = DeliveryResult()
        workers = min(self.user_concurrency, len(user_ids))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="push-fanout") as pool:
            futures = {pool.submit(self._process_user, user_id, slot): user_id for user_id in user_ids}
            for future in as_completed(futures):
                try:
                    totals += future.result()
                except Exception as exc:
                    logger.opt(exception=exc).error(
                        "Scheduled delivery failed for user",
                        user_id=str(futures[future]),
                        slot=slot.key,
                    )
        return totals

    def _process_user(self, user_id: uuid.UUID, slot: ScheduleSlot) -> DeliveryResult:
        total = DeliveryResult()
        with self.session_factory() as db:
            engine = DeliveryEngine(SubscriptionRegistry(db), self.transport)
            guard = DedupGuard(NotificationLog(db), engine)
            for evaluator in self.evaluators:
                payload = evaluator.evaluate(user_id, slot)
                if payload is None:
                    continue
                outcome = guard.send_once(user_id, evaluator.notification_type, payload, slot)
                total += DeliveryResult(sent=outcome.sent, failed=outcome.failed)
        return total
