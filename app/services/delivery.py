"""Deliver one payload to every live subscription of a user."""
from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, Optional

from loguru import logger

from app.config import settings
from app.schemas.notification import PushPayload
from app.services.push_transport import PushTransport
from app.services.subscription_registry import SubscriptionRegistry
from app.utils.exceptions import DeliveryError, FatalSubscriptionError, TransientDeliveryError


@dataclass
class DeliveryResult:
    """Counts for a single ``deliver`` call or an aggregate of several."""

    sent: int = 0
    failed: int = 0
    evicted: int = 0

    def __add__(self, other: "DeliveryResult") -> "DeliveryResult":
        return DeliveryResult(
            sent=self.sent + other.sent,
            failed=self.failed + other.failed,
            evicted=self.evicted + other.evicted,
        )


@dataclass(frozen=True)
class _Target:
    # Detached copy of a subscription row; worker threads never touch the session
    id: uuid.UUID
    endpoint: str
    keys: Dict[str, str]


class DeliveryEngine:
    """Send a payload to each of a user's endpoints and settle registry state.

    Transport attempts run on a small thread pool; registry transitions are
    applied on the calling thread as attempts complete. Each subscription gets
    exactly one attempt per call and one endpoint failing never prevents the
    others from being tried.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        transport: PushTransport,
        concurrency: int | None = None,
    ) -> None:
        self.registry = registry
        self.transport = transport
        self.concurrency = concurrency or settings.PUSH_SUBSCRIPTION_CONCURRENCY

    def deliver(self, user_id: uuid.UUID, payload: PushPayload) -> DeliveryResult:
        result = DeliveryResult()
        targets = [
            _Target(id=sub.id, endpoint=sub.endpoint, keys=sub.keys)
            for sub in self.registry.list_subscriptions(user_id)
        ]
        if not targets:
            logger.debug("No push subscriptions for user", user_id=str(user_id))
            return result

        data = payload.to_wire()
        workers = min(self.concurrency, len(targets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="push-send") as pool:
            futures = {pool.submit(self._attempt, target, data): target for target in targets}
            for future in as_completed(futures):
                self._settle(futures[future], future.result(), result)

        logger.info(
            "Push delivery finished",
            user_id=str(user_id),
            sent=result.sent,
            failed=result.failed,
            evicted=result.evicted,
        )
        return result

    def _attempt(self, target: _Target, data: str) -> Optional[DeliveryError]:
        try:
            self.transport.send(target.endpoint, target.keys, data)
        except DeliveryError as exc:
            return exc
        except Exception as exc:  # anything unclassified counts as transient
            logger.opt(exception=exc).warning(
                "Unexpected push transport error", subscription_id=str(target.id)
            )
            return TransientDeliveryError(str(exc))
        return None

    def _settle(
        self, target: _Target, error: Optional[DeliveryError], result: DeliveryResult
    ) -> None:
        subscription_id = target.id
        if error is None:
            self.registry.record_success(subscription_id)
            result.sent += 1
            return

        result.failed += 1
        if isinstance(error, FatalSubscriptionError):
            logger.info(
                "Push endpoint gone",
                subscription_id=str(subscription_id),
                status=error.status_code,
            )
            self.registry.evict(subscription_id)
            result.evicted += 1
            return

        logger.warning(
            "Push delivery failed",
            subscription_id=str(subscription_id),
            status=error.status_code,
            error=error.message,
        )
        if self.registry.record_failure(subscription_id):
            result.evicted += 1
