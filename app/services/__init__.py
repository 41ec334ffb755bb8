"""Service layer package."""

from app.services.dedup import DedupGuard, NotificationLog
from app.services.delivery import DeliveryEngine, DeliveryResult
from app.services.eligibility import EligibilityFilter
from app.services.push_transport import PushTransport, WebPushTransport
from app.services.schedule_trigger import NotificationEvaluator, ScheduleTrigger
from app.services.subscription_registry import SubscriptionRegistry

__all__ = [
    "DedupGuard",
    "DeliveryEngine",
    "DeliveryResult",
    "EligibilityFilter",
    "NotificationEvaluator",
    "NotificationLog",
    "PushTransport",
    "ScheduleTrigger",
    "SubscriptionRegistry",
    "WebPushTransport",
]
