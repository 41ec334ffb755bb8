"""Pydantic schemas package."""

from app.schemas.notification import (
    OneShotRequest,
    OneShotResponse,
    PushPayload,
    SubscriptionCreate,
    SubscriptionKeys,
    SubscriptionRead,
    TriggerSummary,
    UnsubscribeRequest,
)

__all__ = [
    "OneShotRequest",
    "OneShotResponse",
    "PushPayload",
    "SubscriptionCreate",
    "SubscriptionKeys",
    "SubscriptionRead",
    "TriggerSummary",
    "UnsubscribeRequest",
]
