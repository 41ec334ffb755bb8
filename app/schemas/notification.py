"""Pydantic models for push registration, delivery and trigger summaries."""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accept and emit camelCase keys as the browser client does."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PushPayload(BaseModel):
    """Wire payload rendered by the service worker."""

    title: str = Field(min_length=1, max_length=255)
    body: str
    icon: Optional[str] = None
    tag: Optional[str] = Field(default=None, max_length=64)
    data: Optional[Dict[str, str]] = None

    model_config = ConfigDict(extra="ignore")

    def to_wire(self) -> str:
        """Serialize to compact JSON, omitting absent optional fields."""

        return self.model_dump_json(exclude_none=True)


class SubscriptionKeys(BaseModel):
    """Key material produced by ``PushSubscription.toJSON()`` in the browser."""

    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class SubscriptionCreate(CamelModel):
    """Registration request for one browser endpoint."""

    user_id: uuid.UUID
    household_id: Optional[uuid.UUID] = None
    endpoint: str = Field(min_length=1)
    keys: SubscriptionKeys


class SubscriptionRead(CamelModel):
    id: uuid.UUID


class UnsubscribeRequest(CamelModel):
    endpoint: str = Field(min_length=1)


class OneShotRequest(CamelModel):
    """Body of the welcome endpoint; ``user_id`` is validated by the handler."""

    user_id: Optional[Any] = None


class OneShotResponse(CamelModel):
    sent: int
    skipped: Optional[bool] = None


class TriggerSummary(CamelModel):
    """Outcome of a single schedule trigger run."""

    slot: str
    subscribed_users: int
    eligible_users: int
    sent: int = 0
    failed: int = 0
