"""Push subscription registration and one-shot notification endpoints."""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Header, Response, status
from sqlalchemy.orm import Session

from app.api import deps
from app.config import settings
from app.schemas.notification import (
    OneShotResponse,
    SubscriptionCreate,
    SubscriptionRead,
    UnsubscribeRequest,
)
from app.services.dedup import DedupGuard, NotificationLog
from app.services.delivery import DeliveryEngine
from app.services.push_transport import PushTransport
from app.services.subscription_registry import SubscriptionRegistry
from app.utils.exceptions import StoreError, handle_store_error

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/vapid-public-key")
def get_vapid_public_key():
    return {"publicKey": settings.VAPID_PUBLIC_KEY}


@router.post(
    "/subscriptions",
    response_model=SubscriptionRead,
    status_code=status.HTTP_201_CREATED,
)
def register_subscription(
    payload: SubscriptionCreate,
    user_agent: str | None = Header(default=None),
    db: Session = Depends(deps.get_db),
) -> SubscriptionRead:
    """Register a browser endpoint, taking it over if it is already known."""

    registry = SubscriptionRegistry(db)
    try:
        subscription_id = registry.upsert_subscription(
            endpoint=payload.endpoint,
            keys=payload.keys.model_dump(),
            user_id=payload.user_id,
            household_id=payload.household_id,
            user_agent=user_agent[:512] if user_agent else None,
        )
    except StoreError as exc:
        raise handle_store_error(exc) from exc
    return SubscriptionRead(id=subscription_id)


@router.delete("/subscriptions", status_code=status.HTTP_204_NO_CONTENT)
def unsubscribe(
    payload: UnsubscribeRequest,
    db: Session = Depends(deps.get_db),
) -> Response:
    registry = SubscriptionRegistry(db)
    try:
        registry.delete_by_endpoint(payload.endpoint)
    except StoreError as exc:
        raise handle_store_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/send-welcome",
    response_model=OneShotResponse,
    response_model_exclude_none=True,
)
def send_welcome(
    user_id: uuid.UUID = Depends(deps.get_one_shot_user_id),
    db: Session = Depends(deps.get_db),
    transport: PushTransport = Depends(deps.get_push_transport),
) -> OneShotResponse:
    """Send the welcome notification unless the user already received it.

    The browser calls this fire-and-forget right after registering; the
    notification log makes repeated calls harmless.
    """

    engine = DeliveryEngine(SubscriptionRegistry(db), transport)
    guard = DedupGuard(NotificationLog(db), engine)
    try:
        outcome = guard.send_welcome(user_id)
    except StoreError as exc:
        raise handle_store_error(exc) from exc

    if outcome.skipped:
        return OneShotResponse(sent=0, skipped=True)
    return OneShotResponse(sent=outcome.sent)
