"""Endpoints invoked by external schedulers."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Header

from app.api import deps
from app.schemas.notification import TriggerSummary
from app.services.schedule_trigger import ScheduleTrigger
from app.utils.exceptions import (
    AuthorizationError,
    StoreError,
    TransportNotConfiguredError,
    handle_authorization_error,
    handle_store_error,
    handle_transport_not_configured,
)

router = APIRouter(prefix="/cron", tags=["cron"])


@router.api_route(
    "/send-notifications",
    methods=["GET", "POST"],
    response_model=TriggerSummary,
)
def send_scheduled_notifications(
    authorization: str | None = Header(default=None),
    trigger: ScheduleTrigger = Depends(deps.get_schedule_trigger),
) -> TriggerSummary:
    """Run the schedule trigger for the current slot.

    An empty audience is a normal outcome and still answers 200.
    """

    try:
        return trigger.run(authorization)
    except AuthorizationError as exc:
        raise handle_authorization_error(exc) from exc
    except TransportNotConfiguredError as exc:
        raise handle_transport_not_configured(exc) from exc
    except StoreError as exc:
        raise handle_store_error(exc) from exc
