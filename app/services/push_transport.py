"""Web Push transport: one encrypted request to one endpoint."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

import requests
from loguru import logger
from pywebpush import WebPushException, webpush

from app.config import Settings, settings
from app.utils.exceptions import (
    DeliveryError,
    FatalSubscriptionError,
    TransientDeliveryError,
    TransportNotConfiguredError,
)

# Push services answer 404/410 once an endpoint has expired or been unsubscribed
FATAL_STATUS_CODES = frozenset({404, 410})


class PushTransport(Protocol):
    """Anything able to hand a payload to a push service."""

    def send(self, endpoint: str, keys: Mapping[str, str], data: str) -> None:  # pragma: no cover - interface definition
        """Deliver ``data`` or raise :class:`FatalSubscriptionError` / :class:`TransientDeliveryError`."""


def classify_failure(message: str, status_code: Optional[int]) -> DeliveryError:
    """Map a push-service status code onto the delivery error taxonomy."""

    if status_code in FATAL_STATUS_CODES:
        return FatalSubscriptionError(message, status_code=status_code)
    return TransientDeliveryError(message, status_code=status_code)


@dataclass
class WebPushTransport:
    """Send notifications through ``pywebpush`` using VAPID authentication."""

    vapid_private_key: str
    vapid_subject: str
    timeout: float = 10.0
    ttl: int = 86400

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "WebPushTransport":
        if not config.push_configured:
            raise TransportNotConfiguredError("VAPID keys are not configured")
        return cls(
            vapid_private_key=config.VAPID_PRIVATE_KEY,
            vapid_subject=config.VAPID_SUBJECT,
            timeout=config.PUSH_REQUEST_TIMEOUT_SECONDS,
            ttl=config.PUSH_TTL_SECONDS,
        )

    def send(self, endpoint: str, keys: Mapping[str, str], data: str) -> None:
        try:
            webpush(
                subscription_info={"endpoint": endpoint, "keys": dict(keys)},
                data=data,
                vapid_private_key=self.vapid_private_key,
                # pywebpush adds aud/exp to the claims dict, so pass a fresh one
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl,
                timeout=self.timeout,
            )
        except WebPushException as exc:
            response = exc.response
            status_code = response.status_code if response is not None else None
            logger.debug("Push service rejected message", status=status_code)
            raise classify_failure(str(exc), status_code) from exc
        except requests.RequestException as exc:
            raise TransientDeliveryError(f"Push request failed: {exc}") from exc
