"""Utility helpers package."""

from app.utils.exceptions import (
    AuthorizationError,
    DeliveryError,
    FatalSubscriptionError,
    NotificationServiceException,
    StoreError,
    TransientDeliveryError,
    TransportNotConfiguredError,
    ValidationError,
)

__all__ = [
    "AuthorizationError",
    "DeliveryError",
    "FatalSubscriptionError",
    "NotificationServiceException",
    "StoreError",
    "TransientDeliveryError",
    "TransportNotConfiguredError",
    "ValidationError",
]
