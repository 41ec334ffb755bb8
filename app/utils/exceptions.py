"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from loguru import logger


class NotificationServiceException(Exception):
    """Base exception for the notification subsystem."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class StoreError(NotificationServiceException):
    """Subscription registry or notification log read/write failed."""
    pass


class ValidationError(NotificationServiceException):
    """Required request input is missing or malformed."""
    pass


class AuthorizationError(NotificationServiceException):
    """Caller credential does not match the configured secret."""
    pass


class TransportNotConfiguredError(NotificationServiceException):
    """Push credentials are missing so no transport can be built."""
    pass


class DeliveryError(NotificationServiceException):
    """A single push attempt to one endpoint failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class FatalSubscriptionError(DeliveryError):
    """Push service reported the endpoint as gone or unsubscribed."""
    pass


class TransientDeliveryError(DeliveryError):
    """Any other delivery failure; counted towards eviction."""
    pass


def handle_store_error(error: Exception) -> HTTPException:
    """Handle registry errors and return appropriate HTTP response."""
    logger.error(f"Store error: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )


def handle_validation_error(error: ValidationError) -> HTTPException:
    """Handle missing or malformed request input."""
    logger.warning(f"Validation error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=error.message
    )


def handle_authorization_error(error: AuthorizationError) -> HTTPException:
    """Reject the caller without revealing anything about subscribers."""
    logger.warning(f"Authorization error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


def handle_transport_not_configured(error: TransportNotConfiguredError) -> HTTPException:
    """Handle missing push credentials."""
    logger.error(f"Push transport unavailable: {error.message}")
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Push delivery is not configured"
    )
