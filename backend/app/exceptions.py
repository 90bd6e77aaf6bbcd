"""Domain errors raised by services and rendered by the app's exception handlers."""

from fastapi import status


class MarketplaceError(Exception):
    """Base error carrying a machine code, a message and an HTTP status."""

    code = "internal.error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str = None, status_code: int = None, extra: dict = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.extra = extra or {}


class ValidationError(MarketplaceError):
    code = "request.invalid"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(MarketplaceError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(MarketplaceError):
    code = "auth.forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(MarketplaceError):
    code = "request.conflict"
    status_code = status.HTTP_409_CONFLICT


class PaymentError(MarketplaceError):
    code = "payment.failed"
    status_code = status.HTTP_402_PAYMENT_REQUIRED


class InvalidTransitionError(MarketplaceError):
    """A lifecycle action is not allowed from the job's current status."""

    code = "job.invalid_status"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(MarketplaceError):
    code = "auth.invalid_credentials"
    status_code = status.HTTP_401_UNAUTHORIZED
