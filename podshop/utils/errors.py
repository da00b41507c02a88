# podshop/utils/errors.py
"""
Bledy domenowe. Kazdy niesie kod HTTP, handler w main.py zamienia je
na koperte {success, error}.
"""


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(AppError):
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(AuthError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 400
    default_message = "Conflict"


class ConcurrencyConflict(ConflictError):
    status_code = 409
    default_message = "Resource was modified concurrently, please retry"


class InvalidStatusTransition(ConflictError):
    default_message = "Invalid order status transition"


class PaymentVerificationError(AppError):
    status_code = 400
    default_message = "Payment verification failed"


class InvalidSignatureError(AppError):
    status_code = 400
    default_message = "Invalid webhook signature"


class ProviderError(AppError):
    status_code = 502
    default_message = "Fulfillment provider error"


class ProviderUnavailable(ProviderError):
    status_code = 503
    default_message = "Service temporarily unavailable, please try again"


class UnknownProviderError(ProviderError):
    status_code = 400
    default_message = "Unknown provider"


class InternalError(AppError):
    status_code = 500
