"""Typed failures raised by services and guards.

Every failure carries an HTTP status and a translation key. Handlers never
format error bodies themselves; the exception handler registered in
``main.py`` turns these into the uniform error response.
"""


class AppError(Exception):
    """Base exception for all API errors."""

    status_code: int = 500
    message_key: str = "internal_error"

    def __init__(self, message_key: str | None = None, validation_errors: dict[str, str] | None = None):
        self.message_key = message_key or self.message_key
        self.validation_errors = validation_errors
        super().__init__(self.message_key)


class ValidationFailure(AppError):
    """Field-level validation errors, ordered by field declaration."""

    status_code = 400
    message_key = "validation_failure"

    def __init__(self, validation_errors: dict[str, str]):
        super().__init__(validation_errors=dict(validation_errors))


class DuplicateEmail(ValidationFailure):
    def __init__(self):
        super().__init__({"email": "email_inuse"})


class InvalidToken(AppError):
    status_code = 400
    message_key = "account_activation_failure"


class AuthenticationFailure(AppError):
    status_code = 401
    message_key = "authentication_failure"


class Forbidden(AppError):
    status_code = 403
    message_key = "inactive_authentication_failure"


class NotFound(AppError):
    status_code = 404
    message_key = "user_not_found"


class EmailDeliveryFailure(AppError):
    status_code = 502
    message_key = "email_failure"


class StorageError(AppError):
    status_code = 500
    message_key = "internal_error"
