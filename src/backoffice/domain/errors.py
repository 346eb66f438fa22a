from __future__ import annotations


class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class DataIntegrityError(AppError):
    pass


class AuthorizationError(AppError):
    pass


class ApiError(AppError):
    """Failure reported by (or while talking to) the REST API."""

    def __init__(self, message: str, status_code: int | None = None, payload: object = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class NetworkError(ApiError):
    pass


class BadRequestError(ApiError):
    pass


class SessionExpiredError(ApiError, AuthorizationError):
    pass


class ForbiddenError(ApiError, AuthorizationError):
    pass


class NotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    pass


class ServerError(ApiError):
    pass


class RetriesExhaustedError(AppError):
    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


_STATUS_ERRORS: dict[int, type[ApiError]] = {
    400: BadRequestError,
    401: SessionExpiredError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: BadRequestError,
}

_DEFAULT_MESSAGES: dict[int, str] = {
    401: "Session expired. Please log in again.",
    403: "Access denied. You are not allowed to perform this action.",
    404: "Resource not found.",
    409: "The resource was changed by another request.",
}


def error_for_status(status_code: int, message: str | None = None, payload: object = None) -> ApiError:
    if status_code >= 500:
        cls: type[ApiError] = ServerError
        default = "Internal server error. Try again later."
    else:
        cls = _STATUS_ERRORS.get(status_code, ApiError)
        default = _DEFAULT_MESSAGES.get(status_code, f"Request failed with HTTP {status_code}.")
    return cls(message or default, status_code=status_code, payload=payload)


def is_transient(exc: BaseException) -> bool:
    """Only 5xx responses are worth retrying; 4xx and transport failures are not."""
    if not isinstance(exc, ApiError) or exc.status_code is None:
        return False
    return 500 <= exc.status_code < 600
