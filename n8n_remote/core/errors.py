"""Tagged API errors, produced once at the transport boundary.

Callers never inspect response shapes; they branch on ``ApiError.kind`` only.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

import httpx


class ErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    SERVER = "server"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class ApiError(Exception):
    """Base class for every failure surfaced by the n8n access layer."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, status_code: int | None = None, raw_body: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw_body = raw_body

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, status_code={self.status_code!r}, message={self.message!r})"

    @classmethod
    def from_status(cls, status_code: int, raw_body: Any = None, fallback: str = "") -> ApiError:
        """Build the error subclass matching an HTTP status code."""
        message = _extract_message(raw_body) or fallback or f"HTTP {status_code}"
        if status_code in (401, 403):
            error_cls: type[ApiError] = AuthError
        elif status_code == 404:
            error_cls = NotFoundError
        elif status_code >= 500:
            error_cls = ServerError
        elif 400 <= status_code < 500:
            error_cls = ApiValidationError
        else:
            error_cls = UnknownApiError
        return error_cls(message, status_code=status_code, raw_body=raw_body)

    @classmethod
    def from_transport_exception(cls, exc: Exception) -> ApiError:
        """Translate an httpx exception that produced no usable response."""
        if isinstance(exc, httpx.TimeoutException):
            return ApiTimeoutError(str(exc) or "Request timed out")
        if isinstance(exc, httpx.HTTPStatusError):
            return cls.from_status(exc.response.status_code, _decode_body(exc.response), str(exc))
        if isinstance(exc, httpx.RequestError):
            return NetworkError(str(exc) or "Network error")
        return UnknownApiError(str(exc) or type(exc).__name__)


class NetworkError(ApiError):
    kind = ErrorKind.NETWORK


class ApiTimeoutError(ApiError):
    kind = ErrorKind.TIMEOUT


class AuthError(ApiError):
    kind = ErrorKind.AUTH


class NotFoundError(ApiError):
    kind = ErrorKind.NOT_FOUND


class ServerError(ApiError):
    kind = ErrorKind.SERVER


class ApiValidationError(ApiError):
    kind = ErrorKind.VALIDATION


class UnknownApiError(ApiError):
    kind = ErrorKind.UNKNOWN


def _extract_message(raw_body: Any) -> str:
    if isinstance(raw_body, dict):
        for key in ("message", "error"):
            value = raw_body.get(key)
            if isinstance(value, str) and value:
                return value
    return ""


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def normalize_error(exc: BaseException) -> ApiError:
    """Coerce any exception into an ``ApiError`` (identity for ApiError)."""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, Exception):
        return ApiError.from_transport_exception(exc)
    return UnknownApiError(str(exc) or type(exc).__name__)


_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Network error - check the URL",
    ErrorKind.TIMEOUT: "Connection timed out",
    ErrorKind.NOT_FOUND: "This item no longer exists",
    ErrorKind.SERVER: "The n8n server failed to handle the request",
    ErrorKind.UNKNOWN: "Something went wrong",
}


def user_message(error: ApiError) -> str:
    """One user-facing line per error kind."""
    if error.kind == ErrorKind.AUTH:
        if error.status_code == 403:
            return "This API key is not allowed to do that"
        return "Invalid API key"
    if error.kind == ErrorKind.VALIDATION and error.message:
        return error.message
    # only a server response carries copy meant for the user; local failures stay generic
    if error.kind == ErrorKind.UNKNOWN and error.status_code is not None and error.message:
        return error.message
    if error.kind == ErrorKind.SERVER and error.status_code:
        return f"{_USER_MESSAGES[ErrorKind.SERVER]} ({error.status_code})"
    return _USER_MESSAGES.get(error.kind, _USER_MESSAGES[ErrorKind.UNKNOWN])
