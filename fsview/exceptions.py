"""Exception hierarchy for the fsview client.

This module defines all exceptions that can be raised by the fsview library.
The hierarchy is designed to allow catching specific error types or broader
categories as needed.

Exception Hierarchy:
    FSViewError (base)
    ├── ValidationError - Required input missing, raised before any request
    ├── MalformedResponseError - Payload lacks the expected entry list/fields
    └── TransportError - The request did not complete successfully
        ├── ConnectionError - Network/connection failures
        ├── TimeoutError - Request timeout
        └── APIError - Server returned an error response
            ├── ForbiddenError (HTTP 403)
            ├── NotFoundError (HTTP 404)
            └── ServerError (HTTP 5xx)

Every TransportError carries an ErrorCategory (not-found, server-error,
unreachable, other) that callers use to build a human-readable message.

Example:
    Catching specific errors::

        try:
            client.directory.list("docs")
        except NotFoundError:
            # Directory was removed by someone else
            pass
        except TransportError as e:
            print(f"{e.category.describe()}: {e.message}")
"""

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Coarse classification of a transport failure for user display."""

    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    UNREACHABLE = "unreachable"
    OTHER = "other"

    def describe(self) -> str:
        """Return a short human-readable description of the category."""
        return _CATEGORY_DESCRIPTIONS[self]


_CATEGORY_DESCRIPTIONS = {
    ErrorCategory.NOT_FOUND: "The requested resource does not exist (404)",
    ErrorCategory.SERVER_ERROR: "Internal server error",
    ErrorCategory.UNREACHABLE: "Cannot reach the server, check the network connection",
    ErrorCategory.OTHER: "Request failed",
}


def category_for_status(status_code: int) -> ErrorCategory:
    """Map an HTTP status code to an ErrorCategory.

    Args:
        status_code: The HTTP status code, or 0 when no response arrived.

    Returns:
        The matching category.
    """
    if status_code == 0:
        return ErrorCategory.UNREACHABLE
    if status_code == 404:
        return ErrorCategory.NOT_FOUND
    if status_code >= 500:
        return ErrorCategory.SERVER_ERROR
    return ErrorCategory.OTHER


class FSViewError(Exception):
    """Base exception for all fsview errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class ValidationError(FSViewError):
    """A required input was missing or blank.

    Raised by the sync controller and sub-clients before a request is
    issued, so the server never sees the invalid call.

    Attributes:
        field: Name of the offending field (if known).
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class MalformedResponseError(FSViewError):
    """The server payload did not match the expected schema.

    Attributes:
        payload: The raw payload that failed to parse.
    """

    def __init__(self, message: str, payload: Any = None) -> None:
        self.payload = payload
        super().__init__(message)


class TransportError(FSViewError):
    """The request failed before producing a usable 2xx response.

    Attributes:
        category: Coarse classification for user-facing messages.
    """

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.OTHER) -> None:
        self.category = category
        super().__init__(message)


class ConnectionError(TransportError):
    """No response arrived because the file server could not be reached.

    Attributes:
        url: The URL that was requested.
        cause: The httpx exception behind the failure.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.url = url
        self.cause = cause
        super().__init__(message, ErrorCategory.UNREACHABLE)

    def __str__(self) -> str:
        return f"{self.message} (url: {self.url})" if self.url else self.message


class TimeoutError(TransportError):
    """The server did not answer within the configured timeout.

    Attributes:
        timeout: The timeout in seconds.
        url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        timeout: float | None = None,
        url: str | None = None,
    ) -> None:
        self.timeout = timeout
        self.url = url
        super().__init__(message, ErrorCategory.UNREACHABLE)

    def __str__(self) -> str:
        details = []
        if self.timeout is not None:
            details.append(f"timeout: {self.timeout}s")
        if self.url:
            details.append(f"url: {self.url}")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


class APIError(TransportError):
    """The server answered with a non-2xx status.

    Attributes:
        status_code: HTTP status of the response.
        error_type: Short error code, set by the status-specific subclasses.
        response_body: The decoded body (or raw text) for debugging.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        error_type: str | None = None,
        response_body: Any = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: The ``error`` field of the body, or a generic message.
            status_code: HTTP status of the response.
            error_type: Short error code.
            response_body: The decoded body.
        """
        self.status_code = status_code
        self.error_type = error_type
        self.response_body = response_body
        super().__init__(message, category_for_status(status_code))

    def __str__(self) -> str:
        prefix = f"[HTTP {self.status_code}]"
        if self.error_type:
            prefix += f" [{self.error_type}]"
        return f"{prefix} {self.message}"


class ForbiddenError(APIError):
    """The server refused the operation (HTTP 403).

    The file server answers 403 when a symlink target lies outside
    the directories it is allowed to link to.
    """

    def __init__(self, message: str, response_body: Any = None) -> None:
        super().__init__(message, 403, "forbidden", response_body)


class NotFoundError(APIError):
    """The requested path does not exist (HTTP 404).

    Attributes:
        path: The endpoint path that was requested, if known.
    """

    def __init__(self, message: str, path: str | None = None, response_body: Any = None) -> None:
        self.path = path
        super().__init__(message, 404, "not_found", response_body)


class ServerError(APIError):
    """The server failed internally (HTTP 5xx).

    With retry enabled, 502/503/504 are retried before this is raised.
    """

    def __init__(self, message: str, status_code: int = 500, response_body: Any = None) -> None:
        super().__init__(message, status_code, "server_error", response_body)
