"""Internal HTTP handling utilities for the fsview client.

This module provides the low-level HTTP communication layer used by all
sub-clients. It handles:
- Prefixing every endpoint with the API prefix chosen at construction
- Form-encoded and multipart request bodies
- Mapping error responses and transport failures to fsview exceptions
- Optional retry with exponential backoff

This is an internal module and should not be imported directly by users.
"""

import asyncio
import logging
import time
from typing import Any, Literal

import httpx

from fsview.config import normalize_prefix
from fsview.exceptions import (
    APIError,
    ConnectionError,
    ForbiddenError,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    TimeoutError,
    TransportError,
)

logger = logging.getLogger(__name__)


HttpMethod = Literal["GET", "POST", "DELETE"]

# Multipart parts as accepted by httpx: (field, (filename, content, content_type))
FileParts = list[tuple[str, Any]]

# Status codes that trigger automatic retry (when retry is enabled)
RETRYABLE_STATUS_CODES = {502, 503, 504}

DEFAULT_RETRY_BACKOFF_BASE = 0.5  # seconds
DEFAULT_RETRY_BACKOFF_MAX = 30.0  # seconds


def _parse_error_response(response: httpx.Response) -> tuple[str, str | None]:
    """Extract the message and error type from an error response.

    The file server sends ``{"error": "..."}``; ``detail`` and ``message``
    keys are accepted too. Without a usable body the raw text is used,
    then a generic ``HTTP <code> error``.

    Returns:
        A tuple of (message, error_type).
    """
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return (text or f"HTTP {response.status_code} error"), None

    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value, body.get("type")
    return str(body), None


def _raise_for_status(response: httpx.Response, path: str | None = None) -> None:
    """Raise the fsview exception matching a non-2xx response.

    Args:
        response: The HTTP response to check.
        path: The endpoint path, recorded on NotFoundError.

    Raises:
        ForbiddenError: For HTTP 403 responses.
        NotFoundError: For HTTP 404 responses.
        ServerError: For HTTP 5xx responses.
        APIError: For other non-2xx responses.
    """
    if response.is_success:
        return

    message, error_type = _parse_error_response(response)
    try:
        body = response.json()
    except ValueError:
        body = response.text

    status_code = response.status_code
    if status_code == 404:
        raise NotFoundError(message=message, path=path, response_body=body)
    if status_code == 403:
        raise ForbiddenError(message=message, response_body=body)
    if status_code >= 500:
        raise ServerError(message=message, status_code=status_code, response_body=body)
    raise APIError(
        message=message,
        status_code=status_code,
        error_type=error_type,
        response_body=body,
    )


def _decode_body(response: httpx.Response) -> Any:
    """Decode a successful response body (None when empty).

    Raises:
        MalformedResponseError: If the body is not valid JSON.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise MalformedResponseError(
            f"Response from {response.request.url} is not valid JSON",
            payload=response.text,
        ) from e


def _calculate_backoff(attempt: int, base: float = DEFAULT_RETRY_BACKOFF_BASE) -> float:
    """Delay before retry ``attempt`` (0-indexed): base * 2^attempt, capped."""
    return min(base * (2 ** attempt), DEFAULT_RETRY_BACKOFF_MAX)


def _transport_error(exc: httpx.TransportError, url: str, timeout: float) -> TransportError:
    if isinstance(exc, httpx.TimeoutException):
        return TimeoutError(message=f"Request to {url} timed out", timeout=timeout, url=url)
    return ConnectionError(message=f"Failed to connect to {url}", url=url, cause=exc)


class _ClientCore:
    """Configuration and per-attempt decisions shared by both clients.

    Attributes:
        base_url: The server origin for all API requests.
        timeout: Request timeout in seconds.
        retry_enabled: Whether to retry transient failures.
        max_retries: Maximum number of retry attempts.
    """

    def __init__(
        self,
        base_url: str,
        prefix: str,
        timeout: float,
        retry_enabled: bool,
        max_retries: int,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._prefix = normalize_prefix(prefix)
        self.timeout = timeout
        self.retry_enabled = retry_enabled
        self.max_retries = max_retries

    @property
    def prefix(self) -> str:
        """The API prefix, fixed for the lifetime of the client."""
        return self._prefix

    @property
    def _attempts(self) -> int:
        return self.max_retries + 1 if self.retry_enabled else 1

    def _retry_delay(self, response: httpx.Response, attempt: int) -> float | None:
        """Seconds to wait before retrying ``response``, or None to keep it."""
        if (
            self.retry_enabled
            and response.status_code in RETRYABLE_STATUS_CODES
            and attempt < self._attempts - 1
        ):
            delay = _calculate_backoff(attempt)
            logger.debug(
                "Retrying %s in %.2fs (HTTP %d)", response.request.url, delay, response.status_code
            )
            return delay
        return None

    def _failure_delay(self, attempt: int) -> float | None:
        """Seconds to wait after a transport failure, or None to give up."""
        if not self.retry_enabled or attempt >= self._attempts - 1:
            return None
        return _calculate_backoff(attempt)


class HTTPClient(_ClientCore):
    """Synchronous HTTP client for the file server API.

    Wraps httpx.Client with the API prefix, error mapping and retries.
    """

    def __init__(
        self,
        base_url: str,
        prefix: str = "",
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: The server origin for all API requests.
            prefix: Path prefix for every endpoint ("" or "/name").
            timeout: Request timeout in seconds.
            retry_enabled: Whether to retry on transient failures.
            max_retries: Maximum number of retry attempts.
            transport: Custom transport (e.g., MockTransport for testing).
        """
        super().__init__(base_url, prefix, timeout, retry_enabled, max_retries)
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> "HTTPClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def request(
        self,
        method: HttpMethod,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: FileParts | None = None,
    ) -> Any:
        """Send a request to ``prefix + path`` and return the decoded JSON.

        Args:
            method: The HTTP method.
            path: The endpoint path.
            params: Query parameters.
            data: Form fields (url-encoded, or multipart when ``files`` is set).
            files: Multipart file parts.

        Returns:
            The parsed JSON body, or None for an empty body.

        Raises:
            ConnectionError: If the server cannot be reached.
            TimeoutError: If the request times out.
            APIError: If the server answers with an error status.
            MalformedResponseError: If a 2xx body is not JSON.
        """
        full_path = f"{self._prefix}{path}"
        url = f"{self.base_url}{full_path}"

        for attempt in range(self._attempts):
            logger.debug("%s %s (attempt %d/%d)", method, url, attempt + 1, self._attempts)
            try:
                response = self._client.request(
                    method, full_path, params=params, data=data, files=files
                )
            except httpx.TransportError as e:
                delay = self._failure_delay(attempt)
                if delay is None:
                    raise _transport_error(e, url, self.timeout) from e
                time.sleep(delay)
                continue

            delay = self._retry_delay(response, attempt)
            if delay is not None:
                time.sleep(delay)
                continue
            _raise_for_status(response, path=path)
            return _decode_body(response)

        raise RuntimeError("Unexpected error in request retry loop")

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(
        self,
        path: str,
        data: dict[str, Any] | None = None,
        files: FileParts | None = None,
    ) -> Any:
        return self.request("POST", path, data=data, files=files)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)


class AsyncHTTPClient(_ClientCore):
    """Asynchronous HTTP client for the file server API.

    Wraps httpx.AsyncClient with the API prefix, error mapping and retries.
    """

    def __init__(
        self,
        base_url: str,
        prefix: str = "",
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            base_url: The server origin for all API requests.
            prefix: Path prefix for every endpoint ("" or "/name").
            timeout: Request timeout in seconds.
            retry_enabled: Whether to retry on transient failures.
            max_retries: Maximum number of retry attempts.
            transport: Custom transport (e.g., ASGITransport for testing).
        """
        super().__init__(base_url, prefix, timeout, retry_enabled, max_retries)
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncHTTPClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(
        self,
        method: HttpMethod,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: FileParts | None = None,
    ) -> Any:
        """Send a request to ``prefix + path`` and return the decoded JSON.

        See HTTPClient.request for arguments and exceptions.
        """
        full_path = f"{self._prefix}{path}"
        url = f"{self.base_url}{full_path}"

        for attempt in range(self._attempts):
            logger.debug("%s %s (attempt %d/%d)", method, url, attempt + 1, self._attempts)
            try:
                response = await self._client.request(
                    method, full_path, params=params, data=data, files=files
                )
            except httpx.TransportError as e:
                delay = self._failure_delay(attempt)
                if delay is None:
                    raise _transport_error(e, url, self.timeout) from e
                await asyncio.sleep(delay)
                continue

            delay = self._retry_delay(response, attempt)
            if delay is not None:
                await asyncio.sleep(delay)
                continue
            _raise_for_status(response, path=path)
            return _decode_body(response)

        raise RuntimeError("Unexpected error in request retry loop")

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(
        self,
        path: str,
        data: dict[str, Any] | None = None,
        files: FileParts | None = None,
    ) -> Any:
        return await self.request("POST", path, data=data, files=files)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
