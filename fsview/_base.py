"""Base class for all sub-clients.

This module provides the base classes that the directory and file
sub-clients inherit from. They give access to the shared HTTP client and
validate every response at the boundary.

This is an internal module and should not be imported directly by users.
"""

from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from fsview.exceptions import MalformedResponseError, ValidationError
from fsview.models import ROOT_PATH

if TYPE_CHECKING:
    from fsview._http import AsyncHTTPClient, HTTPClient

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_response(model: type[ModelT], data: Any) -> ModelT:
    """Validate a decoded response body against ``model``.

    Args:
        model: The pydantic model describing the expected payload.
        data: The decoded JSON body (None for an empty body).

    Returns:
        The validated model instance.

    Raises:
        MalformedResponseError: If the payload does not match the model.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Expected a JSON object for {model.__name__}, got {type(data).__name__}",
            payload=data,
        )
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise MalformedResponseError(
            f"Malformed {model.__name__}: {location}: {first['msg']}",
            payload=data,
        ) from e


def path_segment(path: str) -> str:
    """Quote a relative path for use at the end of an endpoint URL.

    The root sentinel maps to an empty segment, which the server reads
    as the root.
    """
    path = path.strip().strip("/")
    if path in ("", ROOT_PATH):
        return ""
    return quote(path, safe="/")


def require(value: str | None, field: str, message: str) -> str:
    """Return ``value`` stripped, or raise ValidationError if it is blank."""
    value = (value or "").strip()
    if not value:
        raise ValidationError(message, field=field)
    return value


class BaseClient:
    """Base class for synchronous sub-clients.

    Attributes:
        _http: The shared HTTP client for making requests.
    """

    def __init__(self, http_client: "HTTPClient") -> None:
        """Initialize the sub-client.

        Args:
            http_client: The shared HTTP client instance.
        """
        self._http = http_client

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._http.get(path, params=params)

    def _post(
        self,
        path: str,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, Any]] | None = None,
    ) -> Any:
        return self._http.post(path, data=data, files=files)

    def _delete(self, path: str) -> Any:
        return self._http.delete(path)


class AsyncBaseClient:
    """Base class for asynchronous sub-clients.

    Attributes:
        _http: The shared async HTTP client for making requests.
    """

    def __init__(self, http_client: "AsyncHTTPClient") -> None:
        """Initialize the async sub-client.

        Args:
            http_client: The shared async HTTP client instance.
        """
        self._http = http_client

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self._http.get(path, params=params)

    async def _post(
        self,
        path: str,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, Any]] | None = None,
    ) -> Any:
        return await self._http.post(path, data=data, files=files)

    async def _delete(self, path: str) -> Any:
        return await self._http.delete(path)
