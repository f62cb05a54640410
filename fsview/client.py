"""Main fsview client classes.

This module provides the main entry points for talking to the file server:
- FSViewClient: Synchronous client
- AsyncFSViewClient: Asynchronous client (used by the SyncController)

Both clients provide namespaced access to the API through sub-client
properties (``client.directory`` and ``client.file``). Every request is
issued against ``prefix + endpoint``, where the prefix is fixed when the
client is created.

Example:
    Synchronous usage::

        from fsview import FSViewClient

        with FSViewClient(base_url="http://localhost:6012") as client:
            listing = client.directory.list(".")
            client.directory.create(".", "inbox")

    Asynchronous usage::

        from fsview import AsyncFSViewClient

        async with AsyncFSViewClient(host_path="/filesuploader/") as client:
            tree = await client.directory.tree()
"""

from typing import Any

from fsview._directory import AsyncDirectoryClient, DirectoryClient
from fsview._file import AsyncFileClient, FileClient
from fsview._http import AsyncHTTPClient, HTTPClient
from fsview.config import DEFAULT_BASE_URL, ClientSettings, detect_api_prefix, normalize_prefix


def _resolve_prefix(prefix: str | None, host_path: str | None) -> str:
    if prefix is not None:
        return normalize_prefix(prefix)
    return detect_api_prefix(host_path)


class FSViewClient:
    """Synchronous client for the file server API.

    Attributes:
        base_url: The server origin.
        prefix: The API prefix (immutable).

    Example:
        Manual lifecycle management::

            client = FSViewClient()
            try:
                client.file.delete("tmp/old.log")
            finally:
                client.close()
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        prefix: str | None = None,
        host_path: str | None = None,
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: Any = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: The server origin (default: http://localhost:6012).
            prefix: Explicit API prefix. When omitted it is detected from
                ``host_path``.
            host_path: Path the UI is hosted under, used for prefix detection.
            timeout: Request timeout in seconds (default: 30.0).
            retry_enabled: Whether to retry connection errors, timeouts and
                HTTP 502/503/504 with exponential backoff (default: False).
            max_retries: Maximum number of retry attempts (default: 3).
            transport: Custom HTTP transport (e.g., MockTransport for testing).
        """
        self._http = HTTPClient(
            base_url=base_url,
            prefix=_resolve_prefix(prefix, host_path),
            timeout=timeout,
            retry_enabled=retry_enabled,
            max_retries=max_retries,
            transport=transport,
        )

        self._directory: DirectoryClient | None = None
        self._file: FileClient | None = None

    @classmethod
    def from_settings(cls, settings: ClientSettings, transport: Any = None) -> "FSViewClient":
        """Create a client from loaded settings."""
        return cls(
            base_url=settings.base_url,
            prefix=settings.resolved_prefix,
            timeout=settings.timeout,
            retry_enabled=settings.retry_enabled,
            max_retries=settings.max_retries,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        """The server origin."""
        return self._http.base_url

    @property
    def prefix(self) -> str:
        """The API prefix, fixed for the lifetime of the client."""
        return self._http.prefix

    def __enter__(self) -> "FSViewClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the client and release resources."""
        self._http.close()

    @property
    def directory(self) -> DirectoryClient:
        """Access the directory endpoints (/api/directory/*).

        Provides tree(), list(), create() and symlink().
        """
        if self._directory is None:
            self._directory = DirectoryClient(self._http)
        return self._directory

    @property
    def file(self) -> FileClient:
        """Access the file endpoints (/api/file/*).

        Provides upload(), rename() and delete().
        """
        if self._file is None:
            self._file = FileClient(self._http)
        return self._file


class AsyncFSViewClient:
    """Asynchronous client for the file server API.

    Attributes:
        base_url: The server origin.
        prefix: The API prefix (immutable).

    Example:
        async with AsyncFSViewClient() as client:
            listing = await client.directory.list("docs")
            await client.file.rename("docs/a.txt", "b.txt")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        prefix: str | None = None,
        host_path: str | None = None,
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: Any = None,
    ) -> None:
        """Initialize the async client.

        Args:
            base_url: The server origin (default: http://localhost:6012).
            prefix: Explicit API prefix. When omitted it is detected from
                ``host_path``.
            host_path: Path the UI is hosted under, used for prefix detection.
            timeout: Request timeout in seconds (default: 30.0).
            retry_enabled: Whether to retry transient failures (default: False).
            max_retries: Maximum number of retry attempts (default: 3).
            transport: Custom HTTP transport (e.g., ASGITransport for testing).
        """
        self._http = AsyncHTTPClient(
            base_url=base_url,
            prefix=_resolve_prefix(prefix, host_path),
            timeout=timeout,
            retry_enabled=retry_enabled,
            max_retries=max_retries,
            transport=transport,
        )

        self._directory: AsyncDirectoryClient | None = None
        self._file: AsyncFileClient | None = None

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, transport: Any = None
    ) -> "AsyncFSViewClient":
        """Create a client from loaded settings."""
        return cls(
            base_url=settings.base_url,
            prefix=settings.resolved_prefix,
            timeout=settings.timeout,
            retry_enabled=settings.retry_enabled,
            max_retries=settings.max_retries,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        """The server origin."""
        return self._http.base_url

    @property
    def prefix(self) -> str:
        """The API prefix, fixed for the lifetime of the client."""
        return self._http.prefix

    async def __aenter__(self) -> "AsyncFSViewClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._http.close()

    @property
    def directory(self) -> AsyncDirectoryClient:
        """Access the directory endpoints (/api/directory/*)."""
        if self._directory is None:
            self._directory = AsyncDirectoryClient(self._http)
        return self._directory

    @property
    def file(self) -> AsyncFileClient:
        """Access the file endpoints (/api/file/*)."""
        if self._file is None:
            self._file = AsyncFileClient(self._http)
        return self._file
