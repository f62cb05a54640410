"""fsview: client-side views of a remote file server.

This package presents a server-owned hierarchy of directories, files and
symbolic links as two coordinated views, a navigation tree and the listing
of the current directory, and keeps them consistent with the server by
refetching after every change.

Example:
    Driving the views::

        from fsview import AsyncFSViewClient, SyncController

        async with AsyncFSViewClient(base_url="http://localhost:6012") as client:
            controller = SyncController(client)
            await controller.start()
            await controller.create_directory(".", "inbox")
            for entry in controller.view().entries:
                print(entry.name)

    Plain API access::

        from fsview import FSViewClient

        with FSViewClient() as client:
            client.file.rename("notes.txt", "todo.txt")

Exports:
    FSViewClient / AsyncFSViewClient: API clients.
    SyncController: Keeps listing and tree caches in sync with the server.
    build_tree / resolve_active_path: Navigation tree model.
    filter_and_sort / build_listing_view: Listing policy.

    Exceptions:
        FSViewError: Base exception for all errors.
        ValidationError: Required input missing (no request sent).
        MalformedResponseError: Payload did not match the schema.
        TransportError: Request failed (ConnectionError, TimeoutError, APIError).
"""

from fsview._directory import AsyncDirectoryClient, DirectoryClient
from fsview._file import AsyncFileClient, FileClient
from fsview.client import AsyncFSViewClient, FSViewClient
from fsview.config import ClientSettings, detect_api_prefix, load_settings
from fsview.exceptions import (
    APIError,
    ConnectionError,
    ErrorCategory,
    ForbiddenError,
    FSViewError,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    TimeoutError,
    TransportError,
    ValidationError,
)
from fsview.listing import (
    ListingView,
    build_listing_view,
    display_path,
    filter_and_sort,
    format_file_size,
)
from fsview.models import (
    ActionResponse,
    DirectoryListing,
    Entry,
    TreeResponse,
    UploadFile,
    UploadItemResult,
    UploadResponse,
    UploadResult,
)
from fsview.sync import ConvergencePolicy, NavigationState, Notice, SyncController
from fsview.tree import ActivePath, TreeNode, build_tree, resolve_active_path

__all__ = [
    # Clients
    "FSViewClient",
    "AsyncFSViewClient",
    "DirectoryClient",
    "AsyncDirectoryClient",
    "FileClient",
    "AsyncFileClient",
    # Synchronization
    "SyncController",
    "NavigationState",
    "ConvergencePolicy",
    "Notice",
    # Tree and listing
    "TreeNode",
    "ActivePath",
    "build_tree",
    "resolve_active_path",
    "ListingView",
    "build_listing_view",
    "filter_and_sort",
    "display_path",
    "format_file_size",
    # Configuration
    "ClientSettings",
    "load_settings",
    "detect_api_prefix",
    # Models
    "Entry",
    "TreeResponse",
    "DirectoryListing",
    "UploadResponse",
    "ActionResponse",
    "UploadFile",
    "UploadItemResult",
    "UploadResult",
    # Exceptions
    "FSViewError",
    "ValidationError",
    "MalformedResponseError",
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    "APIError",
    "ForbiddenError",
    "NotFoundError",
    "ServerError",
    "ErrorCategory",
]
