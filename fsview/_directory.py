"""Directory sub-client for the file server API.

This module provides DirectoryClient and AsyncDirectoryClient for the
directory endpoints (/api/directory/*): fetching the whole hierarchy,
listing one directory, and creating directories and symbolic links.

This is an internal module. Import from `fsview` instead.
"""

from fsview._base import (
    AsyncBaseClient,
    BaseClient,
    parse_response,
    path_segment,
    require,
)
from fsview.models import ActionResponse, DirectoryListing, TreeResponse


_BASE_PATH = "/api/directory"


def _create_form(parent_path: str, name: str) -> dict[str, str]:
    name = require(name, "name", "Directory name must not be empty")
    return {"parentPath": parent_path, "name": name}


def _symlink_form(parent_path: str, name: str, target: str) -> dict[str, str]:
    name = require(name, "name", "Link name must not be empty")
    target = require(target, "target", "Link target must not be empty")
    return {"parentPath": parent_path, "name": name, "target": target}


# Synchronous DirectoryClient


class DirectoryClient(BaseClient):
    """Synchronous client for the directory endpoints (/api/directory/*).

    Example:
        with FSViewClient("http://files.local:6012") as client:
            tree = client.directory.tree()
            print(f"{len(tree.files)} entries in the hierarchy")

            listing = client.directory.list("docs")
            for entry in listing.files:
                print(entry.name, entry.size)

            client.directory.create("docs", "reports")
            client.directory.symlink("docs", "media", "/mnt/media")
    """

    def tree(self) -> TreeResponse:
        """Fetch every entry of the hierarchy.

        Returns:
            The flat entry list of the whole tree.

        Raises:
            MalformedResponseError: If the payload has no entry list.
            TransportError: If the request fails.
        """
        data = self._get(f"{_BASE_PATH}/tree")
        return parse_response(TreeResponse, data)

    def list(self, path: str = ".") -> DirectoryListing:
        """List the entries directly inside ``path``.

        Args:
            path: Directory path relative to the root ("." for the root).

        Returns:
            The listing, including the path as echoed by the server.

        Raises:
            NotFoundError: If the server reports the path as missing.
            MalformedResponseError: If the payload has no entry list.
            TransportError: If the request fails.
        """
        data = self._get(f"{_BASE_PATH}/list/{path_segment(path)}")
        return parse_response(DirectoryListing, data)

    def create(self, parent_path: str, name: str) -> ActionResponse:
        """Create directory ``name`` inside ``parent_path``.

        Raises:
            ValidationError: If ``name`` is blank (no request is sent).
            TransportError: If the request fails.
        """
        data = self._post(f"{_BASE_PATH}/create", data=_create_form(parent_path, name))
        return parse_response(ActionResponse, data)

    def symlink(self, parent_path: str, name: str, target: str) -> ActionResponse:
        """Create symbolic link ``name`` inside ``parent_path`` pointing at ``target``.

        Raises:
            ValidationError: If ``name`` or ``target`` is blank.
            ForbiddenError: If the server refuses the target.
            TransportError: If the request fails.
        """
        data = self._post(
            f"{_BASE_PATH}/symlink",
            data=_symlink_form(parent_path, name, target),
        )
        return parse_response(ActionResponse, data)


# Asynchronous AsyncDirectoryClient


class AsyncDirectoryClient(AsyncBaseClient):
    """Asynchronous client for the directory endpoints (/api/directory/*).

    Example:
        async with AsyncFSViewClient("http://files.local:6012") as client:
            tree = await client.directory.tree()
            listing = await client.directory.list("docs")
            await client.directory.create("docs", "reports")
    """

    async def tree(self) -> TreeResponse:
        """Fetch every entry of the hierarchy.

        Returns:
            The flat entry list of the whole tree.

        Raises:
            MalformedResponseError: If the payload has no entry list.
            TransportError: If the request fails.
        """
        data = await self._get(f"{_BASE_PATH}/tree")
        return parse_response(TreeResponse, data)

    async def list(self, path: str = ".") -> DirectoryListing:
        """List the entries directly inside ``path``.

        Args:
            path: Directory path relative to the root ("." for the root).

        Returns:
            The listing, including the path as echoed by the server.

        Raises:
            NotFoundError: If the server reports the path as missing.
            MalformedResponseError: If the payload has no entry list.
            TransportError: If the request fails.
        """
        data = await self._get(f"{_BASE_PATH}/list/{path_segment(path)}")
        return parse_response(DirectoryListing, data)

    async def create(self, parent_path: str, name: str) -> ActionResponse:
        """Create directory ``name`` inside ``parent_path``.

        Raises:
            ValidationError: If ``name`` is blank (no request is sent).
            TransportError: If the request fails.
        """
        data = await self._post(f"{_BASE_PATH}/create", data=_create_form(parent_path, name))
        return parse_response(ActionResponse, data)

    async def symlink(self, parent_path: str, name: str, target: str) -> ActionResponse:
        """Create symbolic link ``name`` inside ``parent_path`` pointing at ``target``.

        Raises:
            ValidationError: If ``name`` or ``target`` is blank.
            ForbiddenError: If the server refuses the target.
            TransportError: If the request fails.
        """
        data = await self._post(
            f"{_BASE_PATH}/symlink",
            data=_symlink_form(parent_path, name, target),
        )
        return parse_response(ActionResponse, data)
