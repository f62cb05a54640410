"""File sub-client for the file server API.

This module provides FileClient and AsyncFileClient for the file endpoints
(/api/file/*): multipart upload, rename and delete.

This is an internal module. Import from `fsview` instead.
"""

from collections.abc import Iterable
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError as PydanticValidationError

from fsview._base import (
    AsyncBaseClient,
    BaseClient,
    parse_response,
    path_segment,
    require,
)
from fsview.exceptions import ValidationError
from fsview.models import ROOT_PATH, ActionResponse, UploadFile, UploadResponse, UploadResult

# Accepted shapes for one file to upload
UploadSource = Union[UploadFile, Path, tuple[str, Any], tuple[str, Any, str]]


_BASE_PATH = "/api/file"


def _to_upload_file(source: UploadSource) -> UploadFile:
    if isinstance(source, UploadFile):
        return source
    if isinstance(source, Path):
        return UploadFile(name=source.name, content=source.read_bytes())
    if isinstance(source, tuple) and len(source) in (2, 3):
        return UploadFile(
            name=source[0],
            content=source[1],
            content_type=source[2] if len(source) == 3 else "application/octet-stream",
        )
    raise ValidationError(f"Unsupported upload source: {source!r}", field="files")


def coerce_upload(source: UploadSource) -> UploadFile:
    """Normalize one upload source into an UploadFile.

    Args:
        source: An UploadFile, a local Path (read eagerly), or a
            ``(name, content)`` / ``(name, content, content_type)`` tuple.

    Returns:
        The normalized upload file.

    Raises:
        ValidationError: If the source cannot be read or has no usable
            file name.
    """
    try:
        upload = _to_upload_file(source)
    except OSError as e:
        raise ValidationError(f"Cannot read {source}: {e.strerror or e}", field="files") from e
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise ValidationError(
            f"Invalid upload source {source!r}: {first['msg']}", field="files"
        ) from e

    # The server stores parts under their base name only
    name = Path(upload.name.replace("\\", "/")).name
    if not name:
        raise ValidationError("Uploaded file name must not be empty", field="files")
    if name != upload.name:
        upload = upload.model_copy(update={"name": name})
    return upload


def _prepare_upload(path: str, files: Iterable[UploadSource]) -> tuple[str, list[UploadFile]]:
    uploads = [coerce_upload(source) for source in files]
    if not uploads:
        raise ValidationError("Select at least one file to upload", field="files")
    return (path or ROOT_PATH), uploads


def _rename_form(old_path: str, new_name: str) -> dict[str, str]:
    old_path = require(old_path, "old_path", "Path to rename must not be empty")
    new_name = require(new_name, "new_name", "New name must not be empty")
    return {"oldPath": old_path, "newName": new_name}


def _delete_path(path: str) -> str:
    path = require(path, "path", "Path to delete must not be empty")
    if path_segment(path) == "":
        raise ValidationError("The root directory cannot be deleted", field="path")
    return f"{_BASE_PATH}/delete/{path_segment(path)}"


# Synchronous FileClient


class FileClient(BaseClient):
    """Synchronous client for the file endpoints (/api/file/*).

    Example:
        with FSViewClient() as client:
            result = client.file.upload("docs", [Path("report.pdf")])
            for item in result.failed:
                print(f"{item.name}: {item.error}")

            client.file.rename("docs/report.pdf", "report-2024.pdf")
            client.file.delete("docs/old")
    """

    def upload(self, path: str, files: Iterable[UploadSource]) -> UploadResult:
        """Upload ``files`` into directory ``path`` in a single request.

        A completed request is returned even when some files failed;
        inspect ``UploadResult.items`` to see which ones.

        Args:
            path: Target directory ("." for the root).
            files: Files to upload.

        Returns:
            The per-file result of the upload.

        Raises:
            ValidationError: If no files are given (no request is sent).
            TransportError: If the request fails.
        """
        path, uploads = _prepare_upload(path, files)
        data = self._post(
            f"{_BASE_PATH}/upload",
            data={"path": path},
            files=[upload.as_multipart() for upload in uploads],
        )
        response = parse_response(UploadResponse, data)
        return UploadResult.from_response(path, [u.name for u in uploads], response)

    def rename(self, old_path: str, new_name: str) -> ActionResponse:
        """Rename the entry at ``old_path`` to ``new_name`` in the same directory.

        Raises:
            ValidationError: If either argument is blank.
            TransportError: If the request fails.
        """
        data = self._post(f"{_BASE_PATH}/rename", data=_rename_form(old_path, new_name))
        return parse_response(ActionResponse, data)

    def delete(self, path: str) -> ActionResponse:
        """Delete the file or directory (recursively) at ``path``.

        Raises:
            ValidationError: If ``path`` is blank or the root.
            NotFoundError: If the path does not exist.
            TransportError: If the request fails.
        """
        data = self._delete(_delete_path(path))
        return parse_response(ActionResponse, data)


# Asynchronous AsyncFileClient


class AsyncFileClient(AsyncBaseClient):
    """Asynchronous client for the file endpoints (/api/file/*).

    Example:
        async with AsyncFSViewClient() as client:
            result = await client.file.upload(".", [("notes.txt", b"hello")])
            await client.file.rename("notes.txt", "todo.txt")
            await client.file.delete("todo.txt")
    """

    async def upload(self, path: str, files: Iterable[UploadSource]) -> UploadResult:
        """Upload ``files`` into directory ``path`` in a single request.

        A completed request is returned even when some files failed;
        inspect ``UploadResult.items`` to see which ones.

        Args:
            path: Target directory ("." for the root).
            files: Files to upload.

        Returns:
            The per-file result of the upload.

        Raises:
            ValidationError: If no files are given (no request is sent).
            TransportError: If the request fails.
        """
        path, uploads = _prepare_upload(path, files)
        data = await self._post(
            f"{_BASE_PATH}/upload",
            data={"path": path},
            files=[upload.as_multipart() for upload in uploads],
        )
        response = parse_response(UploadResponse, data)
        return UploadResult.from_response(path, [u.name for u in uploads], response)

    async def rename(self, old_path: str, new_name: str) -> ActionResponse:
        """Rename the entry at ``old_path`` to ``new_name`` in the same directory.

        Raises:
            ValidationError: If either argument is blank.
            TransportError: If the request fails.
        """
        data = await self._post(f"{_BASE_PATH}/rename", data=_rename_form(old_path, new_name))
        return parse_response(ActionResponse, data)

    async def delete(self, path: str) -> ActionResponse:
        """Delete the file or directory (recursively) at ``path``.

        Raises:
            ValidationError: If ``path`` is blank or the root.
            NotFoundError: If the path does not exist.
            TransportError: If the request fails.
        """
        data = await self._delete(_delete_path(path))
        return parse_response(ActionResponse, data)
