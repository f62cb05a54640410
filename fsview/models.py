"""Wire schemas for the file server API.

This module defines the pydantic models used to validate every payload at
the client boundary: the Entry record, the tree and listing responses, the
mutation responses, and the per-file upload result built on top of them.
Field names follow Python conventions; the server's camelCase keys are
accepted through aliases.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from fsview.exceptions import MalformedResponseError

__all__ = [
    "HIDDEN_PREFIX",
    "ROOT_PATH",
    "is_hidden_name",
    "Entry",
    "TreeResponse",
    "DirectoryListing",
    "UploadResponse",
    "ActionResponse",
    "ErrorResponse",
    "UploadFile",
    "UploadItemResult",
    "UploadResult",
]

# Reserved marker hiding server-side bookkeeping entries from every view
HIDDEN_PREFIX = "_h5ai"

# Sentinel path of the fixed root
ROOT_PATH = "."


def is_hidden_name(name: str | None) -> bool:
    """Return True when ``name`` starts with the hidden prefix (any case)."""
    return (name or "").lower().startswith(HIDDEN_PREFIX)


class Entry(BaseModel):
    """One filesystem object as reported by the server.

    Attributes:
        name: Base name. Empty only for defective records.
        path: Slash-separated path relative to the root (root is ".").
        is_dir: Whether the entry is a directory.
        is_symlink: Whether the entry is a symbolic link.
        symlink_target: Link target, present only for symlinks.
        size: Size in bytes (meaningless for directories).
        mod_time: Modification time in epoch seconds.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = ""
    path: str = ""
    is_dir: bool = Field(False, alias="isDir")
    is_symlink: bool = Field(False, alias="isSymlink")
    symlink_target: str | None = Field(None, alias="symlinkTarget")
    size: int = Field(0, ge=0)
    mod_time: int = Field(0, alias="modTime")

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        """Treat explicit JSON nulls as missing fields."""
        if value is None:
            return cls.model_fields[info.field_name].get_default()
        return value

    @classmethod
    def from_raw(cls, raw: Any) -> "Entry":
        """Normalize one raw record into an Entry.

        Args:
            raw: A mapping decoded from the server's JSON.

        Returns:
            The normalized entry with every field defaulted.

        Raises:
            MalformedResponseError: If ``raw`` is not a mapping or holds an
                unusable value.
        """
        if isinstance(raw, Entry):
            return raw
        if not isinstance(raw, Mapping):
            raise MalformedResponseError(
                f"Expected an entry record, got {type(raw).__name__}",
                payload=raw,
            )
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as e:
            raise MalformedResponseError(
                f"Invalid entry record: {e.errors()[0]['msg']}",
                payload=raw,
            ) from e

    @property
    def is_hidden(self) -> bool:
        """Whether the entry is excluded from every user-facing view."""
        return is_hidden_name(self.name)

    @property
    def is_navigable(self) -> bool:
        """Whether the entry can become a tree node."""
        return self.is_dir or self.is_symlink

    @property
    def modified_at(self) -> datetime:
        """Modification time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.mod_time, tz=timezone.utc)


class _EntryListModel(BaseModel):
    """Shared handling of the ``files`` array."""

    files: list[Entry]

    @field_validator("files", mode="before")
    @classmethod
    def _files(cls, value: Any) -> Any:
        # The file server encodes an empty tree as null
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("files must be a list of entries")
        return value


class TreeResponse(_EntryListModel):
    """Response model for GET /api/directory/tree.

    Attributes:
        files: Every entry of the hierarchy, directories and files alike.
    """


class DirectoryListing(_EntryListModel):
    """Response model for GET /api/directory/list/{path}.

    Attributes:
        files: Entries directly inside the listed directory.
        path: The path as echoed (and possibly canonicalized) by the server.
        message: Informational text, e.g. for an empty directory.
    """

    path: str | None = None
    message: str | None = None


class UploadResponse(BaseModel):
    """Response model for POST /api/file/upload.

    Attributes:
        success: True when every file was stored.
        message: Informational text.
        errors: One message per failed file or unreadable part.
    """

    success: bool = False
    message: str | None = None
    errors: list[str] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def _errors(cls, value: Any) -> Any:
        return [] if value is None else value


class ActionResponse(BaseModel):
    """Response model for create, symlink, rename and delete.

    Attributes:
        message: Confirmation text, if the server sent one.
        data: Optional payload.
    """

    message: str | None = None
    data: Any = None


class ErrorResponse(BaseModel):
    """Error body sent with non-2xx responses.

    Attributes:
        error: Human-readable error message.
    """

    error: str


class UploadFile(BaseModel):
    """One file to upload.

    Attributes:
        name: Base name the file will be stored under.
        content: Raw bytes or a binary file-like object.
        content_type: MIME type sent with the part.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    content: Any
    content_type: str = "application/octet-stream"

    def as_multipart(self) -> tuple[str, tuple[str, Any, str]]:
        """Return the ``files`` tuple understood by httpx."""
        return ("files", (self.name, self.content, self.content_type))


class UploadItemResult(BaseModel):
    """Outcome of one file of an upload.

    Attributes:
        name: File name.
        ok: Whether no server error mentions the file.
        error: The error messages attributed to the file, joined.
    """

    name: str
    ok: bool = True
    error: str | None = None


class UploadResult(BaseModel):
    """Outcome of a completed upload request.

    The request completing is what counts as success for cache refresh;
    individual files may still have failed and are listed in ``items``.

    Attributes:
        path: Target directory of the upload.
        success: The server's own all-files-succeeded flag.
        items: Per-file results, in upload order.
        errors: All error messages returned by the server.
        unmatched_errors: Errors that mention none of the uploaded files.
    """

    path: str
    success: bool
    items: list[UploadItemResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    unmatched_errors: list[str] = Field(default_factory=list)

    @property
    def failed(self) -> list[UploadItemResult]:
        """Items with at least one error attributed to them."""
        return [item for item in self.items if not item.ok]

    @property
    def partial_failure(self) -> bool:
        """Whether some part of the upload failed."""
        return bool(self.errors) or not self.success

    @classmethod
    def from_response(
        cls,
        path: str,
        names: Iterable[str],
        response: UploadResponse,
    ) -> "UploadResult":
        """Attribute the server's error strings to the uploaded files.

        An error is attributed to every file whose name appears in it as a
        whole word; errors naming no uploaded file are kept separately.

        Args:
            path: Target directory of the upload.
            names: Names of the uploaded files, in upload order.
            response: The parsed server response.

        Returns:
            The per-file result.
        """
        names = list(names)
        matched: set[int] = set()
        items = []
        for name in names:
            pattern = re.compile(rf"(?<![\w.\-]){re.escape(name)}(?![\w.\-])")
            hits = []
            for index, message in enumerate(response.errors):
                if pattern.search(message):
                    hits.append(message)
                    matched.add(index)
            items.append(
                UploadItemResult(
                    name=name,
                    ok=not hits,
                    error="; ".join(hits) if hits else None,
                )
            )
        unmatched = [
            message for index, message in enumerate(response.errors) if index not in matched
        ]
        return cls(
            path=path,
            success=response.success,
            items=items,
            errors=list(response.errors),
            unmatched_errors=unmatched,
        )
