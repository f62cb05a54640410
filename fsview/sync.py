"""Synchronization of the cached views with the file server.

The SyncController owns one NavigationState: the current path, the listing
of that path and the navigation tree. The server is the only source of
truth. The caches are replaced from fresh fetches and are never patched
locally: every mutation, once the server has accepted it, is followed by a
refetch of the listing and then of the tree.

Scheduling is cooperative (asyncio, single thread). Operations suspend only
while a request is outstanding, nothing is queued, and an issued request is
never cancelled. Overlapping fetches of the same cache are ordered by a
per-cache sequence token: a response is applied only if no newer fetch of
that cache was issued after it, otherwise it is dropped.

Renames are followed by more than one refresh cycle (see ConvergencePolicy)
because some backing stores do not show a rename to the very next read.

Example:
    async with AsyncFSViewClient() as client:
        controller = SyncController(client, listener=print)
        await controller.start()
        await controller.navigate_to("docs")
        await controller.rename("docs/a.txt", "b.txt")
        print(controller.view().names)
        await controller.wait_idle()
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine, Iterable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from fsview._file import UploadSource
from fsview.client import AsyncFSViewClient
from fsview.config import ClientSettings
from fsview.exceptions import (
    ErrorCategory,
    FSViewError,
    MalformedResponseError,
    TransportError,
    ValidationError,
)
from fsview.listing import ListingView, build_listing_view
from fsview.models import ROOT_PATH, Entry, UploadResult
from fsview.tree import ActivePath, TreeNode, build_tree, join_path, resolve_active_path, split_path

logger = logging.getLogger(__name__)

NoticeLevel = Literal["info", "success", "warning", "error"]

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.WARNING,
}


class Notice(BaseModel):
    """A user-facing report of an operation's outcome.

    Attributes:
        level: Severity used to style the message.
        message: Human-readable text.
        category: Failure category for transport errors.
    """

    level: NoticeLevel
    message: str
    category: ErrorCategory | None = None


NoticeListener = Callable[[Notice], None]


class ConvergencePolicy(BaseModel):
    """How many refresh cycles follow a rename, and how far apart.

    The first cycle runs immediately. Every later cycle is unconditional,
    since this client cannot tell whether the server has caught up.

    Attributes:
        attempts: Total number of refresh cycles (at least one).
        delay: Seconds between the first and the second cycle.
        backoff: Multiplier applied to the delay for each further cycle.
    """

    attempts: int = Field(2, ge=1)
    delay: float = Field(0.5, ge=0)
    backoff: float = Field(1.0, ge=1.0)

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "ConvergencePolicy":
        return cls(attempts=settings.convergence_attempts, delay=settings.convergence_delay)

    def delays(self) -> list[float]:
        """Waits before each cycle after the first one."""
        return [self.delay * self.backoff ** n for n in range(self.attempts - 1)]


class NavigationState(BaseModel):
    """Session state owned by one SyncController.

    Attributes:
        current_path: Directory whose contents are displayed.
        cached_entries: Latest listing of ``current_path`` as fetched.
        cached_tree: Latest navigation tree, None when invalidated.
        active: Resolution of ``current_path`` against ``cached_tree``.
        listing_error: Error of the latest listing fetch, if it failed.
        tree_error: Error of the latest tree fetch, if it failed.
        last_error: Error of the latest failed operation of any kind.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    current_path: str = ROOT_PATH
    cached_entries: list[Entry] = Field(default_factory=list)
    cached_tree: TreeNode | None = None
    active: ActivePath = Field(default_factory=lambda: ActivePath(path=ROOT_PATH))
    listing_error: FSViewError | None = None
    tree_error: FSViewError | None = None
    last_error: FSViewError | None = None


def describe_error(error: FSViewError) -> str:
    """Build the human-readable text shown for ``error``."""
    if isinstance(error, TransportError) and error.category is not ErrorCategory.OTHER:
        return f"{error.category.describe()}: {error.message}"
    return error.message


class SyncController:
    """Keeps the listing and tree caches consistent with the server.

    Fetch operations return True when their result was applied. Mutations
    return True (or the UploadResult) when the server accepted them. No
    operation raises FSViewError: failures are recorded on the state and
    published as error Notices, and the previous state stays usable.

    Attributes:
        state: The navigation session.
        policy: Refresh cycles issued after a rename.
    """

    def __init__(
        self,
        client: AsyncFSViewClient,
        *,
        policy: ConvergencePolicy | None = None,
        listener: NoticeListener | None = None,
        state: NavigationState | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            client: The async API client. The controller does not close it.
            policy: Convergence policy for renames (default: two cycles,
                0.5 seconds apart).
            listener: Callable receiving every Notice. Exceptions it raises
                are logged and do not interrupt the operation.
            state: Initial session state (default: root, empty caches).
        """
        self._client = client
        self.policy = policy or ConvergencePolicy()
        self.state = state or NavigationState()
        self._listener = listener
        self._listing_seq = 0
        self._tree_seq = 0
        self._pending: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> "SyncController":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # ===== Fetch operations =====

    async def start(self) -> None:
        """Load the tree and the listing of the current path."""
        await asyncio.gather(self.refresh_tree(), self.navigate_to(self.state.current_path))

    async def navigate_to(self, path: str) -> bool:
        """Fetch the listing of ``path`` and make it the current directory.

        The tree is not refetched; the active path is re-resolved against
        the tree already cached. On failure the current path and listing
        stay as they were.

        Args:
            path: Directory to display ("." for the root).

        Returns:
            True if the listing was applied.
        """
        self._listing_seq += 1
        token = self._listing_seq
        try:
            listing = await self._client.directory.list(path)
        except FSViewError as e:
            if token != self._listing_seq:
                logger.debug("Ignoring failure of superseded listing of %r: %s", path, e)
                return False
            self.state.listing_error = e
            self._report_failure("Failed to load directory", e)
            return False

        if token != self._listing_seq:
            logger.debug("Discarding superseded listing of %r", path)
            return False

        self.state.cached_entries = list(listing.files)
        self.state.current_path = listing.path or join_path(split_path(path))
        self.state.listing_error = None
        self._resolve_active()
        logger.info(
            "Listed %s (%d entries)", self.state.current_path, len(self.state.cached_entries)
        )
        return True

    async def refresh_tree(self) -> bool:
        """Fetch the hierarchy and rebuild the navigation tree.

        On failure the previously cached tree is kept.

        Returns:
            True if a new tree was built.
        """
        self._tree_seq += 1
        token = self._tree_seq
        try:
            response = await self._client.directory.tree()
        except FSViewError as e:
            if token != self._tree_seq:
                logger.debug("Ignoring failure of superseded tree fetch: %s", e)
                return False
            self.state.tree_error = e
            self._report_failure("Failed to load directory tree", e)
            return False

        if token != self._tree_seq:
            logger.debug("Discarding superseded tree fetch")
            return False

        self.state.cached_tree = build_tree(response.files)
        self.state.tree_error = None
        self._resolve_active()
        return True

    # ===== Local views =====

    def view(self) -> ListingView:
        """The current listing, hidden entries removed and sorted."""
        return self.search(None)

    def search(self, term: str | None) -> ListingView:
        """Filter the cached listing by ``term`` without a round-trip."""
        if isinstance(self.state.listing_error, MalformedResponseError):
            return build_listing_view(
                self.state.current_path,
                [],
                term,
                error=describe_error(self.state.listing_error),
            )
        return build_listing_view(self.state.current_path, self.state.cached_entries, term)

    # ===== Mutations =====

    async def upload(self, path: str, files: Iterable[UploadSource]) -> UploadResult | None:
        """Upload ``files`` into ``path``, then refresh ``path`` and the tree.

        A completed request is a success for refresh purposes even when the
        server reports per-file errors; each failed file gets its own error
        Notice.

        Returns:
            The per-file result, or None if the request failed.
        """
        try:
            result = await self._client.file.upload(path, files)
        except FSViewError as e:
            self._report_failure("Upload failed", e)
            return None

        if result.partial_failure:
            failed = len(result.failed)
            self._publish(
                "warning",
                f"Upload to {result.path} finished with errors "
                f"({failed} of {len(result.items)} files failed)",
            )
            for item in result.failed:
                self._publish("error", f"Upload failed for {item.name}: {item.error}")
            for message in result.unmatched_errors:
                self._publish("error", f"Upload error: {message}")
        else:
            self._publish("success", f"Uploaded {len(result.items)} file(s) to {result.path}")

        await self._refresh_cycle(result.path)
        return result

    async def create_directory(self, parent_path: str, name: str) -> bool:
        """Create directory ``name`` in ``parent_path``, then refresh."""
        try:
            await self._client.directory.create(parent_path, name)
        except FSViewError as e:
            self._report_failure("Failed to create directory", e)
            return False
        self._publish("success", f"Created directory {name.strip()}")
        await self._refresh_cycle(self.state.current_path)
        return True

    async def create_symlink(self, parent_path: str, name: str, target: str) -> bool:
        """Create symlink ``name`` -> ``target`` in ``parent_path``, then refresh."""
        try:
            await self._client.directory.symlink(parent_path, name, target)
        except FSViewError as e:
            self._report_failure("Failed to create symlink", e)
            return False
        self._publish("success", f"Created symlink {name.strip()} -> {target.strip()}")
        await self._refresh_cycle(self.state.current_path)
        return True

    async def rename(self, old_path: str, new_name: str) -> bool:
        """Rename ``old_path`` to ``new_name`` and converge the caches.

        On success both caches are invalidated, one refresh cycle runs
        immediately, and the remaining cycles of the policy are scheduled
        in the background (see wait_idle).
        """
        try:
            await self._client.file.rename(old_path, new_name)
        except FSViewError as e:
            self._report_failure("Rename failed", e)
            return False
        self._publish("success", f"Renamed {old_path} to {new_name.strip()}")

        self.state.cached_entries = []
        self.state.cached_tree = None
        self._resolve_active()

        await self._refresh_cycle(self.state.current_path)
        delays = self.policy.delays()
        if delays:
            self._schedule(self._delayed_cycles(delays))
        return True

    async def delete(self, path: str) -> bool:
        """Delete ``path`` on the server, then refresh."""
        try:
            await self._client.file.delete(path)
        except FSViewError as e:
            self._report_failure("Delete failed", e)
            return False
        self._publish("success", f"Deleted {path}")
        await self._refresh_cycle(self.state.current_path)
        return True

    # ===== Background work =====

    @property
    def pending(self) -> int:
        """Number of scheduled refresh cycles not yet finished."""
        return len(self._pending)

    async def wait_idle(self) -> None:
        """Wait until every scheduled refresh cycle has finished."""
        while self._pending:
            tasks = list(self._pending)
            await asyncio.gather(*tasks)
            self._pending.difference_update(tasks)

    async def aclose(self) -> None:
        """Cancel scheduled refresh cycles. The client is left open."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()

    # ===== Internals =====

    async def _refresh_cycle(self, path: str) -> None:
        # Listing first so it reflects the change before the tree does
        await self.navigate_to(path)
        await self.refresh_tree()

    async def _delayed_cycles(self, delays: list[float]) -> None:
        for delay in delays:
            await asyncio.sleep(delay)
            logger.debug("Convergence refresh of %s after %.2fs", self.state.current_path, delay)
            await self._refresh_cycle(self.state.current_path)

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _resolve_active(self) -> None:
        self.state.active = resolve_active_path(self.state.current_path, self.state.cached_tree)

    def _report_failure(self, action: str, error: FSViewError) -> None:
        self.state.last_error = error
        level: NoticeLevel = "warning" if isinstance(error, ValidationError) else "error"
        category = error.category if isinstance(error, TransportError) else None
        self._publish(level, f"{action}: {describe_error(error)}", category)

    def _publish(
        self,
        level: NoticeLevel,
        message: str,
        category: ErrorCategory | None = None,
    ) -> None:
        logger.log(_LOG_LEVELS[level], message)
        if self._listener is None:
            return
        try:
            self._listener(Notice(level=level, message=message, category=category))
        except Exception:
            logger.exception("Notice listener failed on: %s", message)
