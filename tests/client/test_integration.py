"""Integration tests for fsview against an in-process fake file server.

These tests drive the SyncController and the async client through httpx's
ASGITransport into the FastAPI fake in tests/fixtures/backend.py, so the
whole path is exercised: form and multipart encoding, the API prefix,
error bodies, response validation, and the refresh cycles.
"""

import httpx

from fsview import AsyncFSViewClient, ConvergencePolicy, ErrorCategory, SyncController
from tests.fixtures.backend import FakeFileStore, create_backend_app


# =============================================================================
# Initial Load And Navigation
# =============================================================================


class TestInitialLoad:
    """Tests for loading the views from the server."""

    async def test_start(self, controller):
        await controller.start()

        tree = controller.state.cached_tree
        assert tree.paths() == [".", "docs", "docs/archive", "media"]
        assert tree.find("media").is_symlink is True
        assert controller.view().names == ["docs", "media", "notes.txt"]
        assert controller.state.active.is_active(".")

    async def test_hidden_entries_never_shown(self, controller):
        """The server lists hidden entries; the view drops them."""
        await controller.start()

        raw_names = [entry.name for entry in controller.state.cached_entries]
        assert "_h5ai" in raw_names
        assert "_h5ai" not in controller.view().names
        assert "_H5AI_cache" not in controller.view().names

    async def test_root_round_trip(self, controller):
        await controller.start()
        root_view = controller.view().names

        assert await controller.navigate_to("docs") is True
        assert controller.view().names == ["archive", "report.pdf"]
        assert controller.state.active.expanded_paths == {"."}

        assert await controller.navigate_to(".") is True
        assert controller.state.current_path == "."
        assert controller.view().names == root_view

    async def test_navigate_to_missing_directory(self, controller, notices):
        await controller.start()

        assert await controller.navigate_to("nope") is False

        assert controller.state.current_path == "."
        assert notices[-1].level == "error"
        assert "no such directory" in notices[-1].message

    async def test_search(self, controller):
        await controller.start()
        await controller.navigate_to("docs")

        assert controller.search("REP").names == ["report.pdf"]


# =============================================================================
# Mutations
# =============================================================================


class TestMutations:
    """Tests for mutations followed by refresh cycles."""

    async def test_create_directory(self, controller, store):
        await controller.start()

        assert await controller.create_directory(".", "inbox") is True

        assert "inbox" in store.nodes
        assert "inbox" in controller.view().names
        assert controller.state.cached_tree.find("inbox") is not None

    async def test_create_nested_directory_from_subdirectory(self, controller):
        await controller.start()
        await controller.navigate_to("docs")

        await controller.create_directory("docs", "drafts")

        assert "drafts" in controller.view().names
        assert controller.state.cached_tree.find("docs/drafts") is not None
        assert controller.state.active.is_active("docs")

    async def test_blank_name_sends_no_request(self, controller, store, notices):
        await controller.start()
        before = list(store.requests)

        assert await controller.create_directory(".", "   ") is False

        assert store.requests == before
        assert notices[-1].level == "warning"

    async def test_create_symlink(self, controller):
        await controller.start()

        assert await controller.create_symlink(".", "backup", "/mnt/backup") is True

        node = controller.state.cached_tree.find("backup")
        assert node.is_symlink is True
        assert node.symlink_target == "/mnt/backup"

    async def test_symlink_outside_allowed_root(self, controller, store, notices):
        await controller.start()
        requests_before = len(store.requests)

        assert await controller.create_symlink(".", "etc", "/etc") is False

        assert "etc" not in store.nodes
        # only the symlink request itself, no refresh
        assert len(store.requests) == requests_before + 1
        assert notices[-1].level == "error"
        assert notices[-1].category is ErrorCategory.OTHER

    async def test_delete(self, controller, store):
        await controller.start()

        assert await controller.delete("docs") is True

        assert not any(path.startswith("docs") for path in store.nodes)
        assert "docs" not in controller.view().names
        assert controller.state.cached_tree.find("docs") is None

    async def test_delete_missing(self, controller, notices):
        await controller.start()

        assert await controller.delete("ghost.txt") is False

        assert notices[-1].category is ErrorCategory.NOT_FOUND

    async def test_upload(self, controller, store):
        await controller.start()

        result = await controller.upload("docs", [("new.txt", b"data"), ("more.txt", b"x")])

        assert result.partial_failure is False
        assert store.nodes["docs/new.txt"].content == b"data"
        assert controller.state.current_path == "docs"
        assert "new.txt" in controller.view().names

    async def test_upload_unreadable_file(self, controller, store, notices, tmp_path):
        """A local file that cannot be read is a warning and nothing is sent."""
        await controller.start()
        before = list(store.requests)

        result = await controller.upload(".", [tmp_path / "missing.bin"])

        assert result is None
        assert store.requests == before
        assert notices[-1].level == "warning"
        assert "missing.bin" in notices[-1].message

    async def test_upload_partial_failure(self, controller, store, notices):
        """A too-large file fails alone; the rest is stored and shown."""
        store.max_upload_size = 4
        await controller.start()

        result = await controller.upload(".", [("fileA.txt", b"0123456789"), ("fileB.txt", b"ok")])

        assert [item.name for item in result.failed] == ["fileA.txt"]
        assert result.failed[0].error == "fileA.txt: too large"
        assert "fileB.txt" in controller.view().names
        assert "fileA.txt" not in controller.view().names
        assert [n.level for n in notices][-2:] == ["warning", "error"]


# =============================================================================
# Convergence And Failure Handling
# =============================================================================


class TestConvergence:
    """Tests for rename convergence and tree failures."""

    async def test_rename_converges_with_lagging_backend(self, controller, store):
        """The first cycle still sees the old name; the second shows the new one."""
        store.rename_lag_reads = 2
        await controller.start()

        assert await controller.rename("notes.txt", "todo.txt") is True
        assert "notes.txt" in controller.view().names

        await controller.wait_idle()

        names = controller.view().names
        assert "todo.txt" in names
        assert "notes.txt" not in names

    async def test_rename_directory_updates_tree(self, controller, store):
        store.rename_lag_reads = 2
        await controller.start()

        await controller.rename("docs", "papers")
        await controller.wait_idle()

        tree = controller.state.cached_tree
        assert tree.find("papers/archive") is not None
        assert tree.find("docs") is None

    async def test_tree_failure_keeps_previous_tree(self, controller, store, notices):
        await controller.start()
        previous = controller.state.cached_tree
        store.fail_tree = True

        assert await controller.create_directory(".", "inbox") is True

        assert "inbox" in controller.view().names
        assert controller.state.cached_tree is previous
        assert controller.state.cached_tree.find("inbox") is None
        assert controller.state.tree_error.category is ErrorCategory.SERVER_ERROR
        assert notices[-1].level == "error"

        store.fail_tree = False
        assert await controller.refresh_tree() is True
        assert controller.state.cached_tree.find("inbox") is not None
        assert controller.state.tree_error is None

    async def test_empty_tree_is_null(self):
        """An empty server hierarchy gives a bare root."""
        app = create_backend_app(FakeFileStore())
        async with AsyncFSViewClient(
            base_url="http://testserver", transport=httpx.ASGITransport(app=app)
        ) as client:
            controller = SyncController(client)
            await controller.start()

            assert controller.state.cached_tree.paths() == ["."]
            assert controller.view().is_empty


# =============================================================================
# API Prefix
# =============================================================================


class TestPrefix:
    """Tests for serving behind the /filesuploader proxy prefix."""

    async def test_every_request_uses_prefix(self, backend_app, store):
        async with AsyncFSViewClient(
            base_url="http://testserver",
            host_path="/filesuploader/",
            transport=httpx.ASGITransport(app=backend_app),
        ) as client:
            controller = SyncController(client, policy=ConvergencePolicy(attempts=1))
            await controller.start()
            await controller.create_directory(".", "inbox")
            await controller.delete("inbox")

        assert store.requests
        assert all(
            request.split(" ", 1)[1].startswith("/filesuploader/api/")
            for request in store.requests
        )

    async def test_unreachable_server(self, notices):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        async with AsyncFSViewClient(
            base_url="http://testserver", transport=httpx.MockTransport(refuse)
        ) as client:
            controller = SyncController(client, listener=notices.append)
            await controller.start()

        assert controller.state.cached_tree is None
        assert {n.category for n in notices} == {ErrorCategory.UNREACHABLE}
        assert len(notices) == 2
