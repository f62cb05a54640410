"""Unit tests for the fsview HTTP utilities.

This module tests the HTTP handling layer defined in fsview/_http.py.
The tests verify:

1. Helper Functions:
   - _parse_error_response: Extracting the message from error bodies
   - _raise_for_status: Mapping HTTP status codes to exception types
   - _decode_body: Empty and non-JSON success bodies
   - _calculate_backoff: Exponential backoff calculation for retries

2. HTTPClient (Synchronous):
   - The API prefix is put in front of every endpoint
   - Form-encoded and multipart bodies
   - Error handling and retry logic

3. AsyncHTTPClient (Asynchronous):
   - Same functionality as HTTPClient but async

Note: These tests use httpx's mock transport to avoid real network calls.
"""

import pytest
import httpx

from fsview._http import (
    HTTPClient,
    AsyncHTTPClient,
    _parse_error_response,
    _raise_for_status,
    _decode_body,
    _calculate_backoff,
    RETRYABLE_STATUS_CODES,
    DEFAULT_RETRY_BACKOFF_BASE,
    DEFAULT_RETRY_BACKOFF_MAX,
)
from fsview.exceptions import (
    APIError,
    ConnectionError,
    ErrorCategory,
    ForbiddenError,
    MalformedResponseError,
    NotFoundError,
    ServerError,
    TimeoutError,
)


# =============================================================================
# Helper Function Tests: _parse_error_response
# =============================================================================

class TestParseErrorResponse:
    """Tests for the _parse_error_response helper function."""

    def test_parse_server_error_key(self) -> None:
        """The file server's {"error": "..."} body gives the message."""
        response = httpx.Response(400, json={"error": "Directory name missing"})
        message, error_type = _parse_error_response(response)

        assert message == "Directory name missing"
        assert error_type is None

    def test_parse_detail_string(self) -> None:
        """A FastAPI-style {"detail": "..."} body is accepted too."""
        response = httpx.Response(400, json={"detail": "Invalid request"})
        message, _ = _parse_error_response(response)

        assert message == "Invalid request"

    def test_parse_type_field(self) -> None:
        """A "type" field next to the message is returned as error type."""
        response = httpx.Response(409, json={"message": "exists", "type": "conflict"})

        assert _parse_error_response(response) == ("exists", "conflict")

    def test_parse_plain_text(self) -> None:
        """A non-JSON body falls back to the raw text."""
        response = httpx.Response(502, text="Bad Gateway\n")

        assert _parse_error_response(response) == ("Bad Gateway", None)

    def test_parse_empty_body(self) -> None:
        """An empty body falls back to a generic description."""
        response = httpx.Response(500)

        assert _parse_error_response(response) == ("HTTP 500 error", None)


# =============================================================================
# Helper Function Tests: _raise_for_status
# =============================================================================

class TestRaiseForStatus:
    """Tests for mapping HTTP status codes to exceptions."""

    def test_success_does_not_raise(self) -> None:
        _raise_for_status(httpx.Response(200, json={}))

    def test_404_raises_not_found(self) -> None:
        """404 maps to NotFoundError with the not-found category."""
        response = httpx.Response(404, json={"error": "no such file"})

        with pytest.raises(NotFoundError) as exc_info:
            _raise_for_status(response, path="/api/file/delete/x")

        assert exc_info.value.path == "/api/file/delete/x"
        assert exc_info.value.category is ErrorCategory.NOT_FOUND
        assert exc_info.value.message == "no such file"

    def test_403_raises_forbidden(self) -> None:
        """403 (e.g. symlink target outside the allowed root) maps to ForbiddenError."""
        response = httpx.Response(403, json={"error": "outside /mnt"})

        with pytest.raises(ForbiddenError) as exc_info:
            _raise_for_status(response)

        assert exc_info.value.status_code == 403
        assert exc_info.value.category is ErrorCategory.OTHER

    @pytest.mark.parametrize("status_code", [500, 502, 503])
    def test_5xx_raises_server_error(self, status_code: int) -> None:
        response = httpx.Response(status_code, json={"error": "boom"})

        with pytest.raises(ServerError) as exc_info:
            _raise_for_status(response)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.category is ErrorCategory.SERVER_ERROR

    def test_other_4xx_raises_api_error(self) -> None:
        """Other client errors map to the generic APIError."""
        response = httpx.Response(400, json={"error": "bad form"})

        with pytest.raises(APIError) as exc_info:
            _raise_for_status(response)

        assert type(exc_info.value) is APIError
        assert exc_info.value.response_body == {"error": "bad form"}
        assert exc_info.value.category is ErrorCategory.OTHER


# =============================================================================
# Helper Function Tests: _decode_body / _calculate_backoff
# =============================================================================

class TestDecodeBody:
    """Tests for decoding successful responses."""

    def test_empty_body_is_none(self) -> None:
        response = httpx.Response(200, request=httpx.Request("GET", "http://t/x"))

        assert _decode_body(response) is None

    def test_invalid_json_raises_malformed(self) -> None:
        """A 2xx body that is not JSON is a malformed response."""
        response = httpx.Response(
            200, text="<html>oops</html>", request=httpx.Request("GET", "http://t/x")
        )

        with pytest.raises(MalformedResponseError) as exc_info:
            _decode_body(response)

        assert exc_info.value.payload == "<html>oops</html>"


class TestCalculateBackoff:
    """Tests for the exponential backoff calculation."""

    def test_backoff_doubles(self) -> None:
        assert _calculate_backoff(0) == DEFAULT_RETRY_BACKOFF_BASE
        assert _calculate_backoff(1) == DEFAULT_RETRY_BACKOFF_BASE * 2
        assert _calculate_backoff(2) == DEFAULT_RETRY_BACKOFF_BASE * 4

    def test_backoff_is_capped(self) -> None:
        assert _calculate_backoff(20) == DEFAULT_RETRY_BACKOFF_MAX

    def test_retryable_codes(self) -> None:
        assert RETRYABLE_STATUS_CODES == {502, 503, 504}


# =============================================================================
# HTTPClient Tests
# =============================================================================

class TestHTTPClient:
    """Tests for the synchronous HTTPClient."""

    def test_prefix_is_normalized(self) -> None:
        client = HTTPClient(base_url="http://localhost:6012/", prefix="filesuploader/")

        assert client.base_url == "http://localhost:6012"
        assert client.prefix == "/filesuploader"
        client.close()

    def test_prefix_prepended_to_every_path(self) -> None:
        """Every request goes to prefix + endpoint."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"files": []})

        with HTTPClient(
            base_url="http://test",
            prefix="/filesuploader",
            transport=httpx.MockTransport(handler),
        ) as client:
            client.get("/api/directory/tree")
            client.delete("/api/file/delete/a.txt")

        assert seen == [
            "/filesuploader/api/directory/tree",
            "/filesuploader/api/file/delete/a.txt",
        ]

    def test_post_form_encoded(self) -> None:
        """Form fields without files are sent url-encoded."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["content_type"] = request.headers["content-type"]
            captured["body"] = request.content.decode()
            return httpx.Response(200, json={"message": "ok"})

        with HTTPClient(base_url="http://test", transport=httpx.MockTransport(handler)) as client:
            result = client.post("/api/file/rename", data={"oldPath": "a b", "newName": "c"})

        assert result == {"message": "ok"}
        assert captured["content_type"] == "application/x-www-form-urlencoded"
        assert captured["body"] == "oldPath=a+b&newName=c"

    def test_post_multipart(self) -> None:
        """Form fields with files are sent as multipart, fields first."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["content_type"] = request.headers["content-type"]
            captured["body"] = request.read()
            return httpx.Response(200, json={"success": True})

        with HTTPClient(base_url="http://test", transport=httpx.MockTransport(handler)) as client:
            client.post(
                "/api/file/upload",
                data={"path": "docs"},
                files=[("files", ("a.txt", b"AAA", "text/plain"))],
            )

        body = captured["body"]
        assert captured["content_type"].startswith("multipart/form-data")
        assert body.index(b'name="path"') < body.index(b'name="files"; filename="a.txt"')
        assert b"AAA" in body

    def test_empty_success_body_returns_none(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200)

        with HTTPClient(base_url="http://test", transport=httpx.MockTransport(handler)) as client:
            assert client.post("/api/directory/create", data={"name": "x"}) is None

    def test_error_response_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "gone"})

        with HTTPClient(base_url="http://test", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(NotFoundError):
                client.delete("/api/file/delete/x")

    def test_connect_error_raises_connection_error(self) -> None:
        """An unreachable server maps to ConnectionError (unreachable)."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with HTTPClient(base_url="http://test", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ConnectionError) as exc_info:
                client.get("/api/directory/tree")

        assert exc_info.value.category is ErrorCategory.UNREACHABLE
        assert exc_info.value.url == "http://test/api/directory/tree"

    def test_timeout_raises_timeout_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with HTTPClient(
            base_url="http://test", timeout=5.0, transport=httpx.MockTransport(handler)
        ) as client:
            with pytest.raises(TimeoutError) as exc_info:
                client.get("/api/directory/tree")

        assert exc_info.value.timeout == 5.0
        assert exc_info.value.category is ErrorCategory.UNREACHABLE

    def test_no_retry_by_default(self) -> None:
        """Without retry enabled a 503 is raised after one attempt."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(503, json={"error": "busy"})

        with HTTPClient(base_url="http://test", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ServerError):
                client.get("/api/directory/tree")

        assert len(calls) == 1

    def test_retry_on_retryable_status(self, monkeypatch) -> None:
        """With retry enabled, 502/503/504 are retried until success."""
        monkeypatch.setattr("fsview._http.time.sleep", lambda _: None)
        responses = [503, 502, 200]

        def handler(request: httpx.Request) -> httpx.Response:
            status = responses.pop(0)
            return httpx.Response(status, json={"files": []} if status == 200 else {})

        with HTTPClient(
            base_url="http://test",
            retry_enabled=True,
            max_retries=3,
            transport=httpx.MockTransport(handler),
        ) as client:
            assert client.get("/api/directory/tree") == {"files": []}

        assert responses == []

    def test_retry_gives_up_after_max_retries(self, monkeypatch) -> None:
        monkeypatch.setattr("fsview._http.time.sleep", lambda _: None)
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(504, json={"error": "timeout"})

        with HTTPClient(
            base_url="http://test",
            retry_enabled=True,
            max_retries=2,
            transport=httpx.MockTransport(handler),
        ) as client:
            with pytest.raises(ServerError):
                client.get("/api/directory/tree")

        assert len(calls) == 3

    def test_non_retryable_status_not_retried(self, monkeypatch) -> None:
        monkeypatch.setattr("fsview._http.time.sleep", lambda _: None)
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(500, json={"error": "broken"})

        with HTTPClient(
            base_url="http://test",
            retry_enabled=True,
            transport=httpx.MockTransport(handler),
        ) as client:
            with pytest.raises(ServerError):
                client.get("/api/directory/tree")

        assert len(calls) == 1


# =============================================================================
# AsyncHTTPClient Tests
# =============================================================================

class TestAsyncHTTPClient:
    """Tests for the asynchronous AsyncHTTPClient."""

    async def test_prefix_prepended(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"files": None})

        async with AsyncHTTPClient(
            base_url="http://test",
            prefix="/filesuploader",
            transport=httpx.MockTransport(handler),
        ) as client:
            result = await client.get("/api/directory/tree")

        assert result == {"files": None}
        assert seen == ["/filesuploader/api/directory/tree"]

    async def test_error_response_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": "forbidden"})

        async with AsyncHTTPClient(
            base_url="http://test", transport=httpx.MockTransport(handler)
        ) as client:
            with pytest.raises(ForbiddenError):
                await client.post("/api/directory/symlink", data={"name": "x"})

    async def test_connect_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with AsyncHTTPClient(
            base_url="http://test", transport=httpx.MockTransport(handler)
        ) as client:
            with pytest.raises(ConnectionError):
                await client.get("/api/directory/tree")

    async def test_retry_on_retryable_status(self, monkeypatch) -> None:
        monkeypatch.setattr("fsview._http._calculate_backoff", lambda attempt: 0)
        responses = [502, 200]

        def handler(request: httpx.Request) -> httpx.Response:
            status = responses.pop(0)
            return httpx.Response(status, json={"ok": True})

        async with AsyncHTTPClient(
            base_url="http://test",
            retry_enabled=True,
            transport=httpx.MockTransport(handler),
        ) as client:
            assert await client.get("/api/directory/tree") == {"ok": True}
