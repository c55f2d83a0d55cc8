"""Tests for authweb.client.transport -- the httpx-backed verifier call."""

from __future__ import annotations

import socket
import threading
from unittest.mock import MagicMock, patch

import httpx
import pytest

from authweb.client.request import VerifierRequest, build_request
from authweb.client.transport import HttpTransport, trim_line_ending
from authweb.exceptions import TransportError
from authweb.evaluator import evaluate
from authweb.models import CredentialAttempt, Decision, RequestConfig, VerifierConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _transport(handler, max_retries: int = 0) -> HttpTransport:
    return HttpTransport(
        RequestConfig(timeout=5, max_retries=max_retries),
        transport=httpx.MockTransport(handler),
    )


def _request(config: VerifierConfig) -> VerifierRequest:
    return build_request(config, CredentialAttempt(username="alice", password="s3cret"))


# ---------------------------------------------------------------------------
# Outbound request
# ---------------------------------------------------------------------------


class TestOutboundRequest:
    def test_sends_form_post(self, verifier_config: VerifierConfig) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = request.content
            seen["headers"] = request.headers
            return httpx.Response(200, text="welcome")

        _transport(handler).perform(_request(verifier_config))

        assert seen["method"] == "POST"
        assert seen["url"] == "https://auth.example.com/login"
        assert seen["body"] == b"user=alice&pass=s3cret"
        headers = seen["headers"]
        assert headers["user-agent"].startswith("authweb/")  # type: ignore[index]
        assert headers["content-type"] == "application/x-www-form-urlencoded"  # type: ignore[index]
        assert headers["content-length"] == str(len(b"user=alice&pass=s3cret"))  # type: ignore[index]

    def test_redirects_not_followed(self, verifier_config: VerifierConfig) -> None:
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(302, headers={"Location": "https://elsewhere.example.com/"})

        response = _transport(handler).perform(_request(verifier_config))

        assert calls == ["https://auth.example.com/login"]
        assert response.status_code == 302
        assert "Location: https://elsewhere.example.com/" in response.headers


# ---------------------------------------------------------------------------
# Response capture
# ---------------------------------------------------------------------------


class TestResponseCapture:
    def test_status_line_first(self, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="ok")

        response = _transport(handler).perform(_request(verifier_config))
        assert response.headers[0] == "HTTP/1.1 200 OK"

    def test_header_lines_keep_case_and_order(self, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers=[("X-Auth", "ok"), ("X-Role", "admin"), ("x-lower", "Value")],
                content=b"",
            )

        response = _transport(handler).perform(_request(verifier_config))
        lines = response.headers
        assert lines.index("X-Auth: ok") < lines.index("X-Role: admin")
        assert "x-lower: Value" in lines

    def test_repeated_headers_each_captured(self, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, headers=[("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")], content=b""
            )

        response = _transport(handler).perform(_request(verifier_config))
        assert "Set-Cookie: a=1" in response.headers
        assert "Set-Cookie: b=2" in response.headers

    def test_chunks_concatenated(self, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=iter([b"...LOGIN ", b"FAI", b"LED..."]))

        response = _transport(handler).perform(_request(verifier_config))
        assert response.body == b"...LOGIN FAILED..."

    def test_binary_body_kept_verbatim(self, verifier_config: VerifierConfig) -> None:
        payload = bytes(range(256))

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=payload)

        response = _transport(handler).perform(_request(verifier_config))
        assert response.body == payload

    def test_status_code_recorded_not_raised(self, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, content=b"")

        response = _transport(handler).perform(_request(verifier_config))
        assert response.status_code == 500
        assert response.body == b""

    def test_value_whitespace_normalised(self, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, headers=[("X-Role", "  ftp  ")], content=b"")

        response = _transport(handler).perform(_request(verifier_config))
        assert "X-Role: ftp" in response.headers


class TestTrimLineEnding:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("X-Auth: ok\r\n", "X-Auth: ok"),
            ("X-Auth: ok\n", "X-Auth: ok"),
            ("X-Auth: ok\r", "X-Auth: ok"),
            ("X-Auth: ok", "X-Auth: ok"),
            ("X-Auth: ok\r\n\r\n", "X-Auth: ok\r\n"),
            ("\r\n", ""),
        ],
    )
    def test_strips_at_most_two(self, raw: str, expected: str) -> None:
        assert trim_line_ending(raw) == expected


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_connect_error(self, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(TransportError, match="Connection refused") as exc_info:
            _transport(handler).perform(_request(verifier_config))
        assert exc_info.value.decision is Decision.ABSTAIN

    def test_timeout(self, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportError, match="ReadTimeout"):
            _transport(handler).perform(_request(verifier_config))

    def test_protocol_error_not_retried(self, verifier_config: VerifierConfig) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.RemoteProtocolError("malformed response", request=request)

        with pytest.raises(TransportError, match="malformed response"):
            _transport(handler, max_retries=3).perform(_request(verifier_config))
        assert calls == 1

    def test_unsupported_protocol(self, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'.")

        with pytest.raises(TransportError, match="unsupported protocol"):
            _transport(handler).perform(_request(verifier_config))


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


class TestRetry:
    @patch("authweb.client.transport.time.sleep")
    def test_retry_then_success(self, mock_sleep: MagicMock, verifier_config: VerifierConfig) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls < 3:
                raise httpx.ConnectError("Connection refused", request=request)
            return httpx.Response(200, text="welcome")

        response = _transport(handler, max_retries=2).perform(_request(verifier_config))

        assert response.body == b"welcome"
        assert calls == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]

    @patch("authweb.client.transport.time.sleep")
    def test_retries_exhausted(self, mock_sleep: MagicMock, verifier_config: VerifierConfig) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(TransportError, match="after 3 attempt"):
            _transport(handler, max_retries=2).perform(_request(verifier_config))
        assert calls == 3

    @patch("authweb.client.transport.time.sleep")
    def test_http_errors_never_retried(
        self, mock_sleep: MagicMock, verifier_config: VerifierConfig
    ) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503, text="down")

        response = _transport(handler, max_retries=3).perform(_request(verifier_config))
        assert response.status_code == 503
        assert calls == 1
        mock_sleep.assert_not_called()


# ---------------------------------------------------------------------------
# Overall deadline
# ---------------------------------------------------------------------------


class TestDeadline:
    @patch("authweb.client.transport._clock", side_effect=[0.0, 1.0, 10.0])
    def test_slow_body_abandoned(self, mock_clock: MagicMock, verifier_config: VerifierConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=iter([b"a", b"b", b"c"]))

        with pytest.raises(TransportError, match="not complete within 5s"):
            _transport(handler).perform(_request(verifier_config))
        assert mock_clock.call_count == 3

    @patch("authweb.client.transport._clock", side_effect=[0.0, 1.0, 2.0, 4.9])
    def test_body_inside_deadline_kept(
        self, mock_clock: MagicMock, verifier_config: VerifierConfig
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=iter([b"a", b"b", b"c"]))

        response = _transport(handler).perform(_request(verifier_config))
        assert response.body == b"abc"


# ---------------------------------------------------------------------------
# Header lines from a real socket
# ---------------------------------------------------------------------------


def _read_request(conn: socket.socket) -> None:
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = conn.recv(4096)
        if not chunk:
            return
        data += chunk
    head, _, body = data.partition(b"\r\n\r\n")
    length = 0
    for line in head.split(b"\r\n")[1:]:
        name, _, value = line.partition(b":")
        if name.strip().lower() == b"content-length":
            length = int(value.strip())
    while len(body) < length:
        chunk = conn.recv(4096)
        if not chunk:
            return
        body += chunk


@pytest.fixture
def raw_verifier(monkeypatch: pytest.MonkeyPatch):
    """Serve one canned response, written byte for byte, on a local port."""
    for var in ("HTTP_PROXY", "http_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.delenv(var, raising=False)

    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    payload: dict[str, bytes] = {}

    def serve() -> None:
        conn, _ = server.accept()
        with conn:
            _read_request(conn)
            conn.sendall(payload["raw"])

    def start(raw: bytes) -> str:
        payload["raw"] = raw
        threading.Thread(target=serve, daemon=True).start()
        return f"http://127.0.0.1:{server.getsockname()[1]}/login"

    yield start
    server.close()


class TestRawHeaderLines:
    _RAW = (
        b"HTTP/1.1 200 OK\r\n"
        b"X-Auth:ok\r\n"
        b"X-Role:   ftp\r\n"
        b"Content-Length: 7\r\n"
        b"Connection: close\r\n"
        b"\r\n"
        b"welcome"
    )

    def test_unspaced_separator_matches_configured_header(
        self, raw_verifier, verifier_config: VerifierConfig
    ) -> None:
        url = raw_verifier(self._RAW)
        config = VerifierConfig.model_validate(
            {
                **verifier_config.model_dump(),
                "url": url,
                "failure_string": None,
                "required_headers": ["X-Auth:ok", "X-Role: ftp"],
            }
        )

        response = HttpTransport(RequestConfig(timeout=5)).perform(_request(config))

        assert response.headers[:3] == ["HTTP/1.1 200 OK", "X-Auth: ok", "X-Role: ftp"]
        assert response.body == b"welcome"
        assert evaluate(config, response) is Decision.ACCEPT
