"""Blocking HTTP transport for the verifier call.

:class:`HttpTransport` performs exactly one POST per attempt (plus optional
retries on network failure) with :mod:`httpx` and captures the two things
the evaluator looks at:

- **Header lines** -- the status line followed by one ``Name: value`` line
  per received header, in arrival order, with trailing CR/LF trimmed and
  the value in the form given by
  :func:`~authweb.models.normalise_header_line`.
- **Body** -- every streamed chunk appended to a buffer that is local to
  the call, so the evaluator only ever sees the complete body and
  concurrent calls never share it.

Any transport-level failure (DNS, connect, TLS, timeout, malformed
response) is raised as :class:`~authweb.exceptions.TransportError`. The HTTP
status code is recorded but never treated as an error.
"""

from __future__ import annotations

import time
from typing import Optional

import httpx

from authweb.client.request import VerifierRequest
from authweb.exceptions import TransportError
from authweb.models import RequestConfig, VerifierResponse, normalise_header_line
from authweb.output import get_output

_RETRYABLE = (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError)
_clock = time.monotonic


class HttpTransport:
    """Synchronous transport that sends a :class:`VerifierRequest`.

    A fresh :class:`httpx.Client` is opened for every call; nothing about a
    call outlives it. Redirects are not followed.

    ``timeout`` bounds each connect, write and read operation, and also the
    call as a whole: the body is abandoned once the deadline passes while
    chunks are still arriving. A chunk that is already being waited on is
    bounded by the per-read limit, so a call can overrun by at most one
    read timeout.

    Args:
        request_config: Timeout, TLS verification, and retry settings.
        transport: Optional custom :class:`httpx.BaseTransport` (for
            example :class:`httpx.MockTransport` in tests).

    Example::

        transport = HttpTransport(RequestConfig(timeout=10))
        response = transport.perform(build_request(config, attempt))
    """

    def __init__(
        self,
        request_config: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = request_config or RequestConfig()
        self._transport = transport

    def perform(self, request: VerifierRequest) -> VerifierResponse:
        """Send *request* and collect the verifier's response.

        Retries on connection and timeout errors up to ``max_retries``
        times. The delay doubles each attempt: 1 s, 2 s, 4 s, ...

        Args:
            request: The assembled verification request.

        Returns:
            A :class:`~authweb.models.VerifierResponse` holding the header
            lines, the complete body, and the status code.

        Raises:
            TransportError: If the verifier could not be reached or the
                exchange failed part way.
        """
        max_retries = self._config.max_retries
        output = get_output()

        for attempt in range(max_retries + 1):
            try:
                return self._send(request)
            except _RETRYABLE as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Verifier call failed: {_describe(exc)}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise TransportError(
                    f"URL call failed after {max_retries + 1} attempt(s): {_describe(exc)}"
                ) from exc
            except httpx.HTTPError as exc:
                raise TransportError(f"URL call failed: {_describe(exc)}") from exc
            except httpx.InvalidURL as exc:
                raise TransportError(f"Invalid verifier URL {request.url!r}: {exc}") from exc

        raise TransportError("URL call failed")  # pragma: no cover

    def _send(self, request: VerifierRequest) -> VerifierResponse:
        output = get_output()
        timeout = self._config.timeout
        deadline = _clock() + timeout

        with httpx.Client(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=False,
            transport=self._transport,
        ) as client:
            with client.stream(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
            ) as response:
                lines = [_status_line(response)]
                for name, value in response.headers.raw:
                    line = normalise_header_line(
                        trim_line_ending(f"{name.decode('latin-1')}:{value.decode('latin-1')}")
                    )
                    output.debug(f"received response header: {line}")
                    lines.append(line)

                body = bytearray()
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    if _clock() > deadline:
                        raise httpx.ReadTimeout(
                            f"response not complete within {timeout:g}s",
                            request=response.request,
                        )

        return VerifierResponse(
            headers=lines,
            body=bytes(body),
            status_code=response.status_code,
        )


def trim_line_ending(line: str) -> str:
    """Strip at most two trailing CR/LF characters from a header line."""
    for _ in range(2):
        if line.endswith(("\r", "\n")):
            line = line[:-1]
    return line


def _status_line(response: httpx.Response) -> str:
    parts = [response.http_version, str(response.status_code)]
    if response.reason_phrase:
        parts.append(response.reason_phrase)
    return trim_line_ending(" ".join(parts))


def _describe(exc: Exception) -> str:
    """Human-readable diagnostic for an httpx exception."""
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__
