"""Outbound request construction for the verifier call.

:func:`build_request` turns a :class:`~authweb.models.VerifierConfig` and a
:class:`~authweb.models.CredentialAttempt` into a :class:`VerifierRequest`:
a form-encoded POST carrying the username and password under the
configured parameter names.

The body bytes are assembled here and measured, so the ``Content-Length``
header always matches what goes on the wire.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from authweb import __version__
from authweb.encoding import urlencode
from authweb.models import CredentialAttempt, VerifierConfig

USER_AGENT = f"authweb/{__version__}"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class VerifierRequest:
    """A fully assembled POST to the verifier.

    The body contains the encoded password, so :meth:`describe` is the only
    representation of a request that may be logged.
    """

    url: str
    body: bytes = field(repr=False)
    headers: dict[str, str] = field(default_factory=dict)
    username_param: str = ""
    password_param: str = ""
    method: str = "POST"

    def describe(self) -> str:
        """Return a log-safe one-line summary without credential values."""
        return (
            f"{self.method} {self.url} "
            f"(fields: {self.username_param}, {self.password_param}; "
            f"{len(self.body)} bytes)"
        )


def build_request(config: VerifierConfig, attempt: CredentialAttempt) -> VerifierRequest:
    """Build the verification POST for *attempt*.

    Args:
        config: A usable verifier configuration.
        attempt: The credentials to send.

    Returns:
        A :class:`VerifierRequest` whose body is
        ``<username_param>=<enc(username)>&<password_param>=<enc(password)>``.

    Raises:
        ValueError: If *config* is missing the URL or a parameter name.
    """
    if config.url is None or config.username_param is None or config.password_param is None:
        raise ValueError("verifier URL and parameter names are required to build a request")

    body = (
        f"{config.username_param}={urlencode(attempt.username)}"
        f"&{config.password_param}={urlencode(attempt.password)}"
    ).encode("utf-8")

    headers = {
        "User-Agent": USER_AGENT,
        "Content-Type": FORM_CONTENT_TYPE,
        "Content-Length": str(len(body)),
    }
    return VerifierRequest(
        url=config.url,
        body=body,
        headers=headers,
        username_param=config.username_param,
        password_param=config.password_param,
    )
