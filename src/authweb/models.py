"""Canonical Pydantic models shared across all authweb modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`VerifierConfig`, and :class:`GlobalConfig`.

**Per-attempt models** -- created for one authentication attempt and
discarded once the decision is made:
    :class:`CredentialAttempt`, :class:`VerifierResponse`,
    :class:`Decision`, :class:`AccountRecord`, and :class:`AuthOutcome`.

All models use Pydantic v2. Configuration models are frozen so a single
instance can be shared by concurrent authentication attempts.
"""

from __future__ import annotations

import enum
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


def normalise_header_line(line: str) -> str:
    """Return *line* in the ``Name: value`` form used for header matching.

    HTTP parsers drop the optional whitespace around a header value, so
    ``X-Auth:ok`` and ``X-Auth:  ok`` arrive as the same header. Both the
    configured required headers and the received lines go through this
    function so they compare equal. A line without a colon (the status
    line) is returned unchanged.
    """
    name, sep, value = line.partition(":")
    if not sep:
        return line
    return f"{name.rstrip()}: {value.strip()}"


# --- Decisions ---


class Decision(str, enum.Enum):
    """The three possible results of an authentication attempt.

    ``ABSTAIN`` means "this mechanism does not apply, let another one
    decide" and is distinct from ``REJECT``, which is an explicit denial.
    """

    ACCEPT = "accept"
    REJECT = "reject"
    ABSTAIN = "abstain"


# --- Verifier Config ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every call against the verifier."""

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(default=30, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(
        default=0, ge=0, description="Retries on transport failure (never on HTTP status)"
    )


class VerifierConfig(BaseModel):
    """Everything needed to verify credentials against one remote endpoint.

    Every field is optional so that a partially configured verifier can be
    loaded and reported on. Whether the configuration is *usable* is worked
    out once, at construction, and exposed via :attr:`is_usable`: the URL,
    both parameter names and the local user must be present, plus at least
    one way to detect failure (``failure_string`` or ``required_headers``).
    A verifier that cannot detect failure would accept everybody, so it is
    treated as unconfigured instead.

    ``username_regex`` is compiled case-insensitively at construction; an
    invalid pattern fails validation.

    Example::

        VerifierConfig(
            url="https://auth.example.com/login",
            username_param="user",
            password_param="pass",
            failure_string="LOGIN FAILED",
            local_user="ftp",
        )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: Optional[str] = Field(default=None, description="Profile name")
    url: Optional[str] = Field(default=None, description="Verifier endpoint URL")
    username_param: Optional[str] = Field(
        default=None, description="Form field carrying the username"
    )
    password_param: Optional[str] = Field(
        default=None, description="Form field carrying the password"
    )
    failure_string: Optional[str] = Field(
        default=None, description="Body substring that marks a failed login"
    )
    required_headers: tuple[str, ...] = Field(
        default=(), description="Header lines that must all be present on success"
    )
    local_user: Optional[str] = Field(
        default=None, description="Local account used as template for accepted users"
    )
    username_regex: Optional[str] = Field(
        default=None, description="Case-insensitive pattern usernames must match"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)

    _username_filter: Optional[re.Pattern[str]] = PrivateAttr(default=None)
    _missing: tuple[str, ...] = PrivateAttr(default=())

    @field_validator(
        "url",
        "username_param",
        "password_param",
        "failure_string",
        "local_user",
        "username_regex",
        mode="before",
    )
    @classmethod
    def _empty_is_unset(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    @field_validator("required_headers", mode="before")
    @classmethod
    def _dedupe_headers(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        # Keep first-seen order for reporting; the set semantics only
        # matter for matching.
        return tuple(dict.fromkeys(normalise_header_line(h) for h in value if h))

    @field_validator("username_regex")
    @classmethod
    def _check_regex(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value, re.IGNORECASE)
            except re.error as exc:
                raise ValueError(f"unable to compile regex '{value}': {exc}") from exc
        return value

    def model_post_init(self, __context: Any) -> None:
        if self.username_regex is not None:
            self._username_filter = re.compile(self.username_regex, re.IGNORECASE)

        missing = [
            field
            for field in ("url", "username_param", "password_param", "local_user")
            if getattr(self, field) is None
        ]
        if self.failure_string is None and not self.required_headers:
            missing.append("failure_string or required_headers")
        self._missing = tuple(missing)

    @property
    def username_filter(self) -> Optional[re.Pattern[str]]:
        """The compiled username gate, or ``None`` when no regex is set."""
        return self._username_filter

    @property
    def is_usable(self) -> bool:
        """Whether every setting needed to render a decision is present."""
        return not self._missing

    def missing_fields(self) -> list[str]:
        """Return the names of the settings that keep this config from being usable."""
        return list(self._missing)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/authweb/config.json``.

    Loaded and saved by :func:`~authweb.config.load_global_config` and
    :func:`~authweb.config.save_global_config`. See
    :func:`~authweb.config.resolve_config` for the precedence chain.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True


# --- Per-attempt models ---


class CredentialAttempt(BaseModel):
    """A username/password pair for a single authentication call.

    Both values are raw bytes; ``str`` input is UTF-8 encoded. The password
    is left out of ``repr()`` so an attempt can never leak through a log
    line or traceback.
    """

    model_config = ConfigDict(frozen=True)

    username: bytes
    password: bytes = Field(repr=False)

    @field_validator("username", "password", mode="before")
    @classmethod
    def _encode_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    @property
    def username_text(self) -> str:
        """The username as text, for regex gating and account naming."""
        return self.username.decode("utf-8", errors="surrogateescape")


class VerifierResponse(BaseModel):
    """What came back from the verifier for one call.

    ``headers`` holds one ``Name: value`` line per received header, CR/LF
    trimmed, with the status line first. ``body`` is the concatenation of
    every chunk received. ``status_code`` is kept for diagnostics only.
    """

    headers: list[str] = Field(default_factory=list)
    body: bytes = b""
    status_code: Optional[int] = None


class AccountRecord(BaseModel):
    """A local account entry, as found in the system password database."""

    model_config = ConfigDict(frozen=True)

    name: str
    uid: int
    gid: int
    home: str
    shell: str
    gecos: str = ""

    def renamed(self, name: str) -> AccountRecord:
        """Return a copy of this record under a different login name."""
        return self.model_copy(update={"name": name})


class AuthOutcome(BaseModel):
    """Result of :meth:`~authweb.engine.AuthDecisionEngine.authenticate`.

    ``account`` is only set for accepted attempts. ``reason`` is a short,
    credential-free explanation meant for diagnostics.
    """

    decision: Decision
    reason: str = ""
    account: Optional[AccountRecord] = None

    @property
    def accepted(self) -> bool:
        return self.decision is Decision.ACCEPT
