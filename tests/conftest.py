"""Shared test fixtures for authweb.

Provides reusable fixtures for verifier configurations, account stores,
isolated config environments, and output state. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from authweb.accounts import StaticAccountStore
from authweb.models import AccountRecord, RequestConfig, VerifierConfig
from authweb.output import OutputFormat, OutputManager, reset_output, set_output


VERIFIER_URL = "https://auth.example.com/login"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams and the
    test finishes, the cached references become stale. Resetting forces a
    fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Verifier fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def verifier_config() -> VerifierConfig:
    """A usable configuration with a failure string and no required headers."""
    return VerifierConfig(
        name="test",
        url=VERIFIER_URL,
        username_param="user",
        password_param="pass",
        failure_string="LOGIN FAILED",
        local_user="ftp",
        request=RequestConfig(timeout=5, max_retries=0),
    )


@pytest.fixture
def ftp_account() -> AccountRecord:
    return AccountRecord(
        name="ftp",
        uid=14,
        gid=50,
        home="/srv/ftp",
        shell="/sbin/nologin",
        gecos="FTP User",
    )


@pytest.fixture
def account_store(ftp_account: AccountRecord) -> StaticAccountStore:
    """An account store holding only the ``ftp`` template account."""
    return StaticAccountStore([ftp_account])


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    so that tests never touch real user config, clears all AUTHWEB_*
    environment variables, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("authweb.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["AUTHWEB_PROFILE", "AUTHWEB_URL"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, plain-format OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True, no_color=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def verbose_output() -> OutputManager:
    """Install a verbose, plain-format OutputManager so debug lines reach stderr."""
    output = OutputManager(format=OutputFormat.PLAIN, verbose=True, no_color=True)
    set_output(output)
    yield output
    reset_output()
