"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for authweb:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.authweb/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir`, :func:`get_profiles_dir`.
* **Global config** -- A single :class:`~authweb.models.GlobalConfig`
  JSON file storing the default profile and auto-selection switch.
* **Profiles** -- One JSON file per verifier, each deserialised into a
  :class:`~authweb.models.VerifierConfig`. Managed via :func:`load_profile`,
  :func:`save_profile`, :func:`delete_profile`.
* **Directives** -- :func:`parse_directives` reads the ``AuthWeb*``
  directive syntax used in ProFTPD configuration files, so an existing
  server configuration can be imported as a profile.
* **Precedence resolution** -- :func:`resolve_config` picks the active
  profile from CLI flags, environment variables, and global config.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from authweb.exceptions import ConfigError, NotFoundError
from authweb.models import GlobalConfig, VerifierConfig

_APP_NAME = "authweb"
_CONFIG_FILENAME = "config.json"

# Directive name (lower-cased) -> VerifierConfig field.
DIRECTIVES: dict[str, str] = {
    "authweburl": "url",
    "authwebusernameparamname": "username_param",
    "authwebpasswordparamname": "password_param",
    "authwebloginfailedstring": "failure_string",
    "authweblocaluser": "local_user",
    "authwebrequireheader": "required_headers",
    "authwebuserregex": "username_regex",
}
_REPEATABLE = frozenset({"required_headers"})


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/authweb/`` (default ``~/.config/authweb/``).
    On macOS/Windows: ``~/.authweb/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/authweb/`` (default ``~/.local/share/authweb/``).
    On macOS/Windows: ``~/.authweb/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    """Return the profiles directory (``<config_dir>/profiles/``), creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~authweb.models.GlobalConfig`, or a
        default instance if the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return all profile names found in the profiles directory, sorted alphabetically."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def load_profile(name: str) -> VerifierConfig:
    """Load and validate a verifier profile from disk.

    Args:
        name: Profile name (corresponds to ``<name>.json`` in the profiles
            directory).

    Returns:
        The deserialised :class:`~authweb.models.VerifierConfig`. Its
        ``name`` is always the file stem.

    Raises:
        NotFoundError: If the profile file does not exist.
        ConfigError: If the file contains invalid JSON or fails validation
            (including an uncompilable ``username_regex``).
    """
    path = _profile_path(name)
    if not path.is_file():
        raise NotFoundError(f"Profile '{name}' not found at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        data["name"] = name
        return VerifierConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(config: VerifierConfig) -> None:
    """Persist a verifier profile atomically to the profiles directory.

    Raises:
        ConfigError: If *config* has no ``name``.
    """
    if not config.name:
        raise ConfigError("Cannot save a profile without a name")
    data = config.model_dump(mode="json")
    _atomic_write(_profile_path(config.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a profile's JSON file from disk.

    Raises:
        NotFoundError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise NotFoundError(f"Profile '{name}' not found at {path}")
    path.unlink()


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


# --- Directive files ---


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def parse_directives(text: str, name: Optional[str] = None) -> VerifierConfig:
    """Build a :class:`~authweb.models.VerifierConfig` from ``AuthWeb*`` directives.

    One directive per line; the value is the rest of the line, with
    surrounding double quotes removed. Directive names are
    case-insensitive. Blank lines, ``#`` comments and directives that do
    not start with ``AuthWeb`` (other server settings) are skipped, so a
    whole server configuration file can be passed in.
    ``AuthWebRequireHeader`` may be repeated; for every other directive
    the last occurrence wins.

    Example::

        AuthWebURL               https://auth.example.com/login
        AuthWebUsernameParamName user
        AuthWebPasswordParamName pass
        AuthWebRequireHeader     "X-Auth: ok"
        AuthWebLocalUser         ftp

    Args:
        text: The directive text.
        name: Optional profile name for the resulting config.

    Raises:
        ConfigError: On an unknown ``AuthWeb*`` directive, a directive
            without a value, or an uncompilable ``AuthWebUserRegex``.
    """
    values: dict[str, Any] = {"required_headers": []}
    for lineno, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        directive, *rest = line.split(None, 1)
        key = directive.lower()
        if not key.startswith("authweb"):
            continue

        field = DIRECTIVES.get(key)
        if field is None:
            raise ConfigError(f"line {lineno}: unknown directive '{directive}'")

        value = _unquote(rest[0].strip()) if rest else ""
        if not value:
            raise ConfigError(f"line {lineno}: {directive} requires a value")

        if field in _REPEATABLE:
            values[field].append(value)
        else:
            values[field] = value

    if name is not None:
        values["name"] = name
    try:
        return VerifierConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid directives: {exc}") from exc


def load_directives(path: Path, name: Optional[str] = None) -> VerifierConfig:
    """Read a directive file and parse it with :func:`parse_directives`.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read directive file {path}: {exc}") from exc
    return parse_directives(text, name=name)


# --- Precedence resolution ---


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_url: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[VerifierConfig]]:
    """Resolve the active verifier profile with the full precedence chain.

    Profile name precedence (high to low):
        1. CLI flag (``cli_profile``)
        2. ``AUTHWEB_PROFILE`` environment variable
        3. ``default_profile`` in the global config
        4. The only profile on disk, if ``auto_select_single_profile``

    The endpoint URL can be overridden by ``cli_url`` or, failing that, the
    ``AUTHWEB_URL`` environment variable.

    Returns:
        A tuple of ``(global_config, active_profile_or_None)``.
    """
    global_cfg = load_global_config()

    resolved_name: Optional[str] = global_cfg.default_profile
    env_profile = os.environ.get("AUTHWEB_PROFILE")
    if env_profile:
        resolved_name = env_profile
    if cli_profile is not None:
        resolved_name = cli_profile

    if resolved_name is None and global_cfg.auto_select_single_profile:
        profiles = list_profiles()
        if len(profiles) == 1:
            resolved_name = profiles[0]

    profile: Optional[VerifierConfig] = None
    if resolved_name is not None:
        profile = load_profile(resolved_name)

    url_override = cli_url or os.environ.get("AUTHWEB_URL")
    if profile is not None and url_override:
        # Re-validate rather than model_copy() so usability is recomputed.
        data = profile.model_dump()
        data["url"] = url_override
        profile = VerifierConfig.model_validate(data)

    return global_cfg, profile
