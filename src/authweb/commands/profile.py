"""Profile commands -- create, import, inspect, and remove verifier profiles.

Provides the ``authweb profile`` sub-command group. Each profile is one
:class:`~authweb.models.VerifierConfig` stored as JSON in the profiles
directory. Profiles can be written from command-line options or imported
from a file of ``AuthWeb*`` directives.

Typical workflow::

    authweb profile create intranet --url https://sso.example.com/check \\
        --username-param user --password-param pass \\
        --failure-string "LOGIN FAILED" --local-user ftp
    authweb profile import legacy /etc/proftpd/conf.d/auth_web.conf
    authweb profile use intranet
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from authweb.exceptions import AuthwebError
from authweb.exit_codes import EXIT_NOT_FOUND
from authweb.models import VerifierConfig
from authweb.output import error, format_response, info, print_table, success, suggest, warning


profile_app = typer.Typer(no_args_is_help=True)


def _report_unusable(config: VerifierConfig) -> None:
    if not config.is_usable:
        warning(
            f'Profile "{config.name}" is incomplete and will always abstain '
            f"(missing: {', '.join(config.missing_fields())})."
        )


@profile_app.command("create")
def profile_create(
    name: str = typer.Argument(help="Profile name."),
    url: Optional[str] = typer.Option(None, "--url", help="Verifier endpoint URL."),
    username_param: Optional[str] = typer.Option(
        None, "--username-param", help="Form field name for the username."
    ),
    password_param: Optional[str] = typer.Option(
        None, "--password-param", help="Form field name for the password."
    ),
    failure_string: Optional[str] = typer.Option(
        None, "--failure-string", help="Response body text that marks a failed login."
    ),
    require_header: Optional[list[str]] = typer.Option(
        None, "--require-header", help="Header line required on success (repeatable)."
    ),
    local_user: Optional[str] = typer.Option(
        None, "--local-user", help="Local account used as template for accepted users."
    ),
    user_regex: Optional[str] = typer.Option(
        None, "--user-regex", help="Only handle usernames matching this pattern."
    ),
    timeout: float = typer.Option(30, "--timeout", help="Request timeout in seconds."),
    max_retries: int = typer.Option(0, "--max-retries", help="Retries on network failure."),
    no_verify_ssl: bool = typer.Option(
        False, "--no-verify-ssl", help="Skip TLS certificate verification."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing profile."),
) -> None:
    """Create a verifier profile from options.

    Raises:
        typer.Exit: With code 2 if the profile exists (without ``--force``)
            or the options fail validation.
    """
    from authweb.config import profile_exists, save_profile
    from authweb.models import RequestConfig

    if profile_exists(name) and not force:
        error(f'Profile "{name}" already exists. Use --force to overwrite.')
        raise typer.Exit(code=2)

    try:
        config = VerifierConfig(
            name=name,
            url=url,
            username_param=username_param,
            password_param=password_param,
            failure_string=failure_string,
            required_headers=require_header or [],
            local_user=local_user,
            username_regex=user_regex,
            request=RequestConfig(
                timeout=timeout, max_retries=max_retries, verify_ssl=not no_verify_ssl
            ),
        )
    except ValidationError as exc:
        error(f"Invalid profile: {exc}")
        raise typer.Exit(code=2) from None

    save_profile(config)
    success(f'Profile "{name}" saved.')
    _report_unusable(config)
    suggest(f"Try it: authweb -p {name} check USERNAME")


@profile_app.command("import")
def profile_import(
    name: str = typer.Argument(help="Profile name."),
    path: Path = typer.Argument(help="File containing AuthWeb* directives."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing profile."),
) -> None:
    """Import a profile from a directive file.

    Lines that are not ``AuthWeb*`` directives are ignored, so a complete
    server configuration file can be given.

    Example::

        authweb profile import legacy /etc/proftpd/proftpd.conf
    """
    from authweb.config import load_directives, profile_exists, save_profile

    if profile_exists(name) and not force:
        error(f'Profile "{name}" already exists. Use --force to overwrite.')
        raise typer.Exit(code=2)

    try:
        config = load_directives(path, name=name)
    except AuthwebError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    save_profile(config)
    success(f'Profile "{name}" imported from {path}.')
    _report_unusable(config)


@profile_app.command("show")
def profile_show(name: str = typer.Argument(help="Profile name.")) -> None:
    """Show a profile's settings."""
    from authweb.config import load_profile

    try:
        config = load_profile(name)
    except AuthwebError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    data = config.model_dump(mode="json")
    data["usable"] = config.is_usable
    format_response(data)


@profile_app.command("list")
def profile_list() -> None:
    """List saved profiles and whether each is usable."""
    from authweb.config import list_profiles, load_global_config, load_profile

    names = list_profiles()
    if not names:
        info("No profiles configured.")
        suggest("Create one: authweb profile create NAME --url URL ...")
        return

    default = load_global_config().default_profile
    rows: list[list[str]] = []
    for profile_name in names:
        try:
            config = load_profile(profile_name)
            url = config.url or ""
            status = "usable" if config.is_usable else "incomplete"
        except AuthwebError:
            url, status = "", "invalid"
        marker = "*" if profile_name == default else ""
        rows.append([f"{profile_name}{marker}", url, status])
    print_table(["Profile", "URL", "Status"], rows, title="Verifier profiles")


@profile_app.command("use")
def profile_use(name: str = typer.Argument(help="Profile name.")) -> None:
    """Make a profile the default for ``check`` and ``lookup``."""
    from authweb.config import load_global_config, profile_exists, save_global_config

    if not profile_exists(name):
        error(f'Profile "{name}" not found.')
        raise typer.Exit(code=EXIT_NOT_FOUND)

    config = load_global_config()
    config.default_profile = name
    save_global_config(config)
    success(f'Default profile set to "{name}".')


@profile_app.command("delete")
def profile_delete(
    name: str = typer.Argument(help="Profile name."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Delete a profile."""
    from authweb.config import delete_profile, load_global_config, save_global_config

    if not force:
        typer.confirm(f'Delete profile "{name}"?', abort=True)

    try:
        delete_profile(name)
    except AuthwebError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    config = load_global_config()
    if config.default_profile == name:
        config.default_profile = None
        save_global_config(config)
    success(f'Profile "{name}" deleted.')
