"""Check commands -- run the decision engine from the command line.

Provides ``authweb check`` (full authentication attempt against the
verifier) and ``authweb lookup`` (the account record an accepted user
would receive, without contacting the verifier).

Both commands read the active profile through
:func:`~authweb.config.resolve_config`, so ``--profile`` / ``--url`` and the
``AUTHWEB_PROFILE`` / ``AUTHWEB_URL`` environment variables apply.

Typical workflow::

    authweb -p intranet check alice          # prompts for the password
    echo "$PW" | authweb check alice --password-stdin
    authweb lookup alice
"""

from __future__ import annotations

import typer

from authweb.exceptions import AuthwebError, InvalidUsageError
from authweb.exit_codes import EXIT_ABSTAIN, EXIT_AUTH_FAILURE, EXIT_SUCCESS
from authweb.models import Decision, VerifierConfig
from authweb.output import debug, error, format_response, info, suggest

DECISION_EXIT_CODES: dict[Decision, int] = {
    Decision.ACCEPT: EXIT_SUCCESS,
    Decision.REJECT: EXIT_AUTH_FAILURE,
    Decision.ABSTAIN: EXIT_ABSTAIN,
}


def _active_profile(ctx: typer.Context) -> VerifierConfig:
    """Resolve the active profile or exit with the matching error code."""
    from authweb.config import resolve_config

    obj = ctx.obj or {}
    try:
        _, profile = resolve_config(cli_profile=obj.get("profile"), cli_url=obj.get("url"))
        if profile is None:
            raise InvalidUsageError("No verifier profile selected.")
    except AuthwebError as exc:
        error(str(exc))
        if isinstance(exc, InvalidUsageError):
            suggest("Create one: authweb profile create NAME --url URL ...")
        raise typer.Exit(code=exc.exit_code) from None
    debug(f"Using profile: {profile.name}")
    return profile


def _read_password(password_stdin: bool) -> str:
    if password_stdin:
        stdin = typer.get_text_stream("stdin")
        return stdin.readline().rstrip("\r\n")
    return typer.prompt("Password", hide_input=True)


def check_command(
    ctx: typer.Context,
    username: str = typer.Argument(help="Username to authenticate."),
    password_stdin: bool = typer.Option(
        False, "--password-stdin", help="Read the password from the first line of stdin."
    ),
) -> None:
    """Authenticate a user against the verifier.

    Prints the decision (and, on accept, the materialised account) and
    exits 0 on accept, 3 on reject, and 8 when the verifier abstains.

    Args:
        ctx: Typer invocation context carrying the global options.
        username: The login name to check.
        password_stdin: Read the password from stdin instead of prompting.

    Example::

        authweb check alice
        authweb --json check alice --password-stdin < pw.txt
    """
    from authweb.engine import AuthDecisionEngine

    profile = _active_profile(ctx)
    password = _read_password(password_stdin)

    outcome = AuthDecisionEngine(profile).authenticate(username, password)
    format_response(outcome.model_dump(mode="json"))
    if outcome.decision is Decision.ABSTAIN:
        info(f"Abstained: {outcome.reason}")
    raise typer.Exit(code=DECISION_EXIT_CODES[outcome.decision])


def lookup_command(
    ctx: typer.Context,
    username: str = typer.Argument(help="Username to look up."),
) -> None:
    """Show the account record a user accepted by this verifier would get.

    The record is the configured local user's entry with the name replaced.
    No request is sent to the verifier. Exits 8 when the profile is not
    usable, the username fails the regex, or the local user is missing.

    Example::

        authweb lookup alice
    """
    from authweb.engine import AuthDecisionEngine

    profile = _active_profile(ctx)
    account = AuthDecisionEngine(profile).lookup(username)
    if account is None:
        info("No account: the verifier does not apply to this user.")
        raise typer.Exit(code=EXIT_ABSTAIN)
    format_response(account.model_dump(mode="json"))
