"""Exception hierarchy for authweb.

All exceptions inherit from :class:`AuthwebError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`authweb.exit_codes`.
The top-level error handler in :func:`authweb.app.main` catches
``AuthwebError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Errors raised while deciding an authentication attempt additionally carry a
``decision``. The engine catches every :class:`AuthDecisionError` and turns
it into that decision, so none of them ever reach the engine's caller.

Subclass hierarchy::

    AuthwebError (exit 1)
    +-- InvalidUsageError             (exit 2)
    +-- NotFoundError                 (exit 4)
    +-- ConfigError                   (exit 1)
    +-- AuthDecisionError             (abstain, exit 8)
        +-- ConfigIncompleteError     (abstain, exit 8)
        +-- UsernameFilteredError     (abstain, exit 8)
        +-- TransportError            (abstain, exit 6)
        +-- LocalIdentityMissingError (abstain, exit 8)
        +-- CredentialRejectedError   (reject,  exit 3)
"""

from authweb.exit_codes import (
    EXIT_ABSTAIN,
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
)
from authweb.models import Decision


class AuthwebError(Exception):
    """Base exception for all authweb errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`authweb.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AuthwebError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(AuthwebError):
    """Raised when a named profile or local account does not exist."""

    exit_code = EXIT_NOT_FOUND


class ConfigError(AuthwebError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad directives)."""

    exit_code = EXIT_GENERIC_FAILURE


class AuthDecisionError(AuthwebError):
    """Base class for conditions that settle an authentication attempt early.

    Subclasses set ``decision`` to the outcome the engine reports when the
    condition is hit.
    """

    decision: Decision = Decision.ABSTAIN
    exit_code = EXIT_ABSTAIN


class ConfigIncompleteError(AuthDecisionError):
    """The verifier configuration lacks a required setting."""


class UsernameFilteredError(AuthDecisionError):
    """The username does not match the configured username regex."""


class TransportError(AuthDecisionError):
    """The verifier could not be reached (DNS, connect, TLS, timeout).

    The credentials could not be checked, which is not the same as them
    being wrong, so this abstains.
    """

    exit_code = EXIT_CONNECTION_ERROR


class LocalIdentityMissingError(AuthDecisionError):
    """The local template account does not exist."""


class CredentialRejectedError(AuthDecisionError):
    """The verifier response carried evidence of a failed login."""

    decision = Decision.REJECT
    exit_code = EXIT_AUTH_FAILURE
