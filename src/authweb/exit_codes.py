"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~authweb.exceptions.AuthwebError` subclass.
Shell wrappers that call ``authweb check`` can branch on the exit code to
learn the decision without parsing stdout.

Example::

    $ authweb check alice --password-stdin < pw.txt
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the verifier rejected the credentials
"""

EXIT_SUCCESS = 0
"""The command completed successfully (for ``check``: the user was accepted)."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The verifier rejected the credentials."""

EXIT_NOT_FOUND = 4
"""A named profile or local account was not found."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_ABSTAIN = 8
"""The verifier declined to decide (unconfigured, filtered, or unverifiable)."""
