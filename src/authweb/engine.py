"""Authentication decision engine.

:class:`AuthDecisionEngine` drives one authentication attempt through these
stages, any of which may settle it early::

    Unconfigured --(config not usable)----------------> Abstained
        |
    GateCheck ----(username fails regex)--------------> Abstained
        |
    Requesting ---(transport failure)-----------------> Abstained
        |
    Evaluating ---(failure string / missing header)---> Rejected
        |
    Materialising (local template missing)------------> Abstained
        |
    Accepted (account cloned from the template, renamed to the user)

Each early exit is raised internally as an
:class:`~authweb.exceptions.AuthDecisionError` and converted to its
decision at the public boundary, so :meth:`AuthDecisionEngine.authenticate`
and :meth:`AuthDecisionEngine.lookup` never raise for any of them.

The username regex is applied with :meth:`re.Pattern.search`: a pattern
matches anywhere in the username unless it is anchored with ``^``/``$``.

An engine holds only read-only collaborators, so one instance can serve
concurrent attempts from several threads.
"""

from __future__ import annotations

from typing import Optional, Union

from authweb.accounts import AccountStore, default_account_store
from authweb.client import HttpTransport, build_request
from authweb.evaluator import evaluate, rejection_reason
from authweb.exceptions import (
    AuthDecisionError,
    ConfigIncompleteError,
    CredentialRejectedError,
    LocalIdentityMissingError,
    TransportError,
    UsernameFilteredError,
)
from authweb.models import (
    AccountRecord,
    AuthOutcome,
    CredentialAttempt,
    Decision,
    VerifierConfig,
    VerifierResponse,
)
from authweb.output import debug, error, warning

Credential = Union[bytes, str]


class AuthDecisionEngine:
    """Decide authentication attempts against a remote verifier.

    Args:
        config: The verifier configuration. May be incomplete; an
            unusable config makes every attempt abstain.
        transport: Transport used for the verifier call. Defaults to an
            :class:`~authweb.client.HttpTransport` built from
            ``config.request``.
        accounts: Local account store holding the template account.
            Defaults to :func:`~authweb.accounts.default_account_store`.

    Example::

        engine = AuthDecisionEngine(config)
        outcome = engine.authenticate("alice", "s3cret")
        outcome.decision   # Decision.ACCEPT / REJECT / ABSTAIN
    """

    def __init__(
        self,
        config: VerifierConfig,
        transport: Optional[HttpTransport] = None,
        accounts: Optional[AccountStore] = None,
    ) -> None:
        self._config = config
        self._transport = transport or HttpTransport(config.request)
        self._accounts = accounts or default_account_store()

    @property
    def config(self) -> VerifierConfig:
        return self._config

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def authenticate(self, username: Credential, password: Credential) -> AuthOutcome:
        """Decide whether *username* / *password* should be let in.

        Args:
            username: The login name, as bytes or text.
            password: The password, as bytes or text.

        Returns:
            An :class:`~authweb.models.AuthOutcome`. On
            :attr:`~Decision.ACCEPT` its ``account`` is the local template
            account renamed to *username*.
        """
        attempt = CredentialAttempt(username=username, password=password)
        try:
            self._check_gates(attempt.username_text)
            response = self._call_verifier(attempt)
            self._evaluate(response)
            account = self._materialise(attempt.username_text)
        except AuthDecisionError as exc:
            return AuthOutcome(decision=exc.decision, reason=str(exc))

        debug("verifier accepted credentials")
        return AuthOutcome(
            decision=Decision.ACCEPT,
            reason="verifier accepted credentials",
            account=account,
        )

    def lookup(self, username: Credential) -> Optional[AccountRecord]:
        """Return the account record this verifier would give *username*.

        Applies the same configuration and regex gates as
        :meth:`authenticate`, but makes no network call.

        Returns:
            The template account renamed to *username*, or ``None`` when a
            gate fails or the template account does not exist.
        """
        if isinstance(username, bytes):
            name = username.decode("utf-8", errors="surrogateescape")
        else:
            name = username
        try:
            self._check_gates(name)
            return self._materialise(name)
        except AuthDecisionError:
            return None

    # ------------------------------------------------------------------ #
    # Stages
    # ------------------------------------------------------------------ #

    def _check_gates(self, username: str) -> None:
        if not self._config.is_usable:
            missing = ", ".join(self._config.missing_fields())
            debug(f"verifier not configured (missing: {missing}), declining")
            raise ConfigIncompleteError(f"verifier not configured (missing: {missing})")

        user_filter = self._config.username_filter
        if user_filter is not None and user_filter.search(username) is None:
            debug("user doesn't match regex")
            raise UsernameFilteredError("user doesn't match regex")

    def _call_verifier(self, attempt: CredentialAttempt) -> VerifierResponse:
        request = build_request(self._config, attempt)
        debug(f"calling URL {request.describe()}")
        try:
            response = self._transport.perform(request)
        except TransportError as exc:
            error(str(exc))
            raise
        debug(f"URL call succeeded (HTTP {response.status_code}, {len(response.body)} bytes)")
        return response

    def _evaluate(self, response: VerifierResponse) -> None:
        if evaluate(self._config, response) is Decision.REJECT:
            raise CredentialRejectedError(rejection_reason(self._config, response) or "rejected")

    def _materialise(self, username: str) -> AccountRecord:
        local_user = self._config.local_user
        if local_user is None:
            raise ConfigIncompleteError("verifier not configured (missing: local_user)")
        template = self._accounts.lookup(local_user)
        if template is None:
            warning(f"local user '{local_user}' not found, declining")
            raise LocalIdentityMissingError(f"local user '{local_user}' not found")
        return template.renamed(username)
