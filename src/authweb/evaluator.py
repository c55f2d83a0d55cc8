"""Response evaluation -- turn a verifier response into a decision.

The verifier is not assumed to speak any structured protocol. The only
signals are the response body and header lines, checked in order:

1. ``failure_string`` found anywhere in the body -> :attr:`Decision.REJECT`.
2. Any entry of ``required_headers`` missing from the header lines ->
   :attr:`Decision.REJECT`. Matching is full-line and case-sensitive on
   the normalised ``Name: value`` form.
3. Otherwise -> :attr:`Decision.ACCEPT`.

Absence of negative evidence counts as success, and the HTTP status code
is not consulted. An error page that lacks the failure string is accepted
unless required headers are configured.
"""

from __future__ import annotations

from typing import Optional

from authweb.models import Decision, VerifierConfig, VerifierResponse
from authweb.output import debug


def rejection_reason(config: VerifierConfig, response: VerifierResponse) -> Optional[str]:
    """Return why *response* counts as a failed login, or ``None`` if it does not.

    Pure function; nothing is logged.

    Returns:
        A short, credential-free reason string, or ``None`` when neither
        rule rejects.
    """
    if config.failure_string is not None:
        if config.failure_string.encode("utf-8") in response.body:
            return f"found failed string '{config.failure_string}' in response"

    if config.required_headers:
        received = set(response.headers)
        for header in config.required_headers:
            if header not in received:
                return f"couldn't find header '{header}' in response"

    return None


def evaluate(config: VerifierConfig, response: VerifierResponse) -> Decision:
    """Apply the rejection rules to *response*.

    Only call this with a usable configuration and a response from a
    successful transport call.

    Returns:
        :attr:`Decision.REJECT` when a rule finds evidence of failure,
        :attr:`Decision.ACCEPT` otherwise.
    """
    reason = rejection_reason(config, response)
    if reason is not None:
        debug(reason)
        return Decision.REJECT
    if config.required_headers:
        debug(f"all {len(config.required_headers)} required header(s) present")
    return Decision.ACCEPT
