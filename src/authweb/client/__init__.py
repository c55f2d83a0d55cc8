"""HTTP client module for authweb.

Splits the verifier call into the two halves the engine drives:

:func:`build_request` -- assembles the form-encoded POST from a
:class:`~authweb.models.VerifierConfig` and a
:class:`~authweb.models.CredentialAttempt`.

:class:`HttpTransport` -- sends it with :mod:`httpx` and returns a
:class:`~authweb.models.VerifierResponse`.

Example::

    from authweb.client import HttpTransport, build_request

    response = HttpTransport(config.request).perform(build_request(config, attempt))
"""

from authweb.client.request import VerifierRequest, build_request
from authweb.client.transport import HttpTransport

__all__ = ["HttpTransport", "VerifierRequest", "build_request"]
