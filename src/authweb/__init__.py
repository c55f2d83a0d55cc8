"""authweb -- delegate password checks to a remote HTTP endpoint.

This package decides whether to accept, reject, or abstain from a
username/password authentication attempt by POSTing the credentials to a
remote *verifier* URL and inspecting the response body and headers. Users
accepted this way are given an account record cloned from a local
template account.

Typical usage::

    from authweb.engine import AuthDecisionEngine

    engine = AuthDecisionEngine(config)
    outcome = engine.authenticate("alice", "s3cret")
    if outcome.decision is Decision.ACCEPT:
        ...

Modules:
    app: Typer application factory and CLI entry point.
    engine: Gate checks, orchestration, and local identity mapping.
    evaluator: Failure-string and required-header response rules.
    encoding: Form-body percent encoding.
    client: Request construction and the httpx transport.
    accounts: Local account store collaborators.
    models: Pydantic models shared across the package.
    config: XDG-aware profile management and directive parsing.
    exceptions: Exception hierarchy with decision and exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "1.1.2"
