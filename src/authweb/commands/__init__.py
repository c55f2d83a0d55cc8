"""Built-in CLI commands for authweb.

Each module exposes either a Typer sub-application or a plain command
function that :mod:`authweb.app` registers on the root application:

- :mod:`~authweb.commands.check` -- ``check`` and ``lookup``, which run
  the decision engine against the active profile.
- :mod:`~authweb.commands.profile` -- ``profile`` sub-group for creating,
  importing, listing, and deleting verifier profiles.
"""
