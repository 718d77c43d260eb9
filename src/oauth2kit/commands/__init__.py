"""Built-in CLI sub-commands for oauth2kit.

This package groups the Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~oauth2kit.commands.profile` -- store client registrations.
* :mod:`~oauth2kit.commands.token` -- obtain, refresh, inspect and revoke
  tokens.
* :mod:`~oauth2kit.commands.authorize` -- the authorization code flow,
  with PKCE.
* :mod:`~oauth2kit.commands.discover` -- fetch server metadata.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands (``discover``) export a plain callback registered on the root app.
"""
