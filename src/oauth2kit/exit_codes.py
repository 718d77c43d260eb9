"""Numeric process exit codes used by the ``oauth2kit`` command line.

Each constant maps to one failure category and is referenced by the
matching :class:`~oauth2kit.exceptions.OAuth2KitError` subclass, so shell
scripts can branch on ``$?`` without scraping stderr.

Example::

    $ oauth2kit token client-credentials
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the authorization server rejected the client
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, or parameters that would clobber protocol fields."""

EXIT_AUTH_FAILURE = 3
"""The authorization server refused the grant, or no token could be obtained."""

EXIT_SERVER_ERROR = 5
"""The authorization server answered with something that is not a usable response."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CLIENT_MISCONFIGURED = 8
"""The client settings cannot support the requested operation (no endpoint, no secret...)."""
