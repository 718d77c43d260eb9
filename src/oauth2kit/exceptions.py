"""Exception hierarchy for oauth2kit.

All exceptions inherit from :class:`OAuth2KitError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oauth2kit.exit_codes`.
Library callers can catch the base class; the command line entry point
:func:`oauth2kit.app.main` turns it into a clean exit with that code.

Two failure classes never reach the caller: discovery problems (the client
falls back to explicit or default endpoints) and refresh-grant failures
inside :class:`~oauth2kit.auth.TokenManager` (the next renewal strategy is
tried instead).

Subclass hierarchy::

    OAuth2KitError                  (exit 1)
    +-- InvalidUsageError           (exit 2)
    +-- ConfigError                 (exit 1)
    +-- CryptoUnavailableError      (exit 1)
    +-- EndpointUnresolvableError   (exit 8)
    +-- UnsupportedAuthMethodError  (exit 8)
    +-- MissingSecretError          (exit 8)
    +-- NotRefreshableError         (exit 3)
    +-- AuthorizationResponseError  (exit 3)
    +-- UnrecoverableAuthError      (exit 3)
    +-- MalformedTokenResponseError (exit 5)
    +-- ConnectionError_            (exit 6)
    +-- OAuth2Error                 (exit 3)
        +-- OAuth2HttpError         (exit 3)
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from oauth2kit.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CLIENT_MISCONFIGURED,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SERVER_ERROR,
)


class OAuth2KitError(Exception):
    """Base exception for all oauth2kit errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oauth2kit.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(OAuth2KitError):
    """Raised when caller-supplied parameters would overwrite protocol fields."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(OAuth2KitError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class CryptoUnavailableError(OAuth2KitError):
    """Raised when the operating system offers no secure random source."""

    exit_code = EXIT_GENERIC_FAILURE


class EndpointUnresolvableError(OAuth2KitError):
    """Raised when an endpoint is neither configured, discovered, nor derivable from ``server``."""

    exit_code = EXIT_CLIENT_MISCONFIGURED


class UnsupportedAuthMethodError(OAuth2KitError):
    """Raised when the configured client authentication method is not implemented."""

    exit_code = EXIT_CLIENT_MISCONFIGURED


class MissingSecretError(OAuth2KitError):
    """Raised when a grant that needs a client secret is used without one."""

    exit_code = EXIT_CLIENT_MISCONFIGURED


class NotRefreshableError(OAuth2KitError):
    """Raised when a refresh (or refresh-token revocation) is requested for a token without a refresh token."""

    exit_code = EXIT_AUTH_FAILURE


class AuthorizationResponseError(OAuth2KitError):
    """Raised when a redirect back from the authorization endpoint is unusable.

    Covers a missing ``code`` parameter and a ``state`` mismatch. Errors the
    server reported itself are raised as :class:`OAuth2Error` instead.
    """

    exit_code = EXIT_AUTH_FAILURE


class UnrecoverableAuthError(OAuth2KitError):
    """Raised when every renewal strategy came up empty and a full re-authentication is needed."""

    exit_code = EXIT_AUTH_FAILURE


class MalformedTokenResponseError(OAuth2KitError):
    """Raised when the token endpoint answered 2xx without a usable token."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(OAuth2KitError):
    """Raised on network-level failures talking to the authorization server.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class OAuth2Error(OAuth2KitError):
    """An error reported by the authorization server using OAuth2 error codes.

    Args:
        message: Human-readable error description.
        oauth2_code: The ``error`` value from the server (e.g.
            ``"invalid_grant"``), or ``None`` if the server sent none.
        http_code: HTTP status of the response that carried the error, when
            there was one. Redirect-borne errors have no status.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(
        self,
        message: str,
        oauth2_code: Optional[str] = None,
        http_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.oauth2_code = oauth2_code
        self.http_code = http_code


class OAuth2HttpError(OAuth2Error):
    """A non-2xx response from one of the authorization server's endpoints.

    Attributes:
        response: The raw :class:`httpx.Response`.
        parsed_body: The decoded JSON body, or ``None`` for empty and
            non-JSON bodies.
    """

    def __init__(
        self,
        message: str,
        oauth2_code: Optional[str],
        response: httpx.Response,
        parsed_body: Any = None,
    ) -> None:
        super().__init__(message, oauth2_code=oauth2_code, http_code=response.status_code)
        self.response = response
        self.parsed_body = parsed_body
