"""Canonical Pydantic models shared across all oauth2kit modules.

Every other module imports its data shapes from here. The models fall into
four groups:

**Tokens** -- :class:`Token`, the immutable credential snapshot produced by
every grant and cached by :class:`~oauth2kit.auth.TokenManager`.

**Client configuration** -- :class:`ClientSettings` (the live settings of a
single :class:`~oauth2kit.client.OAuth2Client`) and :class:`ClientProfile`
(the same information as persisted on disk, with the secret replaced by a
credential source descriptor).

**Wire messages** -- the grant request union (:data:`GrantRequest`),
:class:`IntrospectionRequest`, :class:`RevocationRequest`,
:class:`IntrospectionResponse`, :class:`ServerMetadata` and
:class:`AuthorizationCodeResponse`.

**Enumerations** -- :class:`Endpoint`, :class:`AuthMethod`,
:class:`TokenTypeHint`.

Server documents use ``extra="allow"`` so that unknown keys are preserved in
``model_extra``.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Annotated, Any, Awaitable, Callable, Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field


Transport = Callable[[httpx.Request], Awaitable[httpx.Response]]
"""An async callable that sends one request and returns its response."""


# --- Enumerations ---


class Endpoint(str, enum.Enum):
    """The authorization server endpoints a client talks to.

    Values double as the attribute names on :class:`ClientSettings` and
    :class:`ServerMetadata`.
    """

    AUTHORIZATION = "authorization_endpoint"
    TOKEN = "token_endpoint"
    INTROSPECTION = "introspection_endpoint"
    REVOCATION = "revocation_endpoint"
    DISCOVERY = "discovery_endpoint"


class AuthMethod(str, enum.Enum):
    """Client authentication methods understood by the token endpoint client."""

    CLIENT_SECRET_BASIC = "client_secret_basic"
    CLIENT_SECRET_POST = "client_secret_post"


class TokenTypeHint(str, enum.Enum):
    """Which credential of a :class:`Token` an introspection or revocation targets."""

    ACCESS_TOKEN = "access_token"
    REFRESH_TOKEN = "refresh_token"


# --- Token ---


class Token(BaseModel):
    """An immutable snapshot of the credentials returned by a token endpoint.

    Tokens are never edited in place. A refresh produces a new instance and
    carrying a field forward is done with :meth:`~pydantic.BaseModel.model_copy`.

    Attributes:
        access_token: The bearer credential.
        id_token: OpenID Connect ID token, when one was issued.
        expires_at: Absolute UTC expiry. ``None`` means the server did not
            say, and the token is treated as valid until a request fails.
        refresh_token: Credential for the refresh grant. ``None`` means the
            token cannot be refreshed.
        scope: Granted scopes, when the server reported them.
        extra: Every other field the server returned (``token_type`` and
            any vendor extensions).
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    id_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    refresh_token: Optional[str] = None
    scope: Optional[list[str]] = None
    extra: dict[str, Any] = Field(default_factory=dict)

    def expires_in(self, now: Optional[datetime] = None) -> Optional[float]:
        """Seconds until expiry (negative once expired), or ``None`` if unknown."""
        if self.expires_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return (expires - now).total_seconds()

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return ``True`` when the token has a known expiry that is not in the future."""
        remaining = self.expires_in(now)
        return remaining is not None and remaining <= 0


# --- Client configuration ---


class ClientSettings(BaseModel):
    """Settings for a single OAuth2 client / authorization server relationship.

    Endpoint values may be absolute URLs or paths relative to ``server``.
    The discovery step of :class:`~oauth2kit.client.OAuth2Client` fills in
    endpoints that were left unset and, when ``authentication_method`` is
    ``None``, adopts the first method the server advertises.

    ``transport`` replaces the built-in :class:`httpx.AsyncClient` when set,
    which is how tests and callers with their own connection pools plug in.

    Example::

        ClientSettings(
            server="https://auth.example.org/",
            client_id="my-app",
            client_secret="s3cret",
        )
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    client_id: str
    client_secret: Optional[str] = None
    server: Optional[str] = None
    authorization_endpoint: Optional[str] = None
    token_endpoint: Optional[str] = None
    introspection_endpoint: Optional[str] = None
    revocation_endpoint: Optional[str] = None
    discovery_endpoint: Optional[str] = None
    authentication_method: Optional[str] = Field(
        default=None,
        description="client_secret_basic or client_secret_post; None picks "
        "basic when a secret is set",
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    transport: Optional[Transport] = Field(default=None, exclude=True)


class ClientProfile(BaseModel):
    """A named client configuration persisted as JSON by :mod:`oauth2kit.config`.

    The client secret is never stored directly. ``client_secret_source`` holds
    a descriptor understood by :func:`~oauth2kit.config.resolve_credential`
    (``env:VAR``, ``file:/path`` or ``prompt``).
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(description="Profile identifier, also the file name")
    client_id: str
    client_secret_source: Optional[str] = None
    server: Optional[str] = None
    authorization_endpoint: Optional[str] = None
    token_endpoint: Optional[str] = None
    introspection_endpoint: Optional[str] = None
    revocation_endpoint: Optional[str] = None
    discovery_endpoint: Optional[str] = None
    authentication_method: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)
    redirect_uri: Optional[str] = None
    openid: bool = Field(default=False, description="Use OpenID Connect discovery and token rules")
    timeout: float = 30.0


# --- Grant requests ---


class _FormMessage(BaseModel):
    """Base for request bodies posted to the authorization server."""

    model_config = ConfigDict(frozen=True)

    def to_form(self) -> dict[str, Any]:
        """Return the wire fields, ready for :func:`~oauth2kit.querystring.generate_query_string`.

        ``None`` fields are dropped and a scope list is joined with spaces.
        """
        form = self.model_dump(exclude_none=True)
        if "scope" in form:
            if form["scope"]:
                form["scope"] = " ".join(form["scope"])
            else:
                del form["scope"]
        return form


class ClientCredentialsRequest(_FormMessage):
    grant_type: Literal["client_credentials"] = "client_credentials"
    scope: Optional[list[str]] = None
    resource: Optional[list[str]] = None
    extra_params: dict[str, str] = Field(default_factory=dict, exclude=True)

    def to_form(self) -> dict[str, Any]:
        form = super().to_form()
        form.update(self.extra_params)
        return form


class PasswordRequest(_FormMessage):
    grant_type: Literal["password"] = "password"
    username: str
    password: str
    scope: Optional[list[str]] = None
    resource: Optional[list[str]] = None


class AuthorizationCodeRequest(_FormMessage):
    grant_type: Literal["authorization_code"] = "authorization_code"
    code: str
    redirect_uri: str
    code_verifier: Optional[str] = None
    resource: Optional[list[str]] = None


class RefreshRequest(_FormMessage):
    grant_type: Literal["refresh_token"] = "refresh_token"
    refresh_token: str
    scope: Optional[list[str]] = None
    resource: Optional[list[str]] = None


JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class JwtBearerRequest(_FormMessage):
    """JWT bearer assertion grant (:rfc:`7523`)."""

    grant_type: Literal["urn:ietf:params:oauth:grant-type:jwt-bearer"] = JWT_BEARER_GRANT
    assertion: str
    scope: Optional[list[str]] = None
    resource: Optional[list[str]] = None


GrantRequest = Annotated[
    Union[
        ClientCredentialsRequest,
        PasswordRequest,
        AuthorizationCodeRequest,
        RefreshRequest,
        JwtBearerRequest,
    ],
    Field(discriminator="grant_type"),
]
"""Closed union of token endpoint request bodies, keyed by ``grant_type``."""


class IntrospectionRequest(_FormMessage):
    token: str
    token_type_hint: Optional[TokenTypeHint] = None

    def to_form(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class RevocationRequest(_FormMessage):
    token: str
    token_type_hint: TokenTypeHint = TokenTypeHint.ACCESS_TOKEN

    def to_form(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


# --- Server documents ---


class ServerMetadata(BaseModel):
    """Authorization server metadata (:rfc:`8414`) or an OpenID provider configuration.

    Only the fields oauth2kit acts on are declared. Everything else the
    server publishes stays reachable through ``model_extra``.
    """

    model_config = ConfigDict(extra="allow")

    issuer: Optional[str] = None
    authorization_endpoint: Optional[str] = None
    token_endpoint: Optional[str] = None
    introspection_endpoint: Optional[str] = None
    revocation_endpoint: Optional[str] = None
    jwks_uri: Optional[str] = None
    registration_endpoint: Optional[str] = None
    scopes_supported: Optional[list[str]] = None
    response_types_supported: Optional[list[str]] = None
    grant_types_supported: Optional[list[str]] = None
    token_endpoint_auth_methods_supported: Optional[list[str]] = None
    code_challenge_methods_supported: Optional[list[str]] = None


class IntrospectionResponse(BaseModel):
    """Token introspection result (:rfc:`7662`)."""

    model_config = ConfigDict(extra="allow")

    active: bool
    scope: Optional[str] = None
    client_id: Optional[str] = None
    username: Optional[str] = None
    token_type: Optional[str] = None
    exp: Optional[int] = None
    iat: Optional[int] = None
    nbf: Optional[int] = None
    sub: Optional[str] = None
    aud: Optional[Union[str, list[str]]] = None
    iss: Optional[str] = None
    jti: Optional[str] = None


class AuthorizationCodeResponse(BaseModel):
    """The useful part of a successful redirect back from the authorization endpoint."""

    code: str
    scope: Optional[list[str]] = None
