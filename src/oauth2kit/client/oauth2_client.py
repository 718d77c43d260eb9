"""The OAuth2 protocol client: endpoint resolution, discovery and token endpoint grants.

:class:`OAuth2Client` is the layer every other component talks to the
authorization server through. It:

1. Resolves endpoint URLs, first from explicit settings, then from the
   server's metadata document, and finally from conventional default paths
   under ``server`` (see :meth:`OAuth2Client.get_endpoint`).
2. Runs discovery at most once per instance, with concurrent resolvers
   waiting on the same in-flight lookup. Discovery failures only log a
   warning.
3. Posts grant requests to the token endpoint, authenticating the client
   with HTTP Basic or by embedding the credentials in the body.
4. Maps successful responses to :class:`~oauth2kit.models.Token` and
   failures to :class:`~oauth2kit.exceptions.OAuth2HttpError`.

The authorization code flow lives in
:class:`~oauth2kit.client.authorization_code.AuthorizationCodeClient`,
reachable through :attr:`OAuth2Client.authorization_code`.

Example::

    async with OAuth2Client(
        server="https://auth.example.org/",
        client_id="my-app",
        client_secret="s3cret",
    ) as client:
        token = await client.client_credentials(scope=["read"])
"""

from __future__ import annotations

import asyncio
import base64
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Optional, Union
from urllib.parse import quote_plus, urljoin

import httpx
from pydantic import ValidationError

from oauth2kit.client.authorization_code import AuthorizationCodeClient
from oauth2kit.exceptions import (
    ConnectionError_,
    EndpointUnresolvableError,
    InvalidUsageError,
    MalformedTokenResponseError,
    MissingSecretError,
    NotRefreshableError,
    OAuth2HttpError,
    OAuth2KitError,
    UnsupportedAuthMethodError,
)
from oauth2kit.models import (
    AuthMethod,
    ClientCredentialsRequest,
    ClientSettings,
    Endpoint,
    GrantRequest,
    IntrospectionRequest,
    IntrospectionResponse,
    JwtBearerRequest,
    PasswordRequest,
    RefreshRequest,
    RevocationRequest,
    ServerMetadata,
    Token,
    TokenTypeHint,
)
from oauth2kit.querystring import as_list, generate_query_string

logger = logging.getLogger(__name__)

_JSON_CONTENT_TYPE = re.compile(r"^application/(.*\+)?json")

# Body fields that client_credentials extra_params may not override.
CLIENT_CREDENTIALS_RESERVED = ("client_id", "client_secret", "grant_type", "scope")

# Response fields mapped onto Token attributes; the rest lands in Token.extra.
_TOKEN_FIELDS = frozenset(
    {"access_token", "id_token", "refresh_token", "expires_in", "scope"}
)

StrOrList = Union[str, Iterable[str], None]


def _basic_auth_header(client_id: str, client_secret: str) -> str:
    # RFC 6749 section 2.3.1: form-encode both values before base64.
    raw = f"{quote_plus(client_id)}:{quote_plus(client_secret)}"
    return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")


class OAuth2Client:
    """Client for one authorization server / client registration pair.

    Args:
        settings: Complete :class:`~oauth2kit.models.ClientSettings`. When
            omitted, ``**kwargs`` are used to build one.
        **kwargs: Field values for :class:`~oauth2kit.models.ClientSettings`.

    Attributes:
        settings: The live settings. Discovery writes into this object.
        server_metadata: The parsed discovery document, or ``None`` until
            discovery has succeeded.
    """

    default_endpoints: dict[Endpoint, str] = {
        Endpoint.AUTHORIZATION: "/authorize",
        Endpoint.TOKEN: "/token",
        Endpoint.DISCOVERY: "/.well-known/oauth-authorization-server",
        Endpoint.INTROSPECTION: "/introspect",
        Endpoint.REVOCATION: "/revoke",
    }

    def __init__(self, settings: Optional[ClientSettings] = None, **kwargs: Any) -> None:
        if settings is None:
            settings = ClientSettings(**kwargs)
        elif kwargs:
            raise TypeError("Pass either a ClientSettings instance or keyword settings, not both")
        self.settings = settings
        self.server_metadata: Optional[ServerMetadata] = None
        self._discovery: Optional[asyncio.Future[None]] = None
        self._http: Optional[httpx.AsyncClient] = None
        self._authorization_code: Optional[AuthorizationCodeClient] = None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> OAuth2Client:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client this instance created, if any."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    @property
    def authorization_code(self) -> AuthorizationCodeClient:
        """The :class:`~oauth2kit.client.authorization_code.AuthorizationCodeClient` bound to this client."""
        if self._authorization_code is None:
            self._authorization_code = AuthorizationCodeClient(self)
        return self._authorization_code

    # ------------------------------------------------------------------ #
    # Endpoint resolution and discovery
    # ------------------------------------------------------------------ #

    async def get_endpoint(self, endpoint: Endpoint) -> str:
        """Return the absolute URL for *endpoint*.

        Resolution order: the explicitly configured value, then (for every
        endpoint except discovery itself) whatever discovery found, then the
        default path from :attr:`default_endpoints`. Relative values are
        resolved against ``settings.server``.

        Raises:
            EndpointUnresolvableError: If nothing is configured or discovered
                and there is no ``server`` to derive a default from.
        """
        configured = getattr(self.settings, endpoint.value)
        if configured:
            return self._resolve(configured)

        if endpoint is not Endpoint.DISCOVERY:
            await self.discover()
            configured = getattr(self.settings, endpoint.value)
            if configured:
                return self._resolve(configured)

        if not self.settings.server:
            raise EndpointUnresolvableError(
                f"Could not determine the location of the {endpoint.value}. "
                "Either specify it explicitly, or set the 'server' option"
            )
        return urljoin(self.settings.server, self.default_endpoints[endpoint])

    def _resolve(self, url: str) -> str:
        if self.settings.server:
            return urljoin(self.settings.server, url)
        return url

    async def discover(self) -> None:
        """Fetch the server metadata document, once.

        Every call after the first returns immediately, and calls made while
        the first lookup is in flight wait for it. Whatever goes wrong
        (unresolvable URL, network error, non-2xx, non-JSON or invalid
        document) is logged at warning level and otherwise ignored.
        """
        if self._discovery is None:
            self._discovery = asyncio.ensure_future(self._discover())
        await asyncio.shield(self._discovery)

    async def _discover(self) -> None:
        try:
            url = await self.get_endpoint(Endpoint.DISCOVERY)
        except EndpointUnresolvableError:
            logger.warning("Could not determine the discovery url, skipping OAuth2 discovery")
            return

        try:
            response = await self._send(
                httpx.Request("GET", url, headers={"Accept": "application/json"})
            )
        except (OAuth2KitError, httpx.InvalidURL) as exc:
            logger.warning("OAuth2 discovery request to %s failed: %s", url, exc)
            return

        if not response.is_success:
            logger.warning(
                "OAuth2 discovery document at %s returned HTTP %s, ignoring it",
                url,
                response.status_code,
            )
            return

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("application/json"):
            logger.warning(
                "OAuth2 discovery document at %s has content-type %r instead of "
                "application/json, ignoring it",
                url,
                content_type,
            )
            return

        try:
            metadata = ServerMetadata.model_validate(response.json())
        except ValueError as exc:
            logger.warning("OAuth2 discovery document at %s is invalid: %s", url, exc)
            return

        self.server_metadata = metadata
        for endpoint in (
            Endpoint.AUTHORIZATION,
            Endpoint.TOKEN,
            Endpoint.INTROSPECTION,
            Endpoint.REVOCATION,
        ):
            discovered = getattr(metadata, endpoint.value)
            if discovered and not getattr(self.settings, endpoint.value):
                setattr(self.settings, endpoint.value, urljoin(url, discovered))

        supported = metadata.token_endpoint_auth_methods_supported
        if self.settings.authentication_method is None and supported:
            self.settings.authentication_method = supported[0]

        logger.debug("OAuth2 discovery from %s complete", url)

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    async def _send(self, request: httpx.Request) -> httpx.Response:
        try:
            if self.settings.transport is not None:
                return await self.settings.transport(request)
            if self._http is None:
                self._http = httpx.AsyncClient(timeout=self.settings.timeout)
            return await self._http.send(request)
        except httpx.TransportError as exc:
            raise ConnectionError_(
                f"Could not reach {request.url}: {exc}"
            ) from exc

    async def request(self, endpoint: Endpoint, body: Optional[Mapping[str, Any]] = None) -> Any:
        """POST *body* to *endpoint* with client authentication.

        Client authentication: without a secret the ``client_id`` goes in the
        body (``client_secret_post``). With a secret and no configured method
        HTTP Basic is used.

        Args:
            endpoint: Which endpoint to post to.
            body: Form fields; ``None`` values are dropped.

        Returns:
            The decoded JSON body, or ``None`` for 204 responses and
            responses that are not JSON.

        Raises:
            UnsupportedAuthMethodError: For any configured method other than
                ``client_secret_basic`` and ``client_secret_post``.
            OAuth2HttpError: For non-2xx responses.
            ConnectionError_: If the server could not be reached.
        """
        url = await self.get_endpoint(endpoint)
        form = dict(body or {})
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        client_id = self.settings.client_id
        client_secret = self.settings.client_secret
        method = self.settings.authentication_method
        if not client_secret:
            method = AuthMethod.CLIENT_SECRET_POST.value
        elif method is None:
            method = AuthMethod.CLIENT_SECRET_BASIC.value

        if method == AuthMethod.CLIENT_SECRET_BASIC.value:
            headers["Authorization"] = _basic_auth_header(client_id, client_secret or "")
        elif method == AuthMethod.CLIENT_SECRET_POST.value:
            form["client_id"] = client_id
            if client_secret:
                form["client_secret"] = client_secret
        else:
            raise UnsupportedAuthMethodError(
                f"Authentication method not yet supported: {method}"
            )

        response = await self._send(
            httpx.Request("POST", url, headers=headers, content=generate_query_string(form))
        )

        parsed: Any = None
        content_type = response.headers.get("content-type", "")
        if response.status_code != 204 and _JSON_CONTENT_TYPE.match(content_type):
            try:
                parsed = response.json()
            except ValueError:
                logger.debug("Response from %s claimed JSON but did not parse", url)

        if response.is_success:
            return parsed
        raise self._http_error(response, parsed)

    def _http_error(self, response: httpx.Response, parsed: Any) -> OAuth2HttpError:
        oauth2_code: Optional[str] = None
        if isinstance(parsed, dict) and parsed.get("error"):
            oauth2_code = str(parsed["error"])
            message = f"OAuth2 error {oauth2_code}."
            if parsed.get("error_description"):
                message += f" {parsed['error_description']}"
        else:
            message = f"HTTP Error {response.status_code} {response.reason_phrase}"
            if response.status_code == 401 and self.settings.client_secret:
                message += (
                    ". It's likely that the client_id and/or client_secret was incorrect"
                )
        return OAuth2HttpError(message, oauth2_code, response, parsed)

    # ------------------------------------------------------------------ #
    # Grants
    # ------------------------------------------------------------------ #

    async def request_token(self, grant: GrantRequest) -> Token:
        """Post a grant request to the token endpoint and map the result to a :class:`Token`."""
        body = await self.request(Endpoint.TOKEN, grant.to_form())
        return self.response_to_token(body)

    async def client_credentials(
        self,
        scope: Optional[Iterable[str]] = None,
        resource: StrOrList = None,
        extra_params: Optional[Mapping[str, str]] = None,
    ) -> Token:
        """Obtain a token with the ``client_credentials`` grant.

        Raises:
            MissingSecretError: If no client secret is configured.
            InvalidUsageError: If *extra_params* contains ``client_id``,
                ``client_secret``, ``grant_type`` or ``scope``.
        """
        if not self.settings.client_secret:
            raise MissingSecretError("A client_secret must be provided to use client_credentials")
        extra = dict(extra_params or {})
        for key in CLIENT_CREDENTIALS_RESERVED:
            if key in extra:
                raise InvalidUsageError(f"The following key cannot be set in extra_params: {key}")
        grant = ClientCredentialsRequest(
            scope=as_list(scope),
            resource=as_list(resource),
            extra_params=extra,
        )
        return await self.request_token(grant)

    async def password(
        self,
        username: str,
        password: str,
        scope: Optional[Iterable[str]] = None,
        resource: StrOrList = None,
    ) -> Token:
        """Obtain a token with the resource owner ``password`` grant."""
        grant = PasswordRequest(
            username=username,
            password=password,
            scope=as_list(scope),
            resource=as_list(resource),
        )
        return await self.request_token(grant)

    async def jwt_bearer(
        self,
        assertion: str,
        scope: Optional[Iterable[str]] = None,
        resource: StrOrList = None,
    ) -> Token:
        """Exchange a signed JWT *assertion* for a token (:rfc:`7523`)."""
        grant = JwtBearerRequest(
            assertion=assertion,
            scope=as_list(scope),
            resource=as_list(resource),
        )
        return await self.request_token(grant)

    async def refresh_token(
        self,
        token: Token,
        scope: Optional[Iterable[str]] = None,
        resource: StrOrList = None,
    ) -> Token:
        """Use *token*'s refresh token to obtain a new token.

        If the server does not rotate the refresh token, the old one is
        carried over into the result.

        Raises:
            NotRefreshableError: If *token* has no refresh token.
        """
        if not token.refresh_token:
            raise NotRefreshableError(
                "This token didn't have a refresh_token. It's not possible to refresh it"
            )
        grant = RefreshRequest(
            refresh_token=token.refresh_token,
            scope=as_list(scope),
            resource=as_list(resource),
        )
        new_token = await self.request_token(grant)
        if not new_token.refresh_token:
            new_token = new_token.model_copy(update={"refresh_token": token.refresh_token})
        return new_token

    async def introspect(self, token: Token) -> IntrospectionResponse:
        """Ask the introspection endpoint about *token*'s access token (:rfc:`7662`)."""
        body = await self.request(
            Endpoint.INTROSPECTION,
            IntrospectionRequest(
                token=token.access_token,
                token_type_hint=TokenTypeHint.ACCESS_TOKEN,
            ).to_form(),
        )
        if not isinstance(body, dict):
            raise MalformedTokenResponseError("The introspection endpoint did not return a JSON object")
        return IntrospectionResponse.model_validate(body)

    async def revoke(
        self,
        token: Token,
        token_type_hint: Union[TokenTypeHint, str] = TokenTypeHint.ACCESS_TOKEN,
    ) -> None:
        """Revoke *token*'s access or refresh token (:rfc:`7009`).

        Raises:
            NotRefreshableError: If the refresh token is targeted and *token*
                has none.
        """
        try:
            hint = TokenTypeHint(token_type_hint)
        except ValueError:
            raise InvalidUsageError(f"Unknown token_type_hint: {token_type_hint!r}") from None
        value = token.access_token if hint is TokenTypeHint.ACCESS_TOKEN else token.refresh_token
        if not value:
            raise NotRefreshableError("This token has no refresh_token to revoke")
        await self.request(
            Endpoint.REVOCATION,
            RevocationRequest(token=value, token_type_hint=hint).to_form(),
        )

    def response_to_token(self, body: Any) -> Token:
        """Convert a decoded token endpoint response into a :class:`Token`.

        ``expires_at`` is "now plus ``expires_in``" when the server sent a
        non-zero lifetime and ``None`` otherwise.

        Raises:
            MalformedTokenResponseError: If there is no ``access_token``,
                ``expires_in`` is not a number, or a token field has the wrong
                type.
        """
        if not isinstance(body, dict) or not body.get("access_token"):
            raise MalformedTokenResponseError(
                "Received an invalid token response from the server: access_token is missing"
            )

        expires_at: Optional[datetime] = None
        expires_in = body.get("expires_in")
        if expires_in:
            try:
                lifetime = float(expires_in)
            except (TypeError, ValueError) as exc:
                raise MalformedTokenResponseError(
                    f"Received an invalid expires_in value from the server: {expires_in!r}"
                ) from exc
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=lifetime)

        scope = body.get("scope")
        try:
            return Token(
                access_token=body["access_token"],
                id_token=body.get("id_token"),
                refresh_token=body.get("refresh_token"),
                expires_at=expires_at,
                scope=scope.split() if isinstance(scope, str) else None,
                extra={k: v for k, v in body.items() if k not in _TOKEN_FIELDS},
            )
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise MalformedTokenResponseError(
                f"Received an invalid token response from the server: {field}: {first['msg']}"
            ) from exc
