"""Authorization code grant with optional PKCE (:rfc:`6749` section 4.1, :rfc:`7636`).

The flow has three steps, each a method of :class:`AuthorizationCodeClient`:

1. :meth:`~AuthorizationCodeClient.get_authorize_uri` builds the URL the
   user agent is sent to.
2. :meth:`~AuthorizationCodeClient.validate_response` checks the URL the
   authorization server redirected back to and extracts the code.
3. :meth:`~AuthorizationCodeClient.get_token` exchanges the code at the
   token endpoint.

:meth:`~AuthorizationCodeClient.get_token_from_code_redirect` combines the
last two.

Example::

    verifier = generate_code_verifier()
    url = await client.authorization_code.get_authorize_uri(
        redirect_uri="http://localhost:8400/callback",
        state=state,
        code_verifier=verifier,
        scope=["openid"],
    )
    # ... the user logs in and is redirected to callback_url ...
    token = await client.authorization_code.get_token_from_code_redirect(
        callback_url,
        redirect_uri="http://localhost:8400/callback",
        state=state,
        code_verifier=verifier,
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Union
from urllib.parse import parse_qs, urlsplit

from oauth2kit.exceptions import AuthorizationResponseError, InvalidUsageError, OAuth2Error
from oauth2kit.models import (
    AuthorizationCodeRequest,
    AuthorizationCodeResponse,
    Endpoint,
    Token,
)
from oauth2kit.pkce import get_code_challenge
from oauth2kit.querystring import as_list, generate_query_string

if TYPE_CHECKING:
    from oauth2kit.client.oauth2_client import OAuth2Client


def _first(params: dict[str, list[str]], key: str) -> Optional[str]:
    values = params.get(key)
    return values[0] if values else None


class AuthorizationCodeClient:
    """Authorization code helper bound to an :class:`~oauth2kit.client.OAuth2Client`.

    Obtain one through :attr:`OAuth2Client.authorization_code` rather than
    constructing it directly.
    """

    def __init__(self, client: OAuth2Client) -> None:
        self.client = client

    async def get_authorize_uri(
        self,
        redirect_uri: str,
        state: Optional[str] = None,
        code_verifier: Optional[str] = None,
        scope: Optional[Iterable[str]] = None,
        resource: Union[str, Iterable[str], None] = None,
        extra_params: Optional[Mapping[str, Any]] = None,
        response_mode: Optional[str] = None,
    ) -> str:
        """Build the authorization endpoint URL to send the user agent to.

        Args:
            redirect_uri: Where the server should send the user back to.
            state: Opaque value echoed back by the server, for CSRF
                protection.
            code_verifier: PKCE verifier. When given, its ``S256`` challenge
                is added to the URL.
            scope: Requested scopes, sent space-separated.
            resource: One or more resource indicators (:rfc:`8707`).
            extra_params: Additional query parameters.
            response_mode: ``"fragment"`` asks for the result in the URL
                fragment. ``"query"`` is the default and is not sent.

        Raises:
            InvalidUsageError: If a key in *extra_params* would overwrite a
                parameter set above.
        """
        params: dict[str, Any] = {
            "client_id": self.client.settings.client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri,
        }
        if code_verifier:
            method, challenge = get_code_challenge(code_verifier)
            params["code_challenge_method"] = method
            params["code_challenge"] = challenge
        if state:
            params["state"] = state
        if scope:
            params["scope"] = " ".join(scope)
        if resource:
            params["resource"] = as_list(resource)
        if response_mode and response_mode != "query":
            params["response_mode"] = response_mode

        for key, value in (extra_params or {}).items():
            if key in params:
                raise InvalidUsageError(
                    f"Property in extra_params would overwrite standard property: {key}"
                )
            params[key] = value

        endpoint = await self.client.get_endpoint(Endpoint.AUTHORIZATION)
        separator = "&" if "?" in endpoint else "?"
        return endpoint + separator + generate_query_string(params)

    async def validate_response(
        self,
        url: str,
        state: Optional[str] = None,
    ) -> AuthorizationCodeResponse:
        """Check the redirect URL and extract the authorization code.

        Parameters are read from the query string. When it holds neither
        ``code`` nor ``error``, the fragment is read instead, which covers
        ``response_mode=fragment``.

        Args:
            url: The full URL the user agent was redirected to.
            state: The ``state`` sent with the authorization request. When
                given, the redirect must carry the same value.

        Raises:
            OAuth2Error: If the server reported an ``error``.
            AuthorizationResponseError: If there is no ``code`` or the
                ``state`` does not match.
        """
        parts = urlsplit(url)
        params = parse_qs(parts.query)
        if "code" not in params and "error" not in params and parts.fragment:
            params = parse_qs(parts.fragment)

        error = _first(params, "error")
        if error:
            raise OAuth2Error(
                _first(params, "error_description") or "OAuth2 error",
                oauth2_code=error,
            )

        code = _first(params, "code")
        if not code:
            raise AuthorizationResponseError("The url did not contain a code parameter")

        if state and _first(params, "state") != state:
            raise AuthorizationResponseError(
                f"The 'state' parameter in the url did not match the expected value of {state}"
            )

        scope = _first(params, "scope")
        return AuthorizationCodeResponse(
            code=code,
            scope=scope.split(" ") if scope else None,
        )

    async def get_token(
        self,
        code: str,
        redirect_uri: str,
        code_verifier: Optional[str] = None,
        resource: Union[str, Iterable[str], None] = None,
    ) -> Token:
        """Exchange an authorization *code* for a token."""
        grant = AuthorizationCodeRequest(
            code=code,
            redirect_uri=redirect_uri,
            code_verifier=code_verifier,
            resource=as_list(resource),
        )
        return await self.client.request_token(grant)

    async def get_token_from_code_redirect(
        self,
        url: str,
        redirect_uri: str,
        state: Optional[str] = None,
        code_verifier: Optional[str] = None,
        resource: Union[str, Iterable[str], None] = None,
    ) -> Token:
        """Validate the redirect *url* and exchange the code it carries."""
        result = await self.validate_response(url, state)
        return await self.get_token(
            result.code,
            redirect_uri,
            code_verifier=code_verifier,
            resource=resource,
        )
