"""oauth2kit -- a client-side OAuth2 engine for httpx.

This package talks to OAuth2 authorization servers on behalf of a client
application: it resolves endpoints (optionally through server metadata
discovery), runs the token endpoint grants, builds and redeems
authorization code redirects with PKCE, and keeps a bearer token fresh for
outgoing requests.

Typical usage::

    from oauth2kit import OAuth2Client, TokenManager, OAuth2Auth

    client = OAuth2Client(server="https://auth.example.org/",
                          client_id="my-app", client_secret="s3cret")
    manager = TokenManager(client, get_new_token=client.client_credentials)
    async with httpx.AsyncClient(auth=OAuth2Auth(manager)) as http:
        await http.get("https://api.example.org/things")

Modules:
    client: Protocol clients (OAuth2, authorization code, OpenID Connect).
    auth: Token manager, httpx auth adapter and on-disk token store.
    models: Pydantic models shared across the entire package.
    pkce: PKCE verifier and challenge helpers.
    querystring: Form and query string encoding.
    config: Profile storage and credential resolution for the CLI.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer application and CLI entry point.
"""

__version__ = "0.1.0"

from oauth2kit.auth import OAuth2Auth, TokenManager, TokenStore  # noqa: E402
from oauth2kit.client import AuthorizationCodeClient, OAuth2Client, OidcClient  # noqa: E402
from oauth2kit.models import ClientSettings, Token  # noqa: E402

__all__ = [
    "__version__",
    "OAuth2Client",
    "AuthorizationCodeClient",
    "OidcClient",
    "TokenManager",
    "OAuth2Auth",
    "TokenStore",
    "ClientSettings",
    "Token",
]
