"""Protocol clients for talking to an OAuth2 authorization server.

Classes:
    :class:`OAuth2Client` -- endpoint resolution, one-time discovery, client
    authentication and the token endpoint grants.
    :class:`AuthorizationCodeClient` -- authorize URL construction, redirect
    validation and code exchange, reached via
    :attr:`OAuth2Client.authorization_code`.
    :class:`OidcClient` -- :class:`OAuth2Client` with OpenID Connect
    discovery and mandatory ``id_token``.

Example::

    from oauth2kit.client import OAuth2Client

    async with OAuth2Client(server="https://auth.example.org/", client_id="app") as client:
        token = await client.password("alice", "hunter2")
"""

from oauth2kit.client.authorization_code import AuthorizationCodeClient
from oauth2kit.client.oauth2_client import OAuth2Client
from oauth2kit.client.oidc import OidcClient

__all__ = ["OAuth2Client", "AuthorizationCodeClient", "OidcClient"]
