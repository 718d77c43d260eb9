"""Token lifecycle management for oauth2kit.

The main entry points are:

- :class:`TokenManager` -- caches the current token, funnels concurrent
  renewals into one request, refreshes in the background before expiry and
  wraps outbound requests with a single 401 retry.
- :class:`OAuth2Auth` -- :class:`httpx.Auth` adapter so any
  :class:`httpx.AsyncClient` can use a :class:`TokenManager`.
- :class:`TokenStore` -- per-profile token persistence on disk, usable as the
  manager's ``get_stored_token`` / ``store_token`` callbacks.

Typical usage::

    from oauth2kit.auth import OAuth2Auth, TokenManager

    manager = TokenManager(client, get_new_token=client.client_credentials)
    async with httpx.AsyncClient(auth=OAuth2Auth(manager)) as http:
        await http.get("https://api.example.org/")
"""

from oauth2kit.auth.httpx_auth import OAuth2Auth
from oauth2kit.auth.token_manager import TokenManager
from oauth2kit.auth.token_store import TokenStore

__all__ = ["TokenManager", "OAuth2Auth", "TokenStore"]
