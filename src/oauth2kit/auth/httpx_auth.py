"""Plug a :class:`~oauth2kit.auth.TokenManager` into :class:`httpx.AsyncClient` as ``auth=``.

Example::

    manager = TokenManager(client, get_new_token=client.client_credentials)
    async with httpx.AsyncClient(auth=OAuth2Auth(manager)) as http:
        response = await http.get("https://api.example.org/me")
"""

from __future__ import annotations

from typing import AsyncGenerator, Generator

import httpx

from oauth2kit.auth.token_manager import TokenManager


class OAuth2Auth(httpx.Auth):
    """httpx authentication flow backed by a :class:`TokenManager`.

    Attaches ``Authorization: Bearer`` to every request. A 401 answer
    triggers one renewal and one retry, mirroring :meth:`TokenManager.send`.
    Only async clients are supported because token renewal is asynchronous.
    """

    requires_request_body = True

    def __init__(self, manager: TokenManager) -> None:
        self.manager = manager

    def sync_auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        raise RuntimeError("OAuth2Auth only supports httpx.AsyncClient")

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        access_token = await self.manager.get_access_token()
        request.headers["Authorization"] = f"Bearer {access_token}"
        response = yield request

        if response.status_code == 401:
            token = await self.manager.refresh_token()
            request.headers["Authorization"] = f"Bearer {token.access_token}"
            yield request
