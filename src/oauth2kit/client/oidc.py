"""OpenID Connect flavour of :class:`~oauth2kit.client.OAuth2Client`."""

from __future__ import annotations

from typing import Any

from oauth2kit.client.oauth2_client import OAuth2Client
from oauth2kit.exceptions import MalformedTokenResponseError
from oauth2kit.models import Endpoint, Token


class OidcClient(OAuth2Client):
    """Client for an OpenID provider.

    Discovery reads ``/.well-known/openid-configuration`` by default and every
    token response must carry an ``id_token``. The ID token is passed through
    as-is; its signature is not checked.
    """

    default_endpoints = {
        **OAuth2Client.default_endpoints,
        Endpoint.DISCOVERY: "/.well-known/openid-configuration",
    }

    def response_to_token(self, body: Any) -> Token:
        token = super().response_to_token(body)
        if not token.id_token:
            raise MalformedTokenResponseError("Missing 'id_token' in response")
        return token
