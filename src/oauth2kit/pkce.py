"""Proof Key for Code Exchange (:rfc:`7636`) helpers.

:func:`generate_code_verifier` produces the secret kept by the client and
:func:`get_code_challenge` derives the ``S256`` challenge sent with the
authorization request. The verifier is later posted to the token endpoint
by :meth:`~oauth2kit.client.AuthorizationCodeClient.get_token`.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from oauth2kit.exceptions import CryptoUnavailableError


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_verifier() -> str:
    """Return a new random code verifier.

    The verifier is 32 bytes from the operating system's secure random
    source, base64url-encoded without padding, so it is always 43
    characters from ``[A-Za-z0-9_-]``.

    Raises:
        CryptoUnavailableError: If no secure random source is available.
    """
    try:
        raw = secrets.token_bytes(32)
    except NotImplementedError as exc:
        raise CryptoUnavailableError(
            "No secure random source is available to generate a PKCE code verifier"
        ) from exc
    return _base64url(raw)


def get_code_challenge(code_verifier: str) -> tuple[str, str]:
    """Derive the ``S256`` challenge for *code_verifier*.

    The verifier is hashed one byte per character (the low eight bits of each
    code point) rather than as UTF-8, which is identical for every verifier
    :func:`generate_code_verifier` can produce.

    Returns:
        The pair ``("S256", challenge)``.
    """
    data = bytes(ord(char) & 0xFF for char in code_verifier)
    return "S256", _base64url(hashlib.sha256(data).digest())
