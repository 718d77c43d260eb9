"""Persistent token store scoped per profile.

Stores tokens in ``~/.local/share/oauth2kit/tokens/<profile>.json`` (XDG) or
the platform-equivalent directory. Files are written through
:func:`~oauth2kit.config.atomic_write` with ``0o600`` permissions so refresh
tokens are never world-readable, even momentarily.

A :class:`TokenStore` plugs straight into
:class:`~oauth2kit.auth.TokenManager`::

    store = TokenStore("my-api")
    manager = TokenManager(
        client,
        get_new_token=client.client_credentials,
        get_stored_token=store.load,
        store_token=store.save,
    )
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from oauth2kit.config import atomic_write, get_data_dir
from oauth2kit.models import Token

logger = logging.getLogger(__name__)


def _tokens_dir() -> Path:
    path = get_data_dir() / "tokens"
    path.mkdir(parents=True, exist_ok=True)
    return path


class TokenStore:
    """Read and write the token of a single profile.

    Args:
        profile_name: The profile identifier used to derive the file name.
    """

    def __init__(self, profile_name: str) -> None:
        self._profile_name = profile_name
        self._path = _tokens_dir() / f"{profile_name}.json"

    @property
    def path(self) -> Path:
        """The filesystem path to this profile's token file."""
        return self._path

    def save(self, token: Token) -> None:
        """Persist *token* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        text = json.dumps(token.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)

    def load(self) -> Optional[Token]:
        """Load the stored token.

        Returns:
            The :class:`~oauth2kit.models.Token`, or ``None`` if the file is
            missing or cannot be parsed. An unreadable file is logged and
            treated as absent so the manager acquires a fresh token.
        """
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return Token.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            logger.warning("Ignoring unreadable token file %s: %s", self._path, exc)
            return None

    def is_valid(self) -> bool:
        """Return ``True`` if a stored token exists and has not expired."""
        token = self.load()
        return token is not None and not token.is_expired()

    def clear(self) -> None:
        """Delete the stored token file. A no-op when it is already gone."""
        if self._path.is_file():
            self._path.unlink()
