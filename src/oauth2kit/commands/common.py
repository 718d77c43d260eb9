"""Helpers shared by the command modules: profile lookup, client construction, error mapping."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Any, Awaitable, Iterator, Optional, TypeVar

import typer

from oauth2kit.client import OAuth2Client, OidcClient
from oauth2kit.config import build_client_settings, resolve_profile
from oauth2kit.exceptions import OAuth2HttpError, OAuth2KitError
from oauth2kit.models import ClientProfile, Token
from oauth2kit.output import debug, error

T = TypeVar("T")


def active_profile(ctx: typer.Context) -> ClientProfile:
    """Resolve the profile selected by ``--profile`` / ``OAUTH2KIT_PROFILE``."""
    name: Optional[str] = ctx.obj.get("profile") if ctx.obj else None
    return resolve_profile(name)


def build_client(profile: ClientProfile) -> OAuth2Client:
    """Create the protocol client for *profile*, resolving its secret source."""
    settings = build_client_settings(profile)
    if profile.openid:
        return OidcClient(settings)
    return OAuth2Client(settings)


def run(awaitable: Awaitable[T]) -> T:
    """Run a coroutine to completion from a synchronous Typer command."""
    return asyncio.run(awaitable)  # type: ignore[arg-type]


@contextmanager
def handle_errors() -> Iterator[None]:
    """Report :class:`~oauth2kit.exceptions.OAuth2KitError` on stderr and exit with its code."""
    try:
        yield
    except OAuth2HttpError as exc:
        if exc.parsed_body is not None:
            debug(f"Response body: {exc.parsed_body}")
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except OAuth2KitError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def token_payload(token: Token) -> dict[str, Any]:
    """Flatten *token* into the dict printed by the token commands."""
    data = token.model_dump(mode="json", exclude={"extra"}, exclude_none=True)
    data.update(token.extra)
    remaining = token.expires_in()
    if remaining is not None:
        data["expires_in"] = max(int(remaining), 0)
    return data
