"""Token commands -- obtain, inspect, refresh and revoke tokens for the active profile.

Every token obtained here is written to the profile's
:class:`~oauth2kit.auth.token_store.TokenStore`, so later commands (and
``oauth2kit token get`` in shell scripts) reuse it until it expires.

Typical workflow::

    oauth2kit token client-credentials --scope read
    curl -H "Authorization: Bearer $(oauth2kit token get)" https://api.example.org/
    oauth2kit token revoke
"""

from __future__ import annotations

from typing import Optional

import typer

from oauth2kit.auth.token_manager import TokenManager
from oauth2kit.auth.token_store import TokenStore
from oauth2kit.commands.common import (
    active_profile,
    build_client,
    handle_errors,
    run,
    token_payload,
)
from oauth2kit.exceptions import InvalidUsageError, NotRefreshableError
from oauth2kit.models import ClientProfile, Token, TokenTypeHint
from oauth2kit.output import format_response, get_output, info, print_data, success
from oauth2kit.output import mask_secret


token_app = typer.Typer(no_args_is_help=True)


def _parse_params(pairs: Optional[list[str]]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Expected key=value, got: {pair}")
        params[key] = value
    return params


def _stored_token(profile: ClientProfile) -> Token:
    token = TokenStore(profile.name).load()
    if token is None:
        raise NotRefreshableError(
            f'No stored token for profile "{profile.name}". Obtain one first, '
            "e.g. oauth2kit token client-credentials"
        )
    return token


def _save_and_print(profile: ClientProfile, token: Token) -> None:
    TokenStore(profile.name).save(token)
    format_response(token_payload(token))
    success(f'Token stored for "{profile.name}".')


@token_app.command("client-credentials")
def token_client_credentials(
    ctx: typer.Context,
    scope: Optional[list[str]] = typer.Option(None, "--scope", help="Scope (repeatable)."),
    resource: Optional[list[str]] = typer.Option(None, "--resource", help="Resource indicator (repeatable)."),
    param: Optional[list[str]] = typer.Option(None, "--param", help="Extra body field key=value (repeatable)."),
) -> None:
    """Obtain a token with the client_credentials grant."""
    with handle_errors():
        profile = active_profile(ctx)
        extra = _parse_params(param)

        async def _go() -> Token:
            async with build_client(profile) as client:
                return await client.client_credentials(
                    scope=scope or profile.scopes or None,
                    resource=resource,
                    extra_params=extra,
                )

        token = run(_go())
        _save_and_print(profile, token)


@token_app.command("password")
def token_password(
    ctx: typer.Context,
    username: str = typer.Option(..., "--username", "-u"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
    scope: Optional[list[str]] = typer.Option(None, "--scope", help="Scope (repeatable)."),
) -> None:
    """Obtain a token with the resource owner password grant."""
    with handle_errors():
        profile = active_profile(ctx)

        async def _go() -> Token:
            async with build_client(profile) as client:
                return await client.password(username, password, scope=scope or profile.scopes or None)

        token = run(_go())
        _save_and_print(profile, token)


@token_app.command("refresh")
def token_refresh(
    ctx: typer.Context,
    scope: Optional[list[str]] = typer.Option(None, "--scope", help="Narrow the scope (repeatable)."),
) -> None:
    """Exchange the stored refresh token for a new token."""
    with handle_errors():
        profile = active_profile(ctx)
        current = _stored_token(profile)

        async def _go() -> Token:
            async with build_client(profile) as client:
                return await client.refresh_token(current, scope=scope)

        token = run(_go())
        _save_and_print(profile, token)


@token_app.command("get")
def token_get(ctx: typer.Context) -> None:
    """Print a valid access token, renewing the stored one if it expired.

    Renewal tries the refresh grant first and falls back to the
    client_credentials grant when the profile has a client secret.
    """
    with handle_errors():
        profile = active_profile(ctx)
        store = TokenStore(profile.name)

        async def _go() -> str:
            async with build_client(profile) as client:
                manager = TokenManager(
                    client,
                    get_new_token=client.client_credentials if client.settings.client_secret else None,
                    get_stored_token=store.load,
                    store_token=store.save,
                    schedule_refresh=False,
                )
                async with manager:
                    return await manager.get_access_token()

        print_data(run(_go()))


@token_app.command("introspect")
def token_introspect(ctx: typer.Context) -> None:
    """Ask the introspection endpoint about the stored access token."""
    with handle_errors():
        profile = active_profile(ctx)
        current = _stored_token(profile)

        async def _go() -> dict:
            async with build_client(profile) as client:
                result = await client.introspect(current)
                return result.model_dump(mode="json", exclude_none=True)

        format_response(run(_go()))


@token_app.command("revoke")
def token_revoke(
    ctx: typer.Context,
    refresh: bool = typer.Option(False, "--refresh", help="Revoke the refresh token instead."),
) -> None:
    """Revoke the stored access (or refresh) token and forget it."""
    hint = TokenTypeHint.REFRESH_TOKEN if refresh else TokenTypeHint.ACCESS_TOKEN
    with handle_errors():
        profile = active_profile(ctx)
        current = _stored_token(profile)

        async def _go() -> None:
            async with build_client(profile) as client:
                await client.revoke(current, hint)

        run(_go())
        TokenStore(profile.name).clear()
        success(f"Revoked {hint.value} for \"{profile.name}\".")


@token_app.command("show")
def token_show(
    ctx: typer.Context,
    access_token: bool = typer.Option(
        False, "--access-token", help="Print only the raw access token."
    ),
) -> None:
    """Show the stored token without contacting the server."""
    with handle_errors():
        profile = active_profile(ctx)
    store = TokenStore(profile.name)
    token = store.load()
    if token is None:
        info(f'No stored token for "{profile.name}".')
        raise typer.Exit(code=1)

    if access_token:
        print_data(token.access_token)
        return

    rows = [
        ["Profile", profile.name],
        ["Access Token", mask_secret(token.access_token)],
        ["Refresh Token", mask_secret(token.refresh_token)],
        ["ID Token", mask_secret(token.id_token)],
        ["Scope", " ".join(token.scope) if token.scope else "-"],
        ["Expires At", str(token.expires_at) if token.expires_at else "never"],
        ["Valid", str(store.is_valid())],
    ]
    get_output().print_table(["Field", "Value"], rows, title="Stored Token")


@token_app.command("clear")
def token_clear(ctx: typer.Context) -> None:
    """Forget the stored token without revoking it."""
    with handle_errors():
        profile = active_profile(ctx)
    TokenStore(profile.name).clear()
    success(f'Stored token cleared for "{profile.name}".')
