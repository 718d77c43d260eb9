"""Authorization code commands -- build the authorize URL and redeem the redirect.

The flow is split across two invocations because the user has to visit the
authorization server in a browser in between::

    oauth2kit authorize url --pkce
    # open the printed url, log in, copy the URL you were redirected to
    oauth2kit authorize exchange 'http://localhost:8080/cb?code=...&state=...' \\
        --state <state> --code-verifier <verifier>

``authorize url`` prints the ``state`` and ``code_verifier`` it used, so
they can be passed back to ``authorize exchange``.
"""

from __future__ import annotations

import secrets
from typing import Optional

import typer

from oauth2kit.auth.token_store import TokenStore
from oauth2kit.commands.common import (
    active_profile,
    build_client,
    handle_errors,
    run,
    token_payload,
)
from oauth2kit.exceptions import InvalidUsageError
from oauth2kit.models import ClientProfile, Token
from oauth2kit.output import format_response, success, suggest
from oauth2kit.pkce import generate_code_verifier, get_code_challenge


authorize_app = typer.Typer(no_args_is_help=True)


def _redirect_uri(profile: ClientProfile, override: Optional[str]) -> str:
    redirect_uri = override or profile.redirect_uri
    if not redirect_uri:
        raise InvalidUsageError(
            "No redirect URI. Pass --redirect-uri or set one on the profile"
        )
    return redirect_uri


@authorize_app.command("pkce")
def authorize_pkce() -> None:
    """Generate a PKCE code verifier and its S256 challenge."""
    with handle_errors():
        verifier = generate_code_verifier()
    method, challenge = get_code_challenge(verifier)
    format_response(
        {
            "code_verifier": verifier,
            "code_challenge": challenge,
            "code_challenge_method": method,
        }
    )


@authorize_app.command("url")
def authorize_url(
    ctx: typer.Context,
    redirect_uri: Optional[str] = typer.Option(None, "--redirect-uri", help="Defaults to the profile's."),
    state: Optional[str] = typer.Option(None, "--state", help="CSRF state; generated when omitted."),
    pkce: bool = typer.Option(False, "--pkce", help="Generate a PKCE code verifier."),
    code_verifier: Optional[str] = typer.Option(None, "--code-verifier", help="Use this PKCE verifier."),
    scope: Optional[list[str]] = typer.Option(None, "--scope", help="Scope (repeatable)."),
    response_mode: Optional[str] = typer.Option(None, "--response-mode", help="query or fragment."),
) -> None:
    """Print the URL that starts the authorization code flow."""
    with handle_errors():
        profile = active_profile(ctx)
        target = _redirect_uri(profile, redirect_uri)
        state = state or secrets.token_urlsafe(16)
        if pkce and not code_verifier:
            code_verifier = generate_code_verifier()

        async def _go() -> str:
            async with build_client(profile) as client:
                return await client.authorization_code.get_authorize_uri(
                    target,
                    state=state,
                    code_verifier=code_verifier,
                    scope=scope or profile.scopes or None,
                    response_mode=response_mode,
                )

        url = run(_go())

    payload = {"url": url, "state": state}
    if code_verifier:
        payload["code_verifier"] = code_verifier
    format_response(payload)

    hint = f"oauth2kit authorize exchange '<redirected url>' --state {state}"
    if code_verifier:
        hint += f" --code-verifier {code_verifier}"
    suggest(f"After logging in: {hint}")


@authorize_app.command("exchange")
def authorize_exchange(
    ctx: typer.Context,
    url: str = typer.Argument(help="The full URL the browser was redirected to."),
    redirect_uri: Optional[str] = typer.Option(None, "--redirect-uri", help="Defaults to the profile's."),
    state: Optional[str] = typer.Option(None, "--state", help="State sent with the authorize URL."),
    code_verifier: Optional[str] = typer.Option(None, "--code-verifier", help="PKCE verifier."),
) -> None:
    """Validate a redirect URL and trade its code for a token."""
    with handle_errors():
        profile = active_profile(ctx)
        target = _redirect_uri(profile, redirect_uri)

        async def _go() -> Token:
            async with build_client(profile) as client:
                return await client.authorization_code.get_token_from_code_redirect(
                    url,
                    target,
                    state=state,
                    code_verifier=code_verifier,
                )

        token = run(_go())

    TokenStore(profile.name).save(token)
    format_response(token_payload(token))
    success(f'Token stored for "{profile.name}".')
