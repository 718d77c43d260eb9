"""Profile commands -- manage stored client registrations.

Provides the ``oauth2kit profile`` sub-command group. A profile records
where the authorization server lives and which client to authenticate as;
the client secret is stored only as a source descriptor (``env:VAR``,
``file:/path`` or ``prompt``).

Typical workflow::

    oauth2kit profile add myapi --server https://auth.example.org/ \\
        --client-id my-app --secret-source env:MYAPI_SECRET
    oauth2kit profile show myapi
"""

from __future__ import annotations

from typing import Optional

import typer

from oauth2kit.auth.token_store import TokenStore
from oauth2kit.commands.common import handle_errors
from oauth2kit.output import format_response, get_output, info, success, suggest


profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    client_id: str = typer.Option(..., "--client-id", help="OAuth2 client identifier."),
    server: Optional[str] = typer.Option(
        None, "--server", help="Authorization server base URL."
    ),
    secret_source: Optional[str] = typer.Option(
        None,
        "--secret-source",
        "-s",
        help="Client secret source: env:VAR, file:/path, prompt.",
    ),
    token_endpoint: Optional[str] = typer.Option(None, "--token-endpoint"),
    authorization_endpoint: Optional[str] = typer.Option(None, "--authorization-endpoint"),
    discovery_endpoint: Optional[str] = typer.Option(None, "--discovery-endpoint"),
    auth_method: Optional[str] = typer.Option(
        None,
        "--auth-method",
        help="client_secret_basic or client_secret_post.",
    ),
    scope: Optional[list[str]] = typer.Option(None, "--scope", help="Default scope (repeatable)."),
    redirect_uri: Optional[str] = typer.Option(None, "--redirect-uri"),
    openid: bool = typer.Option(False, "--openid", help="OpenID Connect provider."),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing profile."),
) -> None:
    """Create or replace a profile.

    Example::

        oauth2kit profile add local --server http://localhost:9000/ --client-id cli
    """
    from oauth2kit.config import profile_exists, save_profile
    from oauth2kit.models import ClientProfile

    if profile_exists(name) and not force:
        info(f'Profile "{name}" already exists.')
        suggest(f"Replace it: oauth2kit profile add {name} --force ...")
        raise typer.Exit(code=2)

    profile = ClientProfile(
        name=name,
        client_id=client_id,
        client_secret_source=secret_source,
        server=server,
        token_endpoint=token_endpoint,
        authorization_endpoint=authorization_endpoint,
        discovery_endpoint=discovery_endpoint,
        authentication_method=auth_method,
        scopes=scope or [],
        redirect_uri=redirect_uri,
        openid=openid,
    )
    save_profile(profile)
    success(f'Profile "{name}" saved.')
    suggest(f"Fetch a token: oauth2kit --profile {name} token client-credentials")


@profile_app.command("list")
def profile_list() -> None:
    """List profiles with their server and stored token status."""
    from oauth2kit.config import list_profiles, load_profile
    from oauth2kit.exceptions import ConfigError

    names = list_profiles()
    if not names:
        info("No profiles configured.")
        suggest("Create one: oauth2kit profile add <name> --client-id <id> --server <url>")
        return

    rows: list[list[str]] = []
    for name in names:
        try:
            profile = load_profile(name)
        except ConfigError:
            rows.append([name, "error", "-", "-"])
            continue
        token_state = "valid" if TokenStore(name).is_valid() else "none"
        rows.append([name, profile.server or "-", profile.client_id, token_state])

    get_output().print_table(["Profile", "Server", "Client ID", "Token"], rows, title="Profiles")


@profile_app.command("show")
def profile_show(name: str = typer.Argument(help="Profile name.")) -> None:
    """Print a profile's settings."""
    from oauth2kit.config import load_profile

    with handle_errors():
        profile = load_profile(name)
    format_response(profile.model_dump(mode="json"))


@profile_app.command("remove")
def profile_remove(
    name: str = typer.Argument(help="Profile name."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Delete a profile and its stored token."""
    from oauth2kit.config import delete_profile

    if not force:
        confirmed = typer.confirm(f'Remove profile "{name}" and its stored token?')
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    with handle_errors():
        delete_profile(name)
    TokenStore(name).clear()
    success(f'Profile "{name}" removed.')
