"""``oauth2kit discover`` -- fetch and print the server's metadata document."""

from __future__ import annotations

from typing import Optional

import typer

from oauth2kit.commands.common import active_profile, build_client, handle_errors, run
from oauth2kit.models import ServerMetadata
from oauth2kit.output import format_response, warning


def discover_command(ctx: typer.Context) -> None:
    """Fetch the authorization server metadata for the active profile.

    Prints the discovery document. Without one, the endpoints the client
    would fall back to are listed instead and the command exits with code 1.
    """
    with handle_errors():
        profile = active_profile(ctx)

        async def _go() -> tuple[Optional[ServerMetadata], dict[str, str]]:
            async with build_client(profile) as client:
                await client.discover()
                return client.server_metadata, client.settings.model_dump(
                    include={
                        "authorization_endpoint",
                        "token_endpoint",
                        "introspection_endpoint",
                        "revocation_endpoint",
                    },
                    exclude_none=True,
                )

        metadata, endpoints = run(_go())

    if metadata is None:
        warning(f'No discovery document found for "{profile.name}"; default endpoints apply.')
        if endpoints:
            format_response(endpoints)
        raise typer.Exit(code=1)

    format_response(metadata.model_dump(mode="json", exclude_none=True))
