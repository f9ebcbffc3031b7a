"""Profile commands -- manage connection profiles.

Provides the ``openveo-client profile`` sub-command group. A profile stores
the web service URL, where to read the client id and secret from, an
optional certificate and the client settings
(:class:`~openveo_client.models.Profile`). Profiles are persisted as JSON
in the ``profiles/`` config directory.
"""

from __future__ import annotations

from typing import Optional

import typer

from openveo_client.exceptions import ConfigError
from openveo_client.output import format_response, info, print_table, success


profile_app = typer.Typer(no_args_is_help=True)


@profile_app.command("add")
def profile_add(
    name: str = typer.Argument(help="Profile name."),
    url: str = typer.Option(..., "--url", help="Web service URL (with protocol and port)."),
    client_id: str = typer.Option(
        ..., "--client-id", help="Client id source: 'env:VAR', 'file:/path' or 'prompt'."
    ),
    client_secret: str = typer.Option(
        ..., "--client-secret", help="Client secret source: 'env:VAR', 'file:/path' or 'prompt'."
    ),
    certificate: Optional[str] = typer.Option(
        None, "--certificate", help="Path to the web service full chain certificate."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Execution timeout in seconds."
    ),
    max_auth_attempts: Optional[int] = typer.Option(
        None, "--max-auth-attempts", help="Re-authentications allowed per request."
    ),
    default: bool = typer.Option(
        False, "--default", help="Make this the default profile."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing profile."
    ),
) -> None:
    """Add a connection profile.

    Credentials are never stored: only where to read them from.

    Example::

        openveo-client profile add prod --url https://openveo.example.com \\
            --client-id env:OPENVEO_ID --client-secret file:~/.openveo-secret
    """
    from openveo_client.config import (
        load_global_config,
        profile_exists,
        save_global_config,
        save_profile,
    )
    from openveo_client.models import ClientSettings, EndpointTarget, Profile

    if profile_exists(name) and not force:
        raise ConfigError(f"Profile '{name}' already exists (use --force to overwrite)")

    EndpointTarget.from_url(url)

    settings = ClientSettings()
    if timeout is not None:
        settings.execution_timeout = timeout
    if max_auth_attempts is not None:
        settings.max_authentication_attempts = max_auth_attempts

    save_profile(
        Profile(
            name=name,
            url=url,
            client_id_source=client_id,
            client_secret_source=client_secret,
            certificate=certificate,
            settings=settings,
        )
    )

    if default:
        global_cfg = load_global_config()
        global_cfg.default_profile = name
        save_global_config(global_cfg)

    success(f"Profile '{name}' saved.")


@profile_app.command("list")
def profile_list() -> None:
    """List connection profiles. The default profile is marked with ``*``."""
    from openveo_client.config import list_profiles, load_global_config, load_profile

    names = list_profiles()
    if not names:
        info("No profiles. Add one with 'openveo-client profile add'.")
        return

    default = load_global_config().default_profile
    rows = []
    for name in names:
        profile = load_profile(name)
        rows.append(["*" if name == default else "", name, profile.url])
    print_table(["default", "name", "url"], rows, title="Profiles")


@profile_app.command("show")
def profile_show(name: str = typer.Argument(help="Profile name.")) -> None:
    """Show a connection profile."""
    from openveo_client.config import load_profile

    format_response(load_profile(name).model_dump(mode="json"))


@profile_app.command("use")
def profile_use(name: str = typer.Argument(help="Profile name.")) -> None:
    """Make a profile the default one."""
    from openveo_client.config import load_global_config, load_profile, save_global_config

    load_profile(name)
    global_cfg = load_global_config()
    global_cfg.default_profile = name
    save_global_config(global_cfg)
    success(f"Default profile set to '{name}'.")


@profile_app.command("remove")
def profile_remove(name: str = typer.Argument(help="Profile name.")) -> None:
    """Remove a connection profile."""
    from openveo_client.config import delete_profile

    delete_profile(name)
    success(f"Profile '{name}' removed.")
