from __future__ import annotations

import typer
from rich.console import Console

from rcbroker.cli.common import load_settings_or_exit, resolve_config_path_or_exit
from rcbroker.config import TOKEN_ENV_VAR, Settings, resolve_token
from rcbroker.core import credential_configured


def _credential_source(settings: Settings) -> str:
    if resolve_token(settings):
        return "access token"
    if credential_configured(settings):
        return "OAuth refresh token"
    return f"[red]none[/red] (set provider.token or {TOKEN_ENV_VAR})"


def register(app: typer.Typer) -> None:
    @app.command()
    def info() -> None:
        """Show configuration summary and credential status."""
        settings = load_settings_or_exit()
        config_path, config_exists = resolve_config_path_or_exit(allow_missing=True)

        console = Console()

        console.print("[bold]rcbroker Info[/bold]\n")
        console.print(f"Config file: {config_path if config_exists else 'defaults'}")

        provider = settings.provider
        console.print("\n[bold]Provider[/bold]")
        console.print(f"API base URL: {provider.base_url}")
        console.print(f"Credential: {_credential_source(settings)}")
        console.print(f"Timeout: {provider.timeout}s")

        launch = settings.launch
        console.print("\n[bold]Launch[/bold]")
        console.print(f"Native scheme: {launch.native_scheme}://")
        console.print(f"Web client: {launch.web_client_base}")
        console.print(f"Web fallback delay: {launch.fallback_delay}s")

        sessions = settings.sessions
        console.print("\n[bold]Sessions[/bold]")
        console.print(f"Group: {sessions.group_name}")
        console.print(f"Default expiry: {sessions.default_expiry_hours}h")
        console.print(f"Sweep interval: {sessions.sweep_interval}s")

        overrides = settings.devices.unattended_overrides
        console.print("\n[bold]Devices[/bold]")
        console.print(f"Listed by default: {settings.devices.online_state}")
        if overrides:
            console.print(f"Unattended overrides: {', '.join(overrides)}")
        else:
            console.print("Unattended overrides: none")
