from __future__ import annotations

from typing import Annotated, cast, get_args

import typer
from rich.console import Console
from rich.table import Table

from rcbroker.cli.common import (
    build_console,
    build_opener,
    load_settings_or_exit,
    run_or_exit,
)
from rcbroker.config import OnlineState, Settings
from rcbroker.core import normalize_identifier
from rcbroker.models import Device


async def _fetch(settings: Settings, state: OnlineState | None) -> list[Device]:
    async with build_console(settings, build_opener(no_browser=True)) as remote:
        return await remote.list_devices(state)


def list_devices(
    state: Annotated[
        str | None,
        typer.Option("--state", "-s", help="online, offline, busy or all"),
    ] = None,
) -> None:
    """List devices known to the provider."""
    if state is not None and state not in get_args(OnlineState):
        raise typer.BadParameter(
            f"expected one of: {', '.join(get_args(OnlineState))}", param_hint="--state"
        )
    settings = load_settings_or_exit()
    console = Console()
    devices = run_or_exit(_fetch(settings, cast(OnlineState | None, state)), console)

    if not devices:
        console.print("No devices found.")
        return

    table = Table()
    table.add_column("ID", style="dim")
    table.add_column("Remote ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Online")
    table.add_column("Unattended")
    table.add_column("Model")
    table.add_column("Last seen")

    for device in sorted(devices, key=lambda d: d.display_name.lower()):
        info = device.model_info
        model = " ".join(filter(None, [info.manufacturer, info.model])) if info else ""
        table.add_row(
            device.local_id,
            normalize_identifier(device.remote_id),
            device.display_name,
            "[green]yes[/green]" if device.online else "[dim]no[/dim]",
            "yes" if device.supports_unattended else "no",
            model,
            device.last_seen.strftime("%Y-%m-%d %H:%M") if device.last_seen else "",
        )

    console.print(table)


def register(app: typer.Typer) -> None:
    app.command("devices")(list_devices)
