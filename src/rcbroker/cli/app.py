from __future__ import annotations

from typing import Annotated

import typer

from rcbroker.utils.logging import setup_logging

from .commands import config as config_cmd
from .commands import sessions as sessions_cmd
from .commands.connect import register as register_connect
from .commands.devices import register as register_devices
from .commands.info import register as register_info
from .commands.init import register as register_init

app = typer.Typer(
    help="rcbroker - connect to remote devices through a remote-control provider",
    no_args_is_help=True,
)

app.add_typer(config_cmd.app, name="config", help="Inspect configuration")
app.add_typer(sessions_cmd.app, name="sessions", help="Manage provider sessions")

register_init(app)
register_info(app)
register_devices(app)
register_connect(app)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", help="Show version and exit"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log broker activity"),
    ] = False,
) -> None:
    """rcbroker CLI."""
    setup_logging("DEBUG" if verbose else None, default="WARNING")

    if version:
        from importlib.metadata import version as get_version

        typer.echo(f"rcbroker version {get_version('rcbroker')}")
        raise typer.Exit()
