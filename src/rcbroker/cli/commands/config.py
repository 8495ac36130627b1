from __future__ import annotations

from typing import Annotated

import typer

from rcbroker.cli.common import load_settings_or_exit, resolve_config_path_or_exit
from rcbroker.config import render_settings_toml

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    show_secrets: Annotated[
        bool,
        typer.Option("--show-secrets", help="Print credentials unmasked"),
    ] = False,
) -> None:
    """Show current configuration."""
    settings = load_settings_or_exit()
    path, exists = resolve_config_path_or_exit(allow_missing=True)

    source = str(path) if exists else "defaults"
    typer.echo(f"Config source: {source}")
    typer.echo(render_settings_toml(settings, mask_secrets=not show_secrets))
