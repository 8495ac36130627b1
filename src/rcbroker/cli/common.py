from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.markup import escape

from rcbroker.config import Settings, get_settings, resolve_config_path
from rcbroker.core import BrowserOpener, RecordingOpener, RemoteConsole, UrlOpener
from rcbroker.core.launcher import DeviceConnectCallback
from rcbroker.errors import BrokerError, SessionCloseFailed

T = TypeVar("T")


def load_settings_or_exit() -> Settings:
    try:
        return get_settings()
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def resolve_config_path_or_exit(allow_missing: bool = False) -> tuple[Path, bool]:
    try:
        return resolve_config_path(allow_missing=allow_missing)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc


def build_opener(no_browser: bool) -> UrlOpener:
    return RecordingOpener() if no_browser else BrowserOpener()


def build_console(
    settings: Settings,
    opener: UrlOpener,
    on_device_connect: DeviceConnectCallback | None = None,
) -> RemoteConsole:
    return RemoteConsole(settings, opener, on_device_connect=on_device_connect)


def run_or_exit(coro: Coroutine[Any, Any, T], console: Console) -> T:
    """Run ``coro``; report broker errors as a message and exit code 1."""
    try:
        return asyncio.run(coro)
    except SessionCloseFailed as exc:
        console.print(
            f"[yellow]![/yellow] Session close not confirmed: {escape(str(exc))}"
        )
        raise typer.Exit(1) from None
    except BrokerError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from None
