from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Annotated

import typer
from rich.console import Console

from rcbroker.cli.common import (
    build_console,
    build_opener,
    load_settings_or_exit,
    run_or_exit,
)
from rcbroker.config import Settings
from rcbroker.core import RemoteConsole, UrlOpener
from rcbroker.errors import DeviceNotFound
from rcbroker.models import ConnectionAttempt, ConnectionStrategy, Session
from rcbroker.utils.redaction import Redactor

StartAttempt = Callable[[RemoteConsole], Awaitable[ConnectionAttempt]]

STRATEGY_LABELS = {
    ConnectionStrategy.DIRECT_UNATTENDED: "direct (unattended)",
    ConnectionStrategy.BROKERED_SESSION: "brokered session",
    ConnectionStrategy.MANUAL_DIRECT: "direct (manual ID)",
}

HOLD_POLL_INTERVAL = 1.0


def _print_attempt(
    console: Console, attempt: ConnectionAttempt, redactor: Redactor
) -> None:
    console.print(f"Strategy: {STRATEGY_LABELS[attempt.strategy]}")
    if attempt.degraded:
        console.print(
            "[yellow]![/yellow] Session creation failed; connecting directly instead"
        )
    session = attempt.session
    if session is not None:
        console.print(f"Session: [cyan]{session.session_id}[/cyan]")
        console.print(f"Expires: {session.expires_at:%Y-%m-%d %H:%M} UTC")
        if session.password:
            console.print(f"Password: {redactor.redact_secret(session.password)}")
    console.print(f"Native client: {redactor.redact_url(attempt.native_uri)}")
    console.print(f"Web client: {redactor.redact_url(attempt.web_url)}")


async def _hold(remote: RemoteConsole, session: Session, console: Console) -> None:
    console.print(
        f"Holding session {session.session_id} until it expires. "
        "Press Ctrl+C to close it."
    )
    try:
        while remote.store.get(session.session_id) is not None:
            await asyncio.sleep(HOLD_POLL_INTERVAL)
        console.print(f"Session {session.session_id} expired")
    finally:
        if remote.store.get(session.session_id) is not None:
            await remote.close_session(session.session_id)
            console.print(f"[green]✓[/green] Closed session {session.session_id}")


async def _run_attempt(
    settings: Settings,
    opener: UrlOpener,
    console: Console,
    start: StartAttempt,
    redactor: Redactor,
    wait_for_fallback: bool = True,
    hold: bool = False,
) -> ConnectionAttempt:
    def announce(identifier: str, display_name: str) -> None:
        console.print(
            f"[green]✓[/green] Connection dispatched to {display_name} ({identifier})"
        )

    async with build_console(settings, opener, on_device_connect=announce) as remote:
        attempt = await start(remote)
        _print_attempt(console, attempt, redactor)
        if wait_for_fallback:
            await remote.wait_for_fallbacks()
        if hold and attempt.session is not None:
            await _hold(remote, attempt.session, console)
        return attempt


def _connect_and_report(
    start: StartAttempt, no_browser: bool, hold: bool, show_secrets: bool
) -> ConnectionAttempt:
    settings = load_settings_or_exit()
    console = Console()
    coro = _run_attempt(
        settings,
        build_opener(no_browser),
        console,
        start,
        Redactor(enabled=not show_secrets),
        wait_for_fallback=not no_browser,
        hold=hold,
    )
    try:
        attempt = run_or_exit(coro, console)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130) from None
    if no_browser:
        console.print("[dim]Nothing was opened; use one of the links above.[/dim]")
    return attempt


NoBrowserOption = Annotated[
    bool,
    typer.Option("--no-browser", help="Print launch links instead of opening them"),
]
HoldOption = Annotated[
    bool,
    typer.Option(
        "--hold", help="Keep the session until it expires; Ctrl+C closes it"
    ),
]
ShowSecretsOption = Annotated[
    bool,
    typer.Option("--show-secrets", help="Print passwords in launch links"),
]


def connect(
    device: Annotated[
        str, typer.Argument(help="Device ID, remote-control ID or name")
    ],
    no_browser: NoBrowserOption = False,
    hold: HoldOption = False,
    show_secrets: ShowSecretsOption = False,
) -> None:
    """Connect to a device from the provider's device list."""

    async def start(remote: RemoteConsole) -> ConnectionAttempt:
        found = await remote.find_device(device)
        if found is None:
            raise DeviceNotFound(f"Device '{device}' not found")
        return await remote.connect_device(found)

    _connect_and_report(start, no_browser, hold, show_secrets)


def connect_id(
    identifier: Annotated[str, typer.Argument(help="Remote-control ID")],
    password: Annotated[
        str | None,
        typer.Option("--password", "-p", help="Password for the remote device"),
    ] = None,
    no_browser: NoBrowserOption = False,
    show_secrets: ShowSecretsOption = False,
) -> None:
    """Connect directly to a remote-control ID that is not in the device list."""

    async def start(remote: RemoteConsole) -> ConnectionAttempt:
        return await remote.connect_manual(identifier, password)

    _connect_and_report(start, no_browser, False, show_secrets)


def register(app: typer.Typer) -> None:
    app.command("connect")(connect)
    app.command("connect-id")(connect_id)
