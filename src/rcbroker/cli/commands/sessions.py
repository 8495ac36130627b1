from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from rcbroker.cli.common import (
    build_console,
    build_opener,
    load_settings_or_exit,
    run_or_exit,
)
from rcbroker.config import Settings
from rcbroker.errors import UpstreamError
from rcbroker.models import Session
from rcbroker.utils.redaction import Redactor

app = typer.Typer(no_args_is_help=True)


def _session_table(session: Session, redactor: Redactor) -> Table:
    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Code", session.session_id)
    table.add_row("State", session.state.value)
    table.add_row("Created", f"{session.created_at:%Y-%m-%d %H:%M} UTC")
    table.add_row("Expires", f"{session.expires_at:%Y-%m-%d %H:%M} UTC")
    if session.connection_url:
        table.add_row("Supporter link", redactor.redact_url(session.connection_url))
    if session.web_client_url:
        table.add_row("Web client link", redactor.redact_url(session.web_client_url))
    if session.end_customer_url:
        table.add_row("Customer link", redactor.redact_url(session.end_customer_url))
    if session.password:
        table.add_row("Password", redactor.redact_secret(session.password))
    return table


async def _create(
    settings: Settings, description: str | None, customer: str | None
) -> Session:
    async with build_console(settings, build_opener(no_browser=True)) as remote:
        return await remote.create_session(description, customer)


async def _show(settings: Settings, code: str) -> Session:
    async with build_console(settings, build_opener(no_browser=True)) as remote:
        return await remote.broker.get_session(code)


async def _close(settings: Settings, code: str) -> Session | None:
    async with build_console(settings, build_opener(no_browser=True)) as remote:
        # close_session only raises for tracked sessions.
        try:
            remote.track(await remote.broker.get_session(code))
        except UpstreamError as exc:
            if exc.status != 404:
                raise
        return await remote.close_session(code)


@app.command("create")
def create_session(
    description: Annotated[
        str | None,
        typer.Option("--description", "-d", help="Session description"),
    ] = None,
    customer: Annotated[
        str | None,
        typer.Option("--customer", "-c", help="Label shown to the end customer"),
    ] = None,
    show_secrets: Annotated[
        bool, typer.Option("--show-secrets", help="Print session passwords")
    ] = False,
) -> None:
    """Create a provider session without launching a client."""
    settings = load_settings_or_exit()
    console = Console()
    session = run_or_exit(_create(settings, description, customer), console)

    console.print(f"[green]✓[/green] Created session {session.session_id}")
    console.print(_session_table(session, Redactor(enabled=not show_secrets)))


@app.command("show")
def show_session(
    code: Annotated[str, typer.Argument(help="Session code")],
    show_secrets: Annotated[
        bool, typer.Option("--show-secrets", help="Print session passwords")
    ] = False,
) -> None:
    """Show a session as the provider currently reports it."""
    settings = load_settings_or_exit()
    console = Console()
    session = run_or_exit(_show(settings, code), console)
    console.print(_session_table(session, Redactor(enabled=not show_secrets)))


@app.command("close")
def close_session(code: Annotated[str, typer.Argument(help="Session code")]) -> None:
    """Close a session upstream."""
    settings = load_settings_or_exit()
    console = Console()
    closed = run_or_exit(_close(settings, code), console)

    if closed is None:
        console.print(f"[dim]Session {code} was already closed[/dim]")
    else:
        console.print(f"[green]✓[/green] Closed session {closed.session_id}")
