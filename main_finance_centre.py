"""Mini README: Entry point CLI for the fleetledger finance centre.

This script exposes a Typer CLI to start the FastAPI JSON service with a
configurable host, port and production flag, and to inspect the persisted
reconciliation queue. Settings come from ``FLEETLEDGER_*`` environment
variables when available.
"""

from __future__ import annotations

import typer
import uvicorn

from fleetledger.configuration import get_settings
from fleetledger.logging_utils import configure_root_logger
from fleetledger.transactions import ReconciliationQueue

cli = typer.Typer(help="Launch and manage the fleetledger finance service.")


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind."),
    port: int = typer.Option(None, help="Port to listen on."),
    production: bool = typer.Option(
        False, help="Use production server settings (disable auto-reload)."
    ),
) -> None:
    """Start the FastAPI application using uvicorn."""

    settings = get_settings()
    effective_host = host or settings.interface_host
    effective_port = port or settings.interface_port
    configure_root_logger()

    # Browsers cannot open the 0.0.0.0 / :: wildcard, so point at localhost.
    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(
        f"Starting fleetledger on {effective_host}:{effective_port}.\n"
        f"API docs at http://{browser_host}:{effective_port}/docs"
    )
    uvicorn.run(
        "fleetledger.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not production,
    )


@cli.command()
def pending() -> None:
    """List reconciliation entries still awaiting an operator decision."""

    configure_root_logger()
    path = get_settings().reconciliation_log_path
    if path is None:
        typer.echo("No reconciliation log configured (set FLEETLEDGER_RECONCILIATION_LOG_PATH).")
        raise typer.Exit(code=1)
    entries = ReconciliationQueue(path).pending()
    if not entries:
        typer.echo("No pending reconciliation entries.")
        return
    for entry in entries:
        typer.echo(
            f"{entry.entry_id}: {entry.operation} {entry.transaction_id} stopped at "
            f"{entry.stage.value} (partial={entry.partial}) accounts={','.join(entry.affected_accounts)}"
        )


if __name__ == "__main__":
    cli()
