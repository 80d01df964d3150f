"""Root Typer app — global options and command group registration."""

from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.logging import RichHandler

from opnsense_sync import __version__
from opnsense_sync.client.errors import err_console
from opnsense_sync.commands import config_cmd, resource

app = typer.Typer(
    name="opnsense-sync",
    help="Reconcile OPNsense appliance configuration through its REST API.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    if value:
        print(f"opnsense-sync {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send engine logs to stderr through rich; DEBUG with --verbose."""
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("opnsense_sync")
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main_callback(
    version: Optional[bool] = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True, help="Show version and exit."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and decisions."),
) -> None:
    """opnsense-sync — converge firewall, DHCP and WireGuard objects."""
    configure_logging(verbose)


app.add_typer(config_cmd.app, name="config")
app.add_typer(resource.app, name="resource")


def main() -> None:
    app()
