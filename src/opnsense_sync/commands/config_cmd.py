"""Config commands — manage appliance profiles."""

from __future__ import annotations

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.prompt import Confirm, Prompt

from opnsense_sync.client.errors import error_handler
from opnsense_sync.config.manager import ConfigManager
from opnsense_sync.config.models import ApplianceProfile
from opnsense_sync.output.formatter import output

app = typer.Typer(name="config", help="Manage appliance profiles.")
console = Console()


def _get_manager() -> ConfigManager:
    return ConfigManager()


def _mask(secret: str) -> str:
    return secret[:4] + "..." if len(secret) > 8 else "***"


@app.command()
@error_handler
def init() -> None:
    """Interactive setup wizard — create your first appliance profile."""
    mgr = _get_manager()
    console.print("[bold]opnsense-sync setup[/]\n")

    name = Prompt.ask("Profile name", default="default")
    host = Prompt.ask("Appliance URL (e.g. https://192.168.1.1)")
    api_key = Prompt.ask("API key")
    api_secret = Prompt.ask("API secret", password=True)
    verify = Confirm.ask("Verify TLS certificates?", default=True)

    profile = ApplianceProfile(
        name=name,
        host=host,
        api_key=api_key or None,
        api_secret=api_secret or None,
        insecure=not verify,
    )
    mgr.add_profile(profile)
    console.print(f"\n[green]Profile '{name}' saved.[/]")
    console.print(f"Config file: {mgr.config_path}")


@app.command()
@error_handler
def add(
    name: Annotated[str, typer.Argument(help="Profile name")],
    host: Annotated[str, typer.Option("--host", "-H", help="Appliance URL")],
    api_key: Annotated[Optional[str], typer.Option("--api-key", help="API key")] = None,
    api_secret: Annotated[Optional[str], typer.Option("--api-secret", help="API secret")] = None,
    insecure: Annotated[bool, typer.Option("--insecure", help="Skip TLS verification")] = False,
    timeout: Annotated[float, typer.Option("--timeout", help="Request timeout in seconds")] = 30.0,
    set_default: Annotated[bool, typer.Option("--default", help="Set as default profile")] = False,
) -> None:
    """Add an appliance profile."""
    mgr = _get_manager()
    profile = ApplianceProfile(
        name=name,
        host=host,
        api_key=api_key,
        api_secret=api_secret,
        insecure=insecure,
        timeout=timeout,
    )
    mgr.add_profile(profile)
    if set_default:
        mgr.set_default(name)
    console.print(f"[green]Profile '{name}' added.[/]")


@app.command("list")
@error_handler
def list_profiles(
    fmt: Annotated[str, typer.Option("--format", "-f", help="Output format")] = "table",
) -> None:
    """List all configured profiles."""
    mgr = _get_manager()
    profiles = mgr.config.profiles
    if not profiles:
        console.print("[yellow]No profiles configured. Run 'opnsense-sync config init' to get started.[/]")
        return

    default = mgr.config.default_profile
    rows = [
        [
            name,
            p.host,
            "yes" if p.auth_configured else "no",
            "no" if p.insecure else "yes",
            "*" if name == default else "",
        ]
        for name, p in profiles.items()
    ]
    output(
        {"profiles": [p.model_dump(exclude={"api_secret"}, exclude_none=True) for p in profiles.values()]},
        fmt,
        columns=["Name", "Host", "Credentials", "TLS verify", "Default"],
        rows=rows,
        title="Appliance Profiles",
    )


@app.command()
@error_handler
def show(
    name: Annotated[str, typer.Argument(help="Profile name")],
    fmt: Annotated[str, typer.Option("--format", "-f", help="Output format")] = "table",
) -> None:
    """Show profile details with credentials masked."""
    mgr = _get_manager()
    profile = mgr.get_profile(name)
    if not profile:
        console.print(f"[red]Profile '{name}' not found.[/]")
        raise typer.Exit(1)

    data = profile.model_dump(exclude_none=True)
    if "api_key" in data:
        data["api_key"] = _mask(data["api_key"])
    if "api_secret" in data:
        data["api_secret"] = "***"
    output(data, fmt, title=f"Profile: {name}")


@app.command("set-default")
@error_handler
def set_default(
    name: Annotated[str, typer.Argument(help="Profile name to set as default")],
) -> None:
    """Set the default appliance profile."""
    mgr = _get_manager()
    if mgr.set_default(name):
        console.print(f"[green]Default profile set to '{name}'.[/]")
    else:
        console.print(f"[red]Profile '{name}' not found.[/]")
        raise typer.Exit(1)


@app.command()
@error_handler
def remove(
    name: Annotated[str, typer.Argument(help="Profile name to remove")],
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation")] = False,
) -> None:
    """Remove an appliance profile."""
    mgr = _get_manager()
    if not mgr.get_profile(name):
        console.print(f"[red]Profile '{name}' not found.[/]")
        raise typer.Exit(1)

    if not force:
        if not Confirm.ask(f"Remove profile '{name}'?"):
            console.print("Cancelled.")
            return

    mgr.remove_profile(name)
    console.print(f"[green]Profile '{name}' removed.[/]")
