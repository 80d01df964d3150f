"""Resource commands — CRUD and convergence for any built-in resource kind.

Kinds are named after the appliance object they manage, for example:
  - ``firewall_alias``
  - ``nat_destination``
  - ``kea_reservation``

Use ``resource kinds`` to list them with their fields.
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm

from opnsense_sync.client.errors import error_handler
from opnsense_sync.commands._common import (
    ApiKeyOpt,
    ApiSecretOpt,
    FormatOpt,
    HostOpt,
    InsecureOpt,
    ProfileOpt,
    SetOpt,
    TimeoutOpt,
    make_engine,
    parse_assignments,
)
from opnsense_sync.kinds import KINDS, get_kind
from opnsense_sync.models.state import ConvergeAction, ObservedState
from opnsense_sync.output.formatter import output, output_observed, print_warnings

app = typer.Typer(
    name="resource",
    help="Create, read, update, delete and converge appliance resources.",
)
console = Console()

KindArg = Annotated[str, typer.Argument(help="Resource kind (e.g. firewall_alias)")]
IdentityArg = Annotated[str, typer.Argument(help="Resource UUID")]


@app.command("kinds")
@error_handler
def list_kinds(
    fmt: FormatOpt = "table",
) -> None:
    """List the built-in resource kinds."""
    rows = [
        [
            kind.name,
            kind.path("{action}"),
            ", ".join(
                f"{f.name}*" if f.required else f.name for f in kind.fields
            ),
            kind.subsystem.name if kind.subsystem else "",
        ]
        for kind in KINDS.values()
    ]
    output(
        {"kinds": [k.model_dump(mode="json") for k in KINDS.values()]},
        fmt,
        columns=["Kind", "Endpoint", "Fields (* required)", "Activates"],
        rows=rows,
        title="Resource kinds",
    )


@app.command()
@error_handler
def get(
    kind: KindArg,
    identity: IdentityArg,
    profile: ProfileOpt = None,
    host: HostOpt = None,
    api_key: ApiKeyOpt = None,
    api_secret: ApiSecretOpt = None,
    insecure: InsecureOpt = None,
    timeout: TimeoutOpt = None,
    fmt: FormatOpt = "table",
) -> None:
    """Show the current fields of a resource."""
    with make_engine(profile, host, api_key, api_secret, insecure, timeout) as engine:
        observed = engine.reconciler(kind).read(identity)
    if observed is None:
        console.print(f"[yellow]{kind} {identity} does not exist on the appliance.[/]")
        raise typer.Exit(4)
    output_observed(observed, fmt)


@app.command()
@error_handler
def create(
    kind: KindArg,
    assignments: SetOpt = None,
    profile: ProfileOpt = None,
    host: HostOpt = None,
    api_key: ApiKeyOpt = None,
    api_secret: ApiSecretOpt = None,
    insecure: InsecureOpt = None,
    timeout: TimeoutOpt = None,
    fmt: FormatOpt = "table",
) -> None:
    """Create a resource from --set field=value pairs."""
    desired = parse_assignments(get_kind(kind), assignments)
    with make_engine(profile, host, api_key, api_secret, insecure, timeout) as engine:
        result = engine.reconciler(kind).create(desired)
    print_warnings(result.warnings)
    if result.observed is not None:
        console.print(f"[green]{kind} created with uuid {result.observed.identity}.[/]")
        output_observed(result.observed, fmt)


@app.command()
@error_handler
def update(
    kind: KindArg,
    identity: IdentityArg,
    assignments: SetOpt = None,
    profile: ProfileOpt = None,
    host: HostOpt = None,
    api_key: ApiKeyOpt = None,
    api_secret: ApiSecretOpt = None,
    insecure: InsecureOpt = None,
    timeout: TimeoutOpt = None,
) -> None:
    """Patch a resource; only the fields given with --set are sent."""
    desired = parse_assignments(get_kind(kind), assignments)
    if not desired:
        console.print("[yellow]Nothing to update. Pass at least one --set.[/]")
        raise typer.Exit(1)
    with make_engine(profile, host, api_key, api_secret, insecure, timeout) as engine:
        result = engine.reconciler(kind).update(identity, desired)
    print_warnings(result.warnings)
    console.print(f"[green]{kind} {identity} updated.[/]")


@app.command()
@error_handler
def delete(
    kind: KindArg,
    identity: IdentityArg,
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation"),
    ] = False,
    profile: ProfileOpt = None,
    host: HostOpt = None,
    api_key: ApiKeyOpt = None,
    api_secret: ApiSecretOpt = None,
    insecure: InsecureOpt = None,
    timeout: TimeoutOpt = None,
) -> None:
    """Delete a resource. A resource that is already gone is not an error."""
    get_kind(kind)
    if not force and not Confirm.ask(f"Delete {kind} {identity}?"):
        console.print("Cancelled.")
        return
    with make_engine(profile, host, api_key, api_secret, insecure, timeout) as engine:
        result = engine.reconciler(kind).delete(identity)
    print_warnings(result.warnings)
    if result.already_absent:
        console.print(f"[yellow]{kind} {identity} was already absent.[/]")
    else:
        console.print(f"[green]{kind} {identity} deleted.[/]")


@app.command("import")
@error_handler
def import_resource(
    kind: KindArg,
    identity: IdentityArg,
    profile: ProfileOpt = None,
    host: HostOpt = None,
    api_key: ApiKeyOpt = None,
    api_secret: ApiSecretOpt = None,
    insecure: InsecureOpt = None,
    timeout: TimeoutOpt = None,
    fmt: FormatOpt = "table",
) -> None:
    """Adopt an existing resource by uuid and show what it holds."""
    with make_engine(profile, host, api_key, api_secret, insecure, timeout) as engine:
        reconciler = engine.reconciler(kind)
        seeded = reconciler.import_state(identity)
        observed = reconciler.read(seeded.identity)
    if observed is None:
        console.print(f"[red]{kind} {identity} does not exist on the appliance.[/]")
        raise typer.Exit(4)
    output_observed(observed, fmt)


@app.command()
@error_handler
def sync(
    kind: KindArg,
    assignments: SetOpt = None,
    identity: Annotated[
        str | None,
        typer.Option("--uuid", help="Known uuid of the resource, if any"),
    ] = None,
    profile: ProfileOpt = None,
    host: HostOpt = None,
    api_key: ApiKeyOpt = None,
    api_secret: ApiSecretOpt = None,
    insecure: InsecureOpt = None,
    timeout: TimeoutOpt = None,
    fmt: FormatOpt = "table",
) -> None:
    """Converge a resource: create, re-create or patch it as needed."""
    desired = parse_assignments(get_kind(kind), assignments)
    known = ObservedState(kind=kind, identity=identity) if identity else None
    with make_engine(profile, host, api_key, api_secret, insecure, timeout) as engine:
        result = engine.reconciler(kind).converge(desired, known)
    print_warnings(result.warnings)
    if result.action == ConvergeAction.NOOP:
        console.print(f"[green]{kind} {result.observed.identity} is in sync.[/]")
    else:
        console.print(
            f"[green]{kind} {result.observed.identity} {result.action.value}.[/]"
        )
        for drift in result.drift:
            console.print(escape(f"  {drift.field}: {drift.observed!r} -> {drift.desired!r}"))
    output_observed(result.observed, fmt)
