"""Output dispatcher — renders data in table, JSON, or YAML format."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from rich.console import Console

from opnsense_sync.engine.codec import REDACTED
from opnsense_sync.kinds import KINDS
from opnsense_sync.models.state import ActivationWarning, ObservedState
from opnsense_sync.output.tables import kv_table, make_table

console = Console()
err_console = Console(stderr=True)


def output_json(data: Any) -> None:
    """Print data as formatted JSON."""
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    console.print_json(json.dumps(data, indent=2, default=str))


def output_yaml(data: Any) -> None:
    """Print data as YAML."""
    import yaml

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    console.print(yaml.dump(data, default_flow_style=False, sort_keys=False), end="")


def output_table(
    data: Any,
    *,
    columns: Sequence[str] | None = None,
    rows: Sequence[Sequence[Any]] | None = None,
    title: str | None = None,
) -> None:
    """Print data as a Rich table."""
    if columns and rows is not None:
        console.print(make_table(title, columns, rows))
    elif isinstance(data, dict):
        console.print(kv_table(data, title=title))
    else:
        console.print(data)


def output(
    data: Any,
    fmt: str = "table",
    *,
    columns: Sequence[str] | None = None,
    rows: Sequence[Sequence[Any]] | None = None,
    title: str | None = None,
) -> None:
    """Dispatch output to the appropriate formatter."""
    if fmt == "json":
        output_json(data)
    elif fmt == "yaml":
        output_yaml(data)
    else:
        output_table(data, columns=columns, rows=rows, title=title)


def _masked(observed: ObservedState) -> ObservedState:
    kind = KINDS.get(observed.kind)
    if kind is None:
        return observed
    sensitive = {spec.name for spec in kind.fields if spec.sensitive}
    fields = {
        name: REDACTED if name in sensitive and value is not None else value
        for name, value in observed.fields.items()
    }
    return observed.model_copy(update={"fields": fields})


def output_observed(observed: ObservedState, fmt: str = "table") -> None:
    """Print an observed resource: identity first, then its fields.

    Sensitive fields are masked.
    """
    observed = _masked(observed)
    if fmt in ("json", "yaml"):
        output(observed, fmt)
        return
    data = {"uuid": observed.identity, **observed.fields}
    output(data, fmt, title=f"{observed.kind} {observed.identity}")


def print_warnings(warnings: Sequence[ActivationWarning]) -> None:
    for warning in warnings:
        err_console.print(f"[bold yellow]Warning:[/] {warning.message}")
