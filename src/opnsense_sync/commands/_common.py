"""Shared helpers for CLI commands — engine factory, options, value parsing."""

from __future__ import annotations

from typing import Annotated, Any

import typer

from opnsense_sync.client.errors import ConfigurationError
from opnsense_sync.config.manager import ConfigManager
from opnsense_sync.engine.reconciler import Engine
from opnsense_sync.models.kind import FieldSpec, FieldType, ResourceKind

# Shared Typer option type aliases
ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Appliance profile"),
]
HostOpt = Annotated[
    str | None,
    typer.Option("--host", help="Appliance URL override"),
]
ApiKeyOpt = Annotated[
    str | None,
    typer.Option("--api-key", help="API key override"),
]
ApiSecretOpt = Annotated[
    str | None,
    typer.Option("--api-secret", help="API secret override"),
]
InsecureOpt = Annotated[
    bool | None,
    typer.Option("--insecure/--verify", help="Skip TLS certificate verification"),
]
TimeoutOpt = Annotated[
    float | None,
    typer.Option("--timeout", help="Request timeout in seconds"),
]
FormatOpt = Annotated[
    str,
    typer.Option("--format", "-f", help="Output format (table, json, yaml)"),
]
SetOpt = Annotated[
    list[str] | None,
    typer.Option(
        "--set", "-s",
        help="field=value; list fields take comma-separated values, "
        "option maps take name:value pairs",
    ),
]

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def make_engine(
    profile: str | None,
    host: str | None,
    api_key: str | None,
    api_secret: str | None,
    insecure: bool | None = None,
    timeout: float | None = None,
) -> Engine:
    """Create an Engine from CLI options, env vars, or config profile."""
    mgr = ConfigManager()
    resolved = mgr.resolve_appliance(
        profile_name=profile,
        host=host,
        api_key=api_key,
        api_secret=api_secret,
        insecure=insecure,
        timeout=timeout,
    )
    return Engine(resolved)


def parse_value(spec: FieldSpec, text: str) -> Any:
    """Convert command-line text into the native type of *spec*."""
    if spec.type == FieldType.BOOLEAN:
        word = text.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise ConfigurationError(f"'{spec.name}' expects true or false, got '{text}'")
    if spec.type == FieldType.INTEGER:
        try:
            return int(text)
        except ValueError:
            raise ConfigurationError(
                f"'{spec.name}' expects an integer, got '{text}'"
            ) from None
    if spec.type == FieldType.LIST:
        return [item.strip() for item in text.split(",") if item.strip()]
    if spec.type == FieldType.OPTION_MAP:
        options: dict[str, str] = {}
        for pair in filter(None, (p.strip() for p in text.split(","))):
            name, sep, value = pair.partition(":")
            if not sep:
                raise ConfigurationError(
                    f"'{spec.name}' expects name:value pairs, got '{pair}'"
                )
            options[name.strip()] = value.strip()
        return options
    return text


def parse_assignments(kind: ResourceKind, assignments: list[str] | None) -> dict[str, Any]:
    """Build a desired state from ``field=value`` strings."""
    desired: dict[str, Any] = {}
    for item in assignments or []:
        name, sep, text = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ConfigurationError(f"Expected field=value, got '{item}'")
        spec = kind.field(name)
        if spec is None:
            raise ConfigurationError(
                f"'{name}' is not a field of {kind.name}. "
                f"Fields: {', '.join(kind.field_names)}"
            )
        desired[name] = parse_value(spec, text)
    return desired
