"""Typed exceptions and error handling decorator."""

from __future__ import annotations

import functools
from typing import Any, Callable, TypeVar

from rich.console import Console

F = TypeVar("F", bound=Callable[..., Any])

err_console = Console(stderr=True)


class OpnsenseSyncError(Exception):
    """Base exception for opnsense-sync."""

    exit_code: int = 1


class TransportError(OpnsenseSyncError):
    """The request never produced an HTTP response."""

    exit_code = 2
    kind: str = "transport"


class ApplianceTimeoutError(TransportError):
    """The per-call timeout elapsed."""

    kind = "timeout"


class ApplianceUnreachableError(TransportError):
    """Connection refused, DNS failure or invalid URL."""

    kind = "unreachable"


class UntrustedCertificateError(TransportError):
    """TLS certificate verification failed."""

    kind = "untrusted_certificate"


class RequestCancelledError(TransportError):
    """The caller cancelled the request. Not an appliance-side failure."""

    kind = "cancelled"


class UnauthorizedError(OpnsenseSyncError):
    """API key/secret rejected (401/403)."""

    exit_code = 3

    def __init__(self, message: str, raw_body: str = "") -> None:
        self.raw_body = raw_body
        super().__init__(message)


class NotFoundError(OpnsenseSyncError):
    """Resource not found (404)."""

    exit_code = 4

    def __init__(self, message: str, raw_body: str = "") -> None:
        self.raw_body = raw_body
        super().__init__(message)


class MalformedFieldError(OpnsenseSyncError, ValueError):
    """A field value could not be encoded or decoded."""

    exit_code = 5

    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        super().__init__(f"Field '{field}': {detail}")


class MalformedResponseError(OpnsenseSyncError):
    """The response body could not be decoded."""

    exit_code = 5

    def __init__(self, detail: str, raw_body: str = "") -> None:
        self.raw_body = raw_body
        super().__init__(f"{detail}. Body: {raw_body}")


class ConfigurationError(OpnsenseSyncError):
    """Missing or invalid configuration."""

    exit_code = 6


class AmbiguousResponseError(OpnsenseSyncError):
    """The response parsed but no identity could be located in it."""

    exit_code = 7

    def __init__(self, raw_body: str) -> None:
        self.raw_body = raw_body
        super().__init__(f"No identity found in appliance response: {raw_body}")


class ApplianceRejectedError(OpnsenseSyncError):
    """The appliance refused the request (error status or failure sentinel)."""

    exit_code = 8

    def __init__(self, status_code: int, raw_body: str = "", detail: str = "") -> None:
        self.status_code = status_code
        self.raw_body = raw_body
        msg = f"Appliance returned {status_code}"
        if detail:
            msg += f": {detail}"
        elif raw_body:
            msg += f": {raw_body}"
        super().__init__(msg)


class ActivationFailedError(OpnsenseSyncError):
    """The post-mutation reconfigure/apply call failed."""

    exit_code = 9

    def __init__(self, subsystem: str, detail: str) -> None:
        self.subsystem = subsystem
        super().__init__(f"Activation of '{subsystem}' failed: {detail}")


def error_handler(func: F) -> F:
    """Decorator that catches OpnsenseSyncError and prints user-friendly messages."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except OpnsenseSyncError as exc:
            err_console.print(f"[bold red]Error:[/] {exc}")
            raise SystemExit(exc.exit_code)
        except ValueError as exc:
            err_console.print(f"[bold red]Error:[/] {exc}")
            raise SystemExit(1)

    return wrapper  # type: ignore[return-value]
