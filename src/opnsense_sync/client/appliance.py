"""Appliance HTTP client."""

from __future__ import annotations

import logging
import ssl
import threading
from typing import Any, NamedTuple

import httpx

from opnsense_sync.client.auth import resolve_auth
from opnsense_sync.client.errors import (
    ApplianceTimeoutError,
    ApplianceUnreachableError,
    RequestCancelledError,
    TransportError,
    UntrustedCertificateError,
)
from opnsense_sync.config.constants import DEFAULT_API_BASE
from opnsense_sync.config.models import ApplianceProfile

logger = logging.getLogger(__name__)


class WireResponse(NamedTuple):
    """Status code and undecoded body of one API call."""

    status: int
    body: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


def _is_certificate_error(exc: BaseException) -> bool:
    seen: BaseException | None = exc
    while seen is not None:
        if isinstance(seen, ssl.SSLCertVerificationError):
            return True
        if "CERTIFICATE_VERIFY_FAILED" in str(seen):
            return True
        seen = seen.__cause__ or seen.__context__
    return False


class ApplianceClient:
    """Synchronous HTTP client for the OPNsense REST API.

    The underlying ``httpx.Client`` pool is thread-safe, so one instance can
    serve concurrent reconciliations of different resources.  Calls are never
    retried: whether a repeat is safe depends on the operation.
    """

    def __init__(self, profile: ApplianceProfile) -> None:
        self.profile = profile
        self.base_url = f"{profile.host}{DEFAULT_API_BASE}"
        auth = resolve_auth(profile)
        if profile.insecure:
            logger.warning("TLS certificate verification is disabled for %s", profile.host)
        transport = httpx.HTTPTransport(verify=not profile.insecure, retries=0)
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            timeout=profile.timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ApplianceClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _check_cancel(self, cancel: threading.Event | None, method: str, path: str) -> None:
        if cancel is not None and cancel.is_set():
            raise RequestCancelledError(f"{method} {path} cancelled")

    def send(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> WireResponse:
        """Send one request and return its status and raw body.

        HTTP error statuses are returned, not raised; classifying them is up
        to the response interpreter.  Failures that produce no response raise
        a ``TransportError`` subclass.
        """
        self._check_cancel(cancel, method, path)
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            with self._client.stream(method, path, **kwargs) as response:
                chunks: list[bytes] = []
                for chunk in response.iter_bytes():
                    self._check_cancel(cancel, method, path)
                    chunks.append(chunk)
                status = response.status_code
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            # A cancel that lands while the call is blocked wins over the
            # failure it provokes
            if cancel is not None and cancel.is_set():
                raise RequestCancelledError(f"{method} {path} cancelled") from exc
            raise self._classify(exc) from exc
        text = b"".join(chunks).decode("utf-8", errors="replace")
        logger.debug("%s %s -> %d", method, path, status)
        return WireResponse(status, text)

    def _classify(self, exc: Exception) -> TransportError:
        host = self.profile.host
        if isinstance(exc, httpx.TimeoutException):
            return ApplianceTimeoutError(
                f"Request to {host} timed out after {self.profile.timeout}s: {exc}"
            )
        if isinstance(exc, httpx.ConnectError):
            if _is_certificate_error(exc):
                return UntrustedCertificateError(
                    f"TLS certificate of {host} could not be verified."
                    " Set insecure=true to skip verification."
                )
            return ApplianceUnreachableError(f"Cannot connect to appliance at {host}: {exc}")
        if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
            return ApplianceUnreachableError(f"Invalid URL for appliance at {host}: {exc}")
        return TransportError(f"Request to {host} failed: {exc}")

    def get(self, path: str, **kwargs: Any) -> WireResponse:
        return self.send("GET", path, **kwargs)

    def post(self, path: str, body: dict[str, Any] | None = None, **kwargs: Any) -> WireResponse:
        return self.send("POST", path, body, **kwargs)
