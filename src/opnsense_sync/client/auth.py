"""Authentication for the OPNsense API."""

from __future__ import annotations

import httpx

from opnsense_sync.client.errors import ConfigurationError
from opnsense_sync.config.models import ApplianceProfile


class ApiKeyAuth(httpx.BasicAuth):
    """HTTP Basic auth with the API key as username and the secret as password."""

    def __init__(self, api_key: str, api_secret: str) -> None:
        super().__init__(api_key, api_secret)
        self.api_key = api_key

    def __repr__(self) -> str:
        return f"ApiKeyAuth(api_key={self.api_key[:4]}..., api_secret=***)"


def resolve_auth(profile: ApplianceProfile) -> ApiKeyAuth:
    """Resolve authentication from an appliance profile."""
    if not profile.api_key or not profile.api_secret:
        raise ConfigurationError(
            f"Profile '{profile.name}' has no API key/secret configured."
        )
    return ApiKeyAuth(profile.api_key, profile.api_secret)
