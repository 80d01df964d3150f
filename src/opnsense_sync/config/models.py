"""Pydantic models for connection configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from opnsense_sync.config.constants import DEFAULT_TIMEOUT, MAX_TIMEOUT


class ApplianceProfile(BaseModel):
    """A named appliance connection profile."""

    name: str
    host: str = Field(description="Appliance base URL, e.g. https://192.168.1.1")
    api_key: str | None = Field(default=None, description="API key")
    api_secret: str | None = Field(default=None, description="API secret")
    insecure: bool = Field(
        default=False, description="Skip TLS certificate verification",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT, gt=0, le=MAX_TIMEOUT,
        description="Request timeout in seconds",
    )

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("Host must start with http:// or https://")
        return v.rstrip("/")

    @property
    def auth_configured(self) -> bool:
        return bool(self.api_key) and bool(self.api_secret)


class SyncConfig(BaseModel):
    """Root configuration model."""

    default_profile: str | None = None
    default_format: str = "table"
    profiles: dict[str, ApplianceProfile] = Field(default_factory=dict)
