"""Configuration manager — read/write TOML config, resolve profiles."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import tomli_w

from opnsense_sync.client.errors import ConfigurationError
from opnsense_sync.config.constants import (
    CONFIG_FILE,
    DEFAULT_TIMEOUT,
    ENV_API_KEY,
    ENV_API_SECRET,
    ENV_HOST,
    ENV_PROFILE,
)
from opnsense_sync.config.models import ApplianceProfile, SyncConfig

try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib


class ConfigManager:
    """Manages configuration on disk and resolves appliance profiles."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path = config_path or CONFIG_FILE
        self._config: SyncConfig | None = None

    @property
    def config(self) -> SyncConfig:
        if self._config is None:
            self._config = self._load()
        return self._config

    def _load(self) -> SyncConfig:
        if not self.config_path.exists():
            return SyncConfig()
        raw = self.config_path.read_bytes()
        data = tomllib.loads(raw.decode())
        profiles: dict[str, ApplianceProfile] = {}
        for name, prof_data in data.get("profiles", {}).items():
            profiles[name] = ApplianceProfile(name=name, **prof_data)
        return SyncConfig(
            default_profile=data.get("default_profile"),
            default_format=data.get("default_format", "table"),
            profiles=profiles,
        )

    def save(self) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        # Owner-only: profiles may hold the API secret
        os.chmod(self.config_path.parent, 0o700)
        data: dict[str, Any] = {}
        if self.config.default_profile:
            data["default_profile"] = self.config.default_profile
        if self.config.default_format != "table":
            data["default_format"] = self.config.default_format
        if self.config.profiles:
            data["profiles"] = {}
            for name, profile in self.config.profiles.items():
                prof_dict = profile.model_dump(exclude={"name"}, exclude_none=True)
                if prof_dict.get("insecure") is False:
                    del prof_dict["insecure"]
                if prof_dict.get("timeout") == DEFAULT_TIMEOUT:
                    del prof_dict["timeout"]
                data["profiles"][name] = prof_dict
        temp = self.config_path.with_suffix(".tmp")
        fd = os.open(str(temp), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, tomli_w.dumps(data).encode())
        finally:
            os.close(fd)
        temp.rename(self.config_path)

    def add_profile(self, profile: ApplianceProfile) -> None:
        self.config.profiles[profile.name] = profile
        if not self.config.default_profile:
            self.config.default_profile = profile.name
        self.save()

    def remove_profile(self, name: str) -> bool:
        if name not in self.config.profiles:
            return False
        del self.config.profiles[name]
        if self.config.default_profile == name:
            self.config.default_profile = next(iter(self.config.profiles), None)
        self.save()
        return True

    def set_default(self, name: str) -> bool:
        if name not in self.config.profiles:
            return False
        self.config.default_profile = name
        self.save()
        return True

    def get_profile(self, name: str | None = None) -> ApplianceProfile | None:
        if name:
            return self.config.profiles.get(name)
        default = self.config.default_profile
        if default:
            return self.config.profiles.get(default)
        return None

    def resolve_appliance(
        self,
        profile_name: str | None = None,
        host: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        insecure: bool | None = None,
        timeout: float | None = None,
    ) -> ApplianceProfile:
        """Resolve the appliance connection.

        Precedence: explicit arguments > env vars > config profile.
        """
        env_profile = os.environ.get(ENV_PROFILE)
        profile = self.get_profile(profile_name or env_profile)

        resolved_host = (
            host or os.environ.get(ENV_HOST) or (profile.host if profile else None)
        )
        resolved_key = (
            api_key
            or os.environ.get(ENV_API_KEY)
            or (profile.api_key if profile else None)
        )
        resolved_secret = (
            api_secret
            or os.environ.get(ENV_API_SECRET)
            or (profile.api_secret if profile else None)
        )

        if not resolved_host:
            raise ConfigurationError(
                "No appliance host configured. Use 'opnsense-sync config add' or set "
                f"{ENV_HOST} or pass --host."
            )
        if not resolved_key or not resolved_secret:
            raise ConfigurationError(
                "Missing API credentials. Set "
                f"{ENV_API_KEY} and {ENV_API_SECRET}, pass --api-key/--api-secret, "
                "or store them in a profile."
            )

        if insecure is None:
            insecure = profile.insecure if profile else False
        if timeout is None:
            timeout = profile.timeout if profile else DEFAULT_TIMEOUT

        return ApplianceProfile(
            name=profile.name if profile else "cli",
            host=resolved_host,
            api_key=resolved_key,
            api_secret=resolved_secret,
            insecure=insecure,
            timeout=timeout,
        )
