"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from opnsense_sync.client.appliance import ApplianceClient
from opnsense_sync.config.manager import ConfigManager
from opnsense_sync.config.models import ApplianceProfile

HOST = "https://fw.example"
BASE = f"{HOST}/api"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep credentials from the developer's shell out of the tests."""
    for var in ("OPNSENSE_HOST", "OPNSENSE_API_KEY", "OPNSENSE_API_SECRET", "OPNSENSE_PROFILE"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Return a temporary config file path."""
    return tmp_path / "config.toml"


@pytest.fixture
def config_manager(tmp_config: Path) -> ConfigManager:
    """Return a ConfigManager pointed at a temp config file."""
    return ConfigManager(config_path=tmp_config)


@pytest.fixture
def sample_profile() -> ApplianceProfile:
    """Return a sample appliance profile for testing."""
    return ApplianceProfile(
        name="test-fw",
        host=HOST,
        api_key="testkey",
        api_secret="testsecret",
    )


@pytest.fixture
def client(sample_profile: ApplianceProfile) -> Iterator[ApplianceClient]:
    with ApplianceClient(sample_profile) as c:
        yield c


@pytest.fixture
def alias_desired() -> dict:
    """The alias used throughout the reconciler tests."""
    return {
        "name": "web",
        "type": "host",
        "content": ["10.0.0.1", "10.0.0.2"],
        "enabled": True,
    }


@pytest.fixture
def alias_get_response() -> dict:
    """getItem body for the alias above, as the appliance renders it."""
    return {
        "alias": {
            "enabled": "1",
            "name": "web",
            "type": {
                "host": {"value": "Host(s)", "selected": 1},
                "network": {"value": "Network(s)", "selected": 0},
            },
            "content": {
                "10.0.0.1": {"value": "10.0.0.1", "selected": 1},
                "10.0.0.2": {"value": "10.0.0.2", "selected": 1},
            },
            "description": "",
        }
    }
