"""Default paths, environment variable names, and constants."""

from __future__ import annotations

import platformdirs

APP_NAME = "opnsense-sync"
APP_AUTHOR = "opnsense-sync"

CONFIG_DIR = platformdirs.user_config_path(APP_NAME, APP_AUTHOR)
CONFIG_FILE = CONFIG_DIR / "config.toml"

# Environment variable names
ENV_HOST = "OPNSENSE_HOST"
ENV_API_KEY = "OPNSENSE_API_KEY"
ENV_API_SECRET = "OPNSENSE_API_SECRET"
ENV_PROFILE = "OPNSENSE_PROFILE"

# API defaults
DEFAULT_API_BASE = "/api"
DEFAULT_TIMEOUT = 30.0
MAX_TIMEOUT = 600.0
