"""Static configuration for smsrelay.

All user-editable settings (polling, batching, storage, logging) live in a
single JSON file for quick edits without touching Python. The file location
can be overridden with SMSRELAY_CONFIG (environment or .env).
"""

import json
import os

from dotenv import load_dotenv

from core.config import GatewayConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

CONFIG_PATH = os.getenv("SMSRELAY_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Polling interval, batch limits and the gammu-json location.
# - prefix: install prefix whose bin/ directory is searched first
GATEWAY = GatewayConfig.from_dict(_CONFIG.get("gateway", {}))

# Where to store pending segments and received messages.
_storage = _CONFIG.get("storage", {})
DB_PATH = _resolve_path(_storage.get("db_path", "smsrelay.db"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
