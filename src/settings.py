"""Static configuration for subscope.

All user-editable settings (database, dispatch, commands, rule modules,
logging) live in a single JSON file for quick edits without touching Python.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("SUBSCOPE_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


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

# Where to store the SQLite database.
_database = _CONFIG.get("database", {})
DB_PATH = _resolve_path(_database.get("path", "subscope.db"))

# Dispatch controls:
# - DISPATCH_ENABLED: write notifications at all (commands keep working)
# - DISPATCH_ORDERING: "sync" waits for the fan-out before handling commands,
#   "detached" runs it in the background
_dispatch = _CONFIG.get("dispatch", {})
DISPATCH_ENABLED = bool(_dispatch.get("enabled", True))
DISPATCH_ORDERING = _dispatch.get("ordering", "sync")

# Commands are plain messages starting with this prefix.
_commands = _CONFIG.get("commands", {})
COMMAND_PREFIX = _commands.get("prefix", "/")

# Importable modules exposing setup(registry) to contribute subscription kinds.
RULE_MODULES = list(_CONFIG.get("rule_modules", []))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
