"""
Configuration constants for ScriptLens.
Loads from config.yaml with environment variable overrides.
"""

import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

CONFIG_DIR = Path(os.getenv("SCRIPTLENS_HOME", Path.home() / ".config" / "scriptlens"))


def _load_config() -> dict[str, Any]:
    """Load configuration from YAML file."""
    config_paths = [
        Path(os.getenv("SCRIPTLENS_CONFIG", "")),
        CONFIG_DIR / "config.yaml",
        Path.cwd() / "config.yaml",
    ]

    for path in config_paths:
        if path.is_file():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}

_config = _load_config()

def _get(section: str, key: str, default: Any, env_var: str | None = None) -> Any:
    """Get config value with env override."""
    if env_var and os.getenv(env_var):
        val = os.getenv(env_var)
        if isinstance(default, bool):
            return val.lower() == "true"
        if isinstance(default, int):
            return int(val)
        if isinstance(default, float):
            return float(val)
        if isinstance(default, list):
            return [p for p in val.split(os.pathsep) if p]
        return val
    return (_config.get(section) or {}).get(key, default)

# Scanning
SEARCH_ROOTS = _get("scan", "roots", [], "SCRIPTLENS_ROOTS")
IGNORED_DIRS = _get("scan", "ignore_dirs", [
    ".git", ".hg", ".svn", ".github", ".vscode", ".idea",
    "node_modules", "target", "__pycache__",
], "SCRIPTLENS_IGNORE_DIRS")
EXECUTABLE_ONLY = _get("scan", "executable_only", False, "SCRIPTLENS_EXECUTABLE_ONLY")
MAX_WORKERS = _get("scan", "max_workers", 4, "SCRIPTLENS_MAX_WORKERS")
BINARY_SNIFF_BYTES = _get("scan", "binary_sniff_bytes", 1024, "SCRIPTLENS_BINARY_SNIFF_BYTES")

# Execution
SHELL = _get("execution", "shell", "/usr/bin/env bash", "SCRIPTLENS_SHELL")
TEMP_DIR = _get("execution", "temp_dir", tempfile.gettempdir(), "SCRIPTLENS_TEMP_DIR")
WRAPPER_PREFIX = "scriptlens_"

# UI
DEFAULT_MODE = _get("ui", "default_mode", "list", "SCRIPTLENS_DEFAULT_MODE")
PICKER_LINES = _get("ui", "lines", 7, "SCRIPTLENS_LINES")
SHOW_PRIVATE = _get("ui", "show_private", False, "SCRIPTLENS_SHOW_PRIVATE")
WRITE_HISTORY = _get("ui", "write_history", True, "SCRIPTLENS_WRITE_HISTORY")

# Logging
LOG_DIR = _get("logging", "dir", str(CONFIG_DIR), "SCRIPTLENS_LOG_DIR")
LOG_LEVEL = _get("logging", "level", "INFO", "SCRIPTLENS_LOG_LEVEL")
LOG_MAX_BYTES = _get("logging", "max_bytes", 1_000_000)
LOG_BACKUP_COUNT = _get("logging", "backup_count", 3)
