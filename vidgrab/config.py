"""
Configuration loading and validation for vidgrab.

Config is parsed once at startup and handed to every component, so no
component re-reads the file on its own.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

from .constants import DEFAULT_CONFIG_PATH

load_dotenv()

# Required top-level sections and the keys that must exist within them.
_REQUIRED_SCHEMA: Dict[str, List[str]] = {
    "server": ["host", "port"],
    "downloads": ["directory"],
    "retention": ["max_age_hours", "sweep_interval_seconds"],
}

# Numeric settings that must be strictly positive.
_POSITIVE_KEYS = [
    ("retention", "max_age_hours"),
    ("retention", "sweep_interval_seconds"),
]


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


def project_root() -> Path:
    """Directory that relative config and download paths resolve against."""
    return Path(__file__).parent.parent


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from a JSON file and resolve ``${ENV_VAR:-default}``
    placeholders in all string values.

    Args:
        config_path: Path to the config file. Relative paths are taken
            from the project root.

    Returns:
        Fully-resolved configuration dictionary.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    full_path = project_root() / config_path

    if not full_path.exists():
        raise ConfigError(f"Configuration file not found: {full_path}")

    try:
        with open(full_path, "r") as f:
            config = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {full_path}: {exc}") from exc

    return _resolve(config)


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate a config dict against the required schema.

    Returns:
        A list of human-readable error strings.  Empty means valid.
    """
    errors: List[str] = []

    for section, keys in _REQUIRED_SCHEMA.items():
        if section not in config:
            errors.append(f"Missing required config section: '{section}'")
            continue
        for key in keys:
            if key not in config[section]:
                errors.append(f"Missing required key '{key}' in config section '{section}'")

    download_dir = str(config.get("downloads", {}).get("directory", ""))
    if download_dir.startswith("${"):
        errors.append(
            f"downloads.directory is an unresolved placeholder: '{download_dir}'. "
            "Set the DOWNLOAD_DIR environment variable."
        )

    for section, key in _POSITIVE_KEYS:
        value = config.get(section, {}).get(key)
        if value is None:
            continue
        try:
            if float(value) <= 0:
                errors.append(f"{section}.{key} must be positive, got {value!r}")
        except (TypeError, ValueError):
            errors.append(f"{section}.{key} must be a number, got {value!r}")

    return errors


def resolve_download_dir(config: Dict[str, Any]) -> Path:
    """Return the absolute downloads directory named by *config*."""
    directory = Path(config["downloads"]["directory"])
    if not directory.is_absolute():
        directory = project_root() / directory
    return directory


# ── Private helpers ──────────────────────────────────────────────

_PLACEHOLDER_RE = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def _resolve(obj: Any) -> Any:
    """Recursively resolve ``${ENV_VAR:-default}`` in string values."""
    if isinstance(obj, str):
        return _PLACEHOLDER_RE.sub(_replace_match, obj)
    elif isinstance(obj, dict):
        return {k: _resolve(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_resolve(v) for v in obj]
    return obj


def _replace_match(m: re.Match) -> str:
    var = m.group(1)
    default = m.group(2) if m.group(2) is not None else ""
    return os.environ.get(var, default)
