"""YAML + environment variable configuration loading.

Config file: config/authgate.yaml
Env var override prefix: AUTHGATE_
Nesting convention: double underscore (e.g. AUTHGATE_SECURITY__PASSWORD__ENABLED)
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

from authgate.errors import ConfigurationError

_DEFAULT_CONFIG_PATH = Path("config/authgate.yaml")

_DEFAULTS: dict[str, Any] = {
    "server": {
        "port": 8082,
        "trusted_proxies": [],
    },
    "security": {
        "group_mapping": {
            "file": None,
        },
        "whitelist": {
            "enabled": False,
            "fixed_file": None,
            "variable_file": None,
        },
        "password": {
            "enabled": False,
            "file": None,
        },
    },
    "admin": {
        "poll_interval_seconds": 0,
    },
    "logging": {
        "level": "INFO",
    },
}

ENV_PREFIX = "AUTHGATE_"

_MISSING = object()


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base, recursively for nested dicts."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _coerce_value(value: str) -> int | float | bool | str:
    """Attempt to coerce a string env var value to a typed value."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _apply_env_overrides(config: dict) -> dict:
    """Apply AUTHGATE_ prefixed environment variables as overrides.

    Double underscore separates nesting levels:
        AUTHGATE_SECURITY__WHITELIST__ENABLED=true
            -> config["security"]["whitelist"]["enabled"] = True
    """
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        parts = key[len(ENV_PREFIX) :].lower().split("__")
        target = config
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = _coerce_value(value)
    return config


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from YAML file with env var overrides.

    Precedence (highest wins): env vars > YAML file > defaults.
    """
    config = copy.deepcopy(_DEFAULTS)

    path = config_path or _DEFAULT_CONFIG_PATH
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config = _deep_merge(config, file_config)

    config = _apply_env_overrides(config)
    return config


def get_setting(config: dict[str, Any], key: str, default: Any = None) -> Any:
    """Look up a dotted key such as ``security.password.file``."""
    node: Any = config
    for part in key.split("."):
        if not isinstance(node, dict):
            return default
        node = node.get(part, _MISSING)
        if node is _MISSING:
            return default
    return node


def get_bool(config: dict[str, Any], key: str, default: bool = False) -> bool:
    value = get_setting(config, key, default)
    if isinstance(value, str):
        return value.strip().lower() == "true"
    if value is None:
        return default
    return bool(value)


def require_path(config: dict[str, Any], key: str) -> Path:
    """Return the file path configured under key. Raises ConfigurationError if unset."""
    value = get_setting(config, key)
    if value is None or not str(value).strip():
        raise ConfigurationError(f"{key} not configured")
    return Path(str(value).strip())
