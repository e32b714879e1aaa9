"""3-layer configuration for the diagnostics run.

Loads and merges configuration from:
1. Default settings (built-in)
2. User config (~/.openclaw/diagnose.yaml, $CLAWDIAG_CONFIG or --config)
3. CLI parameters (override)
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Optional

import yaml

CONFIG_ENV_VAR = "CLAWDIAG_CONFIG"

DEFAULT_CONFIG: dict = {
    "openclaw": {
        "binary": "openclaw",
        "home": "~/.openclaw",
        "timeout_seconds": 60,
    },
    "logs": {
        "max_bytes": 200_000,
    },
    "claude": {
        "projects_dir": "~/.claude/projects",
    },
    "checks": {
        "token_warn_percent": 75,
        "token_fail_percent": 90,
        "sentinel_replies": ["HEARTBEAT_OK", "NO_REPLY"],
    },
    "conversations": {
        "window": 5,
        "truncate": 60,
    },
    "report": {
        "path": "~/.openclaw/diagnose-report.html",
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged.

    A section that is a dict in base is never replaced by a non-dict, so an
    empty `checks:` in YAML (None) keeps the defaults.
    """
    result = {}
    for key in base:
        result[key] = base[key]
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict):
            if isinstance(value, dict):
                result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def default_config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path("~/.openclaw/diagnose.yaml").expanduser()


def load_user_config(config_path: Optional[Path] = None) -> dict:
    """Load the YAML config file; missing, empty or malformed yields {}."""
    path = config_path or default_config_path()
    if not path.exists():
        return {}
    try:
        content = path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        data = yaml.safe_load(content) or {}
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def get_effective_config(
    config_path: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration for a run."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    user_config = load_user_config(config_path)
    if user_config:
        config = deep_merge(config, user_config)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    return config


def config_value(config: dict, section: str, key: str):
    """A setting, or its built-in default when the section or value is missing/null."""
    value = (config.get(section) or {}).get(key)
    if value is None:
        return DEFAULT_CONFIG[section][key]
    return value


def config_int(config: dict, section: str, key: str) -> int:
    """An integer setting; non-numeric values fall back to the default."""
    try:
        return int(config_value(config, section, key))
    except (TypeError, ValueError):
        return int(DEFAULT_CONFIG[section][key])


def config_path_value(config: dict, section: str, key: str) -> Path:
    """A path-valued setting with ~ expanded."""
    return Path(str(config_value(config, section, key))).expanduser()


def sentinel_replies(config: dict) -> tuple[str, ...]:
    """Sentinel replies as a tuple; a single YAML string is one sentinel."""
    value = config_value(config, "checks", "sentinel_replies")
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value if item is not None)
    return tuple(DEFAULT_CONFIG["checks"]["sentinel_replies"])
