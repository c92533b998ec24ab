"""Configuration management for gdkm.

Handles loading and saving user configuration from config.toml.
Uses caching for fast repeated access.
"""

from __future__ import annotations

import copy
import tomllib
from pathlib import Path
from typing import Any

from rich.console import Console

from .core import CONFIG_DIR

CONFIG_FILE = CONFIG_DIR / "config.toml"

err_console = Console(stderr=True)

# Default configuration values
DEFAULTS: dict[str, Any] = {
    "keyring": {
        "path": "keyring.json",  # Relative paths resolve against the working directory
    },
    "clone": {
        "deliver_key": False,  # Leave a copy of the private key in <dest>/.git
        "ssh_options": [],     # Extra "ssh -o" values, e.g. StrictHostKeyChecking=accept-new
    },
    "display": {
        "verbose": False,  # Stream git output instead of capturing it
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries, with override taking precedence."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _get_config_mtime() -> float | None:
    """Get config file modification time for cache invalidation."""
    try:
        return CONFIG_FILE.stat().st_mtime if CONFIG_FILE.exists() else None
    except OSError:
        return None


_cached_config: dict[str, Any] | None = None
_cached_mtime: float | None = None


def load_config() -> dict[str, Any]:
    """Load configuration from config.toml, merged with defaults.

    Uses caching - config is only re-read if the file has been modified.
    """
    global _cached_config, _cached_mtime

    current_mtime = _get_config_mtime()

    if _cached_config is not None and _cached_mtime == current_mtime:
        return _cached_config

    config = copy.deepcopy(DEFAULTS)

    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE, "rb") as f:
                user_config = tomllib.load(f)
            config = _deep_merge(DEFAULTS, user_config)
        except (OSError, tomllib.TOMLDecodeError) as e:
            err_console.print(
                f"[yellow]Warning: ignoring unreadable config {CONFIG_FILE}: {e}[/yellow]"
            )

    _cached_config = config
    _cached_mtime = current_mtime

    return config


def invalidate_config_cache() -> None:
    """Invalidate the config cache (call after saving config)."""
    global _cached_config, _cached_mtime
    _cached_config = None
    _cached_mtime = None


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config.toml."""
    import tomlkit

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)

    doc = tomlkit.document()
    doc.add(tomlkit.comment("gdkm configuration file"))
    doc.add(tomlkit.nl())

    for section, values in config.items():
        if isinstance(values, dict):
            table = tomlkit.table()
            for key, value in values.items():
                table.add(key, value)
            doc.add(section, table)
        else:
            doc.add(section, values)

    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        f.write(tomlkit.dumps(doc))

    invalidate_config_cache()


def get_config_value(key_path: str, default: Any = None) -> Any:
    """Get a specific config value by dot-separated path.

    Example: get_config_value("clone.deliver_key", False)
    """
    value: Any = load_config()
    for key in key_path.split("."):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def init_config() -> Path:
    """Initialize config file with defaults if it doesn't exist.

    Returns path to config file.
    """
    if not CONFIG_FILE.exists():
        save_config(DEFAULTS)
    return CONFIG_FILE


def get_keyring_path() -> Path:
    return Path(get_config_value("keyring.path", DEFAULTS["keyring"]["path"]))


def should_deliver_key() -> bool:
    """Check if clones should keep a copy of the private key."""
    return bool(get_config_value("clone.deliver_key", DEFAULTS["clone"]["deliver_key"]))


def get_ssh_options() -> list[str]:
    options = get_config_value("clone.ssh_options", DEFAULTS["clone"]["ssh_options"])
    return [str(option) for option in options]


def is_verbose() -> bool:
    """Check if verbose mode is enabled."""
    return bool(get_config_value("display.verbose", DEFAULTS["display"]["verbose"]))
