# core/config.py - Tool settings loading
"""
SINGLE SOURCE OF TRUTH for settings.json handling.

This module provides:
- load_settings(): defaults deep-merged with settings.json
- resolve_log_file(): where a tool writes its log

settings.json is optional. Unknown keys are preserved so newer bundles can
add settings without older tools discarding them.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from bitlockerpin.core.constants import ConfigKeys, Defaults
from bitlockerpin.core.errors import ConfigError
from bitlockerpin.core.paths import Paths

_config_logger = logging.getLogger("BitLockerPin.config")


def default_settings() -> Dict[str, Any]:
    """Fresh copy of the default settings."""
    return {
        ConfigKeys.MOUNT_POINT: Defaults.MOUNT_POINT,
        ConfigKeys.BUNDLE_URL: Defaults.BUNDLE_URL,
        ConfigKeys.LAUNCHER: Defaults.LAUNCHER,
        ConfigKeys.LAUNCHER_ARGS: list(Defaults.LAUNCHER_ARGS),
        ConfigKeys.SETUP_COMMAND: list(Defaults.SETUP_COMMAND),
        ConfigKeys.LOG_DIR: None,
    }


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overlay into base in place; nested dicts are merged, not replaced."""
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)
    return base


# Expected JSON types per setting; None is allowed where the default is None
_STRING_SETTINGS = (ConfigKeys.MOUNT_POINT, ConfigKeys.BUNDLE_URL)
_OPTIONAL_STRING_SETTINGS = (ConfigKeys.LAUNCHER, ConfigKeys.LOG_DIR)
_STRING_LIST_SETTINGS = (ConfigKeys.LAUNCHER_ARGS, ConfigKeys.SETUP_COMMAND)


def _check_types(settings: Dict[str, Any], settings_path: Path) -> None:
    for key in _STRING_SETTINGS:
        if not isinstance(settings.get(key), str):
            raise ConfigError(f"{settings_path}: '{key}' must be a string")
    for key in _OPTIONAL_STRING_SETTINGS:
        value = settings.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"{settings_path}: '{key}' must be a string or null")
    for key in _STRING_LIST_SETTINGS:
        value = settings.get(key)
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise ConfigError(f"{settings_path}: '{key}' must be a list of strings")


def load_settings(settings_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load settings.json merged over the defaults.

    Args:
        settings_path: File to read (default: Paths.settings_file())

    Returns:
        Settings dict; defaults only if the file does not exist

    Raises:
        ConfigError: file exists but is not a JSON object, or a known
            setting has the wrong type
    """
    settings_path = Path(settings_path) if settings_path is not None else Paths.settings_file()
    settings = default_settings()

    if not settings_path.exists():
        _config_logger.debug(f"No settings file at {settings_path}, using defaults")
        return settings

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read settings file {settings_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {settings_path} must contain a JSON object")

    _deep_merge(settings, data)
    _check_types(settings, settings_path)
    _config_logger.info(f"Settings loaded from {settings_path}")
    return settings


def resolve_log_file(settings: Dict[str, Any], name: str, root: Optional[Path] = None) -> Path:
    """Log file location: settings log_dir if set, else Paths.logs_dir()."""
    log_dir = settings.get(ConfigKeys.LOG_DIR)
    if log_dir:
        return Path(log_dir) / name
    return Paths.log_file(name, root)
