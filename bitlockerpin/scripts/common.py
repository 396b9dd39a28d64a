# scripts/common.py - Argument parsing and startup shared by the entry points
"""
Every tool accepts the same base options:

    --mount-point   volume to check / protect (settings: mount_point)
    --data-root     relocate %ProgramData%\\BitLockerPin (logs, marker, bundle)
    --settings      explicit settings.json

CLI flags override settings.json, which overrides the built-in defaults.
"""

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from bitlockerpin.core.config import default_settings, load_settings, resolve_log_file
from bitlockerpin.core.constants import ConfigKeys
from bitlockerpin.core.errors import ConfigError
from bitlockerpin.core.logs import setup_logging
from bitlockerpin.core.paths import Paths
from bitlockerpin.core.version import VERSION


@dataclass
class ToolContext:
    """Resolved options for one tool run."""

    settings: Dict[str, Any]
    mount_point: str
    data_root: Optional[Path]
    logger: logging.Logger

    @property
    def marker_path(self) -> Path:
        return Paths.run_guard_marker(self.data_root)


def build_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--mount-point", help="Volume to use, e.g. C:")
    parser.add_argument("--data-root", type=Path, help="Data directory (logs, run marker, bundle)")
    parser.add_argument("--settings", type=Path, help="Path to settings.json")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def prepare(args: argparse.Namespace, log_name: str, log_to_stderr: bool = True) -> ToolContext:
    """
    Load settings and start logging.

    A broken settings file or an unwritable log folder does not stop the
    tool: it falls back to defaults / no log file and records why.
    """
    settings_error = None
    settings_path = args.settings or Paths.settings_file(args.data_root)
    try:
        settings = load_settings(settings_path)
    except ConfigError as e:
        settings_error = e
        settings = default_settings()

    log_file = resolve_log_file(settings, log_name, args.data_root)
    try:
        logger = setup_logging(log_file, stderr=log_to_stderr)
    except OSError:
        logger = logging.getLogger("BitLockerPin")
        logger.addHandler(logging.NullHandler())

    if settings_error is not None:
        logger.error(f"{settings_error}; using defaults")

    mount_point = args.mount_point or settings.get(ConfigKeys.MOUNT_POINT)
    logger.info(f"{log_name}: version {VERSION}, mount point {mount_point}")
    return ToolContext(settings=settings, mount_point=mount_point, data_root=args.data_root, logger=logger)
