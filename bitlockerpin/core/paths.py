# core/paths.py - SINGLE SOURCE OF TRUTH for all filesystem paths
"""
All filesystem paths MUST be defined here as Path objects.

RULES:
- All paths are Path objects internally
- Convert to str() ONLY at I/O boundaries (subprocess, JSON, print)
- Use Path arithmetic (/) for joins, never string concatenation
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from bitlockerpin.core.constants import Branding, FileNames
from bitlockerpin.core.platform import is_windows


class Paths:
    """
    Centralized path definitions. All paths are Path objects.

    Every helper accepts an optional ``root`` so tests (and settings.json)
    can relocate the whole tree.

    Usage:
        from bitlockerpin.core.paths import Paths
        marker = Paths.run_guard_marker()
    """

    # Subdirectories under the data root
    LOGS_SUBDIR = "logs"
    DOWNLOAD_SUBDIR = "download"
    BUNDLE_SUBDIR = "bundle"

    @staticmethod
    def data_root() -> Path:
        """
        Machine-wide data directory.

        Windows: %ProgramData%\\BitLockerPin (shared by SYSTEM and the
        interactive user, so the run-guard marker is visible to both).
        Elsewhere: <tempdir>/BitLockerPin.
        """
        if is_windows():
            program_data = os.environ.get("ProgramData", r"C:\ProgramData")
            return Path(program_data) / Branding.PRODUCT_NAME
        return Path(tempfile.gettempdir()) / Branding.PRODUCT_NAME

    @classmethod
    def _root(cls, root: Optional[Path]) -> Path:
        return Path(root) if root is not None else cls.data_root()

    @classmethod
    def logs_dir(cls, root: Optional[Path] = None) -> Path:
        return cls._root(root) / cls.LOGS_SUBDIR

    @classmethod
    def log_file(cls, name: str, root: Optional[Path] = None) -> Path:
        return cls.logs_dir(root) / name

    @classmethod
    def settings_file(cls, root: Optional[Path] = None) -> Path:
        return cls._root(root) / FileNames.SETTINGS_JSON

    @classmethod
    def run_guard_marker(cls, root: Optional[Path] = None) -> Path:
        return cls._root(root) / FileNames.RUN_GUARD_MARKER

    @classmethod
    def download_dir(cls, root: Optional[Path] = None) -> Path:
        return cls._root(root) / cls.DOWNLOAD_SUBDIR

    @classmethod
    def bundle_archive(cls, root: Optional[Path] = None) -> Path:
        return cls.download_dir(root) / FileNames.BUNDLE_ARCHIVE

    @classmethod
    def bundle_dir(cls, root: Optional[Path] = None) -> Path:
        return cls._root(root) / cls.BUNDLE_SUBDIR
