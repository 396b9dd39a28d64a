# core/platform.py - SINGLE SOURCE OF TRUTH for platform detection
"""
Platform detection and the identity provider.

This module provides:
- get_platform() / is_windows(): normalized platform checks
- is_admin(): Check if current process has admin privileges
- current_account_name(): login name of the interactive account
"""

import getpass
import os
import platform as _platform


def get_platform() -> str:
    """
    Get normalized platform name.

    Returns:
        One of: "windows", "darwin", "linux", or the raw system name lowercase.
    """
    return _platform.system().lower()


def is_windows() -> bool:
    """Check if running on Windows."""
    return get_platform() == "windows"


def is_admin() -> bool:
    """
    Check if the current process has administrator/root privileges.

    Windows: Uses ctypes to check for admin token
    Unix: Checks effective user ID (euid == 0)
    """
    if is_windows():
        try:
            import ctypes

            return ctypes.windll.shell32.IsUserAnAdmin() != 0
        except (AttributeError, OSError):
            return False
    try:
        return os.geteuid() == 0
    except AttributeError:
        return False


def current_account_name() -> str:
    """
    Login name of the account running this process.

    Prefers the USERNAME environment variable (set per session on Windows,
    also when launched through ServiceUI), then getpass.getuser().

    Returns:
        Account name, or empty string if it cannot be determined.
    """
    name = os.environ.get("USERNAME", "").strip()
    if name:
        return name
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        # No passwd entry / no login environment
        return ""
