# core/delivery.py - Download, unpack and launch the setup bundle
"""
Delivery of the interactive setup tool from a remediation running as
SYSTEM.

This module provides:
- download_bundle(): fetch the bundle archive (https or file URL)
- extract_bundle(): unpack it, refusing entries outside the target folder
- launch_in_user_session(): start the setup tool through a session
  launcher (ServiceUI.exe) so it appears on the interactive desktop with
  SYSTEM rights
"""

import logging
import shutil
import subprocess
import urllib.error
import urllib.parse
import urllib.request
import zipfile
from pathlib import Path
from typing import List, Optional, Sequence

from bitlockerpin.core.errors import DeliveryError
from bitlockerpin.core.limits import Limits

_delivery_logger = logging.getLogger("BitLockerPin.delivery")

ALLOWED_URL_SCHEMES = ("https", "file")


def download_bundle(url: str, dest: Path, timeout: float = Limits.DOWNLOAD_TIMEOUT) -> Path:
    """
    Download the bundle archive to dest.

    The download goes to dest.part first and is renamed on success, so a
    broken transfer never leaves a truncated archive at dest.

    Raises:
        DeliveryError: empty/unsupported URL or transfer failure
    """
    if not url:
        raise DeliveryError("No bundle URL configured")
    scheme = urllib.parse.urlparse(url).scheme.lower()
    if scheme not in ALLOWED_URL_SCHEMES:
        raise DeliveryError(f"Unsupported bundle URL scheme: {scheme or '(none)'}")

    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    partial = dest.with_name(dest.name + ".part")

    _delivery_logger.info(f"Downloading bundle from {url}")
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response, open(partial, "wb") as out:
            shutil.copyfileobj(response, out, Limits.DOWNLOAD_CHUNK_SIZE)
        partial.replace(dest)
    except (urllib.error.URLError, OSError, ValueError) as e:
        try:
            partial.unlink()
        except OSError:
            pass
        raise DeliveryError(f"Bundle download failed: {e}") from e

    _delivery_logger.info(f"Bundle saved to {dest} ({dest.stat().st_size} bytes)")
    return dest


def _safe_members(archive: zipfile.ZipFile, dest: Path) -> List[zipfile.ZipInfo]:
    root = dest.resolve()
    members = archive.infolist()
    for member in members:
        target = (root / member.filename).resolve()
        if target != root and root not in target.parents:
            raise DeliveryError(f"Bundle entry escapes the target folder: {member.filename}")
    return members


def extract_bundle(archive_path: Path, dest: Path) -> Path:
    """
    Unpack the bundle archive into a fresh dest folder.

    Raises:
        DeliveryError: not a zip archive, or an entry would land outside dest
    """
    archive_path = Path(archive_path)
    dest = Path(dest)

    if dest.exists():
        shutil.rmtree(dest)
    dest.mkdir(parents=True)

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = _safe_members(zf, dest)
            zf.extractall(dest, members=members)
    except zipfile.BadZipFile as e:
        raise DeliveryError(f"Bundle is not a valid zip archive: {archive_path}") from e
    except OSError as e:
        raise DeliveryError(f"Bundle extraction failed: {e}") from e

    _delivery_logger.info(f"Bundle extracted to {dest} ({len(members)} entries)")
    return dest


def build_launch_command(
    setup_command: Sequence[str],
    launcher: Optional[str] = None,
    launcher_args: Sequence[str] = (),
) -> List[str]:
    """
    Command line that starts the setup tool in the user's session.

    Without a launcher the setup command is returned unchanged (for runs
    that already execute in the user's session).
    """
    if not setup_command:
        raise DeliveryError("No setup command configured")
    command = list(setup_command)
    if launcher:
        return [launcher, *launcher_args, *command]
    return command


def launch_in_user_session(command: Sequence[str], cwd: Optional[Path] = None) -> int:
    """
    Start the setup tool without waiting for it.

    Returns:
        Process id of the launched process

    Raises:
        DeliveryError: process could not be started
    """
    _delivery_logger.info(f"Launching: {' '.join(command)}")
    try:
        process = subprocess.Popen(
            list(command),
            cwd=str(cwd) if cwd is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        raise DeliveryError(f"Could not launch setup tool: {e}") from e
    _delivery_logger.info(f"Setup tool started (pid {process.pid})")
    return process.pid
