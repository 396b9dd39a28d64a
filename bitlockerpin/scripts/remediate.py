#!/usr/bin/env python3
"""
Intune proactive-remediation script.

Runs as SYSTEM. Downloads the setup bundle, unpacks it under the data root
and starts the interactive setup tool on the user's desktop through the
session launcher (ServiceUI.exe shipped in the bundle). Does not wait for
the user: the next detection run reports the outcome.

Exit codes:
    0  setup tool launched, or a setup is already running
    1  delivery failed

Usage:
    bitlockerpin-remediate [--url https://.../bundle.zip]
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from bitlockerpin.core.constants import ConfigKeys, ExitCodes, FileNames
from bitlockerpin.core.delivery import (
    build_launch_command,
    download_bundle,
    extract_bundle,
    launch_in_user_session,
)
from bitlockerpin.core.errors import DeliveryError
from bitlockerpin.core.paths import Paths
from bitlockerpin.core.single_instance import is_setup_running
from bitlockerpin.scripts.common import build_parser, prepare

_remediate_logger = logging.getLogger("BitLockerPin.remediate")


def _in_bundle(bundle_dir: Path, name: Optional[str]) -> Optional[str]:
    """Absolute path for a bundle-relative executable, else name unchanged."""
    if not name:
        return name
    candidate = bundle_dir / name
    if not Path(name).is_absolute() and candidate.exists():
        return str(candidate)
    return name


def resolve_command(bundle_dir: Path, settings: Dict[str, Any]) -> List[str]:
    """Launch command with launcher and setup executable resolved against the bundle."""
    setup_command: Sequence[str] = settings.get(ConfigKeys.SETUP_COMMAND) or []
    if setup_command:
        setup_command = [_in_bundle(bundle_dir, setup_command[0]), *setup_command[1:]]
    launcher = _in_bundle(bundle_dir, settings.get(ConfigKeys.LAUNCHER))
    return build_launch_command(setup_command, launcher, settings.get(ConfigKeys.LAUNCHER_ARGS) or [])


def run_remediation(settings: Dict[str, Any], data_root: Optional[Path] = None) -> int:
    """
    Fetch, unpack and launch the setup tool.

    Returns:
        ExitCodes.SUCCESS or ExitCodes.FAILURE
    """
    if is_setup_running(Paths.run_guard_marker(data_root)):
        _remediate_logger.info("PIN setup already running, not launching another")
        print("PIN setup already in progress")
        return ExitCodes.SUCCESS

    try:
        archive = download_bundle(settings.get(ConfigKeys.BUNDLE_URL), Paths.bundle_archive(data_root))
        bundle_dir = extract_bundle(archive, Paths.bundle_dir(data_root))
        command = resolve_command(bundle_dir, settings)
        launch_in_user_session(command, cwd=bundle_dir)
    except DeliveryError as e:
        _remediate_logger.error(f"Remediation failed: {e}")
        print(f"Remediation failed: {e}")
        return ExitCodes.FAILURE

    print("PIN setup launched")
    return ExitCodes.SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Download and launch the BitLocker PIN setup tool")
    parser.add_argument("--url", help="Bundle URL (overrides settings bundle_url)")
    args = parser.parse_args(argv)

    try:
        ctx = prepare(args, FileNames.REMEDIATE_LOG)
        if args.url:
            ctx.settings[ConfigKeys.BUNDLE_URL] = args.url
        return run_remediation(ctx.settings, ctx.data_root)
    except Exception as e:
        _remediate_logger.exception("Remediation crashed")
        print(f"Remediation failed: {e}")
        return ExitCodes.FAILURE


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
