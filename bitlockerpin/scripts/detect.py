#!/usr/bin/env python3
"""
Intune proactive-remediation detection script.

Exit codes:
    0  compliant, or a PIN setup is already running on this machine
    1  no TPM+PIN protector (or status unknown): run the remediation

The last stdout line is the status message shown in the Intune console.

Usage:
    bitlockerpin-detect [--mount-point C:]
"""

import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional

from bitlockerpin.core.bitlocker import VolumeStatus, get_volume_status
from bitlockerpin.core.compliance import check_compliance
from bitlockerpin.core.constants import ComplianceValues, ExitCodes, FileNames
from bitlockerpin.core.single_instance import is_setup_running
from bitlockerpin.scripts.common import build_parser, prepare

_detect_logger = logging.getLogger("BitLockerPin.detect")


def run_detection(
    mount_point: str,
    marker_path: Path,
    status_provider: Callable[[str], VolumeStatus] = get_volume_status,
) -> int:
    """
    Decide whether remediation is needed.

    Returns:
        ExitCodes.COMPLIANT or ExitCodes.REMEDIATION_REQUIRED
    """
    value = check_compliance(mount_point, status_provider)
    if value == ComplianceValues.TPM_PIN:
        print(f"Compliant: TPM+PIN protector present on {mount_point}")
        return ExitCodes.COMPLIANT

    if is_setup_running(marker_path):
        _detect_logger.info("PIN setup already running, no remediation needed now")
        print("PIN setup already in progress")
        return ExitCodes.COMPLIANT

    print(f"Non-compliant: no TPM+PIN protector on {mount_point}")
    return ExitCodes.REMEDIATION_REQUIRED


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Detect whether a BitLocker startup PIN must be set")
    args = parser.parse_args(argv)

    try:
        ctx = prepare(args, FileNames.DETECT_LOG, log_to_stderr=False)
        code = run_detection(ctx.mount_point, ctx.marker_path, get_volume_status)
    except Exception as e:
        _detect_logger.exception("Detection failed")
        print(f"Detection failed: {e}")
        return ExitCodes.REMEDIATION_REQUIRED

    _detect_logger.info(f"Detection exit code {code}")
    return code


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
