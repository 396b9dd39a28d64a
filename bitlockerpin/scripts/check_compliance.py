#!/usr/bin/env python3
"""
Intune custom-compliance discovery script.

Prints exactly one line to stdout:

    {"CheckBitLockerPIN":"TpmPin"}   TPM+PIN protector present, fully encrypted
    {"CheckBitLockerPIN":"NoPin"}    anything else, including errors

Always exits 0; the compliance value is the result, not the exit code.
Diagnostics go to the log file only.

Usage:
    bitlockerpin-check [--mount-point C:]
"""

import logging
import sys
from typing import Callable, List, Optional

from bitlockerpin.core.bitlocker import VolumeStatus, get_volume_status
from bitlockerpin.core.compliance import check_compliance, format_result
from bitlockerpin.core.constants import ComplianceValues, ExitCodes, FileNames
from bitlockerpin.scripts.common import build_parser, prepare

_check_logger = logging.getLogger("BitLockerPin.check")


def run_check(mount_point: str, status_provider: Callable[[str], VolumeStatus] = get_volume_status) -> str:
    """Compliance JSON line for a volume."""
    return format_result(check_compliance(mount_point, status_provider))


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser("Report BitLocker TPM+PIN compliance as JSON")
    args = parser.parse_args(argv)

    line = format_result(ComplianceValues.NO_PIN)
    try:
        ctx = prepare(args, FileNames.CHECK_LOG, log_to_stderr=False)
        line = run_check(ctx.mount_point, get_volume_status)
    except Exception:
        _check_logger.exception("Compliance check failed")

    print(line)
    return ExitCodes.SUCCESS


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
