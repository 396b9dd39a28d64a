# core/compliance.py - Compliance evaluation for the Intune policy engine
"""
Maps BitLocker volume state to the custom-compliance setting
CheckBitLockerPIN.

The setting has exactly two values:

    TpmPin  - a TPM+PIN protector is present AND the volume is fully encrypted
    NoPin   - anything else, including a failed status query
"""

import json
import logging
from typing import Callable, Optional

from bitlockerpin.core.bitlocker import VolumeStatus, get_volume_status
from bitlockerpin.core.constants import ComplianceValues
from bitlockerpin.core.errors import QueryFailure

_compliance_logger = logging.getLogger("BitLockerPin.compliance")


def evaluate(status: Optional[VolumeStatus]) -> str:
    """Compliance value for a volume status (None = status unknown)."""
    if status is not None and status.has_tpm_pin and status.fully_encrypted:
        return ComplianceValues.TPM_PIN
    return ComplianceValues.NO_PIN


def check_compliance(
    mount_point: str,
    status_provider: Callable[[str], VolumeStatus] = get_volume_status,
) -> str:
    """
    Query a volume and evaluate it.

    Never raises on a failed query: QueryFailure is logged and reported as
    NoPin.
    """
    try:
        status = status_provider(mount_point)
    except QueryFailure as e:
        _compliance_logger.error(f"BitLocker status query failed, reporting {ComplianceValues.NO_PIN}: {e}")
        status = None

    value = evaluate(status)
    _compliance_logger.info(f"{ComplianceValues.SETTING_NAME}={value} for {mount_point}")
    return value


def format_result(value: str) -> str:
    """
    Render the single-line JSON object Intune reads from stdout.

    Any value other than the two known ones is reported as NoPin.
    """
    if value not in ComplianceValues.ALL:
        value = ComplianceValues.NO_PIN
    return json.dumps({ComplianceValues.SETTING_NAME: value}, separators=(",", ":"))
