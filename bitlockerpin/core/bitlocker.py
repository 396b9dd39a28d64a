# core/bitlocker.py - BitLocker status provider and protector installer
"""
Thin wrappers around the BitLocker PowerShell module.

This module provides:
- get_volume_status(): Get-BitLockerVolume -> VolumeStatus
- install_tpm_pin_protector(): Add-BitLockerKeyProtector -TpmAndPinProtector

All encryption work is done by Windows. Nothing here touches key material
except the PIN handed to install_tpm_pin_protector(), which is written to
PowerShell's stdin and converted to a SecureString there. It never appears
on a command line, in an exception message, or in the log.
"""

import json
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from bitlockerpin.core.constants import ProtectorTypes, VolumeStates
from bitlockerpin.core.errors import InstallationFailure, QueryFailure
from bitlockerpin.core.limits import Limits

_bitlocker_logger = logging.getLogger("BitLockerPin.bitlocker")

POWERSHELL = ["powershell", "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command"]


# =============================================================================
# Volume status
# =============================================================================

@dataclass(frozen=True)
class VolumeStatus:
    """
    BitLocker state of one volume.

    protector_types holds KeyProtectorType names ("Tpm", "TpmPin",
    "RecoveryPassword", ...).
    """

    mount_point: str
    protection_on: bool
    fully_encrypted: bool
    protector_types: FrozenSet[str] = field(default_factory=frozenset)
    encryption_percentage: Optional[float] = None

    @property
    def has_tpm_pin(self) -> bool:
        return ProtectorTypes.TPM_PIN in self.protector_types


def normalize_mount_point(mount_point: str) -> str:
    """
    Normalize a drive reference to "X:" form.

    Accepts "C", "c:", "C:\\" and returns "C:". Anything else is returned
    stripped, unchanged.
    """
    value = (mount_point or "").strip().rstrip("\\/")
    if len(value) == 1 and value.isalpha():
        value += ":"
    if len(value) == 2 and value[0].isalpha() and value[1] == ":":
        return value.upper()
    return value


def _ps_quote(value: str) -> str:
    """Single-quote a value for a PowerShell command string."""
    return "'" + value.replace("'", "''") + "'"


def _run_powershell(script: str, timeout: float, stdin: Optional[str] = None) -> subprocess.CompletedProcess:
    return subprocess.run(
        POWERSHELL + [script],
        input=stdin,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
    )


def _status_from_json(mount_point: str, data: Dict[str, Any]) -> VolumeStatus:
    protectors: List[Any] = data.get("KeyProtector") or []
    if isinstance(protectors, dict):
        # ConvertTo-Json collapses a one-element array
        protectors = [protectors]
    protector_types = frozenset(
        str(p.get("KeyProtectorType")) for p in protectors if isinstance(p, dict) and p.get("KeyProtectorType")
    )

    percentage = data.get("EncryptionPercentage")
    try:
        percentage = float(percentage) if percentage is not None else None
    except (TypeError, ValueError):
        percentage = None

    return VolumeStatus(
        mount_point=mount_point,
        protection_on=str(data.get("ProtectionStatus")) == VolumeStates.PROTECTION_ON,
        fully_encrypted=str(data.get("VolumeStatus")) == VolumeStates.FULLY_ENCRYPTED,
        protector_types=protector_types,
        encryption_percentage=percentage,
    )


def get_volume_status(mount_point: str) -> VolumeStatus:
    """
    Query BitLocker state for a volume.

    Args:
        mount_point: Drive reference such as "C:"

    Returns:
        VolumeStatus for the volume

    Raises:
        QueryFailure: PowerShell failed, timed out, returned no volume or
            unparseable output
    """
    mount_point = normalize_mount_point(mount_point)

    # Enum values are rendered as names so the JSON does not carry raw ints
    ps_script = f"""
    $ErrorActionPreference = 'Stop'
    $v = Get-BitLockerVolume -MountPoint {_ps_quote(mount_point)}
    [pscustomobject]@{{
        MountPoint = $v.MountPoint
        VolumeStatus = $v.VolumeStatus.ToString()
        ProtectionStatus = $v.ProtectionStatus.ToString()
        EncryptionPercentage = $v.EncryptionPercentage
        KeyProtector = @($v.KeyProtector | ForEach-Object {{
            [pscustomobject]@{{ KeyProtectorType = $_.KeyProtectorType.ToString() }}
        }})
    }} | ConvertTo-Json -Depth 4 -Compress
    """

    _bitlocker_logger.debug(f"Querying BitLocker status for {mount_point}")
    try:
        result = _run_powershell(ps_script, timeout=Limits.POWERSHELL_QUERY_TIMEOUT)
    except subprocess.TimeoutExpired as exc:
        raise QueryFailure(f"Get-BitLockerVolume timed out for {mount_point}") from exc
    except OSError as exc:
        raise QueryFailure(f"Could not start PowerShell: {exc}") from exc

    if result.returncode != 0:
        detail = (result.stderr or "").strip().splitlines()
        raise QueryFailure(
            f"Get-BitLockerVolume failed for {mount_point} (exit {result.returncode}): "
            f"{detail[0] if detail else 'no error output'}"
        )

    output = (result.stdout or "").strip()
    if not output:
        raise QueryFailure(f"No BitLocker volume found for {mount_point}")

    try:
        data = json.loads(output)
    except json.JSONDecodeError as exc:
        raise QueryFailure(f"Unparseable Get-BitLockerVolume output for {mount_point}") from exc
    if not isinstance(data, dict):
        raise QueryFailure(f"Unexpected Get-BitLockerVolume output for {mount_point}")

    status = _status_from_json(mount_point, data)
    _bitlocker_logger.info(
        f"{mount_point}: protection_on={status.protection_on} fully_encrypted={status.fully_encrypted} "
        f"protectors={sorted(status.protector_types)}"
    )
    return status


# =============================================================================
# Protector installation
# =============================================================================

def install_tpm_pin_protector(mount_point: str, pin: str) -> None:
    """
    Add a TPM+PIN key protector to a volume.

    Not idempotent: calling twice may add two protectors.

    Args:
        mount_point: Drive reference such as "C:"
        pin: Validated startup PIN

    Raises:
        InstallationFailure: PowerShell failed or timed out
    """
    mount_point = normalize_mount_point(mount_point)

    # The PIN arrives as the first line of stdin
    ps_script = f"""
    $ErrorActionPreference = 'Stop'
    $plain = [Console]::In.ReadLine()
    $secure = ConvertTo-SecureString -String $plain -AsPlainText -Force
    $plain = $null
    Add-BitLockerKeyProtector -MountPoint {_ps_quote(mount_point)} -Pin $secure -TpmAndPinProtector | Out-Null
    """

    _bitlocker_logger.info(f"Adding TPM+PIN protector to {mount_point}")
    try:
        result = _run_powershell(ps_script, timeout=Limits.POWERSHELL_PROTECTOR_TIMEOUT, stdin=pin + "\n")
    except subprocess.TimeoutExpired:
        raise InstallationFailure(f"Add-BitLockerKeyProtector timed out for {mount_point}") from None
    except OSError as exc:
        raise InstallationFailure(f"Could not start PowerShell: {exc}") from None

    if result.returncode != 0:
        detail = (result.stderr or "").strip().splitlines()
        raise InstallationFailure(
            f"Add-BitLockerKeyProtector failed for {mount_point} (exit {result.returncode}): "
            f"{detail[0] if detail else 'no error output'}"
        )

    _bitlocker_logger.info(f"TPM+PIN protector added to {mount_point}")
