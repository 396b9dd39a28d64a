# core/policy.py - PIN policy model and the configuration store
"""
PinPolicy describes what a startup PIN must satisfy on this machine.

The policy is read once per run from the BitLocker group policy key
(HKLM\\SOFTWARE\\Policies\\Microsoft\\FVE):

- MinimumPIN (DWORD)      -> PinPolicy.min_length
- UseEnhancedPin (DWORD)  -> ComplexityLevel.ENHANCED when 1

A missing key, missing values, or a non-Windows host yield the defaults
(min_length=8, BASIC).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from bitlockerpin.core.constants import RegistryKeys
from bitlockerpin.core.limits import Limits
from bitlockerpin.core.platform import is_windows

_policy_logger = logging.getLogger("BitLockerPin.policy")


class ComplexityLevel(Enum):
    """
    PIN complexity levels.

    - BASIC: digits only; ascending/descending runs rejected
    - ENHANCED: enhanced PIN; keyboard rows, whitespace and username
      fragments rejected, all four character classes required
    """

    BASIC = "Basic"
    ENHANCED = "Enhanced"


@dataclass(frozen=True)
class PinPolicy:
    """Immutable PIN policy for one run."""

    min_length: int = Limits.DEFAULT_PIN_MIN_LENGTH
    complexity: ComplexityLevel = ComplexityLevel.BASIC

    def __post_init__(self):
        if not isinstance(self.min_length, int) or self.min_length < 1:
            raise ValueError(f"min_length must be an integer >= 1, got {self.min_length!r}")
        if not isinstance(self.complexity, ComplexityLevel):
            raise ValueError(f"complexity must be a ComplexityLevel, got {self.complexity!r}")

    @property
    def is_enhanced(self) -> bool:
        return self.complexity is ComplexityLevel.ENHANCED


DEFAULT_POLICY = PinPolicy()


def _read_fve_values() -> Dict[str, Any]:
    """
    Read the FVE policy values from HKLM.

    Returns:
        Dict of value name -> data for the values that exist. Empty when the
        key is absent or the host is not Windows.
    """
    if not is_windows():
        return {}

    import winreg

    values: Dict[str, Any] = {}
    try:
        with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, RegistryKeys.FVE_POLICY_PATH) as key:
            for name in (RegistryKeys.MINIMUM_PIN, RegistryKeys.USE_ENHANCED_PIN):
                try:
                    data, _type = winreg.QueryValueEx(key, name)
                except FileNotFoundError:
                    continue
                values[name] = data
    except FileNotFoundError:
        _policy_logger.info(f"Policy key HKLM\\{RegistryKeys.FVE_POLICY_PATH} not present")
    except OSError as e:
        _policy_logger.warning(f"Could not open policy key: {e}")
    return values


def policy_from_values(values: Dict[str, Any]) -> PinPolicy:
    """
    Build a PinPolicy from raw registry values.

    MinimumPIN values below 1 or of the wrong type are ignored; others are
    clamped into BitLocker's accepted 4..20 range.
    """
    min_length = Limits.DEFAULT_PIN_MIN_LENGTH
    raw_min = values.get(RegistryKeys.MINIMUM_PIN)
    if isinstance(raw_min, int) and not isinstance(raw_min, bool) and raw_min >= 1:
        min_length = max(Limits.PIN_MIN_LENGTH_FLOOR, min(raw_min, Limits.PIN_MAX_LENGTH))
        if min_length != raw_min:
            _policy_logger.warning(f"MinimumPIN={raw_min} outside supported range, using {min_length}")
    elif raw_min is not None:
        _policy_logger.warning(f"Ignoring invalid MinimumPIN value: {raw_min!r}")

    complexity = ComplexityLevel.BASIC
    if values.get(RegistryKeys.USE_ENHANCED_PIN) == 1:
        complexity = ComplexityLevel.ENHANCED

    return PinPolicy(min_length=min_length, complexity=complexity)


def read_policy() -> PinPolicy:
    """
    Read the PIN policy for this run.

    Never raises: any read problem yields the default policy.
    """
    policy = policy_from_values(_read_fve_values())
    _policy_logger.info(f"PIN policy: min_length={policy.min_length}, complexity={policy.complexity.value}")
    return policy
