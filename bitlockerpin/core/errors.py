# core/errors.py - Exception taxonomy
"""
All failures raised by bitlockerpin.core.

Entry points catch BitLockerPinError subclasses at top level and convert
them to exit codes. A rejected PIN is not an exception: see
pin_checker.PinValidationResult.
"""


class BitLockerPinError(Exception):
    """Base class for all bitlockerpin errors."""


class QueryFailure(BitLockerPinError):
    """BitLocker status could not be read or the volume does not exist."""


class InstallationFailure(BitLockerPinError):
    """Add-BitLockerKeyProtector failed."""


class UserCancelled(BitLockerPinError):
    """The user closed the PIN prompt without submitting a PIN."""


class AlreadyRunning(BitLockerPinError):
    """Another setup flow holds the run guard."""


class DeliveryError(BitLockerPinError):
    """Downloading, unpacking or launching the setup bundle failed."""


class ConfigError(BitLockerPinError):
    """settings.json is unreadable or malformed."""
