# core/constants.py - SINGLE SOURCE OF TRUTH for string constants
"""
Names, registry locations, protector tags, result values and exit codes.

Numeric limits live in core/limits.py, filesystem paths in core/paths.py.
"""


class Branding:
    """Product naming used in window titles, logs and folder names."""

    PRODUCT_NAME = "BitLockerPin"
    WINDOW_TITLE = "BitLocker Startup PIN"

    # Root logger name; modules use child loggers (BitLockerPin.<area>)
    LOGGER_NAME = "BitLockerPin"


class RegistryKeys:
    """BitLocker (FVE) group policy values read for the PIN policy."""

    FVE_POLICY_PATH = r"SOFTWARE\Policies\Microsoft\FVE"

    # DWORD: minimum startup PIN length
    MINIMUM_PIN = "MinimumPIN"

    # DWORD: 1 allows enhanced PINs (letters, symbols, spaces)
    USE_ENHANCED_PIN = "UseEnhancedPin"


class ProtectorTypes:
    """KeyProtectorType values reported by Get-BitLockerVolume."""

    TPM_PIN = "TpmPin"
    TPM = "Tpm"
    RECOVERY_PASSWORD = "RecoveryPassword"


class VolumeStates:
    """VolumeStatus / ProtectionStatus values reported by Get-BitLockerVolume."""

    FULLY_ENCRYPTED = "FullyEncrypted"
    PROTECTION_ON = "On"


class ComplianceValues:
    """The only two values the compliance script may report."""

    SETTING_NAME = "CheckBitLockerPIN"
    TPM_PIN = "TpmPin"
    NO_PIN = "NoPin"

    ALL = (TPM_PIN, NO_PIN)


class ExitCodes:
    """Process exit codes understood by the Intune remediation pipeline."""

    SUCCESS = 0
    FAILURE = 1

    # Detection script
    COMPLIANT = 0
    REMEDIATION_REQUIRED = 1


class FileNames:
    """Individual file names."""

    SETTINGS_JSON = "settings.json"
    RUN_GUARD_MARKER = "setup.running"
    BUNDLE_ARCHIVE = "bitlockerpin-bundle.zip"

    CHECK_LOG = "check.log"
    DETECT_LOG = "detect.log"
    REMEDIATE_LOG = "remediate.log"
    SETUP_LOG = "setup.log"


class ConfigKeys:
    """Keys of settings.json."""

    MOUNT_POINT = "mount_point"
    BUNDLE_URL = "bundle_url"
    LAUNCHER = "launcher"
    LAUNCHER_ARGS = "launcher_args"
    SETUP_COMMAND = "setup_command"
    LOG_DIR = "log_dir"


class Defaults:
    """Default settings values."""

    MOUNT_POINT = "C:"
    BUNDLE_URL = ""

    # ServiceUI.exe (from MDT) starts a process in the interactive user's
    # session when the remediation runs as SYSTEM.
    LAUNCHER = "ServiceUI.exe"
    LAUNCHER_ARGS = ["-process:explorer.exe"]
    SETUP_COMMAND = ["bitlockerpin-setup.exe"]
