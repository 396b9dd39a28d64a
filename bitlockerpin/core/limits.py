# core/limits.py - SINGLE SOURCE OF TRUTH for timeouts, thresholds and bounds
"""
All numeric limits, timeouts, and thresholds MUST be defined here.
No other module may define these values.
"""


class Limits:
    """Operational limits and thresholds."""

    # ==========================================================================
    # Run guard
    # ==========================================================================

    # A run-guard marker older than this is considered abandoned (24 hours)
    RUN_GUARD_STALE_SECONDS = 24 * 60 * 60

    # ==========================================================================
    # Timeouts (seconds)
    # ==========================================================================

    # Get-BitLockerVolume and similar read-only queries
    POWERSHELL_QUERY_TIMEOUT = 30

    # Add-BitLockerKeyProtector (may wait on the TPM)
    POWERSHELL_PROTECTOR_TIMEOUT = 120

    # Bundle download
    DOWNLOAD_TIMEOUT = 60

    # ==========================================================================
    # Size limits
    # ==========================================================================

    # Log rotation
    MAX_LOG_FILE_SIZE = 5 * 1024 * 1024  # 5 MB
    LOG_BACKUP_COUNT = 3

    # Download chunk size for streaming to disk
    DOWNLOAD_CHUNK_SIZE = 64 * 1024

    # ==========================================================================
    # PIN policy
    # ==========================================================================

    # BitLocker accepts startup PINs of 4 to 20 characters
    PIN_MIN_LENGTH_FLOOR = 4
    PIN_MAX_LENGTH = 20

    # Default when the FVE policy does not set MinimumPIN
    DEFAULT_PIN_MIN_LENGTH = 8

    # Fixed length of the mask written to logs in place of a PIN
    PIN_MASK_LENGTH = 8

    # Number of leading account-name characters that may not appear in a PIN
    USERNAME_FRAGMENT_LENGTH = 4

    # Length of ascending/descending digit runs that are rejected
    SEQUENCE_RUN_LENGTH = 5
