# BitLockerPin SSOT core modules
# This package contains the single-source-of-truth modules shared by all tools.
# =============================================================================
# Version
# =============================================================================
from .version import VERSION

# =============================================================================
# PIN policy and acceptability
# =============================================================================
from .pin_checker import PinRejection, PinValidationResult, find_rejection, is_acceptable, validate_entry
from .policy import ComplexityLevel, PinPolicy, read_policy

# =============================================================================
# Run guard
# =============================================================================
from .single_instance import SingleInstanceGuard, is_setup_running

# =============================================================================
# Public API
# =============================================================================
__all__ = [
    # Version
    "VERSION",
    # Policy
    "ComplexityLevel",
    "PinPolicy",
    "read_policy",
    # Acceptability
    "PinRejection",
    "PinValidationResult",
    "find_rejection",
    "is_acceptable",
    "validate_entry",
    # Run guard
    "SingleInstanceGuard",
    "is_setup_running",
]
