# core/pin_checker.py - SINGLE SOURCE OF TRUTH for PIN acceptability
"""
Decides whether a candidate startup PIN is acceptable under a PinPolicy.

This module provides:
- find_rejection(): first failing pattern check, or None
- is_acceptable(): boolean form of find_rejection()
- validate_entry(): the checks the prompt performs before the pattern
  checks (confirmation, length, character set), then find_rejection()

Pattern checks and where they apply:

    ascending / descending 5-digit run ......... BASIC only
    single character repeated 6+ times ......... always
    block of 3+ characters repeated ............ always
    block repeated 3+ times .................... always
    all characters identical ................... always
    2-character block repeated ................. always
    keyboard row (qwerty, asdfgh, zxcvbn) ...... ENHANCED only
    whitespace ................................. ENHANCED only
    first 4 characters of the account name ..... ENHANCED only
    missing upper / lower / digit / symbol ..... ENHANCED only

Everything here is pure: no logging, no I/O, no exceptions for any str
input. The PIN never leaves the call.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bitlockerpin.core.limits import Limits
from bitlockerpin.core.policy import PinPolicy


class PinRejection(Enum):
    """Reasons a PIN is rejected. Values are the user-facing messages."""

    # Entry checks (validate_entry)
    MISMATCH = "The PIN and the confirmation do not match."
    TOO_SHORT = "The PIN is too short."
    TOO_LONG = "The PIN is too long."
    NOT_DIGITS = "The PIN may contain digits only."
    UNSUPPORTED_CHARACTERS = "The PIN contains characters that cannot be typed before Windows starts."

    # Pattern checks (find_rejection)
    ASCENDING_RUN = "The PIN contains an ascending sequence such as 12345."
    DESCENDING_RUN = "The PIN contains a descending sequence such as 54321."
    LONG_REPEAT = "The PIN repeats the same character too often."
    REPEATED_BLOCK = "The PIN repeats a group of characters."
    REPEATED_BLOCK_THRICE = "The PIN repeats a character or group three times or more."
    ALL_IDENTICAL = "The PIN consists of one repeated character."
    REPEATED_PAIR = "The PIN repeats a pair of characters."
    KEYBOARD_PATTERN = "The PIN contains a keyboard pattern such as qwerty."
    WHITESPACE = "The PIN may not contain spaces."
    USERNAME_FRAGMENT = "The PIN may not contain part of your user name."
    MISSING_CHARACTER_CLASS = "The PIN needs an uppercase letter, a lowercase letter, a digit and a symbol."


# =============================================================================
# Patterns
# =============================================================================

_ASCENDING_DIGITS = "01234567890"
_DESCENDING_DIGITS = "9876543210"


def _runs(sequence: str, length: int) -> frozenset:
    return frozenset(sequence[i:i + length] for i in range(len(sequence) - length + 1))


ASCENDING_RUNS = _runs(_ASCENDING_DIGITS, Limits.SEQUENCE_RUN_LENGTH)
DESCENDING_RUNS = _runs(_DESCENDING_DIGITS, Limits.SEQUENCE_RUN_LENGTH)

KEYBOARD_PATTERNS = ("qwerty", "asdfgh", "zxcvbn")

_LONG_REPEAT_RE = re.compile(r"(.)\1{5,}", re.DOTALL)
_REPEATED_BLOCK_RE = re.compile(r"(.{3,})\1", re.DOTALL)
_REPEATED_BLOCK_THRICE_RE = re.compile(r"(.+)\1{2,}", re.DOTALL)
_ALL_IDENTICAL_RE = re.compile(r"(.)\1*", re.DOTALL)
_REPEATED_PAIR_RE = re.compile(r"(..)\1+", re.DOTALL)

_DIGITS_RE = re.compile(r"[0-9]+")
# Printable US-ASCII, which is what the pre-boot keyboard can type
_PREBOOT_CHARS_RE = re.compile(r"[\x20-\x7e]+")


def _contains_any(pin: str, fragments) -> bool:
    return any(fragment in pin for fragment in fragments)


def _has_symbol(pin: str) -> bool:
    return any(not c.isalnum() and not c.isspace() for c in pin)


# =============================================================================
# Pattern checks
# =============================================================================

def find_rejection(pin: str, policy: PinPolicy, account_name: str = "") -> Optional[PinRejection]:
    """
    Run the pattern checks against a PIN.

    Args:
        pin: Candidate PIN
        policy: Policy selecting the BASIC or ENHANCED checks
        account_name: Login name of the current account (ENHANCED only).
            Names shorter than the fragment length are not checked.

    Returns:
        The first failing check, or None if the PIN is acceptable
    """
    if not isinstance(pin, str) or not pin:
        return PinRejection.ALL_IDENTICAL

    if not policy.is_enhanced:
        if _contains_any(pin, ASCENDING_RUNS):
            return PinRejection.ASCENDING_RUN
        if _contains_any(pin, DESCENDING_RUNS):
            return PinRejection.DESCENDING_RUN

    if _LONG_REPEAT_RE.search(pin):
        return PinRejection.LONG_REPEAT
    if _REPEATED_BLOCK_RE.search(pin):
        return PinRejection.REPEATED_BLOCK
    if _REPEATED_BLOCK_THRICE_RE.search(pin):
        return PinRejection.REPEATED_BLOCK_THRICE
    if _ALL_IDENTICAL_RE.fullmatch(pin):
        return PinRejection.ALL_IDENTICAL
    if _REPEATED_PAIR_RE.search(pin):
        return PinRejection.REPEATED_PAIR

    if policy.is_enhanced:
        lowered = pin.lower()
        if _contains_any(lowered, KEYBOARD_PATTERNS):
            return PinRejection.KEYBOARD_PATTERN
        if any(c.isspace() for c in pin):
            return PinRejection.WHITESPACE
        fragment = (account_name or "").strip()[:Limits.USERNAME_FRAGMENT_LENGTH].lower()
        if len(fragment) == Limits.USERNAME_FRAGMENT_LENGTH and fragment in lowered:
            return PinRejection.USERNAME_FRAGMENT
        has_all_classes = (
            any(c.isupper() for c in pin)
            and any(c.islower() for c in pin)
            and any(c.isdigit() for c in pin)
            and _has_symbol(pin)
        )
        if not has_all_classes:
            return PinRejection.MISSING_CHARACTER_CLASS

    return None


def is_acceptable(pin: str, policy: PinPolicy, account_name: str = "") -> bool:
    """True if the PIN passes every pattern check that applies under the policy."""
    return find_rejection(pin, policy, account_name) is None


# =============================================================================
# Entry validation
# =============================================================================

@dataclass(frozen=True)
class PinValidationResult:
    """
    Result of validating a PIN entry.

    Use .is_valid to check if the PIN can be installed.
    Use .message for the inline text shown to the user if rejected.
    """

    is_valid: bool
    rejection: Optional[PinRejection] = None

    @classmethod
    def ok(cls) -> "PinValidationResult":
        return cls(is_valid=True)

    @classmethod
    def reject(cls, reason: PinRejection) -> "PinValidationResult":
        return cls(is_valid=False, rejection=reason)

    @property
    def message(self) -> str:
        return self.rejection.value if self.rejection else ""


def validate_entry(pin: str, confirm: str, policy: PinPolicy, account_name: str = "") -> PinValidationResult:
    """
    Validate a PIN and its confirmation as typed into the prompt.

    Order: confirmation match, minimum length, maximum length, character set
    (digits only under BASIC, printable ASCII under ENHANCED), then the
    pattern checks of find_rejection().
    """
    pin = pin or ""
    confirm = confirm or ""

    if pin != confirm:
        return PinValidationResult.reject(PinRejection.MISMATCH)
    if len(pin) < policy.min_length or not pin:
        return PinValidationResult.reject(PinRejection.TOO_SHORT)
    if len(pin) > Limits.PIN_MAX_LENGTH:
        return PinValidationResult.reject(PinRejection.TOO_LONG)

    if policy.is_enhanced:
        if not _PREBOOT_CHARS_RE.fullmatch(pin):
            return PinValidationResult.reject(PinRejection.UNSUPPORTED_CHARACTERS)
    elif not _DIGITS_RE.fullmatch(pin):
        return PinValidationResult.reject(PinRejection.NOT_DIGITS)

    rejection = find_rejection(pin, policy, account_name)
    if rejection is not None:
        return PinValidationResult.reject(rejection)
    return PinValidationResult.ok()
