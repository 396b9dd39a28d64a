#!/usr/bin/env python3
"""
Pytest configuration and shared fixtures for BitLockerPin tests.

This module sets up the Python path so the tests run from a source
checkout without installing the package.
"""

import logging
import sys
from pathlib import Path

# =============================================================================
# Path Setup - Execute BEFORE any test imports
# =============================================================================

# tests/conftest.py -> tests/ -> repository root
_tests_dir = Path(__file__).resolve().parent
_repo_root = _tests_dir.parent

if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

REPO_ROOT = _repo_root
TESTS_DIR = _tests_dir


# =============================================================================
# Shared Fixtures
# =============================================================================

import pytest

from bitlockerpin.core.bitlocker import VolumeStatus
from bitlockerpin.core.constants import ProtectorTypes
from bitlockerpin.core.policy import ComplexityLevel, PinPolicy


@pytest.fixture
def repo_root():
    """Return the repository root path."""
    return REPO_ROOT


@pytest.fixture
def basic_policy():
    return PinPolicy(min_length=8, complexity=ComplexityLevel.BASIC)


@pytest.fixture
def enhanced_policy():
    return PinPolicy(min_length=8, complexity=ComplexityLevel.ENHANCED)


@pytest.fixture
def data_root(tmp_path):
    """Isolated data root (logs, run marker, bundle)."""
    root = tmp_path / "ProgramData" / "BitLockerPin"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def compliant_status():
    return VolumeStatus(
        mount_point="C:",
        protection_on=True,
        fully_encrypted=True,
        protector_types=frozenset({ProtectorTypes.TPM_PIN, ProtectorTypes.RECOVERY_PASSWORD}),
        encryption_percentage=100.0,
    )


@pytest.fixture
def tpm_only_status():
    return VolumeStatus(
        mount_point="C:",
        protection_on=True,
        fully_encrypted=True,
        protector_types=frozenset({ProtectorTypes.TPM, ProtectorTypes.RECOVERY_PASSWORD}),
        encryption_percentage=100.0,
    )


@pytest.fixture(autouse=True)
def _reset_bitlockerpin_logging():
    """Close handlers the entry points attach to the BitLockerPin logger."""
    yield
    logger = logging.getLogger("BitLockerPin")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
