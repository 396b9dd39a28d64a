# BitLockerPin - BitLocker startup PIN tooling for Intune-managed endpoints
from .core.version import VERSION

__version__ = VERSION
