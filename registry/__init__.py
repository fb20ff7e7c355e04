"""
MintGate Registry Module

Collection configuration models and state persistence.
"""

from .schema import CollectionConfig, CollectionState, SCHEMA_VERSION, ZERO_ROOT_HEX
from .storage import CollectionStorage, FileLock, StorageError, IntegrityError, LockTimeoutError

__all__ = [
    "CollectionConfig",
    "CollectionState",
    "SCHEMA_VERSION",
    "ZERO_ROOT_HEX",
    "CollectionStorage",
    "FileLock",
    "StorageError",
    "IntegrityError",
    "LockTimeoutError",
]
