"""
Cryptographic Exceptions for MintGate

This module defines custom exceptions for identity and Merkle operations.
"""


class CryptoError(Exception):
    """Base exception for all cryptographic errors."""
    pass


class InvalidIdentityError(CryptoError):
    """Raised when an account identity is malformed."""
    pass


class InvalidKeyError(CryptoError):
    """Raised when a key is invalid or malformed."""
    pass


class MerkleError(CryptoError):
    """Raised when a Merkle tree cannot be built or queried."""
    pass
