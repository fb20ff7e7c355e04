"""
MintGate - Cryptographic Operations Module

This module provides the cryptographic utilities used by the issuance core:
- Account identities derived from secp256k1 keys
- keccak-256 hashing
- Merkle whitelist trees, proofs and verification

Dependencies:
- coincurve: secp256k1 key operations
- pycryptodome: keccak-256
"""

from .exceptions import (
    CryptoError,
    InvalidIdentityError,
    InvalidKeyError,
    MerkleError,
)
from .keys import (
    ZERO_ADDRESS,
    Identity,
    keccak256,
    normalize_address,
    address_bytes,
    is_zero_address,
    is_valid_address,
    address_from_public_key,
)
from .merkle import (
    ZERO_ROOT,
    MerkleProof,
    MerkleTree,
    hash_pair,
    leaf_for,
    is_zero_root,
    parse_hash,
    verify,
    load_allowlist_proof,
)

__version__ = "0.1.0"
__all__ = [
    # Exceptions
    "CryptoError",
    "InvalidIdentityError",
    "InvalidKeyError",
    "MerkleError",

    # Identities
    "ZERO_ADDRESS",
    "Identity",
    "keccak256",
    "normalize_address",
    "address_bytes",
    "is_zero_address",
    "is_valid_address",
    "address_from_public_key",

    # Merkle
    "ZERO_ROOT",
    "MerkleProof",
    "MerkleTree",
    "hash_pair",
    "leaf_for",
    "is_zero_root",
    "parse_hash",
    "verify",
    "load_allowlist_proof",
]
