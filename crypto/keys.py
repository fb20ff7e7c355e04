"""
Account Identities for MintGate

This module handles account identities: 20-byte addresses derived from
secp256k1 public keys, their canonical text form, and the keccak-256 hash
used throughout the issuance core.
"""

import re
from dataclasses import dataclass
from typing import Union

from coincurve import PrivateKey as CoinCurvePrivateKey, PublicKey as CoinCurvePublicKey
from Crypto.Hash import keccak

from .exceptions import InvalidIdentityError, InvalidKeyError


ADDRESS_LENGTH = 20
ZERO_ADDRESS = "0x" + "00" * ADDRESS_LENGTH

_ADDRESS_PATTERN = re.compile(r'^(0x)?[0-9a-fA-F]{40}$')


def keccak256(data: bytes) -> bytes:
    """
    Compute the keccak-256 digest of data.

    Args:
        data: Input bytes

    Returns:
        32-byte digest
    """
    hasher = keccak.new(digest_bits=256)
    hasher.update(data)
    return hasher.digest()


def normalize_address(address: Union[str, bytes]) -> str:
    """
    Return the canonical form of an address: ``0x`` followed by 40 lowercase hex chars.

    Args:
        address: Address string (with or without 0x prefix) or 20 raw bytes

    Returns:
        Canonical address string

    Raises:
        InvalidIdentityError: If the address is malformed
    """
    if isinstance(address, (bytes, bytearray)):
        if len(address) != ADDRESS_LENGTH:
            raise InvalidIdentityError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(address)}")
        return "0x" + bytes(address).hex()

    if not isinstance(address, str) or not _ADDRESS_PATTERN.match(address.strip()):
        raise InvalidIdentityError(f"Invalid address: {address!r}")

    address = address.strip().lower()
    if not address.startswith("0x"):
        address = "0x" + address
    return address


def address_bytes(address: Union[str, bytes]) -> bytes:
    """Raw 20-byte form of an address."""
    return bytes.fromhex(normalize_address(address)[2:])


def is_zero_address(address: Union[str, bytes]) -> bool:
    """Check whether an address is the null identity."""
    return normalize_address(address) == ZERO_ADDRESS


def is_valid_address(address: Union[str, bytes]) -> bool:
    """Check address format without raising."""
    try:
        normalize_address(address)
        return True
    except InvalidIdentityError:
        return False


def address_from_public_key(public_key: Union[bytes, CoinCurvePublicKey]) -> str:
    """
    Derive an account address from a secp256k1 public key.

    The address is the last 20 bytes of keccak-256 over the 64-byte
    uncompressed point (without the 0x04 prefix).

    Args:
        public_key: Compressed/uncompressed key bytes or coincurve PublicKey

    Returns:
        Canonical address string
    """
    if isinstance(public_key, (bytes, bytearray)):
        try:
            public_key = CoinCurvePublicKey(bytes(public_key))
        except ValueError as e:
            raise InvalidKeyError(f"Invalid public key: {e}")

    uncompressed = public_key.format(compressed=False)
    return normalize_address(keccak256(uncompressed[1:])[-ADDRESS_LENGTH:])


@dataclass(frozen=True)
class Identity:
    """A secp256k1 key pair together with its account address."""
    private_key: bytes
    address: str

    @classmethod
    def generate(cls) -> 'Identity':
        """Generate a fresh random identity."""
        return cls.from_private_key(CoinCurvePrivateKey().secret)

    @classmethod
    def from_private_key(cls, secret: Union[bytes, str]) -> 'Identity':
        """
        Rebuild an identity from a 32-byte secret (raw or hex).

        Raises:
            InvalidKeyError: If the secret is not a valid secp256k1 scalar
        """
        if isinstance(secret, str):
            try:
                secret = bytes.fromhex(secret[2:] if secret.startswith("0x") else secret)
            except ValueError:
                raise InvalidKeyError("Private key must be hex encoded")

        if len(secret) != 32:
            raise InvalidKeyError("Private key must be 32 bytes")

        try:
            key = CoinCurvePrivateKey(secret)
        except ValueError as e:
            raise InvalidKeyError(f"Invalid private key: {e}")

        return cls(private_key=key.secret, address=address_from_public_key(key.public_key))

    def __str__(self) -> str:
        return self.address
