"""
MintGate - Merkle Whitelist Implementation

This module provides the Merkle membership primitives used by the whitelist
mint channel: order-independent pair hashing, stateless proof verification,
and a tree builder that produces roots and proofs for a set of identities.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any, Sequence, Union

from .exceptions import MerkleError, InvalidIdentityError
from .keys import keccak256, address_bytes, normalize_address


HASH_LENGTH = 32
ZERO_ROOT = b'\x00' * HASH_LENGTH

logger = logging.getLogger(__name__)


def hash_pair(a: bytes, b: bytes) -> bytes:
    """
    Hash two sibling nodes independently of their order.

    The smaller value (bytewise) is placed first, so a proof does not need
    to record whether each sibling sits on the left or the right.

    Format: KECCAK256(min(a, b) || max(a, b))
    """
    if len(a) != HASH_LENGTH or len(b) != HASH_LENGTH:
        raise ValueError("Node hashes must be 32 bytes")

    if a <= b:
        return keccak256(a + b)
    return keccak256(b + a)


def leaf_for(identity: Union[str, bytes]) -> bytes:
    """
    Compute the whitelist leaf of an identity.

    The leaf is keccak-256 over the raw 20 address bytes.
    """
    return keccak256(address_bytes(identity))


def is_zero_root(root: Optional[bytes]) -> bool:
    """A missing or all-zero root means no membership set is configured."""
    return not root or root == ZERO_ROOT


def verify(root: bytes, proof: Sequence[bytes], leaf: bytes) -> bool:
    """
    Verify that ``leaf`` belongs to the set committed to by ``root``.

    Starting from the leaf, each proof element is folded in with
    :func:`hash_pair`. The proof is valid when the final hash equals the
    root. A single-member set has an empty proof and its leaf is the root.

    Args:
        root: Expected 32-byte root
        proof: Ordered sibling hashes from leaf level upwards
        leaf: 32-byte leaf hash

    Returns:
        True if the recomputed root matches
    """
    if len(root) != HASH_LENGTH or len(leaf) != HASH_LENGTH:
        return False

    computed = leaf
    for sibling in proof:
        if len(sibling) != HASH_LENGTH:
            return False
        computed = hash_pair(computed, sibling)

    return computed == root


@dataclass
class MerkleProof:
    """
    Membership proof for a single identity.

    Contains the path from leaf to root as sibling hashes only.
    """
    address: str
    leaf: bytes
    proof_hashes: List[bytes]
    root: bytes
    leaf_index: int

    def __post_init__(self):
        """Validate proof structure."""
        if len(self.root) != HASH_LENGTH:
            raise ValueError("Root hash must be 32 bytes")

        if len(self.leaf) != HASH_LENGTH:
            raise ValueError("Leaf hash must be 32 bytes")

        if not all(len(h) == HASH_LENGTH for h in self.proof_hashes):
            raise ValueError("All proof hashes must be 32 bytes")

    def verify(self) -> bool:
        """Check this proof against its own root."""
        return verify(self.root, self.proof_hashes, self.leaf)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "leaf": "0x" + self.leaf.hex(),
            "proof": ["0x" + h.hex() for h in self.proof_hashes],
            "root": "0x" + self.root.hex(),
            "leaf_index": self.leaf_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MerkleProof':
        return cls(
            address=normalize_address(data["address"]),
            leaf=parse_hash(data["leaf"]),
            proof_hashes=[parse_hash(h) for h in data.get("proof", [])],
            root=parse_hash(data["root"]),
            leaf_index=int(data.get("leaf_index", 0)),
        )


def parse_hash(value: Union[str, bytes]) -> bytes:
    """
    Parse a 32-byte hash given as raw bytes or hex (0x prefix optional).

    Raises:
        ValueError: If the value is not 32 bytes of hex
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        text = value.strip()
        if text.startswith("0x"):
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise ValueError(f"Invalid hex hash: {value!r}")

    if len(raw) != HASH_LENGTH:
        raise ValueError(f"Hash must be 32 bytes, got {len(raw)}")
    return raw


class MerkleTree:
    """
    Merkle tree over a whitelist of identities.

    Leaves keep the order in which identities were supplied; duplicates are
    dropped. An odd node at any level is paired with itself.
    """

    def __init__(self, identities: Sequence[Union[str, bytes]]):
        if not identities:
            raise MerkleError("Cannot build tree from empty identity list")

        start_time = time.time()

        addresses: List[str] = []
        seen = set()
        for identity in identities:
            try:
                address = normalize_address(identity)
            except InvalidIdentityError as e:
                raise MerkleError(f"Cannot add identity to tree: {e}")
            if address in seen:
                continue
            seen.add(address)
            addresses.append(address)

        if len(addresses) != len(identities):
            logger.warning(f"Removed {len(identities) - len(addresses)} duplicate identities")

        self.addresses = addresses
        self._index = {address: i for i, address in enumerate(addresses)}
        self.levels: List[List[bytes]] = [[leaf_for(a) for a in addresses]]

        while len(self.levels[-1]) > 1:
            current = self.levels[-1]
            parents = []
            for i in range(0, len(current), 2):
                left = current[i]
                right = current[i + 1] if i + 1 < len(current) else current[i]
                parents.append(hash_pair(left, right))
            self.levels.append(parents)

        self.construction_time = time.time() - start_time
        logger.debug(
            f"Built Merkle tree: leaves={len(addresses)}, height={self.height}, "
            f"time={self.construction_time * 1000:.2f}ms"
        )

    @property
    def root(self) -> bytes:
        return self.levels[-1][0]

    @property
    def height(self) -> int:
        return len(self.levels)

    def __len__(self) -> int:
        return len(self.addresses)

    def __contains__(self, identity) -> bool:
        try:
            return normalize_address(identity) in self._index
        except InvalidIdentityError:
            return False

    def index_of(self, identity: Union[str, bytes]) -> Optional[int]:
        return self._index.get(normalize_address(identity))

    def proof(self, index: int) -> MerkleProof:
        """
        Generate the proof for the leaf at ``index``.

        Raises:
            MerkleError: If the index is out of range
        """
        if index < 0 or index >= len(self.addresses):
            raise MerkleError(f"Leaf index {index} out of range (tree has {len(self.addresses)} leaves)")

        path = []
        position = index
        for level in self.levels[:-1]:
            sibling = position ^ 1
            path.append(level[sibling] if sibling < len(level) else level[position])
            position //= 2

        return MerkleProof(
            address=self.addresses[index],
            leaf=self.levels[0][index],
            proof_hashes=path,
            root=self.root,
            leaf_index=index,
        )

    def proof_for(self, identity: Union[str, bytes]) -> Optional[MerkleProof]:
        """Generate the proof for an identity, or None if it is not a member."""
        index = self.index_of(identity)
        if index is None:
            return None
        return self.proof(index)

    def to_allowlist(self) -> Dict[str, Any]:
        """Export the root and every member's proof as a JSON-friendly document."""
        return {
            "root": "0x" + self.root.hex(),
            "size": len(self.addresses),
            "proofs": {
                address: ["0x" + h.hex() for h in self.proof(i).proof_hashes]
                for i, address in enumerate(self.addresses)
            },
        }

    def save_allowlist(self, path) -> None:
        with open(path, 'w') as f:
            json.dump(self.to_allowlist(), f, indent=2)


def load_allowlist_proof(path, identity: Union[str, bytes]) -> List[bytes]:
    """
    Read an exported allowlist document and return the proof of one member.

    Raises:
        MerkleError: If the identity is not in the document
    """
    with open(path, 'r') as f:
        document = json.load(f)

    address = normalize_address(identity)
    proofs = {normalize_address(k): v for k, v in document.get("proofs", {}).items()}
    if address not in proofs:
        raise MerkleError(f"{address} is not in allowlist {path}")

    return [parse_hash(h) for h in proofs[address]]
