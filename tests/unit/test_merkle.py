"""
Tests for Merkle whitelist primitives.
"""

import json

import pytest

from crypto.exceptions import MerkleError
from crypto.keys import keccak256
from crypto.merkle import (
    ZERO_ROOT,
    MerkleProof,
    MerkleTree,
    hash_pair,
    is_zero_root,
    leaf_for,
    load_allowlist_proof,
    parse_hash,
    verify,
)


def _flip_bit(value: bytes, byte_index: int, bit: int = 0) -> bytes:
    data = bytearray(value)
    data[byte_index] ^= 1 << bit
    return bytes(data)


class TestHashing:

    def test_hash_pair_is_order_independent(self):
        a, b = b"\x01" * 32, b"\x02" * 32
        assert hash_pair(a, b) == hash_pair(b, a) == keccak256(a + b)

    def test_hash_pair_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            hash_pair(b"\x01" * 31, b"\x02" * 32)

    def test_leaf_is_hash_of_raw_address(self, alice):
        assert leaf_for(alice) == keccak256(bytes.fromhex(alice[2:]))
        assert leaf_for(alice.upper().replace("0X", "0x")) == leaf_for(alice)

    def test_zero_root(self):
        assert is_zero_root(ZERO_ROOT)
        assert is_zero_root(None)
        assert not is_zero_root(b"\x01" * 32)

    def test_parse_hash(self):
        assert parse_hash("0x" + "ab" * 32) == b"\xab" * 32
        assert parse_hash("ab" * 32) == b"\xab" * 32
        with pytest.raises(ValueError):
            parse_hash("0x1234")
        with pytest.raises(ValueError):
            parse_hash("zz" * 32)


class TestVerify:

    def test_four_member_set(self, identities):
        """Proof for member index 2 verifies; corrupting one byte breaks it."""
        addresses = [i.address for i in identities[:4]]
        tree = MerkleTree(addresses)
        proof = tree.proof(2)

        assert verify(tree.root, proof.proof_hashes, leaf_for(addresses[2]))

        corrupted = list(proof.proof_hashes)
        corrupted[0] = _flip_bit(corrupted[0], 5)
        assert not verify(tree.root, corrupted, leaf_for(addresses[2]))

    def test_every_bit_flip_fails(self, members, whitelist_tree):
        proof = whitelist_tree.proof_for(members[1])
        leaf = leaf_for(members[1])

        for position in range(len(proof.proof_hashes)):
            for byte_index in (0, 15, 31):
                hashes = list(proof.proof_hashes)
                hashes[position] = _flip_bit(hashes[position], byte_index, bit=7)
                assert not verify(whitelist_tree.root, hashes, leaf)

        assert not verify(_flip_bit(whitelist_tree.root, 0), proof.proof_hashes, leaf)
        assert not verify(whitelist_tree.root, proof.proof_hashes, _flip_bit(leaf, 31))

    def test_non_member_fails(self, whitelist_tree, members, outsider):
        proof = whitelist_tree.proof_for(members[0])
        assert not verify(whitelist_tree.root, proof.proof_hashes, leaf_for(outsider))

    def test_empty_proof_requires_leaf_equal_root(self, alice):
        leaf = leaf_for(alice)
        assert verify(leaf, [], leaf)
        assert not verify(b"\x01" * 32, [], leaf)

    def test_malformed_inputs_return_false(self, whitelist_tree, members):
        leaf = leaf_for(members[0])
        proof = whitelist_tree.proof_for(members[0]).proof_hashes
        assert not verify(whitelist_tree.root[:31], proof, leaf)
        assert not verify(whitelist_tree.root, proof, leaf[:20])
        assert not verify(whitelist_tree.root, [proof[0][:16]] + list(proof[1:]), leaf)


class TestMerkleTree:

    def test_all_members_verify(self, identities):
        addresses = [i.address for i in identities]
        tree = MerkleTree(addresses)

        assert len(tree) == 10
        for index, address in enumerate(addresses):
            proof = tree.proof(index)
            assert proof.address == address
            assert proof.verify()
            assert verify(tree.root, proof.proof_hashes, leaf_for(address))

    def test_single_member(self, alice):
        tree = MerkleTree([alice])
        assert tree.root == leaf_for(alice)
        assert tree.proof(0).proof_hashes == []

    def test_odd_node_paired_with_itself(self, identities):
        addresses = [i.address for i in identities[:3]]
        tree = MerkleTree(addresses)
        leaves = [leaf_for(a) for a in addresses]

        expected = hash_pair(hash_pair(leaves[0], leaves[1]), hash_pair(leaves[2], leaves[2]))
        assert tree.root == expected

    def test_duplicates_dropped(self, alice, bob, caplog):
        tree = MerkleTree([alice, bob, alice.upper().replace("0X", "0x")])
        assert len(tree) == 2
        assert "duplicate" in caplog.text

    def test_membership_queries(self, whitelist_tree, members, outsider):
        assert members[0] in whitelist_tree
        assert outsider not in whitelist_tree
        assert "garbage" not in whitelist_tree
        assert whitelist_tree.index_of(members[3]) == 3
        assert whitelist_tree.proof_for(outsider) is None

    def test_empty_and_invalid_input(self):
        with pytest.raises(MerkleError):
            MerkleTree([])
        with pytest.raises(MerkleError):
            MerkleTree(["0x1234"])

    def test_proof_index_out_of_range(self, whitelist_tree):
        with pytest.raises(MerkleError):
            whitelist_tree.proof(len(whitelist_tree))

    def test_proof_dict_round_trip(self, whitelist_tree, members):
        proof = whitelist_tree.proof_for(members[2])
        restored = MerkleProof.from_dict(proof.to_dict())
        assert restored == proof
        assert restored.verify()

    def test_allowlist_export(self, whitelist_tree, members, outsider, tmp_path):
        path = tmp_path / "allowlist.json"
        whitelist_tree.save_allowlist(path)

        document = json.loads(path.read_text())
        assert document["root"] == "0x" + whitelist_tree.root.hex()
        assert document["size"] == len(members)
        assert set(document["proofs"]) == set(members)

        proof = load_allowlist_proof(path, members[1])
        assert verify(whitelist_tree.root, proof, leaf_for(members[1]))

        with pytest.raises(MerkleError):
            load_allowlist_proof(path, outsider)
