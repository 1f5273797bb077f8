"""Tests for hashing primitives and the Merkle tree."""

import pytest

from giftproof.core.crypto import (
    generate_salt,
    generate_salts,
    hash_leaf,
    hash_pair,
    hash_text,
    is_hex_digest,
    is_hex_salt,
)
from giftproof.core.errors import EmptyTreeError, IndexOutOfRange
from giftproof.core.merkle import (
    InclusionProof,
    MerkleTree,
    compute_root,
    pair_index,
    tree_height,
    verify_inclusion_proof,
)

ZERO_SALT = "0" * 64

# sha256("a"), sha256("b"), sha256("c")
LEAF_A = "ca978112ca1bbdcafac231b39a23dc4da786eff8147c4e72b9807785afee48bb"
LEAF_B = "3e23e8160039594a33894f6564e1b1348bbd7a0088d42c4acb73eeaed59c009d"
LEAF_C = "2e7d2c03a9507ae265ecf5b5356885a53393a2029d241394997265a1a25aefc6"


def leaves_for(count):
    return [hash_text(f"leaf-{i}") for i in range(count)]


def test_hash_text_vector() -> None:
    assert hash_text("a") == LEAF_A


def test_hash_leaf_vector() -> None:
    record = {
        "type": "proportional_holders",
        "day": 1,
        "params": {"b": [2, {"d": None, "c": "é"}], "a": 1},
    }
    assert hash_leaf(record, ZERO_SALT) == "7954e2f633ed6f175ab821481115e7e9d030bc6c9bf932d0b7ab042579ea4540"


def test_hash_leaf_ignores_top_level_hash() -> None:
    record = {"day": 1, "type": "x", "params": {}}
    assert hash_leaf(dict(record, hash="abc"), ZERO_SALT) == hash_leaf(record, ZERO_SALT)


def test_hash_pair_is_ordered() -> None:
    assert hash_pair(LEAF_A, LEAF_B) == "62af5c3cb8da3e4f25061e829ebeea5c7513c54949115b1acc225930a90154da"
    assert hash_pair(LEAF_A, LEAF_B) != hash_pair(LEAF_B, LEAF_A)


def test_salts() -> None:
    salt = generate_salt()
    assert len(salt) == 64
    assert int(salt, 16) >= 0
    salts = generate_salts(24)
    assert len(set(salts)) == 24
    with pytest.raises(ValueError):
        generate_salt(16)


def test_is_hex_digest() -> None:
    assert is_hex_digest(LEAF_A)
    assert not is_hex_digest(LEAF_A.upper())
    assert not is_hex_digest(LEAF_A[:-1])
    assert not is_hex_digest(None)


def test_is_hex_salt() -> None:
    assert is_hex_salt(generate_salt())
    assert is_hex_salt("ab" * 48)
    assert not is_hex_salt("ab" * 31)
    assert not is_hex_salt("AB" * 32)
    assert not is_hex_salt("a" * 65)
    assert not is_hex_salt(b"ab" * 32)


def test_pair_index() -> None:
    assert pair_index(0, 4) == 1
    assert pair_index(3, 4) == 2
    assert pair_index(2, 3) == 2
    assert pair_index(0, 1) == 0


@pytest.mark.parametrize("count,height", [(1, 0), (2, 1), (3, 2), (4, 2), (5, 3), (8, 3), (24, 5)])
def test_tree_height(count, height) -> None:
    assert tree_height(count) == height
    assert MerkleTree(leaves_for(count)).height == height


def test_odd_node_pairs_with_itself() -> None:
    """Three leaves: the third is hashed with itself, not promoted."""
    tree = MerkleTree([LEAF_A, LEAF_B, LEAF_C])
    assert tree.levels[1][1] == "d50c873877f38fcbc56dbe836b9d979912efcb587ed8eea919372d403b5c2bd4"
    assert tree.root_hash == "0bdf27bf7ec894ca7cadfe491ec1a3ece840f117989e8c5e9bd7086467bf6c38"
    assert tree.get_inclusion_proof(2)[0] == LEAF_C


def test_single_leaf_tree() -> None:
    tree = MerkleTree([LEAF_A])
    assert tree.root_hash == LEAF_A
    assert tree.get_inclusion_proof(0) == []
    assert verify_inclusion_proof(LEAF_A, [], LEAF_A, 0)


def test_empty_tree_rejected() -> None:
    with pytest.raises(EmptyTreeError):
        MerkleTree([])
    with pytest.raises(EmptyTreeError):
        tree_height(0)


@pytest.mark.parametrize("count", [1, 2, 3, 5, 7, 24])
def test_every_proof_verifies(count) -> None:
    tree = MerkleTree(leaves_for(count))
    for index in range(count):
        proof = tree.get_inclusion_proof(index)
        assert len(proof) == tree_height(count)
        assert verify_inclusion_proof(tree.get_leaf_hash(index), proof, tree.root_hash, index)
        assert compute_root(tree.get_leaf_hash(index), proof, index) == tree.root_hash


def test_wrong_index_fails() -> None:
    tree = MerkleTree(leaves_for(24))
    leaf = tree.get_leaf_hash(5)
    proof = tree.get_inclusion_proof(5)
    assert not verify_inclusion_proof(leaf, proof, tree.root_hash, 4)
    assert not verify_inclusion_proof(leaf, proof, tree.root_hash, 6)
    assert not verify_inclusion_proof(leaf, proof, tree.root_hash, -1)


def test_swapped_operands_fail() -> None:
    """Folding with left and right reversed must not reproduce the root."""
    tree = MerkleTree(leaves_for(24))
    leaf = tree.get_leaf_hash(0)
    proof = tree.get_inclusion_proof(0)
    swapped = hash_pair(proof[0], leaf)
    for sibling in proof[1:]:
        swapped = hash_pair(swapped, sibling)
    assert swapped != tree.root_hash


def test_tampered_proof_fails() -> None:
    tree = MerkleTree(leaves_for(24))
    proof = tree.get_inclusion_proof(10)
    proof[2] = hash_text("forged")
    assert not verify_inclusion_proof(tree.get_leaf_hash(10), proof, tree.root_hash, 10)
    assert not verify_inclusion_proof(tree.get_leaf_hash(10), [None], tree.root_hash, 10)


def test_out_of_range_index() -> None:
    tree = MerkleTree(leaves_for(24))
    for index in (-1, 24, 100):
        with pytest.raises(IndexOutOfRange):
            tree.get_inclusion_proof(index)
        with pytest.raises(IndexOutOfRange):
            tree.get_leaf_hash(index)


def test_inclusion_proof_model() -> None:
    tree = MerkleTree(leaves_for(5))
    proof = InclusionProof.from_tree(tree, 4)
    assert proof.verify()
    assert not proof.model_copy(update={"leaf_index": 3}).verify()
