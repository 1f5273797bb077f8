"""
Merkle tree implementation for the gift commitment.

Levels are retained from leaves (level 0) up to the single-node root level so
that inclusion proofs never require recomputation. An unpaired trailing node is
hashed with itself rather than promoted, and the proof generator mirrors that
rule by emitting the node's own digest as its sibling.
"""

import logging
from typing import List, Sequence

from pydantic import BaseModel, Field

from giftproof.core.crypto import hash_pair
from giftproof.core.errors import EmptyTreeError, IndexOutOfRange

logger = logging.getLogger(__name__)


def pair_index(index: int, level_size: int) -> int:
    """
    Position of the node that ``index`` is paired with on a level of ``level_size``.

    This is the single odd-node policy used by both tree construction and proof
    generation: the sibling is ``index ^ 1`` and a trailing node without one is
    paired with itself.
    """
    sibling = index ^ 1
    return sibling if sibling < level_size else index


def tree_height(leaf_count: int) -> int:
    """Number of sibling hashes in every proof for a tree of ``leaf_count`` leaves."""
    if leaf_count <= 0:
        raise EmptyTreeError("Cannot size a Merkle tree with no leaves")
    return (leaf_count - 1).bit_length()


class MerkleTree:
    """
    A binary Merkle tree over hex leaf digests.

    ``levels[0]`` is the leaf sequence and ``levels[-1]`` holds only the root.
    """

    def __init__(self, leaves: Sequence[str]):
        """Build the tree from the given ordered leaf digests."""
        if not leaves:
            raise EmptyTreeError("Cannot build Merkle tree from empty leaves")
        self.levels: List[List[str]] = [list(leaves)]
        self._build_tree()

    def _build_tree(self) -> None:
        current_level = self.levels[0]
        while len(current_level) > 1:
            size = len(current_level)
            next_level = [
                hash_pair(current_level[i], current_level[pair_index(i, size)])
                for i in range(0, size, 2)
            ]
            self.levels.append(next_level)
            current_level = next_level
        logger.debug(f"Built Merkle tree with {self.size} leaves and {len(self.levels)} levels")

    @property
    def size(self) -> int:
        """Get the number of leaves in the tree."""
        return len(self.levels[0])

    @property
    def height(self) -> int:
        """Number of levels above the leaves."""
        return len(self.levels) - 1

    @property
    def leaves(self) -> List[str]:
        return list(self.levels[0])

    @property
    def root_hash(self) -> str:
        """Get the Merkle root hash."""
        return self.levels[-1][0]

    def get_leaf_hash(self, index: int) -> str:
        self._check_index(index)
        return self.levels[0][index]

    def get_inclusion_proof(self, leaf_index: int) -> List[str]:
        """
        Generate a Merkle inclusion proof for a leaf.

        Args:
            leaf_index: Zero-based position of the leaf.

        Returns:
            Sibling hashes ordered from the leaf level up to just below the root.

        Raises:
            IndexOutOfRange: If the index is not a leaf position.
        """
        self._check_index(leaf_index)

        audit_path = []
        index = leaf_index
        for level in self.levels[:-1]:
            audit_path.append(level[pair_index(index, len(level))])
            index //= 2
        return audit_path

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or index < 0 or index >= self.size:
            raise IndexOutOfRange(f"Leaf index {index} outside tree of size {self.size}")


def compute_root(leaf_hash: str, proof: Sequence[str], leaf_index: int) -> str:
    """Fold a leaf and its audit path into the root it implies."""
    current_hash = leaf_hash
    index = leaf_index
    for sibling_hash in proof:
        if index % 2 == 1:  # Right child
            current_hash = hash_pair(sibling_hash, current_hash)
        else:  # Left child
            current_hash = hash_pair(current_hash, sibling_hash)
        index //= 2
    return current_hash


def verify_inclusion_proof(
    leaf_hash: str,
    proof: Sequence[str],
    root_hash: str,
    leaf_index: int,
) -> bool:
    """
    Verify a Merkle inclusion proof.

    Args:
        leaf_hash: The hash of the leaf to verify.
        proof: List of sibling hashes from leaf to root.
        root_hash: The expected root hash of the tree.
        leaf_index: The index of the leaf.

    Returns:
        True if the proof folds the leaf into ``root_hash``, False otherwise.
    """
    if not isinstance(leaf_index, int) or leaf_index < 0:
        return False
    try:
        return compute_root(leaf_hash, proof, leaf_index) == root_hash
    except TypeError:
        return False


class InclusionProof(BaseModel):
    """A leaf together with its audit path and the root it folds into."""
    leaf_index: int = Field(..., ge=0)
    leaf: str
    proof: List[str]
    root: str

    @classmethod
    def from_tree(cls, tree: MerkleTree, leaf_index: int) -> "InclusionProof":
        return cls(
            leaf_index=leaf_index,
            leaf=tree.get_leaf_hash(leaf_index),
            proof=tree.get_inclusion_proof(leaf_index),
            root=tree.root_hash,
        )

    def verify(self) -> bool:
        return verify_inclusion_proof(self.leaf, self.proof, self.root, self.leaf_index)
