"""
Core of the gift commitment scheme.

This package contains canonical encoding, leaf and node hashing, the Merkle
tree with its proof generation and verification, and the Publisher and
Verifier capabilities built on top of them.
"""

from .merkle import InclusionProof, MerkleTree, pair_index, tree_height, verify_inclusion_proof
from .publisher import Publisher
from .verifier import Verifier, verify_record

__all__ = [
    'InclusionProof',
    'MerkleTree',
    'Publisher',
    'Verifier',
    'pair_index',
    'tree_height',
    'verify_inclusion_proof',
    'verify_record',
]
