"""
GiftProof - Commit-reveal Merkle commitments for daily gift schedules.

A season's gifts are committed to a single Merkle root before the season
starts. Each day one gift is revealed together with its salt and inclusion
proof so anyone can check it was part of the original commitment.
"""

from importlib.metadata import PackageNotFoundError, version

__version__ = "0.1.0"

try:
    __version__ = version("giftproof")
except PackageNotFoundError:
    pass

# Core components
from giftproof.core.canonicalization import (
    canonicalize,
    canonical_json_dumps,
    verify_canonical_equivalence,
)
from giftproof.core.crypto import generate_salt, hash_leaf, hash_pair, hash_sha256
from giftproof.core.errors import (
    BatchSizeMismatch,
    EmptyTreeError,
    EncodingError,
    GiftProofError,
    IndexOutOfRange,
    InvalidSalt,
    SelfCheckFailed,
)
from giftproof.core.merkle import MerkleTree, verify_inclusion_proof
from giftproof.core.models import (
    BatchState,
    Commitment,
    GiftSpec,
    HintReveal,
    Reveal,
    RevealPhase,
    VerificationResult,
)
from giftproof.core.publisher import Publisher
from giftproof.core.verifier import Verifier

__all__ = [
    # Core functionality
    "canonicalize",
    "canonical_json_dumps",
    "verify_canonical_equivalence",
    "generate_salt",
    "hash_leaf",
    "hash_pair",
    "hash_sha256",
    "MerkleTree",
    "verify_inclusion_proof",
    "Publisher",
    "Verifier",
    # Errors
    "GiftProofError",
    "EncodingError",
    "EmptyTreeError",
    "BatchSizeMismatch",
    "IndexOutOfRange",
    "InvalidSalt",
    "SelfCheckFailed",
    # Models
    "BatchState",
    "Commitment",
    "GiftSpec",
    "HintReveal",
    "Reveal",
    "RevealPhase",
    "VerificationResult",
]
