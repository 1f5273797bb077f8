"""
Verification capability constructible from public data alone.

A reveal is valid only if all three independent checks pass: the leaf
recomputes from record and salt, the proof folds the leaf into the claimed
root, and the claimed root equals the published commitment.
"""

import logging
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from giftproof.core.crypto import hash_leaf
from giftproof.core.errors import EncodingError
from giftproof.core.merkle import tree_height, verify_inclusion_proof
from giftproof.core.models import Commitment, Reveal, VerificationResult

logger = logging.getLogger(__name__)


def verify_record(
    record: Mapping[str, Any],
    salt: str,
    proof: Sequence[str],
    root: str,
    index: int,
    expected_root: str,
    leaf: Optional[str] = None,
) -> VerificationResult:
    """
    Check a disclosed record against a published root.

    Args:
        record: The disclosed record.
        salt: The disclosed hex salt.
        proof: The disclosed audit path.
        root: The root the reveal claims.
        index: The committed position of the record.
        expected_root: The root from the previously published commitment.
        leaf: The disclosed leaf; when omitted the recomputed leaf is used and
            only the proof and root checks can fail.

    Returns:
        A VerificationResult naming every check that failed.
    """
    problems = []
    try:
        computed_leaf = hash_leaf(record, salt)
    except (EncodingError, TypeError) as e:
        computed_leaf = None
        problems.append(f"Record could not be encoded: {e}.")

    proof_is_list = isinstance(proof, (list, tuple))
    if not proof_is_list:
        problems.append(f"Proof must be a list of hashes, got {type(proof).__name__}.")

    claimed_leaf = leaf if leaf is not None else computed_leaf
    leaf_matches = computed_leaf is not None and computed_leaf == claimed_leaf
    proof_valid = proof_is_list and claimed_leaf is not None and verify_inclusion_proof(
        claimed_leaf, proof, root, index
    )
    root_matches = root == expected_root

    result = VerificationResult.from_checks(leaf_matches, proof_valid, root_matches, problems)
    if not result.valid:
        logger.info(f"Verification failed for index {index}: {result.failed_checks}")
    return result


class Verifier:
    """Checks reveals against one published commitment."""

    def __init__(self, commitment: Commitment):
        self.commitment = commitment
        self.expected_proof_length = tree_height(commitment.batch_size)

    @property
    def root(self) -> str:
        return self.commitment.root

    def verify(
        self,
        record: Mapping[str, Any],
        salt: str,
        proof: Sequence[str],
        index: int,
        root: Optional[str] = None,
        leaf: Optional[str] = None,
    ) -> VerificationResult:
        """
        Verify a disclosed record at ``index``.

        ``root`` defaults to the commitment root; pass the root carried by a
        reveal to have it checked rather than trusted.
        """
        problems = []
        if not isinstance(index, int) or not 0 <= index < self.commitment.batch_size:
            problems.append(
                f"Index {index} outside committed batch of {self.commitment.batch_size}."
            )
        if not isinstance(proof, (list, tuple)):
            problems.append(f"Proof must be a list of hashes, got {type(proof).__name__}.")
            proof = ()
        elif len(proof) != self.expected_proof_length:
            problems.append(
                f"Proof has {len(proof)} hashes, expected {self.expected_proof_length}."
            )

        result = verify_record(
            record,
            salt,
            proof,
            root if root is not None else self.commitment.root,
            index,
            self.commitment.root,
            leaf=leaf,
        )
        if problems:
            return VerificationResult.from_checks(
                result.leaf_matches,
                False,
                result.root_matches,
                problems,
            )
        return result

    def verify_reveal(self, reveal: Union[Reveal, Mapping[str, Any]]) -> VerificationResult:
        """Verify a reveal bundle; malformed bundles fail every check."""
        if not isinstance(reveal, Reveal):
            try:
                reveal = Reveal.model_validate(reveal)
            except ValidationError as e:
                return VerificationResult.from_checks(
                    False, False, False,
                    [f"Incomplete reveal data: {e.error_count()} invalid field(s)."],
                )
        result = self.verify(
            reveal.record,
            reveal.salt,
            reveal.proof,
            reveal.index,
            root=reveal.root,
            leaf=reveal.leaf,
        )
        if reveal.day != reveal.index + 1:
            return VerificationResult.from_checks(
                result.leaf_matches,
                False,
                result.root_matches,
                [f"Day {reveal.day} is not committed at index {reveal.index}."],
            )
        return result
