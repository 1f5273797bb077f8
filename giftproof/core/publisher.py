"""
Publisher capability: owns the private tree and salts of one committed batch.

A Publisher only exists once its commitment has been built and self-checked,
so there is no way to obtain a root that failed verification. Interior tree
levels and unrevealed salts are never exposed; the public side is the
``Commitment`` and the ``Verifier`` derived from it.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from giftproof.core.canonicalization import strip_digest
from giftproof.core.crypto import SALT_BYTES, generate_salts, hash_leaf, is_hex_salt
from giftproof.core.errors import (
    BatchSizeMismatch,
    CommitmentMismatch,
    EmptyTreeError,
    IndexOutOfRange,
    InvalidSalt,
    SelfCheckFailed,
)
from giftproof.core.merkle import MerkleTree
from giftproof.core.models import (
    DEFAULT_BATCH_SIZE,
    BatchState,
    Commitment,
    HintReveal,
    Reveal,
    format_timestamp,
)
from giftproof.core.verifier import Verifier

logger = logging.getLogger(__name__)


def _check_batch(records: Sequence[Any], salts: Sequence[str], batch_size: int) -> None:
    if not records:
        raise EmptyTreeError("Cannot commit to an empty batch")
    if len(records) != len(salts):
        raise BatchSizeMismatch(
            f"Number of records ({len(records)}) must match number of salts ({len(salts)})"
        )
    if len(records) != batch_size:
        raise BatchSizeMismatch(
            f"Batch must contain exactly {batch_size} records, got {len(records)}"
        )
    bad = [i for i, salt in enumerate(salts) if not is_hex_salt(salt)]
    if bad:
        raise InvalidSalt(
            f"Salts at indices {bad} are not lowercase hex of at least {SALT_BYTES} bytes"
        )
    if len(set(salts)) != len(salts):
        raise BatchSizeMismatch("Salts must be unique within a batch")


class Publisher:
    """The private side of a committed batch."""

    def __init__(
        self,
        commitment: Commitment,
        records: Sequence[Mapping[str, Any]],
        salts: Sequence[str],
        tree: MerkleTree,
        revealed: Optional[Iterable[int]] = None,
    ):
        self._commitment = commitment
        self._records = [copy.deepcopy(dict(r)) for r in records]
        self._salts = list(salts)
        self._tree = tree
        self._revealed: Set[int] = set()
        for index in revealed or ():
            self._check_index(index)
            self._revealed.add(index)

    @classmethod
    def commit(
        cls,
        records: Sequence[Mapping[str, Any]],
        season: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        salts: Optional[Sequence[str]] = None,
        created_at: Optional[datetime] = None,
    ) -> "Publisher":
        """
        Build and self-check a new commitment.

        Args:
            records: Gift records in committed order (index = day - 1).
            season: Season or batch identifier.
            batch_size: Fixed number of records the season commits to.
            salts: Pre-generated hex salts; fresh ones are generated when omitted.
            created_at: Commitment timestamp, defaults to now.

        Returns:
            A Publisher in the COMMITTED state.

        Raises:
            EncodingError, EmptyTreeError, BatchSizeMismatch, InvalidSalt, SelfCheckFailed:
                Nothing is produced when any of these is raised.
        """
        logger.info(f"Committing {len(records)} records for season {season}")
        if salts is None:
            salts = generate_salts(len(records))
        _check_batch(records, salts, batch_size)

        leaves = [hash_leaf(record, salt) for record, salt in zip(records, salts)]
        tree = MerkleTree(leaves)
        commitment = Commitment(
            root=tree.root_hash,
            created_at=created_at or datetime.now(timezone.utc),
            season=season,
            batch_size=batch_size,
        )

        publisher = cls(commitment, records, salts, tree)
        publisher.self_check()
        logger.info(f"Season {season} committed with root {commitment.root}")
        return publisher

    @property
    def commitment(self) -> Commitment:
        return self._commitment

    @property
    def season(self) -> str:
        return self._commitment.season

    @property
    def batch_size(self) -> int:
        return self._commitment.batch_size

    @property
    def revealed(self) -> Set[int]:
        return set(self._revealed)

    @property
    def state(self) -> BatchState:
        return BatchState.from_revealed(len(self._revealed), self.batch_size)

    def verifier(self) -> Verifier:
        """A verifier holding nothing but the public commitment."""
        return Verifier(self._commitment)

    def self_check(self) -> None:
        """
        Replay verification for every index against the just-built tree.

        Raises:
            SelfCheckFailed: If any index fails, naming every failing index.
        """
        verifier = self.verifier()
        failed = []
        for index in range(self.batch_size):
            result = verifier.verify(
                self._records[index],
                self._salts[index],
                self._tree.get_inclusion_proof(index),
                index,
                root=self._tree.root_hash,
                leaf=self._tree.get_leaf_hash(index),
            )
            if not result.valid:
                failed.append(index)
        if failed:
            logger.error(f"Self-check failed for season {self.season}: indices {failed}")
            raise SelfCheckFailed(failed)
        logger.debug(f"Self-check passed for all {self.batch_size} indices")

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or not 0 <= index < self.batch_size:
            raise IndexOutOfRange(f"Index {index} outside batch of {self.batch_size}")

    def _build_reveal(self, index: int) -> Reveal:
        return Reveal(
            index=index,
            day=index + 1,
            record=copy.deepcopy(strip_digest(self._records[index])),
            salt=self._salts[index],
            leaf=self._tree.get_leaf_hash(index),
            proof=self._tree.get_inclusion_proof(index),
            root=self._tree.root_hash,
        )

    def reveal(self, index: int) -> Reveal:
        """Disclose the record at ``index`` and record it as revealed."""
        self._check_index(index)
        reveal = self._build_reveal(index)
        if index not in self._revealed:
            self._revealed.add(index)
            logger.info(f"Revealed index {index} of season {self.season} ({self.state.value})")
        return reveal

    def reveal_day(self, day: int) -> Reveal:
        return self.reveal(day - 1)

    def prepare_reveals(self) -> List[Reveal]:
        """
        Pre-generate every reveal bundle without marking any as disclosed.

        The result carries unrevealed salts and belongs with the private backup.
        """
        return [self._build_reveal(index) for index in range(self.batch_size)]

    def peek_hint(self, day: int) -> HintReveal:
        """The teaser fields of a day's record, without salt or proof."""
        index = day - 1
        self._check_index(index)
        record = self._records[index]
        return HintReveal(
            day=day,
            hint=record.get("hint") or "Mystery Gift",
            sub_hint=record.get("sub_hint") or "Full details revealed tomorrow",
        )

    def to_private_dict(self) -> Dict[str, Any]:
        """Everything needed to restore this publisher. Keep it offline until the season ends."""
        return {
            "season": self.season,
            "batch_size": self.batch_size,
            "records": copy.deepcopy(self._records),
            "salts": list(self._salts),
            "leaves": self._tree.leaves,
            "root": self._tree.root_hash,
            "created_at_utc": format_timestamp(self._commitment.created_at),
            "revealed": sorted(self._revealed),
        }

    @classmethod
    def from_private_dict(cls, data: Mapping[str, Any]) -> "Publisher":
        """
        Restore a publisher from its private backup.

        The tree is rebuilt from records and salts; the stored root and leaves
        are only compared against it, never trusted.

        Raises:
            CommitmentMismatch: If the rebuilt tree disagrees with the backup.
        """
        records = data["records"]
        salts = data["salts"]
        batch_size = data.get("batch_size", len(records))
        _check_batch(records, salts, batch_size)

        leaves = [hash_leaf(record, salt) for record, salt in zip(records, salts)]
        if "leaves" in data and list(data["leaves"]) != leaves:
            raise CommitmentMismatch("Stored leaves do not match records and salts")
        tree = MerkleTree(leaves)
        if data.get("root") and data["root"] != tree.root_hash:
            raise CommitmentMismatch(
                f"Stored root {data['root']} does not match rebuilt root {tree.root_hash}"
            )

        commitment = Commitment(
            root=tree.root_hash,
            created_at=data["created_at_utc"],
            season=data["season"],
            batch_size=batch_size,
        )
        return cls(commitment, records, salts, tree, revealed=data.get("revealed"))
