"""Published artifacts and record models for the gift commitment."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
)
from typing_extensions import Annotated

# Type aliases
HexDigest = Annotated[str, StringConstraints(pattern=r'^[a-f0-9]{64}$', to_lower=True)]
HexSalt = Annotated[str, StringConstraints(pattern=r'^[a-f0-9]{64,}$', to_lower=True)]

DEFAULT_BATCH_SIZE = 24
DEFAULT_DISTRIBUTION_SOURCE = "treasury_daily_fees"
CANONICAL_DESCRIPTION = "JSON with keys sorted at every level, no whitespace, UTF-8; salt hex appended"
COMMITMENT_NOTE = "Daily reveal with Merkle proofs. Each day publishes gift + salt + proof."


def _ensure_utc(value: Any) -> datetime:
    if isinstance(value, str):
        value = date_parser.isoparse(value)
    if not isinstance(value, datetime):
        raise ValueError(f"Expected an ISO-8601 timestamp, got {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a UTC timestamp the way it is published: ISO-8601 with a Z suffix."""
    return _ensure_utc(value).isoformat().replace('+00:00', 'Z')


class BatchState(str, Enum):
    """Lifecycle of a committed batch."""
    UNINITIALIZED = "uninitialized"
    COMMITTED = "committed"
    PARTIALLY_REVEALED = "partially_revealed"
    FULLY_REVEALED = "fully_revealed"

    @classmethod
    def from_revealed(cls, revealed_count: int, batch_size: int) -> "BatchState":
        """State of a committed batch with ``revealed_count`` indices disclosed."""
        if not revealed_count:
            return cls.COMMITTED
        if revealed_count >= batch_size:
            return cls.FULLY_REVEALED
        return cls.PARTIALLY_REVEALED


class RevealPhase(str, Enum):
    """What may be disclosed about a single day right now."""
    LOCKED = "locked"
    HINT = "hint"
    REVEALED = "revealed"


class GiftSpec(BaseModel):
    """One day's gift. Unknown fields are kept so the record stays opaque to hashing."""
    model_config = ConfigDict(extra="allow")

    day: int = Field(
        ...,
        ge=1,
        description="Day of the season on which the gift is disclosed (1-based)."
    )
    type: str = Field(
        ...,
        min_length=1,
        description="Gift mechanism, e.g. 'proportional_holders'."
    )
    params: Dict[str, Any] = Field(
        ...,
        description="Mechanism-specific parameters."
    )
    distribution_source: str = Field(
        DEFAULT_DISTRIBUTION_SOURCE,
        description="Where the distributed funds come from."
    )
    notes: Optional[str] = Field(
        None,
        description="Free-form notes."
    )
    hint: Optional[str] = Field(
        None,
        description="Teaser shown on the day before the full reveal."
    )
    sub_hint: Optional[str] = Field(
        None,
        description="Secondary teaser shown with the hint."
    )

    def to_record(self) -> Dict[str, Any]:
        """The exact mapping that is hashed: only fields present in the source data."""
        record = self.model_dump(mode="json", exclude_unset=True)
        for key, value in (self.model_extra or {}).items():
            record.setdefault(key, value)
        return record


class Commitment(BaseModel):
    """The only artifact published before any reveal."""
    root: HexDigest = Field(
        ...,
        description="Merkle root over all salted gift leaves."
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the commitment was created (UTC)."
    )
    season: str = Field(
        ...,
        min_length=1,
        description="Season or batch identifier."
    )
    batch_size: int = Field(
        DEFAULT_BATCH_SIZE,
        ge=1,
        description="Number of committed records."
    )
    hash_algo: str = Field(
        "sha256",
        description="Hash function used for leaves and internal nodes."
    )
    canonical: str = Field(
        CANONICAL_DESCRIPTION,
        description="How records are serialized before hashing."
    )
    note: str = Field(
        COMMITMENT_NOTE,
        description="Human-readable note for the announcement."
    )

    @field_validator('created_at', mode='before')
    @classmethod
    def ensure_utc(cls, v: Any) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return _ensure_utc(v)

    def to_public_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["created_at"] = format_timestamp(self.created_at)
        return data


class Reveal(BaseModel):
    """Public disclosure of one committed record."""
    index: int = Field(
        ...,
        ge=0,
        description="Committed position of the record (day - 1)."
    )
    day: int = Field(
        ...,
        ge=1,
        description="Day of the season the record belongs to."
    )
    record: Dict[str, Any] = Field(
        ...,
        description="The committed record, without any digest field."
    )
    salt: HexSalt = Field(
        ...,
        description="Hex salt hashed together with the record."
    )
    leaf: HexDigest = Field(
        ...,
        description="Leaf digest of record and salt."
    )
    proof: List[HexDigest] = Field(
        ...,
        description="Sibling hashes from the leaf level up to just below the root."
    )
    root: HexDigest = Field(
        ...,
        description="Root the proof folds into. Must be checked against the commitment."
    )


class HintReveal(BaseModel):
    """Partial disclosure served on a gift's own day, before the full reveal."""
    day: int
    hint: str = "Mystery Gift"
    sub_hint: str = "Full details revealed tomorrow"
    hint_only: bool = True


class VerificationResult(BaseModel):
    """Outcome of checking one reveal; failures are data, not exceptions."""
    valid: bool
    leaf_matches: bool
    proof_valid: bool
    root_matches: bool
    failed_checks: List[str] = Field(default_factory=list)
    details: str = ""

    @classmethod
    def from_checks(cls, leaf_matches: bool, proof_valid: bool, root_matches: bool,
                    problems: Optional[List[str]] = None) -> "VerificationResult":
        failed = []
        if not leaf_matches:
            failed.append("leaf")
        if not proof_valid:
            failed.append("proof")
        if not root_matches:
            failed.append("root")

        messages = list(problems or [])
        if not leaf_matches:
            messages.append("Leaf hash does not match gift+salt.")
        if not proof_valid:
            messages.append("Merkle proof is invalid.")
        if not root_matches:
            messages.append("Root does not match commitment.")

        valid = not failed and not problems
        details = " ".join(messages) if messages else "All checks passed."
        return cls(
            valid=valid,
            leaf_matches=leaf_matches,
            proof_valid=proof_valid,
            root_matches=root_matches,
            failed_checks=failed,
            details=details,
        )
