"""
Exception taxonomy for the gift commitment scheme.

Construction-time errors abort a whole commitment. Verification never raises;
its outcome is returned as a ``VerificationResult``.
"""


class GiftProofError(Exception):
    """Base class for all errors raised by giftproof."""


class EncodingError(GiftProofError, ValueError):
    """Raised when a record cannot be canonically encoded."""


class EmptyTreeError(GiftProofError, ValueError):
    """Raised when a tree is requested over zero leaves."""


class BatchSizeMismatch(GiftProofError, ValueError):
    """Raised when record, salt and expected batch counts disagree."""


class IndexOutOfRange(GiftProofError, IndexError):
    """Raised when a proof or reveal is requested for an index outside the batch."""


class GiftListError(GiftProofError, ValueError):
    """Raised when a gift list file is malformed."""


class SelfCheckFailed(GiftProofError):
    """Raised when a freshly built tree does not verify every one of its leaves."""

    def __init__(self, failed_indices):
        self.failed_indices = list(failed_indices)
        super().__init__(
            f"Self-check failed for indices {self.failed_indices}; commitment rejected"
        )


class CommitmentMismatch(GiftProofError):
    """Raised when stored private data does not reproduce the published root."""


class CommitmentExists(GiftProofError):
    """Raised when a season already has a published commitment."""


class CommitmentNotFound(GiftProofError, LookupError):
    """Raised when no commitment exists for a season."""


class InvalidSalt(GiftProofError, ValueError):
    """Raised when a salt is not lowercase hex carrying at least 32 bytes."""
