"""
Hashing and salt primitives shared by the publisher and every verifier.

All digests are SHA-256 rendered as lowercase hex. Leaves and internal nodes
hash UTF-8 text: the canonical record followed by its hex salt, or the hex of
the left child followed by the hex of the right child.
"""

import hashlib
import secrets
from typing import Any, List

from giftproof.core.canonicalization import canonical_json_dumps

HASH_ALGORITHM = "sha256"
DIGEST_HEX_LENGTH = 64
SALT_BYTES = 32


def hash_sha256(data: bytes) -> str:
    """Compute SHA-256 hash of data and return as hex string."""
    return hashlib.sha256(data).hexdigest()


def hash_text(text: str) -> str:
    """SHA-256 of the UTF-8 encoding of ``text``."""
    return hash_sha256(text.encode("utf-8"))


def hash_leaf(record: Any, salt: str) -> str:
    """
    Compute the leaf digest for a record and its salt.

    Args:
        record: The gift record. A top-level ``hash`` field is ignored.
        salt: Hex-encoded salt disclosed alongside the record.

    Returns:
        The hex leaf digest.
    """
    return hash_text(canonical_json_dumps(record) + salt)


def hash_pair(left: str, right: str) -> str:
    """Hash two child digests into their parent, left operand first."""
    return hash_text(left + right)


def generate_salt(num_bytes: int = SALT_BYTES) -> str:
    """Generate a cryptographically secure random salt as hex."""
    if num_bytes < SALT_BYTES:
        raise ValueError(f"Salts must carry at least {SALT_BYTES} bytes of entropy")
    return secrets.token_bytes(num_bytes).hex()


def generate_salts(count: int, num_bytes: int = SALT_BYTES) -> List[str]:
    """Generate ``count`` independent salts, guaranteed pairwise distinct."""
    salts: List[str] = []
    seen = set()
    while len(salts) < count:
        salt = generate_salt(num_bytes)
        if salt in seen:
            continue
        seen.add(salt)
        salts.append(salt)
    return salts


def _is_lower_hex(value: str) -> bool:
    return all(c in "0123456789abcdef" for c in value)


def is_hex_digest(value: Any) -> bool:
    """Check if value is a lowercase SHA-256 hex digest."""
    if not isinstance(value, str) or len(value) != DIGEST_HEX_LENGTH:
        return False
    return _is_lower_hex(value)


def is_hex_salt(value: Any) -> bool:
    """Check if value is a lowercase hex salt of at least SALT_BYTES bytes."""
    if not isinstance(value, str) or len(value) < SALT_BYTES * 2 or len(value) % 2:
        return False
    return _is_lower_hex(value)
