"""
Deterministic JSON canonicalization for gift records.

Object keys are sorted by code point at every nesting level, no whitespace is
emitted, strings are UTF-8 without ASCII escaping and NaN/Infinity are
rejected. A top-level ``hash`` field is never part of the encoding: it is
attached to stored records after the tree is built.
"""

import json
import math
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Mapping, Set

from pydantic import BaseModel

from giftproof.core.errors import EncodingError

# Field attached to records after tree construction; excluded from hashing.
DIGEST_FIELD = "hash"

# Floats in this magnitude range are written without an exponent.
JS_MIN_PLAIN = 1e-6
JS_MAX_PLAIN = 1e21


def _render_number(value: Any) -> str:
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise EncodingError(f"Non-finite number: {value}")
        if value == value.to_integral_value():
            return str(int(value))
        return format(value.normalize(), "f")
    if math.isnan(value) or math.isinf(value):
        raise EncodingError(f"Non-finite number: {value}")
    return _render_float(value)


def _render_float(value: float) -> str:
    """Shortest round-trip digits laid out like ECMAScript Number::toString."""
    if value == 0:
        return "0"
    magnitude = abs(value)
    if JS_MIN_PLAIN <= magnitude < JS_MAX_PLAIN:
        if value.is_integer():
            return str(int(value))
        return format(Decimal(repr(value)), "f")
    mantissa, _, exponent = repr(value).partition("e")
    if mantissa.endswith(".0"):
        mantissa = mantissa[:-2]
    exponent = int(exponent)
    return f"{mantissa}e{'+' if exponent > 0 else '-'}{abs(exponent)}"


def _canonicalize_value(value: Any, seen: Set[int]) -> str:
    """Recursively convert a Python value to its canonical JSON string representation."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return _render_number(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, BaseModel):
        return _canonicalize_value(value.model_dump(mode="json"), seen)
    if isinstance(value, (list, tuple)):
        with _visiting(value, seen):
            return "[" + ",".join(_canonicalize_value(item, seen) for item in value) + "]"
    if isinstance(value, Mapping):
        with _visiting(value, seen):
            return _canonicalize_object(value, seen)
    if hasattr(value, "isoformat"):
        return json.dumps(value.isoformat())

    raise EncodingError(f"Unsupported type for canonicalization: {type(value).__name__}")


def _canonicalize_object(obj: Mapping, seen: Set[int]) -> str:
    items = []
    for key in obj:
        if not isinstance(key, str):
            raise EncodingError(f"Object keys must be strings, got {type(key).__name__}")
    for key in sorted(obj):
        items.append(f"{json.dumps(key, ensure_ascii=False)}:{_canonicalize_value(obj[key], seen)}")
    return "{" + ",".join(items) + "}"


@contextmanager
def _visiting(container: Any, seen: Set[int]):
    """Track containers on the current path so cycles fail instead of recursing forever."""
    key = id(container)
    if key in seen:
        raise EncodingError("Circular reference detected in record")
    seen.add(key)
    try:
        yield
    finally:
        seen.discard(key)


def strip_digest(record: Mapping) -> Dict[str, Any]:
    """Return a shallow copy of ``record`` without its top-level digest field."""
    if isinstance(record, BaseModel):
        record = record.model_dump(mode="json", exclude_unset=True)
    if not isinstance(record, Mapping):
        raise EncodingError(f"Record must be a mapping, got {type(record).__name__}")
    return {k: v for k, v in record.items() if k != DIGEST_FIELD}


def canonical_json_dumps(record: Any) -> str:
    """
    Convert a record to its canonical JSON text.

    Args:
        record: A mapping (or pydantic model) of field names to JSON-compatible values.

    Returns:
        The canonical JSON string with the digest field removed.

    Raises:
        EncodingError: If the record contains unsupported values or cycles.
    """
    try:
        return _canonicalize_value(strip_digest(record), set())
    except RecursionError as e:
        raise EncodingError("Record nesting too deep to canonicalize") from e


def canonicalize(record: Any) -> bytes:
    """Canonical JSON of ``record`` as UTF-8 bytes."""
    return canonical_json_dumps(record).encode("utf-8")


def verify_canonical_equivalence(a: Any, b: Any) -> bool:
    """
    Check if two records have equivalent canonical encodings.

    Unencodable input compares unequal rather than raising.
    """
    try:
        return canonicalize(a) == canonicalize(b)
    except EncodingError:
        return False
