"""
Canonical serialization for deterministic hashing.

Ledger payloads and the final record are hashed through these functions, so
identical content always produces identical bytes regardless of key order.
"""

import hashlib
import json
from typing import Any


def canonicalize(obj: Any) -> Any:
    """
    Rebuild a JSON-shaped value in canonical form.

    Rules:
    - mapping keys sorted
    - tuples become lists, sequence order preserved
    - containers are rebuilt, so the result shares no mutable parts with obj
    """
    if isinstance(obj, dict):
        return {k: canonicalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    return obj


def canonical_json_bytes(obj: Any) -> bytes:
    """
    UTF-8 bytes of the compact, key-sorted JSON form of obj.

    NaN renders as the bare token ``NaN`` so flagged outputs stay hashable;
    values JSON cannot represent fall back to str().
    """
    s = json.dumps(
        canonicalize(obj),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return s.encode("utf-8")


def canonical_json_str(obj: Any) -> str:
    return canonical_json_bytes(obj).decode("utf-8")


def content_hash(obj: Any) -> str:
    """
    SHA-256 of the canonical JSON form of obj.

    Returns:
        Hex string (64 characters)
    """
    return hashlib.sha256(canonical_json_bytes(obj)).hexdigest()
