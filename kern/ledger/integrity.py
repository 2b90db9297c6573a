"""
Ledger hash stamping and verification.

Every entry carries the SHA-256 of its canonical payload, so any edit to a
stored payload is detectable by recomputation. Verification also checks
that ticks never go backwards, i.e. that entries are still in execution
order.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

from ..core.canonical import content_hash
from ..core.errors import IntegrityError
from .entry import LedgerEntry


def hash_payload(payload: Any) -> str:
    """
    Compute the entry hash of a payload.

    Args:
        payload: JSON-compatible payload (key order is irrelevant)

    Returns:
        SHA-256 hash as hex string
    """
    return content_hash(payload)


@dataclass
class LedgerVerificationResult:
    valid: bool
    checked: int = 0
    error: Optional[str] = None
    mismatch_index: Optional[int] = None
    expected: Optional[str] = None
    actual: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "checked": self.checked,
            "error": self.error,
            "mismatchIndex": self.mismatch_index,
            "expected": self.expected,
            "actual": self.actual,
        }


def verify_ledger(
    entries: Iterable[Union[LedgerEntry, Dict[str, Any]]],
    strict: bool = False,
) -> LedgerVerificationResult:
    """
    Recompute every entry hash and check execution order.

    Checks:
    - hash == SHA-256(canonical(payload)) for each entry
    - tick is non-decreasing across entries

    Args:
        entries: LedgerEntry objects or their dict form (as loaded from disk)
        strict: Raise IntegrityError instead of returning an invalid result

    Returns:
        LedgerVerificationResult (first failure only)
    """
    result = _verify(entries)
    if strict and not result.valid:
        raise IntegrityError(
            f"Ledger integrity check failed at entry {result.mismatch_index}: {result.error}"
        )
    return result


def _verify(entries: Iterable[Union[LedgerEntry, Dict[str, Any]]]) -> LedgerVerificationResult:
    checked = 0
    last_tick = 0

    for index, raw in enumerate(entries):
        try:
            entry = raw if isinstance(raw, LedgerEntry) else LedgerEntry.from_dict(raw)
        except (KeyError, TypeError, AttributeError) as ex:
            return LedgerVerificationResult(
                valid=False,
                checked=checked,
                error=f"malformed entry: {ex}",
                mismatch_index=index,
            )

        computed = hash_payload(entry.payload)
        if entry.hash != computed:
            return LedgerVerificationResult(
                valid=False,
                checked=checked,
                error="payload hash mismatch",
                mismatch_index=index,
                expected=computed,
                actual=entry.hash,
            )

        if entry.tick < last_tick:
            return LedgerVerificationResult(
                valid=False,
                checked=checked,
                error="tick out of order",
                mismatch_index=index,
                expected=f">= {last_tick}",
                actual=str(entry.tick),
            )

        last_tick = entry.tick
        checked += 1

    return LedgerVerificationResult(valid=True, checked=checked)
