"""
Hash-stamped audit ledger.

- ledger: append-only in-memory ledger owned by one run
- integrity: payload hashing and ledger verification
- artifacts: on-disk ledger, violation trail and metrics documents
"""

from .artifacts import ArtifactStore, load_ledger
from .entry import VIOLATION_OPERATION, LedgerEntry
from .integrity import LedgerVerificationResult, hash_payload, verify_ledger
from .ledger import AuditLedger

__all__ = [
    "ArtifactStore",
    "load_ledger",
    "VIOLATION_OPERATION",
    "LedgerEntry",
    "LedgerVerificationResult",
    "hash_payload",
    "verify_ledger",
    "AuditLedger",
]
