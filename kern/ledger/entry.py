"""
Ledger entry model.

Each entry stamps one step invocation (or one violation) with the SHA-256 of
its canonical payload. The hash covers the payload only; id, tick and
timestamp are bookkeeping.
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict

STEP_PAYLOAD_KEYS = ("input", "output")
VIOLATION_OPERATION = "VIOLATION_RECORDED"


@dataclass(frozen=True)
class LedgerEntry:
    """
    Immutable ledger entry.

    Fields:
        id: Unique entry identifier (uuid4)
        tick: Tick of the step attempt that produced the entry
        timestamp: ISO-8601 append time
        operation: Primitive name, or VIOLATION_RECORDED
        payload: Canonical snapshot of {input, output} or the violation record
        hash: SHA-256 hex of the canonical payload
    """
    id: str
    tick: int
    timestamp: str
    operation: str
    payload: Dict[str, Any]
    hash: str

    @property
    def is_violation(self) -> bool:
        return self.operation == VIOLATION_OPERATION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tick": self.tick,
            "timestamp": self.timestamp,
            "operation": self.operation,
            "payload": copy.deepcopy(self.payload),
            "hash": self.hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerEntry":
        return cls(
            id=data["id"],
            tick=data.get("tick", 0),
            timestamp=data.get("timestamp", ""),
            operation=data["operation"],
            payload=data.get("payload", {}),
            hash=data["hash"],
        )
