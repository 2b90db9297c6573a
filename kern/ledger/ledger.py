"""
Append-only audit ledger.

Guarantees:
- Entries are kept in strict append (execution) order
- No updates, no deletes, no compaction
- Payloads are snapshotted at append time, so later record mutations never
  change an entry or its hash
"""

from typing import Any, Dict, Iterator, List, Optional

from ..core.canonical import canonicalize
from ..core.clock import SystemClock
from ..core.ids import new_id
from .entry import VIOLATION_OPERATION, LedgerEntry
from .integrity import hash_payload


class AuditLedger:
    """
    In-memory ledger owned by one run.

    Usage:
        ledger = AuditLedger(clock)
        ledger.append_step(tick, "STATE_MUTATOR", inputs, output)
        ledger.append_violation(tick, violation.to_dict())
    """

    def __init__(self, clock: Optional[Any] = None) -> None:
        self._clock = clock or SystemClock()
        self._entries: List[LedgerEntry] = []

    def append(self, tick: int, operation: str, payload: Dict[str, Any]) -> LedgerEntry:
        """
        Stamp and append one entry.

        Args:
            tick: Tick of the current step attempt
            operation: Primitive name or VIOLATION_RECORDED
            payload: JSON-compatible payload (copied)

        Returns:
            The appended entry
        """
        snapshot = canonicalize(payload)
        entry = LedgerEntry(
            id=new_id(),
            tick=tick,
            timestamp=self._clock.timestamp(),
            operation=operation,
            payload=snapshot,
            hash=hash_payload(snapshot),
        )
        self._entries.append(entry)
        return entry

    def append_step(
        self, tick: int, operation: str, inputs: Dict[str, Any], output: Dict[str, Any]
    ) -> LedgerEntry:
        return self.append(tick, operation, {"input": inputs, "output": output})

    def append_violation(self, tick: int, violation: Dict[str, Any]) -> LedgerEntry:
        return self.append(tick, VIOLATION_OPERATION, violation)

    @property
    def entries(self) -> List[LedgerEntry]:
        return list(self._entries)

    def step_entries(self) -> List[LedgerEntry]:
        return [e for e in self._entries if not e.is_violation]

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._entries]

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
