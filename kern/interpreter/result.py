"""
Run result and run proof.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..invariants.violations import Violation
from ..ledger.entry import LedgerEntry

OUTCOME_CLEAN = "clean_execution"
OUTCOME_VIOLATIONS = "violations_detected"


@dataclass(frozen=True)
class RunProof:
    """
    Summary certifying a completed run.

    Fields:
        ticks: Step attempts made
        final_hash: Content hash of the final record
        ledger_entries: Ledger length (steps plus violations)
        violations: Violation count
        outcome: clean_execution or violations_detected
    """
    ticks: int
    final_hash: str
    ledger_entries: int
    violations: int

    @property
    def outcome(self) -> str:
        return OUTCOME_VIOLATIONS if self.violations > 0 else OUTCOME_CLEAN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticks": self.ticks,
            "finalHash": self.final_hash,
            "ledgerEntries": self.ledger_entries,
            "violations": self.violations,
            "outcome": self.outcome,
        }


@dataclass(frozen=True)
class RunResult:
    """
    Everything a run produces.

    Fields:
        state: Final record
        ledger: Ledger entries in append order
        audit_trail: Violations in creation order
        metrics: Metrics snapshot document
        proof: Run proof
    """
    state: Dict[str, Any]
    ledger: List[LedgerEntry]
    audit_trail: List[Violation]
    metrics: Dict[str, Any]
    proof: RunProof
    halted_early: bool = False
    run_id: str = field(default="")

    def step_entries(self) -> List[LedgerEntry]:
        return [e for e in self.ledger if not e.is_violation]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "ledger": [e.to_dict() for e in self.ledger],
            "auditTrail": [v.to_dict() for v in self.audit_trail],
            "metrics": self.metrics,
            "proof": self.proof.to_dict(),
        }
