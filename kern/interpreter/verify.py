"""
Replay verification of a completed run.

Re-executes the plan against the original record and checks that the new
run reproduces the recorded final hash, violation count and per-step
payload hashes. Violation entries are excluded from the comparison because
they carry timestamps.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.context import RuntimeOptions
from ..core.plan import Plan
from ..invariants.bindings import InvariantBindings
from ..ledger.integrity import verify_ledger
from ..primitives.registry import PrimitiveRegistry
from .engine import Engine, step_payload_hashes
from .result import RunResult


@dataclass
class RunVerificationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


def verify_run(
    plan: Plan,
    initial_state: Dict[str, Any],
    result: RunResult,
    registry: Optional[PrimitiveRegistry] = None,
    bindings: Optional[InvariantBindings] = None,
    options: Optional[RuntimeOptions] = None,
    clock: Optional[Any] = None,
) -> RunVerificationResult:
    """
    Verify a run result by deterministic replay.

    Checks:
    - every recorded entry hash matches its payload
    - replay final hash == recorded final hash
    - replay violation count == recorded violation count
    - replay step payload hashes == recorded step payload hashes

    Args:
        plan: Plan that produced result
        initial_state: Record the run started from
        result: Recorded run result
        registry/bindings/options/clock: Same configuration as the recorded run

    Returns:
        RunVerificationResult listing every mismatch
    """
    errors: List[str] = []

    ledger_check = verify_ledger(result.ledger)
    if not ledger_check.valid:
        errors.append(f"ledger: {ledger_check.error} at entry {ledger_check.mismatch_index}")

    replay = Engine(
        plan,
        registry=registry,
        bindings=bindings,
        options=options,
        clock=clock,
    ).execute(initial_state)

    if replay.proof.final_hash != result.proof.final_hash:
        errors.append(
            f"finalHash mismatch: expected {result.proof.final_hash}, got {replay.proof.final_hash}"
        )
    if replay.proof.violations != result.proof.violations:
        errors.append(
            f"violation count mismatch: expected {result.proof.violations}, got {replay.proof.violations}"
        )

    recorded = step_payload_hashes(result)
    replayed = step_payload_hashes(replay)
    if len(recorded) != len(replayed):
        errors.append(f"step count mismatch: expected {len(recorded)}, got {len(replayed)}")
    for index, (want, got) in enumerate(zip(recorded, replayed)):
        if want != got:
            errors.append(f"step {index + 1} payload hash mismatch: expected {want}, got {got}")
            break

    return RunVerificationResult(valid=not errors, errors=errors)
