"""
Step interpreter.

- engine: Engine.execute runs a plan against a record
- context: per-run owned state
- result: RunResult and RunProof
- verify: replay verification of a recorded run
"""

from .context import RunContext
from .engine import Engine, execute_plan, step_payload_hashes
from .result import OUTCOME_CLEAN, OUTCOME_VIOLATIONS, RunProof, RunResult
from .verify import RunVerificationResult, verify_run

__all__ = [
    "RunContext",
    "Engine",
    "execute_plan",
    "step_payload_hashes",
    "OUTCOME_CLEAN",
    "OUTCOME_VIOLATIONS",
    "RunProof",
    "RunResult",
    "RunVerificationResult",
    "verify_run",
]
