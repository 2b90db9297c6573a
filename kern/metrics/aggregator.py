"""
Per-run metrics aggregation.

Counts primitive invocations, violations (total and grouped by type label)
and passed bound checks, then renders the snapshot document persisted as
metrics_snapshot.json.
"""

from typing import Any, Dict, Optional

from ..invariants.violations import Violation

ENGINE_VERSION = "3.1.0-hardened"

OUTCOME_SUCCESS = "success"
OUTCOME_VIOLATION = "violation_detected"


class MetricsAggregator:
    """Counters for a single run. Created fresh by every Engine.execute."""

    def __init__(self) -> None:
        self.primitive_counts: Dict[str, int] = {}
        self.violations = 0
        self.violations_by_type: Dict[str, int] = {}
        self.checks_passed = 0

    def record_invocation(self, primitive: str) -> None:
        self.primitive_counts[primitive] = self.primitive_counts.get(primitive, 0) + 1

    def record_violation(self, violation: Violation) -> None:
        self.violations += 1
        label = violation.label
        self.violations_by_type[label] = self.violations_by_type.get(label, 0) + 1

    def record_check_passed(self) -> None:
        self.checks_passed += 1

    @property
    def outcome(self) -> str:
        return OUTCOME_VIOLATION if self.violations > 0 else OUTCOME_SUCCESS

    def snapshot(
        self,
        run_id: str,
        timestamp: str,
        duration_ms: float,
        total_ticks: int,
        halted_early: bool,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Render the metrics snapshot document.

        Args:
            run_id: Run identifier ("run_<epoch ms>")
            timestamp: ISO-8601 completion time
            duration_ms: Wall-clock run duration in milliseconds
            total_ticks: Step attempts made
            halted_early: Whether halt-on-violation stopped the run
            options: RuntimeOptions.to_dict()

        Returns:
            {"snapshot": {...}}
        """
        return {
            "snapshot": {
                "runId": run_id,
                "timestamp": timestamp,
                "engineVersion": ENGINE_VERSION,
                "timing": {"durationMs": duration_ms},
                "primitives": dict(self.primitive_counts),
                "invariants": {
                    "violations": self.violations,
                    "violationsByType": dict(self.violations_by_type),
                    "checksPassed": self.checks_passed,
                },
                "execution": {
                    "totalTicks": total_ticks,
                    "haltedEarly": halted_early,
                    "options": dict(options or {}),
                },
                "outcome": self.outcome,
            }
        }
