"""
Per-run execution context.

One RunContext is created by every Engine.execute call and threaded through
the step loop. It owns the record, the tick counter, the ledger, the
violation trail and the metrics counters, so separate runs never share
state.
"""

import copy
import logging
from typing import Any, Dict, List

from ..core.context import EngineContext, RuntimeOptions
from ..invariants.violations import Violation, sample_data
from ..ledger.ledger import AuditLedger
from ..metrics.aggregator import MetricsAggregator


class RunContext:
    """
    Mutable state of a single run.

    Fields:
        run_id: Run identifier used as the log trace id
        state: The record, exclusively owned by this run
        tick: 1-based number of the current step attempt
        ledger: Append-only audit ledger
        violations: Violation trail in creation order
        metrics: Counters for the snapshot
        options: Execution policy
        clock: Time source for timestamps
        logger: LoggerAdapter carrying the run id
        halted: Set when halt-on-violation stopped the run
    """

    def __init__(
        self,
        run_id: str,
        state: Dict[str, Any],
        options: RuntimeOptions,
        clock: Any,
        logger: logging.LoggerAdapter,
    ) -> None:
        self.run_id = run_id
        self.state = state
        self.tick = 0
        self.ledger = AuditLedger(clock)
        self.violations: List[Violation] = []
        self.metrics = MetricsAggregator()
        self.options = options
        self.clock = clock
        self.logger = logger
        self.halted = False

    def engine_context(self) -> EngineContext:
        """The record-and-clock view handed to primitives."""
        return EngineContext(self.state, self.clock)

    def record_violation(
        self,
        message: str,
        primitive: str,
        inputs: Any,
        output: Any = None,
    ) -> Violation:
        """
        Create a violation for the current tick and append it everywhere.

        The violation goes to the trail, the metrics counters and the ledger
        (as a VIOLATION_RECORDED entry).
        """
        violation = Violation(
            tick=self.tick,
            primitive=primitive,
            message=message,
            input_sample=copy.deepcopy(sample_data(inputs)),
            output_sample=copy.deepcopy(sample_data(output)),
            timestamp=self.clock.timestamp(),
        )
        self.violations.append(violation)
        self.metrics.record_violation(violation)
        self.ledger.append_violation(self.tick, violation.to_dict())
        self.logger.warning("Tick %d: %s (%s)", self.tick, message, primitive)
        return violation
