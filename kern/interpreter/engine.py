"""
Step interpreter.

Executes a Plan against a deep copy of the caller's record, one step at a
time, in plan order. Expected failures inside a step never escape: they
become violation records in the audit trail and the ledger. The only early
termination is the halt-on-violation policy, checked once per step boundary.
"""

import copy
from typing import Any, Dict, List, Optional

from ..core.canonical import content_hash
from ..core.clock import SystemClock
from ..core.context import LogLevel, RuntimeOptions
from ..core.errors import PathError
from ..core.paths import MISSING, KeyPath
from ..core.plan import Plan, Step
from ..invariants.bindings import CheckRegistry, InvariantBindings, parse_bindings
from ..invariants.structural import structural_violations, synthetic_violation
from ..logging_config import get_logger
from ..primitives.output import PrimitiveOutput
from ..primitives.registry import PrimitiveRegistry
from .context import RunContext
from .result import RunProof, RunResult


class Engine:
    """
    Deterministic rule execution engine.

    Usage:
        engine = Engine(load_plan("plan.json"), bindings=load_bindings("bindings.json"))
        result = engine.execute({"applicant": {"income": 4200}})
        print(result.proof.outcome)

    The engine itself holds only configuration; each execute() call builds a
    fresh RunContext, so one Engine can run many records.
    """

    def __init__(
        self,
        plan: Plan,
        registry: Optional[PrimitiveRegistry] = None,
        bindings: Optional[InvariantBindings] = None,
        options: Optional[RuntimeOptions] = None,
        clock: Optional[Any] = None,
        checks: Optional[CheckRegistry] = None,
    ) -> None:
        """
        Args:
            plan: Steps to execute
            registry: Primitive implementations (default: built-in library)
            bindings: Bound check table (default: the plan's own contracts)
            options: Execution policy
            clock: Time source (default: SystemClock)
            checks: Bound check predicates (default: stateProgress, consistencyCheck)
        """
        self.plan = plan
        self.registry = registry or PrimitiveRegistry.default()
        self.bindings = bindings if bindings is not None else parse_bindings({"contracts": plan.contracts})
        self.options = options or RuntimeOptions()
        self.clock = clock or SystemClock()
        self.checks = checks or CheckRegistry.default()

    def execute(self, initial_state: Dict[str, Any]) -> RunResult:
        """
        Run every step of the plan against a copy of initial_state.

        Args:
            initial_state: Caller's record (never mutated)

        Returns:
            RunResult with final state, ledger, audit trail, metrics and proof
        """
        run_id = f"run_{self.clock.epoch_ms()}"
        run = RunContext(
            run_id=run_id,
            state=copy.deepcopy(initial_state),
            options=self.options,
            clock=self.clock,
            logger=get_logger(__name__, trace_id=run_id),
        )
        started = self.clock.monotonic_ms()

        if self.options.log_level is not LogLevel.QUIET:
            run.logger.info(
                "Starting execution: %d steps, mode=%s, log_level=%s",
                len(self.plan.steps),
                "HALT_ON_VIOLATION" if self.options.halt_on_violation else "CONTINUE_ON_VIOLATION",
                self.options.log_level.value,
            )

        for step in self.plan.steps:
            self._run_step(run, step)
            if self.options.halt_on_violation and run.metrics.violations > 0:
                run.halted = True
                run.logger.warning("Halting execution at tick %d due to violation", run.tick)
                break

        duration_ms = round(self.clock.monotonic_ms() - started)
        metrics = run.metrics.snapshot(
            run_id=run_id,
            timestamp=self.clock.timestamp(),
            duration_ms=duration_ms,
            total_ticks=run.tick,
            halted_early=run.halted,
            options=self.options.to_dict(),
        )
        proof = RunProof(
            ticks=run.tick,
            final_hash=content_hash(run.state),
            ledger_entries=len(run.ledger),
            violations=run.metrics.violations,
        )

        run.logger.info(
            "Execution complete in %dms: %d ticks, %d violations (%s)",
            duration_ms,
            proof.ticks,
            proof.violations,
            proof.outcome,
        )

        return RunResult(
            state=run.state,
            ledger=run.ledger.entries,
            audit_trail=list(run.violations),
            metrics=metrics,
            proof=proof,
            halted_early=run.halted,
            run_id=run_id,
        )

    def _run_step(self, run: RunContext, step: Step) -> None:
        run.tick += 1

        primitive = self.registry.get(step.primitive)
        if primitive is None:
            run.record_violation(f"Unknown primitive: {step.primitive}", step.primitive, {})
            return

        inputs = self._resolve_inputs(run, step)
        inputs.update(copy.deepcopy(step.params))

        output = self._invoke(run, step, primitive, inputs)
        rendered = output.to_dict()

        for message in synthetic_violation(output):
            run.record_violation(message, step.primitive, inputs, rendered)
        for message in structural_violations(output):
            run.record_violation(message, step.primitive, inputs, rendered)

        self._apply_outputs(run, step, inputs, rendered)

        run.metrics.record_invocation(step.primitive)

        for check in self.bindings.checks_for(step.primitive):
            if self.checks.evaluate(check, rendered):
                run.metrics.record_check_passed()
            else:
                run.record_violation(
                    f"Schema invariant failed: {check}", step.primitive, inputs, rendered
                )

        run.ledger.append_step(run.tick, step.primitive, inputs, rendered)
        self._log_step(run, step, inputs, output, rendered)

    def _resolve_inputs(self, run: RunContext, step: Step) -> Dict[str, Any]:
        inputs: Dict[str, Any] = {}
        for field in step.input_fields:
            try:
                value = KeyPath.parse(field).get(run.state)
            except PathError:
                value = MISSING
            if value is not MISSING:
                inputs[field] = copy.deepcopy(value)
        return inputs

    def _invoke(self, run: RunContext, step: Step, primitive: Any, inputs: Dict[str, Any]) -> PrimitiveOutput:
        try:
            output = primitive(inputs, run.engine_context())
        except Exception as ex:
            run.logger.exception("Primitive %s raised at tick %d", step.primitive, run.tick)
            return PrimitiveOutput.failed(f"{type(ex).__name__}: {ex}")
        if not isinstance(output, PrimitiveOutput):
            return PrimitiveOutput.failed(
                f"{step.primitive} returned {type(output).__name__}, expected PrimitiveOutput"
            )
        return output

    def _apply_outputs(
        self, run: RunContext, step: Step, inputs: Dict[str, Any], rendered: Dict[str, Any]
    ) -> None:
        # Only the last segment names the output key; the full path is the destination.
        for field in step.output_fields:
            try:
                path = KeyPath.parse(field)
                if path.leaf not in rendered:
                    continue
                path.set(run.state, copy.deepcopy(rendered[path.leaf]))
            except PathError as ex:
                run.record_violation(
                    f"Output application failed: {field}: {ex}", step.primitive, inputs, rendered
                )

    def _log_step(
        self,
        run: RunContext,
        step: Step,
        inputs: Dict[str, Any],
        output: PrimitiveOutput,
        rendered: Dict[str, Any],
    ) -> None:
        level = self.options.log_level
        if level is LogLevel.QUIET:
            return
        if level is LogLevel.VERBOSE:
            run.logger.info("Tick %d: %s (%s)", run.tick, step.id, step.primitive)
            run.logger.info("  input: %s", inputs)
            run.logger.info("  output: %s", rendered)
            return
        status = f"VIOLATION: {output.violation}" if output.is_flagged else output.kind.value
        run.logger.info("Tick %d: %s (%s) -> %s", run.tick, step.id, step.primitive, status)


def execute_plan(
    plan: Plan,
    initial_state: Dict[str, Any],
    bindings: Optional[InvariantBindings] = None,
    options: Optional[RuntimeOptions] = None,
    clock: Optional[Any] = None,
) -> RunResult:
    """Convenience wrapper: build an Engine with the built-in library and run it."""
    return Engine(plan, bindings=bindings, options=options, clock=clock).execute(initial_state)


def step_payload_hashes(result: RunResult) -> List[str]:
    """Payload hashes of the step entries, in execution order."""
    return [e.hash for e in result.step_entries()]
