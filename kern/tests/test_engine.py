"""
Tests for the step interpreter.

Critical: runs are deterministic, every step attempt consumes one tick, and
expected failures become violations instead of exceptions.
"""

import copy
import dataclasses
import logging

from kern.core.clock import DeterministicClock
from kern.core.context import LogLevel, RuntimeOptions
from kern.core.plan import parse_plan
from kern.interpreter import Engine, RunProof, execute_plan, step_payload_hashes, verify_run
from kern.invariants import parse_bindings
from kern.ledger import VIOLATION_OPERATION
from kern.primitives import PrimitiveOutput, PrimitiveRegistry


def _plan(*steps):
    return parse_plan({"transformation_pipeline": list(steps)})


def _step(step_id, primitive, params=None, input_fields=None, output_fields=None):
    return {
        "id": step_id,
        "primitive": primitive,
        "input_fields": input_fields or [],
        "output_fields": output_fields or [],
        "params": params or {},
    }


def _run(plan, initial, **kwargs):
    kwargs.setdefault("clock", DeterministicClock(0))
    return Engine(plan, **kwargs).execute(initial)


# --- Reference scenarios -------------------------------------------------

def test_state_mutator_on_empty_record():
    """Example 1: a.b = 5 on {} gives {a: {b: 5}} with no violations."""
    plan = _plan(_step("s1", "STATE_MUTATOR", {"path": "a.b", "value": 5}))

    result = _run(plan, {})

    assert result.state == {"a": {"b": 5}}
    assert result.proof.violations == 0
    assert result.proof.outcome == "clean_execution"
    assert result.proof.ticks == 1
    assert len(result.ledger) == 1
    assert result.ledger[0].payload["output"] == {"success": True, "updatedPath": "a.b", "newValue": 5}


def test_empty_scores_yield_one_violation():
    """Example 2: empty scores are flagged once and leave the record unchanged."""
    plan = _plan(_step("s1", "COMPOSITE_SCORER", {"scores": []}))

    result = _run(plan, {"x": 1})

    assert result.proof.violations == 1
    assert result.audit_trail[0].message == "Synthetic violation: empty_scores_array"
    assert result.metrics["snapshot"]["invariants"]["violationsByType"] == {"Synthetic violation": 1}
    assert result.state == {"x": 1}
    assert result.proof.outcome == "violations_detected"
    assert result.metrics["snapshot"]["outcome"] == "violation_detected"


def test_unknown_primitive_continues_by_default():
    """Example 3 (continue): later steps still run."""
    plan = _plan(
        _step("s1", "NOPE"),
        _step("s2", "STATE_MUTATOR", {"path": "done", "value": True}),
    )

    result = _run(plan, {})

    assert result.audit_trail[0].message == "Unknown primitive: NOPE"
    assert result.proof.ticks == 2
    assert result.state == {"done": True}
    # The unknown step leaves only its violation entry
    assert [e.operation for e in result.ledger] == [VIOLATION_OPERATION, "STATE_MUTATOR"]
    assert result.metrics["snapshot"]["primitives"] == {"STATE_MUTATOR": 1}


def test_unknown_primitive_halts_when_configured():
    """Example 3 (halt): the run stops after the unknown step."""
    plan = _plan(
        _step("s1", "NOPE"),
        _step("s2", "STATE_MUTATOR", {"path": "done", "value": True}),
    )

    result = _run(plan, {}, options=RuntimeOptions(halt_on_violation=True))

    assert result.proof.ticks == 1
    assert result.state == {}
    assert result.halted_early
    assert result.step_entries() == []
    assert result.metrics["snapshot"]["execution"]["haltedEarly"] is True


def test_disabled_rule_is_skipped_without_violation():
    """Example 4: a disabled rule changes nothing and is not a violation."""
    plan = _plan(
        _step("r1", "RULE_APPLICATOR", {"ruleId": "r1", "enabled": False, "assignments": {"x": "1"}})
    )

    result = _run(plan, {"x": 0})

    output = result.ledger[0].payload["output"]
    assert output["skipped"] is True
    assert output["reason"] == "Rule disabled"
    assert result.state == {"x": 0}
    assert result.proof.violations == 0


# --- Determinism and ordering --------------------------------------------

def _mixed_plan():
    return _plan(
        _step("s1", "STATE_MUTATOR", {"path": "applicant.score", "value": 700}),
        _step("s2", "NOPE"),
        _step("s3", "EXPRESSION_EVALUATOR", {"expression": "missing + 1"}),
        _step("s4", "COMPOSITE_SCORER", {"scores": [1, 2, 3]}, output_fields=["scores.normalized_score"]),
        _step(
            "s5",
            "RULE_APPLICATOR",
            {
                "ruleId": "tier",
                "enabled": True,
                "condition": "applicant.score > 650",
                "assignments": {"applicant.tier": "gold", "applicant.limit": "{{ applicant.score * 10 }}"},
            },
        ),
    )


def test_runs_are_deterministic():
    plan = _mixed_plan()
    initial = {"applicant": {"name": "A"}}

    first = _run(plan, initial)
    second = _run(plan, initial)

    assert first.state == second.state
    assert first.proof.final_hash == second.proof.final_hash
    assert first.proof.violations == second.proof.violations
    assert step_payload_hashes(first) == step_payload_hashes(second)
    assert [e.hash for e in first.ledger] == [e.hash for e in second.ledger]


def test_ticks_are_contiguous_from_one():
    result = _run(_mixed_plan(), {})

    ticks = [e.tick for e in result.ledger] + [v.tick for v in result.audit_trail]
    ledger_ticks = [e.tick for e in result.ledger]

    assert ledger_ticks == sorted(ledger_ticks)
    assert sorted(set(ticks)) == [1, 2, 3, 4, 5]
    assert result.proof.ticks == 5


def test_erroring_step_consumes_a_tick():
    result = _run(_mixed_plan(), {})

    error = [v for v in result.audit_trail if v.label == "Primitive error"]
    assert len(error) == 1
    assert error[0].tick == 3


def test_violation_entries_precede_their_step_entry():
    result = _run(_plan(_step("s1", "COMPOSITE_SCORER", {"scores": []})), {})

    assert [e.operation for e in result.ledger] == [VIOLATION_OPERATION, "COMPOSITE_SCORER"]
    assert result.proof.ledger_entries == 2


def test_caller_record_is_not_mutated():
    initial = {"applicant": {"name": "A"}}
    before = copy.deepcopy(initial)

    result = _run(_mixed_plan(), initial)

    assert initial == before
    assert result.state["applicant"]["tier"] == "gold"
    assert result.state["applicant"]["limit"] == 7000


# --- Halt policy ---------------------------------------------------------

def test_halt_stops_after_first_violating_step():
    plan = _plan(
        _step("s1", "STATE_MUTATOR", {"path": "a", "value": 1}),
        _step("s2", "COMPOSITE_SCORER", {"scores": []}),
        _step("s3", "STATE_MUTATOR", {"path": "b", "value": 2}),
    )

    result = _run(plan, {}, options=RuntimeOptions(halt_on_violation=True))

    assert result.proof.ticks == 2
    assert len(result.step_entries()) == 2
    assert result.state == {"a": 1}


def test_without_halt_all_steps_run():
    plan = _plan(
        _step("s1", "COMPOSITE_SCORER", {"scores": []}),
        _step("s2", "STATE_MUTATOR", {"path": "b", "value": 2}),
    )

    result = _run(plan, {})

    assert result.proof.ticks == 2
    assert result.state == {"b": 2}
    assert not result.halted_early


# --- Inputs and outputs --------------------------------------------------

def test_inputs_resolved_from_record_and_params_win():
    plan = _plan(
        _step("s1", "STATE_MUTATOR", {"value": 9}, input_fields=["path", "value"]),
    )

    result = _run(plan, {"path": "out", "value": 7})

    assert result.state["out"] == 9
    assert result.ledger[0].payload["input"] == {"path": "out", "value": 9}


def test_missing_input_is_omitted():
    plan = _plan(_step("s1", "STATE_MUTATOR", {"path": "x"}, input_fields=["value"]))

    result = _run(plan, {})

    assert result.ledger[-1].payload["input"] == {"path": "x"}
    assert result.audit_trail[0].message == "Synthetic violation: empty_output_detected"
    assert result.state == {}


def test_wildcard_input_exposes_whole_record():
    plan = _plan(
        _step(
            "c1",
            "CONDITION_EVALUATOR",
            {"condition": "income > 1000"},
            input_fields=["*"],
            output_fields=["checks.result"],
        )
    )

    result = _run(plan, {"income": 5000})

    assert result.state["checks"] == {"result": True}


def test_output_fields_copy_by_last_segment():
    plan = _plan(
        _step(
            "s1",
            "COMPOSITE_SCORER",
            {"scores": [2, 4]},
            output_fields=["results.normalized_score", "results.untouched", "*"],
        )
    )

    result = _run(plan, {"results": {"untouched": "keep"}})

    assert result.state == {"results": {"normalized_score": 3, "untouched": "keep"}}


def test_output_write_failure_becomes_violation():
    plan = _plan(
        _step("s1", "COMPOSITE_SCORER", {"scores": [1]}, output_fields=["results.normalized_score"])
    )

    result = _run(plan, {"results": 5})

    assert result.state == {"results": 5}
    assert result.audit_trail[0].label == "Output application failed"


def test_invalid_path_never_mutates():
    plan = _plan(_step("s1", "STATE_MUTATOR", {"path": "", "value": 3}))

    result = _run(plan, {"a": 1})

    assert result.state == {"a": 1}
    assert result.proof.violations == 0


# --- Bound checks --------------------------------------------------------

def test_bound_checks_pass_and_fail():
    bindings = parse_bindings(
        {"contracts": {"primitiveBindings": {"STATE_MUTATOR": ["stateProgress", "consistencyCheck", "mystery"]}}}
    )
    plan = _plan(
        _step("ok", "STATE_MUTATOR", {"path": "a", "value": 1}),
        _step("bad", "STATE_MUTATOR", {"value": 1}),
    )

    result = _run(plan, {}, bindings=bindings)

    invariants = result.metrics["snapshot"]["invariants"]
    assert invariants["checksPassed"] == 4
    assert invariants["violations"] == 2
    assert invariants["violationsByType"] == {"Schema invariant failed": 2}
    assert [v.message for v in result.audit_trail] == [
        "Schema invariant failed: stateProgress",
        "Schema invariant failed: consistencyCheck",
    ]


def test_plan_contracts_supply_bindings():
    plan = parse_plan(
        {
            "transformation_pipeline": [_step("bad", "STATE_MUTATOR", {"value": 1})],
            "contracts": {"primitiveBindings": {"STATE_MUTATOR": ["stateProgress"]}},
        }
    )

    result = _run(plan, {})

    assert result.proof.violations == 1


# --- Registry and failure containment ------------------------------------

def test_raising_primitive_is_contained():
    def boom(inputs, ctx):
        raise ValueError("bad input")

    registry = PrimitiveRegistry.default()
    registry.register("BOOM", boom)
    plan = _plan(_step("s1", "BOOM"), _step("s2", "STATE_MUTATOR", {"path": "a", "value": 1}))

    result = _run(plan, {}, registry=registry)

    assert result.audit_trail[0].message == "Primitive error: ValueError: bad input"
    assert result.state == {"a": 1}
    assert result.metrics["snapshot"]["primitives"] == {"BOOM": 1, "STATE_MUTATOR": 1}


def test_custom_primitive_output_is_applied():
    registry = PrimitiveRegistry()
    registry.register("DOUBLE", lambda inputs, ctx: PrimitiveOutput.completed(doubled=inputs["n"] * 2))
    plan = _plan(_step("s1", "DOUBLE", input_fields=["n"], output_fields=["out.doubled"]))

    result = _run(plan, {"n": 4}, registry=registry)

    assert result.state == {"n": 4, "out": {"doubled": 8}}


# --- Result shape, logging and replay ------------------------------------

def test_result_dict_shape():
    result = _run(_mixed_plan(), {})

    data = result.to_dict()

    assert set(data) == {"state", "ledger", "auditTrail", "metrics", "proof"}
    assert set(data["proof"]) == {"ticks", "finalHash", "ledgerEntries", "violations", "outcome"}
    assert data["proof"]["ledgerEntries"] == len(data["ledger"])
    assert data["metrics"]["snapshot"]["runId"] == "run_0"


def test_verbose_logging_includes_payloads(caplog):
    caplog.set_level(logging.INFO)
    plan = _plan(_step("s1", "STATE_MUTATOR", {"path": "a", "value": 1}))

    _run(plan, {}, options=RuntimeOptions(log_level=LogLevel.VERBOSE))

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("  input:") for m in messages)


def test_quiet_logging_omits_step_lines(caplog):
    caplog.set_level(logging.INFO)
    plan = _plan(_step("s1", "STATE_MUTATOR", {"path": "a", "value": 1}))

    _run(plan, {}, options=RuntimeOptions(log_level=LogLevel.QUIET))

    assert not any(r.getMessage().startswith("Tick") for r in caplog.records)
    assert not any(r.getMessage().startswith("Starting execution") for r in caplog.records)
    assert any(r.getMessage().startswith("Execution complete") for r in caplog.records)


def test_condition_failure_still_writes_result():
    plan = _plan(
        _step(
            "s1",
            "CONDITION_EVALUATOR",
            {"condition": "x.toFixed(-1) == '2'", "context": {"x": 1.5}},
            output_fields=["check.result"],
        )
    )

    result = _run(plan, {})

    assert result.state == {"check": {"result": False}}
    assert result.proof.violations == 1


def test_template_now_replays_under_injected_clock():
    plan = _plan(
        _step(
            "s1",
            "RULE_APPLICATOR",
            {"ruleId": "stamp", "enabled": True, "assignments": {"stampedAt": "{{ now() }}"}},
        )
    )
    result = _run(plan, {}, clock=DeterministicClock(5000))

    check = verify_run(plan, {}, result, clock=DeterministicClock(5000))

    assert result.state == {"stampedAt": "1970-01-01T00:00:05.000Z"}
    assert check.valid, check.errors


def test_verify_run_accepts_faithful_result():
    plan = _mixed_plan()
    result = _run(plan, {})

    check = verify_run(plan, {}, result, clock=DeterministicClock(0))

    assert check.valid, check.errors


def test_verify_run_detects_tampered_proof():
    plan = _mixed_plan()
    result = _run(plan, {})
    forged = dataclasses.replace(
        result,
        proof=RunProof(
            ticks=result.proof.ticks,
            final_hash="0" * 64,
            ledger_entries=result.proof.ledger_entries,
            violations=result.proof.violations,
        ),
    )

    check = verify_run(plan, {}, forged, clock=DeterministicClock(0))

    assert not check.valid
    assert any("finalHash" in e for e in check.errors)


def test_execute_plan_wrapper_matches_engine():
    plan = _mixed_plan()

    wrapped = execute_plan(plan, {}, clock=DeterministicClock(0))
    direct = _run(plan, {})

    assert wrapped.proof == direct.proof
