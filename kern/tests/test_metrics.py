"""
Tests for metrics aggregation and Prometheus export.
"""

import os
import tempfile

from kern.invariants import Violation
from kern.metrics import ENGINE_VERSION, MetricsAggregator
from kern.metrics import prometheus


def _violation(message):
    return Violation(
        tick=1,
        primitive="P",
        message=message,
        input_sample={},
        output_sample=None,
        timestamp="1970-01-01T00:00:00.000Z",
    )


def test_counts_and_grouping():
    agg = MetricsAggregator()
    agg.record_invocation("STATE_MUTATOR")
    agg.record_invocation("STATE_MUTATOR")
    agg.record_invocation("COMPOSITE_SCORER")
    agg.record_violation(_violation("Schema invariant failed: stateProgress"))
    agg.record_violation(_violation("Schema invariant failed: consistencyCheck"))
    agg.record_violation(_violation("Empty output object"))
    agg.record_check_passed()

    assert agg.primitive_counts == {"STATE_MUTATOR": 2, "COMPOSITE_SCORER": 1}
    assert agg.violations == 3
    assert agg.violations_by_type == {"Schema invariant failed": 2, "Empty output object": 1}
    assert agg.checks_passed == 1
    assert agg.outcome == "violation_detected"


def test_snapshot_document():
    agg = MetricsAggregator()
    agg.record_invocation("STATE_MUTATOR")

    snap = agg.snapshot(
        run_id="run_1",
        timestamp="1970-01-01T00:00:00.001Z",
        duration_ms=12,
        total_ticks=1,
        halted_early=False,
        options={"haltOnError": False},
    )["snapshot"]

    assert snap["runId"] == "run_1"
    assert snap["engineVersion"] == ENGINE_VERSION
    assert snap["timing"] == {"durationMs": 12}
    assert snap["primitives"] == {"STATE_MUTATOR": 1}
    assert snap["invariants"] == {"violations": 0, "violationsByType": {}, "checksPassed": 0}
    assert snap["execution"] == {"totalTicks": 1, "haltedEarly": False, "options": {"haltOnError": False}}
    assert snap["outcome"] == "success"


def test_snapshot_is_detached_from_counters():
    agg = MetricsAggregator()
    agg.record_invocation("A")
    snap = agg.snapshot("run_1", "t", 0, 1, False)

    agg.record_invocation("A")

    assert snap["snapshot"]["primitives"] == {"A": 1}


def test_prometheus_textfile_export():
    agg = MetricsAggregator()
    agg.record_invocation("STATE_MUTATOR")
    agg.record_violation(_violation("Unknown primitive: X"))
    snapshot = agg.snapshot("run_1", "t", 5, 2, False)

    prometheus.record_run(snapshot)

    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "kern.prom")
        prometheus.write_textfile(path)
        with open(path) as f:
            text = f.read()

    assert 'kern_steps_total{primitive="STATE_MUTATOR"}' in text
    assert 'kern_violations_total{violation_type="Unknown primitive"}' in text
    assert "kern_run_duration_seconds_count" in text


def test_prometheus_init_is_idempotent():
    assert prometheus.init_metrics() is prometheus.init_metrics()
