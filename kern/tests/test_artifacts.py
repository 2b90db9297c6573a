"""
Tests for run artifact persistence.
"""

import json
import os
import tempfile

from kern.core.clock import DeterministicClock
from kern.core.plan import load_plan
from kern.interpreter import Engine
from kern.ledger import ArtifactStore, load_ledger, verify_ledger
from kern.ledger.artifacts import LEDGER_FILENAME, VIOLATIONS_FILENAME

PLAN = {
    "metadata": {"ruleSetId": "underwriting", "version": "1.0.0"},
    "transformation_pipeline": [
        {
            "id": "s1",
            "primitive": "STATE_MUTATOR",
            "input_fields": [],
            "output_fields": [],
            "params": {"path": "decision.status", "value": "approved"},
        },
        {
            "id": "s2",
            "primitive": "COMPOSITE_SCORER",
            "input_fields": [],
            "output_fields": [],
            "params": {"scores": []},
        },
    ],
}


def _result(tmpdir):
    plan_path = os.path.join(tmpdir, "plan.json")
    with open(plan_path, "w") as f:
        json.dump(PLAN, f)
    plan = load_plan(plan_path)
    return plan, Engine(plan, clock=DeterministicClock(0)).execute({})


def test_plan_metadata_is_preserved():
    with tempfile.TemporaryDirectory() as tmpdir:
        plan, _ = _result(tmpdir)

    assert plan.metadata == {"ruleSetId": "underwriting", "version": "1.0.0"}
    assert [s.id for s in plan.steps] == ["s1", "s2"]


def test_save_writes_fixed_locations():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, result = _result(tmpdir)
        store = ArtifactStore(os.path.join(tmpdir, "audit"), os.path.join(tmpdir, "metrics_snapshot.json"))

        written = store.save(result.to_dict())

        assert written["ledger"].endswith(LEDGER_FILENAME)
        assert written["violations"].endswith(VIOLATIONS_FILENAME)
        with open(written["violations"]) as f:
            trail = json.load(f)
        with open(written["metrics"]) as f:
            metrics = json.load(f)

    assert len(trail) == 1
    assert trail[0]["message"] == "Synthetic violation: empty_scores_array"
    assert metrics["snapshot"]["invariants"]["violations"] == 1


def test_saved_ledger_reloads_and_verifies():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, result = _result(tmpdir)
        store = ArtifactStore(os.path.join(tmpdir, "audit"), os.path.join(tmpdir, "m.json"))
        store.save(result.to_dict())

        entries = load_ledger(store.ledger_path)

    assert [e.hash for e in entries] == [e.hash for e in result.ledger]
    assert verify_ledger(entries).valid


def test_tampered_ledger_file_fails_verification():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, result = _result(tmpdir)
        store = ArtifactStore(os.path.join(tmpdir, "audit"), os.path.join(tmpdir, "m.json"))
        store.save(result.to_dict())

        with open(store.ledger_path) as f:
            data = json.load(f)
        data[0]["payload"]["output"]["newValue"] = "denied"
        with open(store.ledger_path, "w") as f:
            json.dump(data, f)

        result = verify_ledger(load_ledger(store.ledger_path))

    assert not result.valid
    assert result.mismatch_index == 0


def test_audit_dir_from_environment(monkeypatch):
    monkeypatch.setenv("KERN_AUDIT_DIR", "/tmp/kern-audit-env")

    assert str(ArtifactStore().audit_dir) == "/tmp/kern-audit-env"
