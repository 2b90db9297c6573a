"""
Tests for the audit ledger and its verification.

Critical: any edit to a stored payload must be detected.
"""

import pytest

from kern.core.clock import DeterministicClock
from kern.core.errors import IntegrityError
from kern.ledger import VIOLATION_OPERATION, AuditLedger, LedgerEntry, hash_payload, verify_ledger


def _ledger():
    ledger = AuditLedger(DeterministicClock(0))
    ledger.append_step(1, "STATE_MUTATOR", {"path": "a", "value": 1}, {"success": True})
    ledger.append_violation(2, {"tick": 2, "message": "Unknown primitive: X"})
    ledger.append_step(3, "COMPOSITE_SCORER", {"scores": [1, 2]}, {"normalized_score": 1.5})
    return ledger


def test_hash_is_pure_function_of_payload():
    p1 = {"input": {"b": 1, "a": 2}, "output": {"ok": True}}
    p2 = {"output": {"ok": True}, "input": {"a": 2, "b": 1}}

    assert hash_payload(p1) == hash_payload(p2)
    assert hash_payload(p1) != hash_payload({"input": {}, "output": {"ok": True}})


def test_entry_hash_covers_payload_only():
    ledger = AuditLedger(DeterministicClock(0))
    e1 = ledger.append_step(1, "OP", {"x": 1}, {"y": 2})
    e2 = ledger.append_step(5, "OTHER", {"x": 1}, {"y": 2})

    assert e1.id != e2.id
    assert e1.hash == e2.hash


def test_append_order_and_kinds():
    ledger = _ledger()

    assert len(ledger) == 3
    assert [e.tick for e in ledger] == [1, 2, 3]
    assert ledger.entries[1].operation == VIOLATION_OPERATION
    assert [e.operation for e in ledger.step_entries()] == ["STATE_MUTATOR", "COMPOSITE_SCORER"]


def test_payload_is_snapshotted_at_append():
    ledger = AuditLedger(DeterministicClock(0))
    inputs = {"items": [1]}

    entry = ledger.append_step(1, "OP", inputs, {"ok": True})
    inputs["items"].append(2)

    assert entry.payload["input"] == {"items": [1]}
    assert verify_ledger(ledger.entries).valid


def test_entries_view_is_a_copy():
    ledger = _ledger()

    ledger.entries.clear()

    assert len(ledger) == 3


def test_verify_intact_ledger():
    result = verify_ledger(_ledger().entries)

    assert result.valid
    assert result.checked == 3


def test_verify_detects_modified_payload():
    data = [e.to_dict() for e in _ledger().entries]
    data[2]["payload"]["output"]["normalized_score"] = 99

    result = verify_ledger(data)

    assert not result.valid
    assert result.error == "payload hash mismatch"
    assert result.mismatch_index == 2
    assert result.checked == 2


def test_verify_detects_reordering():
    data = [e.to_dict() for e in _ledger().entries]
    data[0], data[2] = data[2], data[0]

    result = verify_ledger(data)

    assert not result.valid
    assert result.error == "tick out of order"


def test_verify_reports_malformed_entry():
    result = verify_ledger([{"operation": "X"}])

    assert not result.valid
    assert result.error.startswith("malformed entry")


def test_verify_strict_raises():
    data = [e.to_dict() for e in _ledger().entries]
    data[0]["hash"] = "0" * 64

    with pytest.raises(IntegrityError):
        verify_ledger(data, strict=True)


def test_entry_dict_round_trip():
    entry = _ledger().entries[0]

    assert LedgerEntry.from_dict(entry.to_dict()) == entry
