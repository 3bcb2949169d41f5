"""Mini README: Tests covering the persisted reconciliation queue.

Structure:
    * test_entries_survive_restart - JSON-lines entries reload with their state.
    * test_resolve_marks_entry_done - resolved entries leave the pending list.
"""

from __future__ import annotations

import json

import pytest

from fleetledger.errors import NotFoundError
from fleetledger.transactions import ReconciliationQueue, ReconciliationStage


def _record(queue: ReconciliationQueue):
    return queue.record(
        operation="edit",
        stage=ReconciliationStage.APPLY,
        partial=True,
        transaction_id="txn_0007",
        old_snapshot={"transaction_id": "txn_0007", "amount": "150"},
        new_snapshot={"transaction_id": "txn_0007", "amount": "200"},
        affected_accounts=["Acc-2", "Acc-1", "Acc-2"],
        error=RuntimeError("timeout"),
    )


def test_entries_survive_restart(tmp_path) -> None:
    """A new queue over the same file sees pending and resolved entries."""

    path = tmp_path / "reconciliation.jsonl"
    queue = ReconciliationQueue(path)
    first = _record(queue)
    second = _record(queue)
    queue.resolve(first.entry_id, "rollback", note="by ops-1")

    reloaded = ReconciliationQueue(path)

    assert [entry.entry_id for entry in reloaded.pending()] == [second.entry_id]
    restored = reloaded.get(first.entry_id)
    assert restored.resolution == "rollback"
    assert restored.notes == ["by ops-1"]
    assert restored.stage is ReconciliationStage.APPLY
    assert restored.affected_accounts == ["Acc-1", "Acc-2"]
    assert restored.old_snapshot["amount"] == "150"
    assert _record(reloaded).entry_id == "rec_0003"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[0])["error"] == "RuntimeError: timeout"


def test_resolve_marks_entry_done() -> None:
    queue = ReconciliationQueue()
    entry = _record(queue)

    assert entry.is_pending
    queue.resolve(entry.entry_id, "roll_forward")

    assert queue.pending() == []
    assert queue.get(entry.entry_id).resolved_at is not None
    with pytest.raises(NotFoundError):
        queue.get("rec_9999")
