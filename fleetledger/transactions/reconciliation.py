"""Mini README: Operator queue for transactions whose balances need review.

Structure:
    * ReconciliationStage - where the mutation sequence stopped.
    * ReconciliationEntry - snapshot of the stored transaction before the
      operation, the requested change, the accounts involved and the error.
    * ReconciliationQueue - in-memory queue, optionally mirrored to a
      JSON-lines file so entries survive a restart.

Entries are never resolved automatically. An operator (or a job acting on
their behalf) chooses between rolling back to the old effect and rolling
forward to the new one; the orchestrator performs the replay and then calls
``resolve``.
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..errors import NotFoundError
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)


class ReconciliationStage(str, Enum):
    REVERSE = "reverse"
    APPLY = "apply"
    PERSIST = "persist"


@dataclass(slots=True)
class ReconciliationEntry:
    entry_id: str
    operation: str
    stage: ReconciliationStage
    partial: bool
    transaction_id: Optional[str]
    old_snapshot: Optional[Dict[str, Any]]
    new_snapshot: Optional[Dict[str, Any]]
    affected_accounts: List[str]
    error: str
    raised_at: str
    resolved_at: Optional[str] = None
    resolution: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        return self.resolved_at is None

    def as_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["stage"] = self.stage.value
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ReconciliationEntry":
        data = dict(payload)
        data["stage"] = ReconciliationStage(data["stage"])
        return cls(**data)


class ReconciliationQueue:
    """Collect partial failures until an operator replays them."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path else None
        self._entries: Dict[str, ReconciliationEntry] = {}
        self._sequence = 0
        self._lock = threading.Lock()
        if self._path and self._path.exists():
            self._load()

    def _load(self) -> None:
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                if not line.strip():
                    continue
                entry = ReconciliationEntry.from_dict(json.loads(line))
                self._entries[entry.entry_id] = entry
                self._sequence = max(self._sequence, int(entry.entry_id.split("_")[-1]))
        LOGGER.info("Loaded %s reconciliation entries from %s", len(self._entries), self._path)

    def _persist(self, entry: ReconciliationEntry) -> None:
        if not self._path:
            return
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry.as_dict(), sort_keys=True, default=str) + "\n")

    def record(
        self,
        *,
        operation: str,
        stage: ReconciliationStage,
        partial: bool,
        transaction_id: Optional[str],
        old_snapshot: Optional[Dict[str, Any]],
        new_snapshot: Optional[Dict[str, Any]],
        affected_accounts: Sequence[str],
        error: BaseException,
    ) -> ReconciliationEntry:
        with self._lock:
            self._sequence += 1
            entry = ReconciliationEntry(
                entry_id=f"rec_{self._sequence:04d}",
                operation=operation,
                stage=stage,
                partial=partial,
                transaction_id=transaction_id,
                old_snapshot=old_snapshot,
                new_snapshot=new_snapshot,
                affected_accounts=sorted(set(affected_accounts)),
                error=f"{type(error).__name__}: {error}",
                raised_at=datetime.now(timezone.utc).isoformat(),
            )
            self._entries[entry.entry_id] = entry
            self._persist(entry)
        LOGGER.error(
            "Reconciliation %s queued: %s of %s stopped at %s (partial=%s) accounts=%s "
            "old=%s new=%s error=%s",
            entry.entry_id,
            operation,
            transaction_id,
            stage.value,
            partial,
            entry.affected_accounts,
            old_snapshot,
            new_snapshot,
            entry.error,
        )
        return entry

    def get(self, entry_id: str) -> ReconciliationEntry:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise NotFoundError("reconciliation entry", entry_id) from None

    def pending(self) -> List[ReconciliationEntry]:
        return [entry for entry in self.all() if entry.is_pending]

    def all(self) -> List[ReconciliationEntry]:
        return sorted(self._entries.values(), key=lambda entry: entry.entry_id)

    def resolve(self, entry_id: str, resolution: str, note: Optional[str] = None) -> ReconciliationEntry:
        with self._lock:
            entry = self.get(entry_id)
            entry.resolved_at = datetime.now(timezone.utc).isoformat()
            entry.resolution = resolution
            if note:
                entry.notes.append(note)
            self._persist(entry)
        LOGGER.info("Reconciliation %s resolved by %s", entry_id, resolution)
        return entry
