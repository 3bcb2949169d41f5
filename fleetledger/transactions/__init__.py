"""Mini README: Transactions and the engine that keeps balances in step.

Modules:
    * ``models`` - transaction records, drafts, party references, repository.
    * ``effects`` - classification and apply/reverse of balance effects.
    * ``orchestrator`` - create/edit/delete state machine and replay.
    * ``reconciliation`` - operator queue of partially applied operations.
"""

from .effects import EffectEngine, classify
from .models import (
    Actor,
    PartyRef,
    Transaction,
    TransactionDraft,
    TransactionRepository,
    TransactionStatus,
    TransactionType,
)
from .orchestrator import EditState, TransactionOrchestrator, TransactionOutcome
from .reconciliation import ReconciliationEntry, ReconciliationQueue, ReconciliationStage

__all__ = [
    "Actor",
    "EditState",
    "EffectEngine",
    "PartyRef",
    "ReconciliationEntry",
    "ReconciliationQueue",
    "ReconciliationStage",
    "Transaction",
    "TransactionDraft",
    "TransactionOrchestrator",
    "TransactionOutcome",
    "TransactionRepository",
    "TransactionStatus",
    "TransactionType",
    "classify",
]
