"""Mini README: Create, edit and delete transactions without losing balances.

Structure:
    * EditState - states a request passes through:
      Draft -> Validated -> EffectReversed -> EffectApplied -> Persisted,
      or Aborted.
    * TransactionOutcome - the saved transaction plus the states visited.
    * TransactionOrchestrator - the single entry point for mutating
      transactions, and for replaying queued partial failures.

Ordering rules:
    * Create applies the new effect and then writes the document.
    * Edit reverses the stored transaction's effect, applies the new one and
      then overwrites the document, keeping ``created_at``/``created_by``.
    * Delete reverses the stored effect and tombstones the document.

Reversal and application run inside one critical section holding the locks
of every account either version touches. Nothing is retried across the
reverse/apply boundary. A failure before any balance moved surfaces as
``ValidationError``/``NotFoundError`` (or a non-partial
``ReconciliationError`` when the stored transaction cannot be reversed).
A failure after a balance moved is queued with both snapshots, the touched
accounts are marked "balance unverified" and a partial
``ReconciliationError`` is raised. ``rollback`` and ``roll_forward`` replay
a queued entry once an operator has decided which way to go.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from ..accounts.store import Account, AccountStore
from ..errors import NotFoundError, ReconciliationError, ValidationError
from ..logging_utils import get_logger
from ..money.amounts import require_positive
from ..money.status import PaymentStatus
from .effects import EffectEngine, classify
from .models import (
    Actor,
    Transaction,
    TransactionDraft,
    TransactionRepository,
    TransactionStatus,
    TransactionType,
)
from .reconciliation import ReconciliationEntry, ReconciliationQueue, ReconciliationStage

LOGGER = get_logger(__name__)


class EditState(str, Enum):
    DRAFT = "draft"
    VALIDATED = "validated"
    EFFECT_REVERSED = "effect_reversed"
    EFFECT_APPLIED = "effect_applied"
    PERSISTED = "persisted"
    ABORTED = "aborted"


@dataclass(slots=True)
class TransactionOutcome:
    transaction: Transaction
    states: List[EditState] = field(default_factory=list)
    adjusted_accounts: List[Account] = field(default_factory=list)


class TransactionOrchestrator:
    """Sequence effect reversal, effect application and persistence."""

    def __init__(
        self,
        store: AccountStore,
        repository: Optional[TransactionRepository] = None,
        queue: Optional[ReconciliationQueue] = None,
    ) -> None:
        self.store = store
        self.engine = EffectEngine(store)
        self.repository = repository if repository is not None else TransactionRepository()
        self.queue = queue if queue is not None else ReconciliationQueue()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def _advance(states: List[EditState], state: EditState, transaction_id: Optional[str]) -> None:
        states.append(state)
        LOGGER.debug("Transaction %s -> %s", transaction_id, state.value)

    def _build(
        self,
        draft: TransactionDraft,
        actor: Actor,
        *,
        transaction_id: str,
        existing: Optional[Transaction] = None,
    ) -> Transaction:
        """Validate a draft and turn it into the record that would be stored."""

        amount = require_positive(draft.amount)
        account_from = self.engine.resolve_party(draft.account_from)
        account_to = self.engine.resolve_party(draft.account_to)
        internal = [
            party for party in (account_from, account_to) if party is not None and party.is_internal
        ]
        if not internal:
            raise ValidationError("At least one side must be an internal account")
        if len(internal) == 2 and account_from.account_id == account_to.account_id:
            raise ValidationError("A transfer needs two different accounts")

        default_type = TransactionType(draft.default_type)
        now = self._now()
        return Transaction(
            transaction_id=transaction_id,
            transaction_type=classify(account_from, account_to, default_type),
            amount=amount,
            occurred_on=draft.occurred_on,
            category=draft.category,
            description=draft.description,
            account_from=account_from,
            account_to=account_to,
            created_at=existing.created_at if existing else now,
            created_by=existing.created_by if existing else actor.actor_id,
            updated_at=now,
            updated_by=actor.actor_id,
            payment_method=draft.payment_method,
            payment_reference=draft.payment_reference,
            payment_status=PaymentStatus(draft.payment_status),
            status=TransactionStatus(draft.status),
            metadata=dict(draft.metadata),
        )

    def _live(self, transaction_id: str) -> Transaction:
        transaction = self.repository.get(transaction_id)
        if transaction.is_deleted:
            raise NotFoundError("transaction", transaction_id)
        return transaction

    def _queue_failure(
        self,
        *,
        operation: str,
        stage: ReconciliationStage,
        partial: bool,
        transaction_id: Optional[str],
        old: Optional[Transaction],
        new: Optional[Transaction],
        accounts: Iterable[str],
        error: BaseException,
    ) -> ReconciliationError:
        accounts = sorted(set(accounts))
        entry = self.queue.record(
            operation=operation,
            stage=stage,
            partial=partial,
            transaction_id=transaction_id,
            old_snapshot=old.as_dict() if old else None,
            new_snapshot=new.as_dict() if new else None,
            affected_accounts=accounts,
            error=error,
        )
        if partial:
            for account_id in accounts:
                if self.store.exists(account_id):
                    self.store.mark_unverified(
                        account_id, f"{operation} of {transaction_id} stopped at {stage.value}"
                    )
        return ReconciliationError(
            f"{operation} of transaction {transaction_id} stopped at {stage.value}: {error}",
            stage=stage.value,
            partial=partial,
            old_snapshot=entry.old_snapshot,
            new_snapshot=entry.new_snapshot,
            affected_accounts=accounts,
            entry_id=entry.entry_id,
        )

    def create(self, draft: TransactionDraft, actor: Actor) -> TransactionOutcome:
        """Validate, apply the new effect and persist the transaction."""

        states = [EditState.DRAFT]
        transaction = self._build(draft, actor, transaction_id=self.repository.next_id())
        self._advance(states, EditState.VALIDATED, transaction.transaction_id)

        with self.store.lock_accounts(transaction.touched_accounts()):
            try:
                adjusted = self.engine.apply_effect(transaction)
            except NotFoundError:
                self._advance(states, EditState.ABORTED, transaction.transaction_id)
                raise
            except Exception as error:
                # apply_effect is all-or-nothing, so no balance moved yet.
                self._advance(states, EditState.ABORTED, transaction.transaction_id)
                raise self._queue_failure(
                    operation="create",
                    stage=ReconciliationStage.APPLY,
                    partial=False,
                    transaction_id=transaction.transaction_id,
                    old=None,
                    new=transaction,
                    accounts=transaction.touched_accounts(),
                    error=error,
                ) from error
            self._advance(states, EditState.EFFECT_APPLIED, transaction.transaction_id)
            try:
                self.repository.create(transaction)
            except Exception as error:
                self._advance(states, EditState.ABORTED, transaction.transaction_id)
                raise self._queue_failure(
                    operation="create",
                    stage=ReconciliationStage.PERSIST,
                    partial=True,
                    transaction_id=transaction.transaction_id,
                    old=None,
                    new=transaction,
                    accounts=transaction.touched_accounts(),
                    error=error,
                ) from error
        self._advance(states, EditState.PERSISTED, transaction.transaction_id)
        LOGGER.info(
            "Created %s %s for %s",
            transaction.transaction_type.value,
            transaction.transaction_id,
            transaction.amount,
        )
        return TransactionOutcome(transaction, states, adjusted)

    def edit(self, transaction_id: str, draft: TransactionDraft, actor: Actor) -> TransactionOutcome:
        """Reverse the stored effect, apply the edited one and overwrite the record."""

        states = [EditState.DRAFT]
        original = self._live(transaction_id)
        updated = self._build(draft, actor, transaction_id=transaction_id, existing=original)
        self._advance(states, EditState.VALIDATED, transaction_id)

        accounts = [*original.touched_accounts(), *updated.touched_accounts()]
        with self.store.lock_accounts(accounts):
            try:
                self.engine.reverse_effect(original)
            except Exception as error:
                self._advance(states, EditState.ABORTED, transaction_id)
                raise self._queue_failure(
                    operation="edit",
                    stage=ReconciliationStage.REVERSE,
                    partial=False,
                    transaction_id=transaction_id,
                    old=original,
                    new=updated,
                    accounts=accounts,
                    error=error,
                ) from error
            self._advance(states, EditState.EFFECT_REVERSED, transaction_id)

            try:
                adjusted = self.engine.apply_effect(updated)
            except Exception as error:
                self._advance(states, EditState.ABORTED, transaction_id)
                raise self._queue_failure(
                    operation="edit",
                    stage=ReconciliationStage.APPLY,
                    partial=True,
                    transaction_id=transaction_id,
                    old=original,
                    new=updated,
                    accounts=accounts,
                    error=error,
                ) from error
            self._advance(states, EditState.EFFECT_APPLIED, transaction_id)

            try:
                self.repository.update(transaction_id, updated)
            except Exception as error:
                self._advance(states, EditState.ABORTED, transaction_id)
                raise self._queue_failure(
                    operation="edit",
                    stage=ReconciliationStage.PERSIST,
                    partial=True,
                    transaction_id=transaction_id,
                    old=original,
                    new=updated,
                    accounts=accounts,
                    error=error,
                ) from error
        self._advance(states, EditState.PERSISTED, transaction_id)
        LOGGER.info(
            "Edited %s: %s %s -> %s %s",
            transaction_id,
            original.transaction_type.value,
            original.amount,
            updated.transaction_type.value,
            updated.amount,
        )
        return TransactionOutcome(updated, states, adjusted)

    def delete(self, transaction_id: str, actor: Actor) -> TransactionOutcome:
        """Reverse the stored effect and tombstone the record."""

        states = [EditState.DRAFT]
        original = self._live(transaction_id)
        accounts = original.touched_accounts()
        now = self._now()
        tombstone = replace(
            original,
            updated_at=now,
            updated_by=actor.actor_id,
            deleted_at=now,
            deleted_by=actor.actor_id,
        )

        with self.store.lock_accounts(accounts):
            try:
                adjusted = self.engine.reverse_effect(original)
            except Exception as error:
                self._advance(states, EditState.ABORTED, transaction_id)
                raise self._queue_failure(
                    operation="delete",
                    stage=ReconciliationStage.REVERSE,
                    partial=False,
                    transaction_id=transaction_id,
                    old=original,
                    new=tombstone,
                    accounts=accounts,
                    error=error,
                ) from error
            self._advance(states, EditState.EFFECT_REVERSED, transaction_id)

            try:
                self.repository.update(transaction_id, tombstone)
            except Exception as error:
                self._advance(states, EditState.ABORTED, transaction_id)
                raise self._queue_failure(
                    operation="delete",
                    stage=ReconciliationStage.PERSIST,
                    partial=True,
                    transaction_id=transaction_id,
                    old=original,
                    new=tombstone,
                    accounts=accounts,
                    error=error,
                ) from error
        self._advance(states, EditState.PERSISTED, transaction_id)
        LOGGER.info("Deleted transaction %s", transaction_id)
        return TransactionOutcome(tombstone, states, adjusted)

    def get(self, transaction_id: str) -> Transaction:
        return self._live(transaction_id)

    def list_transactions(self) -> List[Transaction]:
        return self.repository.live()

    def balances_verified(self, transaction: Transaction) -> bool:
        return all(self.store.is_verified(account_id) for account_id in transaction.touched_accounts())

    # Replay of queued partial failures.

    @staticmethod
    def _snapshots(entry: ReconciliationEntry) -> tuple:
        old = Transaction.from_dict(entry.old_snapshot) if entry.old_snapshot else None
        new = Transaction.from_dict(entry.new_snapshot) if entry.new_snapshot else None
        return old, new

    @staticmethod
    def _new_effect_live(entry: ReconciliationEntry) -> bool:
        return entry.stage is ReconciliationStage.PERSIST and entry.operation in {"create", "edit"}

    def rollback(self, entry_id: str, actor: Actor) -> ReconciliationEntry:
        """Restore the state before the failed operation."""

        entry = self.queue.get(entry_id)
        if not entry.is_pending:
            raise ValidationError(f"Reconciliation {entry_id} is already resolved")
        old, new = self._snapshots(entry)
        with self.store.lock_accounts(entry.affected_accounts):
            if entry.partial:
                if self._new_effect_live(entry):
                    self.engine.reverse_effect(new)
                if old is not None:
                    self.engine.apply_effect(old)
            self._mark_replayed(entry)
        return self.queue.resolve(entry_id, "rollback", note=f"by {actor.actor_id}")

    def roll_forward(self, entry_id: str, actor: Actor) -> ReconciliationEntry:
        """Complete the failed operation as originally requested."""

        entry = self.queue.get(entry_id)
        if not entry.is_pending:
            raise ValidationError(f"Reconciliation {entry_id} is already resolved")
        if not entry.partial:
            raise ValidationError(
                f"Reconciliation {entry_id} changed no balances; resubmit the request instead"
            )
        _, new = self._snapshots(entry)
        with self.store.lock_accounts(entry.affected_accounts):
            if entry.operation != "delete" and not self._new_effect_live(entry):
                self.engine.apply_effect(new)
            if entry.operation == "create":
                self.repository.create(new)
            else:
                self.repository.update(new.transaction_id, new)
            self._mark_replayed(entry)
        return self.queue.resolve(entry_id, "roll_forward", note=f"by {actor.actor_id}")

    def _mark_replayed(self, entry: ReconciliationEntry) -> None:
        for account_id in entry.affected_accounts:
            if self.store.exists(account_id):
                self.store.mark_verified(account_id)
                self.store.verify(account_id)
