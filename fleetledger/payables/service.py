"""Mini README: Payable-record service linking payments to account balances.

Structure:
    * PayableRepository - keyed store for payable records (``pay_0001``).
    * PaymentReceipt - the updated record, the payment and any posted
      finance transaction.
    * PayableService - create, list and delete records; add and remove
      payments.

When a payment names an internal account the service posts a matching
finance transaction through :class:`TransactionOrchestrator`: invoices are
income into the account, maintenance and VD finance payments are expenses
out of it. The counterparty is kept as an external party label. Removing a
payment deletes its transaction so the account balance follows. Changes to
one record are serialised by a per-record lock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from ..errors import NotFoundError, ValidationError
from ..logging_utils import get_logger
from ..money.amounts import Amount, require_non_negative
from ..storage import InMemoryRepository
from ..transactions.models import Actor, Transaction, TransactionDraft, TransactionType
from ..transactions.orchestrator import TransactionOrchestrator
from .records import (
    PayableKind,
    PayableRecord,
    Payment,
    delete_payment,
    is_overdue,
    record_payment,
)

LOGGER = get_logger(__name__)

_CATEGORIES = {
    PayableKind.INVOICE: "Invoice Payment",
    PayableKind.MAINTENANCE: "Maintenance",
    PayableKind.VD_FINANCE: "VD Finance",
}


class PayableRepository(InMemoryRepository[PayableRecord]):
    kind = "payable"

    def __init__(self, items: Optional[Iterable[PayableRecord]] = None) -> None:
        super().__init__("record_id", prefix="pay", items=items)


@dataclass(slots=True)
class PaymentReceipt:
    record: PayableRecord
    payment: Payment
    transaction: Optional[Transaction] = None


class PayableService:
    """Front door for invoices, maintenance logs and VD finance records."""

    def __init__(
        self,
        repository: Optional[PayableRepository] = None,
        orchestrator: Optional[TransactionOrchestrator] = None,
    ) -> None:
        self.repository = repository if repository is not None else PayableRepository()
        self.orchestrator = orchestrator
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, record_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(record_id)
            if lock is None:
                lock = self._locks[record_id] = threading.RLock()
            return lock

    def create(
        self,
        kind: PayableKind,
        amount: Amount,
        *,
        description: str = "",
        counterparty: str = "",
        due_date: Optional[date] = None,
    ) -> PayableRecord:
        now = datetime.now(timezone.utc)
        record = PayableRecord(
            record_id=self.repository.next_id(),
            kind=PayableKind(kind),
            amount=require_non_negative(amount, field="amount"),
            description=description,
            counterparty=counterparty,
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )
        self.repository.create(record)
        LOGGER.info("Created %s %s for %s", record.kind.value, record.record_id, record.amount)
        return record

    def get(self, record_id: str) -> PayableRecord:
        return self.repository.get(record_id)

    def overdue(self, today: date) -> List[PayableRecord]:
        return [record for record in self.repository.all() if is_overdue(record, today)]

    def _draft_for(self, record: PayableRecord, payment: Payment, account_id: str) -> TransactionDraft:
        counterparty = record.counterparty or record.description or record.kind.value
        if record.kind is PayableKind.INVOICE:
            account_from, account_to = counterparty, account_id
            default_type = TransactionType.INCOME
        else:
            account_from, account_to = account_id, counterparty
            default_type = TransactionType.EXPENSE
        return TransactionDraft(
            amount=payment.amount,
            occurred_on=payment.paid_on,
            category=_CATEGORIES[record.kind],
            description=f"Payment {payment.payment_id} for {record.kind.value} {record.record_id}",
            account_from=account_from,
            account_to=account_to,
            default_type=default_type,
            payment_method=payment.method.value,
            payment_reference=payment.reference,
            metadata={"record_id": record.record_id, "payment_id": payment.payment_id},
        )

    def add_payment(
        self,
        record_id: str,
        payment: Payment,
        actor: Actor,
        account_id: Optional[str] = None,
    ) -> PaymentReceipt:
        """Record ``payment`` and, when ``account_id`` is given, post it to that account.

        A payment without an id gets the record's next payment id. The whole
        read-post-write runs under the record's lock so concurrent payments
        on one record are applied one after another.
        """

        with self._lock_for(record_id):
            record = self.repository.get(record_id)
            payment = replace(
                payment,
                payment_id=payment.payment_id or record.next_payment_id(),
                created_by=payment.created_by or actor.actor_id,
            )
            updated = record_payment(record, payment)
            transaction: Optional[Transaction] = None

            if account_id is not None:
                if self.orchestrator is None:
                    raise ValidationError("Payments cannot be posted to an account without an orchestrator")
                if not self.orchestrator.store.exists(account_id):
                    raise NotFoundError("account", account_id)
                draft = self._draft_for(record, payment, account_id)
                transaction = self.orchestrator.create(draft, actor).transaction
                posted = replace(payment, transaction_id=transaction.transaction_id)
                updated = replace(updated, payments=updated.payments[:-1] + (posted,))

            updated = replace(updated, updated_at=datetime.now(timezone.utc))
            self.repository.update(record_id, updated)
        return PaymentReceipt(record=updated, payment=updated.payments[-1], transaction=transaction)

    def remove_payment(self, record_id: str, payment_id: str, actor: Actor) -> PayableRecord:
        """Delete a payment and the finance transaction posted for it."""

        with self._lock_for(record_id):
            record = self.repository.get(record_id)
            payment = record.payment(payment_id)
            if payment.transaction_id and self.orchestrator is not None:
                self.orchestrator.delete(payment.transaction_id, actor)
            updated = replace(delete_payment(record, payment_id), updated_at=datetime.now(timezone.utc))
            self.repository.update(record_id, updated)
        return updated

    def list_records(self, kind: Optional[PayableKind] = None) -> List[PayableRecord]:
        records = self.repository.query(kind=PayableKind(kind)) if kind else self.repository.all()
        return sorted(records, key=lambda record: record.record_id)

    def delete(self, record_id: str, actor: Actor) -> PayableRecord:
        """Delete a record along with the transactions posted for its payments."""

        with self._lock_for(record_id):
            record = self.repository.get(record_id)
            if self.orchestrator is not None:
                for payment in record.payments:
                    if payment.transaction_id:
                        self.orchestrator.delete(payment.transaction_id, actor)
            removed = self.repository.delete(record_id)
        LOGGER.info("Deleted %s %s by %s", record.kind.value, record_id, actor.actor_id)
        return removed
