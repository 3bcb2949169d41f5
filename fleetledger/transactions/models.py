"""Mini README: Transaction records, drafts and the transaction repository.

Structure:
    * TransactionType / TransactionStatus - str enums stored on documents.
    * PartyRef - one side of a transaction: an internal account or an
      external party label.
    * Actor - opaque identity stamped into created/updated fields.
    * TransactionDraft - loosely typed form state submitted by callers.
    * Transaction - the persisted record, including a tombstone on delete.
    * TransactionRepository - keyed document store for transactions.

Amounts are always stored non-negative; direction is expressed by the type
and by which side is internal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ValidationError
from ..money.amounts import Amount, to_decimal
from ..money.status import PaymentStatus
from ..storage import InMemoryRepository


class TransactionType(str, Enum):
    """Direction of a monetary movement."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"

    @classmethod
    def from_str(cls, value: str) -> "TransactionType":
        """Coerce arbitrary casing into a valid transaction type."""

        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as error:
            raise ValidationError(f"Unsupported transaction type: {value}") from error


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class PartyRef:
    """A transaction side; ``account_id`` is set only for internal accounts."""

    label: str
    account_id: Optional[str] = None

    @property
    def is_internal(self) -> bool:
        return self.account_id is not None

    @classmethod
    def internal(cls, account_id: str, label: Optional[str] = None) -> "PartyRef":
        return cls(label=label or account_id, account_id=account_id)

    @classmethod
    def external(cls, label: str) -> "PartyRef":
        return cls(label=label)

    def as_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "account_id": self.account_id}


@dataclass(slots=True, frozen=True)
class Actor:
    actor_id: str
    display_name: str = ""


@dataclass(slots=True)
class TransactionDraft:
    """Form state for creating or editing a transaction.

    ``account_from`` and ``account_to`` are raw strings: an account id when
    the side is internal, otherwise the external party's name.
    """

    amount: Amount
    occurred_on: date
    category: str = ""
    description: str = ""
    account_from: Optional[str] = None
    account_to: Optional[str] = None
    default_type: TransactionType = TransactionType.EXPENSE
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PAID
    status: TransactionStatus = TransactionStatus.COMPLETED
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Transaction:
    """Persisted transaction. Instances are replaced, never mutated."""

    transaction_id: str
    transaction_type: TransactionType
    amount: Decimal
    occurred_on: date
    category: str
    description: str
    account_from: Optional[PartyRef]
    account_to: Optional[PartyRef]
    created_at: datetime
    created_by: str
    updated_at: datetime
    updated_by: str
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PAID
    status: TransactionStatus = TransactionStatus.COMPLETED
    metadata: Dict[str, str] = field(default_factory=dict)
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None

    def __post_init__(self) -> None:
        amount = to_decimal(self.amount)
        if amount < 0:
            raise ValidationError(f"Transaction amounts are stored non-negative, got {amount}")
        object.__setattr__(self, "amount", amount)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def touched_accounts(self) -> Iterable[str]:
        """Account ids this transaction can move money in or out of."""

        return [
            party.account_id
            for party in (self.account_from, self.account_to)
            if party is not None and party.account_id is not None
        ]

    def as_dict(self) -> Dict[str, Any]:
        """Export the transaction with serialisable values."""

        return {
            "transaction_id": self.transaction_id,
            "transaction_type": self.transaction_type.value,
            "amount": str(self.amount),
            "occurred_on": self.occurred_on.isoformat(),
            "category": self.category,
            "description": self.description,
            "account_from": self.account_from.as_dict() if self.account_from else None,
            "account_to": self.account_to.as_dict() if self.account_to else None,
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
            "payment_status": self.payment_status.value,
            "status": self.status.value,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "created_by": self.created_by,
            "updated_at": self.updated_at.isoformat(),
            "updated_by": self.updated_by,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "deleted_by": self.deleted_by,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Transaction":
        """Rebuild a transaction from :meth:`as_dict` output."""

        def party(value: Optional[Dict[str, Any]]) -> Optional[PartyRef]:
            return PartyRef(**value) if value else None

        def moment(value: Optional[str]) -> Optional[datetime]:
            return datetime.fromisoformat(value) if value else None

        return cls(
            transaction_id=payload["transaction_id"],
            transaction_type=TransactionType(payload["transaction_type"]),
            amount=to_decimal(payload["amount"]),
            occurred_on=date.fromisoformat(payload["occurred_on"]),
            category=payload.get("category", ""),
            description=payload.get("description", ""),
            account_from=party(payload.get("account_from")),
            account_to=party(payload.get("account_to")),
            created_at=moment(payload["created_at"]),
            created_by=payload["created_by"],
            updated_at=moment(payload["updated_at"]),
            updated_by=payload["updated_by"],
            payment_method=payload.get("payment_method"),
            payment_reference=payload.get("payment_reference"),
            payment_status=PaymentStatus(payload.get("payment_status", PaymentStatus.PAID.value)),
            status=TransactionStatus(payload.get("status", TransactionStatus.COMPLETED.value)),
            metadata=dict(payload.get("metadata") or {}),
            deleted_at=moment(payload.get("deleted_at")),
            deleted_by=payload.get("deleted_by"),
        )


class TransactionRepository(InMemoryRepository[Transaction]):
    kind = "transaction"

    def __init__(self, items: Optional[Iterable[Transaction]] = None) -> None:
        super().__init__("transaction_id", prefix="txn", items=items)

    def live(self) -> List[Transaction]:
        """Transactions that have not been tombstoned, most recent first."""

        return sorted(
            (transaction for transaction in self.all() if not transaction.is_deleted),
            key=lambda transaction: (transaction.occurred_on, transaction.transaction_id),
            reverse=True,
        )
