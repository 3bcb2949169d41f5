"""Mini README: Payable records with partial-payment tracking.

Structure:
    * PayableKind / PaymentMethod - str enums stored on documents.
    * Payment - one payment against a record.
    * PayableRecord - invoice, maintenance log or VD finance record; the
      paid and remaining amounts and the status are derived from payments.
    * record_payment / delete_payment - return updated copies; every
      recorded payment advances the record's payment sequence.
    * is_overdue - unsettled records past their due date.
    * check_integrity / check_total - compare stored figures with derived
      ones and report RoundingDiscrepancy warnings.

Paid amounts are never stored independently of the payments list, so
deleting a payment recomputes both the paid and the remaining amounts.
Documents written by older code may still carry stored totals; the
integrity helpers report drift beyond one penny without correcting it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import NotFoundError, RoundingDiscrepancy, ValidationError
from ..logging_utils import get_logger
from ..money.amounts import CENT, ZERO, Amount, require_non_negative, round2, to_decimal
from ..money.status import PaymentStatus, resolve_status

LOGGER = get_logger(__name__)


class PayableKind(str, Enum):
    INVOICE = "invoice"
    MAINTENANCE = "maintenance"
    VD_FINANCE = "vd_finance"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"


@dataclass(slots=True, frozen=True)
class Payment:
    payment_id: str
    amount: Decimal
    paid_on: date
    method: PaymentMethod = PaymentMethod.CASH
    reference: Optional[str] = None
    notes: str = ""
    created_by: str = ""
    transaction_id: Optional[str] = None

    def __post_init__(self) -> None:
        amount = to_decimal(self.amount)
        if amount <= ZERO:
            raise ValidationError(f"Payment amount must be greater than zero, got {amount}")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "method", PaymentMethod(self.method))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "amount": str(self.amount),
            "paid_on": self.paid_on.isoformat(),
            "method": self.method.value,
            "reference": self.reference,
            "notes": self.notes,
            "created_by": self.created_by,
            "transaction_id": self.transaction_id,
        }


@dataclass(slots=True, frozen=True)
class PayableRecord:
    record_id: str
    kind: PayableKind
    amount: Decimal
    description: str = ""
    counterparty: str = ""
    due_date: Optional[date] = None
    payments: Tuple[Payment, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    payment_sequence: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", require_non_negative(self.amount, field="amount"))
        object.__setattr__(self, "kind", PayableKind(self.kind))
        object.__setattr__(self, "payments", tuple(self.payments))

    @property
    def paid_amount(self) -> Decimal:
        return sum((payment.amount for payment in self.payments), ZERO)

    @property
    def remaining_amount(self) -> Decimal:
        return resolve_status(self.amount, self.paid_amount).remaining

    @property
    def payment_status(self) -> PaymentStatus:
        return resolve_status(self.amount, self.paid_amount).status

    def payment(self, payment_id: str) -> Payment:
        for payment in self.payments:
            if payment.payment_id == payment_id:
                return payment
        raise NotFoundError("payment", payment_id)

    def next_payment_id(self) -> str:
        """Next payment id; a deleted payment never frees its number."""

        return f"{self.record_id}-p{self.payment_sequence + 1}"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "kind": self.kind.value,
            "amount": str(self.amount),
            "paid_amount": str(self.paid_amount),
            "remaining_amount": str(self.remaining_amount),
            "payment_status": self.payment_status.value,
            "description": self.description,
            "counterparty": self.counterparty,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "payments": [payment.as_dict() for payment in self.payments],
            "payment_sequence": self.payment_sequence,
        }


def record_payment(record: PayableRecord, payment: Payment) -> PayableRecord:
    """Append ``payment``; it may not exceed the remaining amount."""

    remaining = record.remaining_amount
    if round2(payment.amount) > remaining:
        raise ValidationError(
            f"Payment {payment.amount} exceeds remaining balance {remaining} on {record.record_id}"
        )
    if any(existing.payment_id == payment.payment_id for existing in record.payments):
        raise ValidationError(f"Payment {payment.payment_id} already recorded")
    updated = replace(
        record,
        payments=record.payments + (payment,),
        payment_sequence=record.payment_sequence + 1,
    )
    LOGGER.info(
        "Recorded payment %s of %s on %s %s: now %s",
        payment.payment_id,
        payment.amount,
        record.kind.value,
        record.record_id,
        updated.payment_status.value,
    )
    return updated


def delete_payment(record: PayableRecord, payment_id: str) -> PayableRecord:
    """Remove a payment; paid and remaining amounts follow automatically."""

    record.payment(payment_id)
    updated = replace(
        record,
        payments=tuple(payment for payment in record.payments if payment.payment_id != payment_id),
    )
    LOGGER.info(
        "Deleted payment %s from %s: now %s",
        payment_id,
        record.record_id,
        updated.payment_status.value,
    )
    return updated


def is_overdue(record: PayableRecord, today: date) -> bool:
    return (
        record.due_date is not None
        and record.payment_status is not PaymentStatus.PAID
        and today > record.due_date
    )


def check_total(record_id: str, field: str, stored: Amount, derived: Amount) -> Optional[RoundingDiscrepancy]:
    """Warn when a stored figure drifts more than one penny from its derivation."""

    stored_value = to_decimal(stored, field=field)
    derived_value = to_decimal(derived, field=field)
    if abs(stored_value - derived_value) <= CENT:
        return None
    discrepancy = RoundingDiscrepancy(record_id, field, derived_value, stored_value)
    LOGGER.warning("Rounding discrepancy: %s", discrepancy)
    return discrepancy


def check_integrity(
    record: PayableRecord,
    *,
    stored_paid: Optional[Amount] = None,
    stored_remaining: Optional[Amount] = None,
) -> List[RoundingDiscrepancy]:
    """Compare figures persisted alongside a record with the derived ones."""

    findings: List[RoundingDiscrepancy] = []
    if stored_paid is not None:
        finding = check_total(record.record_id, "paid_amount", stored_paid, record.paid_amount)
        if finding:
            findings.append(finding)
    if stored_remaining is not None:
        derived_remaining = record.amount - record.paid_amount
        finding = check_total(
            record.record_id, "remaining_amount", stored_remaining, derived_remaining
        )
        if finding:
            findings.append(finding)
    return findings
