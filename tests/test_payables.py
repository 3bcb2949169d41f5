"""Mini README: Tests covering payable records and the payable service.

Structure:
    * test_partial_payments_drive_status - status follows the payments list.
    * test_overpayment_is_rejected - payments cannot exceed what is owed.
    * test_deleting_payment_recomputes_amounts - removal reopens the balance.
    * test_overdue_detection - only unsettled records past due are overdue.
    * test_integrity_check_reports_drift - stored figures are compared, not fixed.
    * test_invoice_payment_posts_income - the service credits the chosen account.
    * test_maintenance_payment_posts_expense - and debits it for costs.
    * test_payment_without_account_moves_no_balance - unposted payments and overdue listing.
    * test_deleting_record_reverses_posted_payments - record deletion unwinds postings.
    * test_payment_ids_are_never_reused - deleted payment numbers stay retired.
    * test_concurrent_payments_on_one_record_are_both_kept - per-record serialisation.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from decimal import Decimal

import pytest

from fleetledger.accounts import AccountStore
from fleetledger.errors import NotFoundError, ValidationError
from fleetledger.money import PaymentStatus
from fleetledger.payables import (
    PayableKind,
    PayableRecord,
    PayableService,
    Payment,
    PaymentMethod,
    check_integrity,
    delete_payment,
    is_overdue,
    record_payment,
)
from fleetledger.transactions import Actor, TransactionOrchestrator, TransactionType

ACTOR = Actor("clerk-1")


def _invoice(amount: str = "100.00") -> PayableRecord:
    return PayableRecord(
        record_id="pay_0001",
        kind=PayableKind.INVOICE,
        amount=Decimal(amount),
        counterparty="Acme Taxis",
        due_date=date(2024, 4, 30),
    )


def _payment(payment_id: str, amount: str) -> Payment:
    return Payment(payment_id=payment_id, amount=Decimal(amount), paid_on=date(2024, 4, 10))


def test_partial_payments_drive_status() -> None:
    record = _invoice()
    assert record.payment_status is PaymentStatus.UNPAID

    record = record_payment(record, _payment("p1", "40.00"))
    assert record.payment_status is PaymentStatus.PARTIALLY_PAID
    assert record.paid_amount == Decimal("40.00")
    assert record.remaining_amount == Decimal("60.00")

    record = record_payment(record, _payment("p2", "60.00"))
    assert record.payment_status is PaymentStatus.PAID
    assert record.remaining_amount == Decimal("0.00")


def test_overpayment_is_rejected() -> None:
    record = record_payment(_invoice(), _payment("p1", "90.00"))

    with pytest.raises(ValidationError):
        record_payment(record, _payment("p2", "10.01"))
    with pytest.raises(ValidationError):
        record_payment(record, _payment("p1", "1.00"))
    with pytest.raises(ValidationError):
        _payment("p3", "0")


def test_deleting_payment_recomputes_amounts() -> None:
    record = record_payment(_invoice(), _payment("p1", "100.00"))

    reopened = delete_payment(record, "p1")

    assert reopened.paid_amount == Decimal("0")
    assert reopened.remaining_amount == Decimal("100.00")
    assert reopened.payment_status is PaymentStatus.UNPAID
    with pytest.raises(NotFoundError):
        delete_payment(reopened, "p1")


def test_overdue_detection() -> None:
    record = _invoice()

    assert not is_overdue(record, date(2024, 4, 30))
    assert is_overdue(record, date(2024, 5, 1))
    partly_paid = record_payment(record, _payment("p1", "10.00"))
    assert is_overdue(partly_paid, date(2024, 5, 1))
    settled = record_payment(partly_paid, _payment("p2", "90.00"))
    assert not is_overdue(settled, date(2024, 5, 1))


def test_integrity_check_reports_drift(caplog) -> None:
    """Drift beyond a penny is reported and logged but never corrected."""

    record = record_payment(_invoice(), _payment("p1", "40.00"))

    with caplog.at_level(logging.WARNING):
        findings = check_integrity(record, stored_paid="40.00", stored_remaining="65.00")

    (finding,) = findings
    assert finding.field == "remaining_amount"
    assert finding.expected == Decimal("60.00")
    assert finding.difference == Decimal("5.00")
    assert "Rounding discrepancy" in caplog.text
    assert record.remaining_amount == Decimal("60.00")
    assert check_integrity(record, stored_paid="40.01", stored_remaining="59.99") == []


def _service() -> PayableService:
    store = AccountStore()
    store.open_account("Bank", account_id="Acc-1", opening_balance=500)
    return PayableService(orchestrator=TransactionOrchestrator(store))


def test_invoice_payment_posts_income() -> None:
    service = _service()
    record = service.create(PayableKind.INVOICE, "250.00", counterparty="Acme Taxis")

    receipt = service.add_payment(
        record.record_id,
        Payment("p1", Decimal("100.00"), date(2024, 4, 10), method=PaymentMethod.BANK_TRANSFER),
        ACTOR,
        account_id="Acc-1",
    )

    store = service.orchestrator.store
    assert receipt.transaction.transaction_type is TransactionType.INCOME
    assert receipt.transaction.account_from.label == "Acme Taxis"
    assert receipt.payment.transaction_id == receipt.transaction.transaction_id
    assert receipt.payment.created_by == "clerk-1"
    assert store.get_account("Acc-1").balance == Decimal("600.00")
    assert service.get(record.record_id).payment_status is PaymentStatus.PARTIALLY_PAID

    service.remove_payment(record.record_id, "p1", ACTOR)

    assert store.get_account("Acc-1").balance == Decimal("500.00")
    assert service.get(record.record_id).payment_status is PaymentStatus.UNPAID
    assert service.orchestrator.list_transactions() == []


def test_maintenance_payment_posts_expense() -> None:
    service = _service()
    record = service.create(PayableKind.MAINTENANCE, "80.00", description="Brake pads")

    receipt = service.add_payment(
        record.record_id, _payment("p1", "80.00"), ACTOR, account_id="Acc-1"
    )

    assert receipt.transaction.transaction_type is TransactionType.EXPENSE
    assert receipt.record.payment_status is PaymentStatus.PAID
    assert service.orchestrator.store.get_account("Acc-1").balance == Decimal("420.00")


def test_payment_without_account_moves_no_balance() -> None:
    service = _service()
    record = service.create(PayableKind.VD_FINANCE, "300.00", due_date=date(2024, 1, 31))

    receipt = service.add_payment(record.record_id, _payment("p1", "50.00"), ACTOR)

    assert receipt.transaction is None
    assert service.orchestrator.store.get_account("Acc-1").balance == Decimal("500")
    assert [item.record_id for item in service.overdue(date(2024, 2, 1))] == [record.record_id]
    with pytest.raises(NotFoundError):
        service.add_payment(record.record_id, _payment("p2", "10.00"), ACTOR, account_id="Acc-404")
    assert service.get(record.record_id).paid_amount == Decimal("50.00")


def test_deleting_record_reverses_posted_payments() -> None:
    service = _service()
    invoice = service.create(PayableKind.INVOICE, "90.00", counterparty="Acme Taxis")
    repair = service.create(PayableKind.MAINTENANCE, "40.00", description="Tyres")
    service.add_payment(invoice.record_id, _payment("p1", "90.00"), ACTOR, account_id="Acc-1")

    assert [record.record_id for record in service.list_records(PayableKind.MAINTENANCE)] == [
        repair.record_id
    ]
    service.delete(invoice.record_id, ACTOR)

    assert service.orchestrator.store.get_account("Acc-1").balance == Decimal("500.00")
    assert [record.record_id for record in service.list_records()] == [repair.record_id]
    with pytest.raises(NotFoundError):
        service.get(invoice.record_id)


def test_payment_ids_are_never_reused() -> None:
    service = _service()
    record = service.create(PayableKind.INVOICE, "100.00", counterparty="Acme Taxis")
    blank = Payment("", Decimal("10.00"), date(2024, 4, 10))

    first = service.add_payment(record.record_id, blank, ACTOR).payment
    second = service.add_payment(record.record_id, blank, ACTOR).payment
    service.remove_payment(record.record_id, first.payment_id, ACTOR)
    third = service.add_payment(record.record_id, blank, ACTOR).payment

    assert [first.payment_id, second.payment_id, third.payment_id] == [
        "pay_0001-p1",
        "pay_0001-p2",
        "pay_0001-p3",
    ]
    assert service.get(record.record_id).paid_amount == Decimal("20.00")


def test_concurrent_payments_on_one_record_are_both_kept(monkeypatch) -> None:
    """A payment arriving while another is posting waits for it to finish."""

    service = _service()
    record = service.create(PayableKind.MAINTENANCE, "100.00", description="Brake pads")
    orchestrator = service.orchestrator
    create = orchestrator.create
    second = threading.Thread(
        target=service.add_payment,
        args=(record.record_id, _payment("p2", "30.00"), ACTOR),
        kwargs={"account_id": "Acc-1"},
    )

    def create_while_another_payment_arrives(draft, actor):
        if second.ident is None:
            second.start()
            second.join(timeout=0.2)
        return create(draft, actor)

    monkeypatch.setattr(orchestrator, "create", create_while_another_payment_arrives)
    service.add_payment(record.record_id, _payment("p1", "20.00"), ACTOR, account_id="Acc-1")
    second.join()

    stored = service.get(record.record_id)
    assert sorted(payment.payment_id for payment in stored.payments) == ["p1", "p2"]
    assert stored.paid_amount == Decimal("50.00")
    assert orchestrator.store.get_account("Acc-1").balance == Decimal("450.00")
    assert len(orchestrator.list_transactions()) == 2
