"""Mini README: Tests covering the FastAPI JSON service.

Structure:
    * test_costs_endpoint - rounded breakdown strings.
    * test_transaction_lifecycle_over_http - create, edit and delete via routes.
    * test_error_mapping - 400 for bad input, 404 for missing records.
    * test_reconciliation_conflict - partial failures answer 409.
    * test_payables_and_ledger_routes - payments, petty cash and splits.
    * test_vd_finance_and_payable_listing - calculator route and record listing.
    * test_payment_added_after_a_deletion - payment ids survive deletions.
    * test_same_date_rows_keep_submission_order - ledger ties follow input order.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from fleetledger.accounts import AccountStore
from fleetledger.interface import create_application
from fleetledger.transactions import TransactionOrchestrator, TransactionRepository


def _client(repository: TransactionRepository = None) -> TestClient:
    store = AccountStore()
    store.open_account("Bank", account_id="Acc-1", opening_balance=500)
    store.open_account("Cash", account_id="Acc-2")
    return TestClient(create_application(TransactionOrchestrator(store, repository=repository)))


def _balances(client: TestClient) -> dict:
    accounts = client.get("/accounts").json()["accounts"]
    return {account["account_id"]: account["balance"] for account in accounts}


def test_costs_endpoint() -> None:
    client = _client()

    response = client.post(
        "/costs",
        json={
            "lines": [{"quantity": 3, "unit_price": "0.335", "include_vat": True}],
            "labor_hours": 1,
            "labor_rate": "20",
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "net_amount": "21.01",
        "vat_amount": "0.20",
        "total_amount": "21.21",
        "parts_total": "1.21",
        "labor_total": "20.00",
    }


def test_payment_status_endpoint() -> None:
    client = _client()

    response = client.post("/payment-status", json={"total": "100.00", "paid": "99.999"})

    assert response.json() == {"remaining": "0.00", "status": "paid"}


def test_transaction_lifecycle_over_http() -> None:
    client = _client()

    created = client.post(
        "/transactions",
        json={
            "amount": "150",
            "occurred_on": "2024-05-01",
            "account_from": "Acc-1",
            "account_to": "External Supplier",
        },
        headers={"X-Actor": "ops-1"},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["transaction_type"] == "expense"
    assert body["created_by"] == "ops-1"
    assert _balances(client) == {"Acc-1": "350", "Acc-2": "0"}

    edited = client.put(
        f"/transactions/{body['transaction_id']}",
        json={
            "amount": "200",
            "occurred_on": "2024-05-01",
            "account_from": "Acc-1",
            "account_to": "Acc-2",
        },
    )
    assert edited.status_code == 200
    assert edited.json()["transaction_type"] == "transfer"
    assert _balances(client) == {"Acc-1": "300", "Acc-2": "200"}

    deleted = client.delete(f"/transactions/{body['transaction_id']}")
    assert deleted.status_code == 200
    assert deleted.json()["deleted_by"] == "system"
    assert _balances(client) == {"Acc-1": "500", "Acc-2": "0"}
    assert client.get("/transactions").json() == {"transactions": []}


def test_error_mapping() -> None:
    client = _client()

    invalid = client.post(
        "/transactions",
        json={"amount": "10", "occurred_on": "2024-05-01", "account_from": "Acc-1", "account_to": "Acc-1"},
    )
    malformed = client.post("/transactions", json={"amount": "10"})
    missing = client.delete("/transactions/txn_9999")
    over_cap = client.post(
        "/splits/allocate",
        json={
            "start_date": "2024-01-01",
            "end_date": "2024-01-31",
            "balance": "100",
            "recipients": [
                {"name": "Partner A", "percentage": "50"},
                {"name": "Partner B", "percentage": "50.001"},
            ],
        },
    )

    assert invalid.status_code == 400
    assert invalid.json()["message"] == "could not save; no changes applied"
    assert malformed.status_code == 400
    assert missing.status_code == 404
    assert over_cap.status_code == 400


class BrokenRepository(TransactionRepository):
    def create(self, item):
        raise RuntimeError("document store unavailable")


def test_reconciliation_conflict() -> None:
    client = _client(BrokenRepository())

    response = client.post(
        "/transactions",
        json={"amount": "25", "occurred_on": "2024-05-01", "account_from": "Acc-1", "account_to": "Garage"},
    )

    assert response.status_code == 409
    payload = response.json()
    assert payload["message"] == "saved, but balances may need verification"
    assert payload["affected_accounts"] == ["Acc-1"]
    pending = client.get("/reconciliation").json()["pending"]
    assert [entry["entry_id"] for entry in pending] == [payload["entry_id"]]
    accounts = client.get("/accounts").json()["accounts"]
    assert {account["account_id"]: account["verified"] for account in accounts} == {
        "Acc-1": False,
        "Acc-2": True,
    }

    rolled_back = client.post(f"/reconciliation/{payload['entry_id']}/rollback")
    assert rolled_back.status_code == 200
    assert rolled_back.json()["resolution"] == "rollback"
    assert _balances(client)["Acc-1"] == "500"


def test_payables_and_ledger_routes() -> None:
    client = _client()

    record = client.post(
        "/payables",
        json={"kind": "invoice", "amount": "120.00", "counterparty": "Acme Taxis"},
    ).json()
    paid = client.post(
        f"/payables/{record['record_id']}/payments",
        json={"amount": "20.00", "paid_on": "2024-04-10", "account_id": "Acc-2"},
    )
    assert paid.status_code == 201
    assert paid.json()["payment_status"] == "partially_paid"
    assert paid.json()["remaining_amount"] == "100.00"
    assert _balances(client)["Acc-2"] == "20.00"

    ledger = client.post(
        "/ledger/project",
        json={
            "entries": [
                {"entry_id": "pc_1", "occurred_on": "2024-03-01", "amount_out": "50"},
                {"entry_id": "pc_2", "occurred_on": "2024-03-02", "amount_in": "200"},
                {"entry_id": "pc_3", "occurred_on": "2024-03-03", "amount_out": "30"},
            ],
            "recent_first": True,
        },
    ).json()
    assert [row["running_balance"] for row in ledger["entries"]] == ["120", "150", "-50"]

    split = client.post(
        "/splits/allocate",
        json={
            "start_date": "2024-01-01",
            "end_date": "2024-01-31",
            "balance": "250",
            "recipients": [{"name": "Partner A", "percentage": "60"}, {"name": "Partner B", "percentage": "40"}],
        },
    ).json()
    assert [recipient["amount"] for recipient in split["recipients"]] == ["150.00", "100.00"]
    assert split["total_split_amount"] == "250.00"


def test_vd_finance_and_payable_listing() -> None:
    client = _client()

    breakdown = client.post(
        "/vd-finance",
        json={"gross_amount": "1200", "vat_percentage": "20", "client_repair_amount": "150"},
    )
    ambiguous = client.post(
        "/vd-finance",
        json={"gross_amount": "1200", "client_repair_amount": "150", "client_repair_percentage": "10"},
    )
    assert breakdown.json()["net_amount"] == "1000.00"
    assert breakdown.json()["profit"] == "750.00"
    assert ambiguous.status_code == 400

    invoice = client.post("/payables", json={"kind": "invoice", "amount": "50"}).json()
    client.post("/payables", json={"kind": "maintenance", "amount": "30"})
    listed = client.get("/payables", params={"kind": "invoice"}).json()["records"]
    assert [record["record_id"] for record in listed] == [invoice["record_id"]]

    assert client.delete(f"/payables/{invoice['record_id']}").status_code == 200
    assert client.get(f"/payables/{invoice['record_id']}").status_code == 404


def test_payment_added_after_a_deletion() -> None:
    client = _client()
    record_id = client.post("/payables", json={"kind": "invoice", "amount": "100"}).json()["record_id"]
    url = f"/payables/{record_id}/payments"

    client.post(url, json={"amount": "10", "paid_on": "2024-04-10"})
    client.post(url, json={"amount": "20", "paid_on": "2024-04-11"})
    assert client.delete(f"{url}/{record_id}-p1").status_code == 200
    third = client.post(url, json={"amount": "5", "paid_on": "2024-04-12"})

    assert third.status_code == 201
    assert [payment["payment_id"] for payment in third.json()["payments"]] == [
        f"{record_id}-p2",
        f"{record_id}-p3",
    ]
    assert third.json()["paid_amount"] == "25"


def test_same_date_rows_keep_submission_order() -> None:
    client = _client()

    ledger = client.post(
        "/ledger/project",
        json={
            "entries": [
                {"entry_id": "pc_2", "occurred_on": "2024-03-01", "amount_in": "100"},
                {"entry_id": "pc_10", "occurred_on": "2024-03-01", "amount_out": "30"},
            ]
        },
    ).json()

    assert [(row["entry_id"], row["running_balance"]) for row in ledger["entries"]] == [
        ("pc_2", "100"),
        ("pc_10", "70"),
    ]
