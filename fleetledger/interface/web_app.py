"""Mini README: FastAPI-powered JSON service for the fleetledger finance core.

Structure:
    * Request models - pydantic bodies mirroring the back-office forms.
    * create_application - application factory wiring routes, the account
      store, the transaction orchestrator and the payable service.
    * Error handlers - map finance errors onto HTTP status codes.

The service is a thin boundary: every route converts its body into core
types, calls a pure calculator or the orchestrator and serialises the
result with ``as_dict``. Monetary values travel as strings so no precision
is lost on the way through JSON. Validation failures answer 400, missing
records 404 and reconciliation failures 409 with the operator message.
The acting user is taken from the ``X-Actor`` header.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..accounts import AccountStore
from ..configuration import get_settings
from ..errors import NotFoundError, ReconciliationError, ValidationError
from ..ledgers import DateWindow, Recipient, allocate, make_entry, project, project_recent_first
from ..logging_utils import get_logger
from ..money import ItemisedLine, PercentOrFixed, calculate_costs, calculate_vd_finance, resolve_status
from ..payables import PayableKind, PayableService, Payment, PaymentMethod
from ..transactions import (
    Actor,
    ReconciliationQueue,
    TransactionDraft,
    TransactionOrchestrator,
    TransactionType,
)

LOGGER = get_logger(__name__)


class CostLineBody(BaseModel):
    quantity: Decimal = Field(..., ge=0)
    unit_price: Decimal = Field(..., ge=0)
    include_vat: bool = False
    description: str = ""
    discount_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)

    def to_line(self) -> ItemisedLine:
        return ItemisedLine.of(
            self.quantity,
            self.unit_price,
            self.include_vat,
            description=self.description,
            discount_percentage=self.discount_percentage,
        )


class CostBody(BaseModel):
    lines: List[CostLineBody] = Field(default_factory=list)
    labor_hours: Decimal = Decimal("0")
    labor_rate: Decimal = Decimal("0")
    labor_includes_vat: bool = False


class VDFinanceBody(CostBody):
    gross_amount: Decimal
    vat_percentage: Decimal = Decimal("20")
    client_repair_percentage: Optional[Decimal] = None
    client_repair_amount: Optional[Decimal] = None
    solicitor_fee: Optional[Decimal] = None
    salvage: Decimal = Decimal("0")
    client_referral_fee: Decimal = Decimal("0")


class StatusBody(BaseModel):
    total: Decimal
    paid: Decimal


class AccountBody(BaseModel):
    name: str
    account_id: Optional[str] = None
    opening_balance: Decimal = Decimal("0")


class TransactionBody(BaseModel):
    amount: Decimal
    occurred_on: date
    category: str = ""
    description: str = ""
    account_from: Optional[str] = None
    account_to: Optional[str] = None
    default_type: str = TransactionType.EXPENSE.value
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None

    def to_draft(self) -> TransactionDraft:
        return TransactionDraft(
            amount=self.amount,
            occurred_on=self.occurred_on,
            category=self.category,
            description=self.description,
            account_from=self.account_from,
            account_to=self.account_to,
            default_type=TransactionType.from_str(self.default_type),
            payment_method=self.payment_method,
            payment_reference=self.payment_reference,
        )


class LedgerRowBody(BaseModel):
    entry_id: str
    occurred_on: date
    amount_in: Decimal = Decimal("0")
    amount_out: Decimal = Decimal("0")
    created_at: Optional[datetime] = None
    description: str = ""


class LedgerBody(BaseModel):
    entries: List[LedgerRowBody]
    recent_first: bool = False


class RecipientBody(BaseModel):
    name: str
    percentage: Decimal


class SplitBody(BaseModel):
    start_date: date
    end_date: date
    balance: Decimal
    recipients: List[RecipientBody]


class PayableBody(BaseModel):
    kind: PayableKind
    amount: Decimal
    description: str = ""
    counterparty: str = ""
    due_date: Optional[date] = None


class PaymentBody(BaseModel):
    amount: Decimal
    paid_on: date
    method: PaymentMethod = PaymentMethod.CASH
    reference: Optional[str] = None
    notes: str = ""
    account_id: Optional[str] = None


def create_application(orchestrator: Optional[TransactionOrchestrator] = None) -> FastAPI:
    """Create the FastAPI application with routes and dependencies."""

    app = FastAPI(title="Fleetledger Finance Centre", version="0.1.0")
    settings = get_settings()
    if orchestrator is None:
        orchestrator = TransactionOrchestrator(
            AccountStore(), queue=ReconciliationQueue(settings.reconciliation_log_path)
        )
    store = orchestrator.store
    payables = PayableService(orchestrator=orchestrator)

    @app.exception_handler(ValidationError)
    async def handle_validation(request: Request, error: ValidationError) -> JSONResponse:
        LOGGER.info("Rejected %s %s: %s", request.method, request.url.path, error)
        return JSONResponse(
            {"detail": str(error), "message": error.user_message}, status_code=400
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, error: RequestValidationError
    ) -> JSONResponse:
        LOGGER.info("Rejected malformed body for %s %s", request.method, request.url.path)
        return JSONResponse(
            {"detail": jsonable_encoder(error.errors()), "message": ValidationError.user_message},
            status_code=400,
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, error: NotFoundError) -> JSONResponse:
        return JSONResponse({"detail": str(error), "message": error.user_message}, status_code=404)

    @app.exception_handler(ReconciliationError)
    async def handle_reconciliation(request: Request, error: ReconciliationError) -> JSONResponse:
        LOGGER.error("Reconciliation needed after %s %s: %s", request.method, request.url.path, error)
        return JSONResponse(
            {
                "detail": str(error),
                "message": error.user_message,
                "entry_id": error.entry_id,
                "stage": error.stage,
                "affected_accounts": list(error.affected_accounts),
            },
            status_code=409,
        )

    @app.post("/costs")
    async def costs(body: CostBody) -> JSONResponse:
        """Return the rounded VAT-aware cost breakdown of itemised lines."""

        breakdown = calculate_costs(
            [line.to_line() for line in body.lines],
            labor_hours=body.labor_hours,
            labor_rate=body.labor_rate,
            labor_includes_vat=body.labor_includes_vat,
        )
        return JSONResponse(breakdown.rounded().as_dict())

    @app.post("/vd-finance")
    async def vd_finance(body: VDFinanceBody) -> JSONResponse:
        breakdown = calculate_vd_finance(
            body.gross_amount,
            body.vat_percentage,
            [line.to_line() for line in body.lines],
            body.labor_hours,
            body.labor_rate,
            body.labor_includes_vat,
            client_repair=PercentOrFixed.from_form(
                body.client_repair_percentage,
                body.client_repair_amount,
                default_percentage=20,
            ),
            solicitor_fee=body.solicitor_fee,
            salvage=body.salvage,
            client_referral_fee=body.client_referral_fee,
        )
        return JSONResponse(breakdown.as_dict())

    @app.post("/payment-status")
    async def payment_status(body: StatusBody) -> JSONResponse:
        resolution = resolve_status(body.total, body.paid)
        return JSONResponse(
            {"remaining": str(resolution.remaining), "status": resolution.status.value}
        )

    @app.get("/accounts")
    async def accounts() -> JSONResponse:
        """List accounts with their balance verification flag."""

        payload = [
            {**account.as_dict(), "verified": store.is_verified(account.account_id)}
            for account in store.list_accounts()
        ]
        return JSONResponse({"accounts": payload})

    @app.post("/accounts", status_code=201)
    async def open_account(body: AccountBody) -> JSONResponse:
        account = store.open_account(
            body.name, account_id=body.account_id, opening_balance=body.opening_balance
        )
        return JSONResponse(account.as_dict(), status_code=201)

    @app.get("/transactions")
    async def transactions() -> JSONResponse:
        return JSONResponse(
            {"transactions": [item.as_dict() for item in orchestrator.list_transactions()]}
        )

    @app.post("/transactions", status_code=201)
    async def create_transaction(
        body: TransactionBody, x_actor: str = Header("system")
    ) -> JSONResponse:
        outcome = orchestrator.create(body.to_draft(), Actor(x_actor))
        return JSONResponse(outcome.transaction.as_dict(), status_code=201)

    @app.put("/transactions/{transaction_id}")
    async def edit_transaction(
        transaction_id: str, body: TransactionBody, x_actor: str = Header("system")
    ) -> JSONResponse:
        outcome = orchestrator.edit(transaction_id, body.to_draft(), Actor(x_actor))
        return JSONResponse(outcome.transaction.as_dict())

    @app.delete("/transactions/{transaction_id}")
    async def delete_transaction(transaction_id: str, x_actor: str = Header("system")) -> JSONResponse:
        outcome = orchestrator.delete(transaction_id, Actor(x_actor))
        return JSONResponse(outcome.transaction.as_dict())

    @app.post("/ledger/project")
    async def ledger_project(body: LedgerBody) -> JSONResponse:
        """Project petty-cash rows into running balances."""

        entries = [
            make_entry(
                row.entry_id,
                row.occurred_on,
                amount_in=row.amount_in,
                amount_out=row.amount_out,
                created_at=row.created_at,
                description=row.description,
                sequence=index,
            )
            for index, row in enumerate(body.entries)
        ]
        rows = project_recent_first(entries) if body.recent_first else project(entries)
        return JSONResponse(
            {
                "entries": [
                    {"entry_id": row.entry_id, "running_balance": str(row.running_balance)}
                    for row in rows
                ]
            }
        )

    @app.post("/splits/allocate")
    async def split_allocate(body: SplitBody) -> JSONResponse:
        DateWindow(body.start_date, body.end_date)
        allocated = allocate(
            body.balance,
            [Recipient(name=item.name, percentage=item.percentage) for item in body.recipients],
        )
        return JSONResponse(
            {
                "recipients": [
                    {"name": item.name, "percentage": str(item.percentage), "amount": str(item.amount)}
                    for item in allocated
                ],
                "total_split_amount": str(sum((item.amount for item in allocated), Decimal("0"))),
            }
        )

    @app.post("/payables", status_code=201)
    async def create_payable(body: PayableBody) -> JSONResponse:
        record = payables.create(
            body.kind,
            body.amount,
            description=body.description,
            counterparty=body.counterparty,
            due_date=body.due_date,
        )
        return JSONResponse(record.as_dict(), status_code=201)

    @app.get("/payables")
    async def list_payables(kind: Optional[PayableKind] = None) -> JSONResponse:
        return JSONResponse({"records": [record.as_dict() for record in payables.list_records(kind)]})

    @app.get("/payables/{record_id}")
    async def get_payable(record_id: str) -> JSONResponse:
        return JSONResponse(payables.get(record_id).as_dict())

    @app.delete("/payables/{record_id}")
    async def delete_payable(record_id: str, x_actor: str = Header("system")) -> JSONResponse:
        return JSONResponse(payables.delete(record_id, Actor(x_actor)).as_dict())

    @app.post("/payables/{record_id}/payments", status_code=201)
    async def add_payable_payment(
        record_id: str, body: PaymentBody, x_actor: str = Header("system")
    ) -> JSONResponse:
        payment = Payment(
            payment_id="",
            amount=body.amount,
            paid_on=body.paid_on,
            method=body.method,
            reference=body.reference,
            notes=body.notes,
        )
        receipt = payables.add_payment(record_id, payment, Actor(x_actor), account_id=body.account_id)
        return JSONResponse(receipt.record.as_dict(), status_code=201)

    @app.delete("/payables/{record_id}/payments/{payment_id}")
    async def remove_payable_payment(
        record_id: str, payment_id: str, x_actor: str = Header("system")
    ) -> JSONResponse:
        return JSONResponse(payables.remove_payment(record_id, payment_id, Actor(x_actor)).as_dict())

    @app.get("/reconciliation")
    async def reconciliation() -> JSONResponse:
        """Pending reconciliation entries awaiting an operator decision."""

        return JSONResponse({"pending": [entry.as_dict() for entry in orchestrator.queue.pending()]})

    @app.post("/reconciliation/{entry_id}/rollback")
    async def reconciliation_rollback(entry_id: str, x_actor: str = Header("system")) -> JSONResponse:
        return JSONResponse(orchestrator.rollback(entry_id, Actor(x_actor)).as_dict())

    @app.post("/reconciliation/{entry_id}/roll-forward")
    async def reconciliation_roll_forward(
        entry_id: str, x_actor: str = Header("system")
    ) -> JSONResponse:
        return JSONResponse(orchestrator.roll_forward(entry_id, Actor(x_actor)).as_dict())

    return app
