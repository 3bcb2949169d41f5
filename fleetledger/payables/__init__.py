"""Mini README: Invoices, maintenance logs and VD finance records with payments."""

from .records import (
    PayableKind,
    PayableRecord,
    Payment,
    PaymentMethod,
    check_integrity,
    check_total,
    delete_payment,
    is_overdue,
    record_payment,
)
from .service import PayableRepository, PayableService, PaymentReceipt

__all__ = [
    "PayableKind",
    "PayableRecord",
    "PayableRepository",
    "PayableService",
    "Payment",
    "PaymentMethod",
    "PaymentReceipt",
    "check_integrity",
    "check_total",
    "delete_payment",
    "is_overdue",
    "record_payment",
]
