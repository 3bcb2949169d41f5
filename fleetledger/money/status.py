"""Mini README: Payment status derivation for payable records.

``resolve_status`` is shared by invoices, maintenance logs and VD finance
records. Both operands are rounded to pennies before they are compared so
floating noise such as ``99.999`` against ``100.00`` settles as ``paid``
instead of leaving a phantom partial payment.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from .amounts import ZERO, Amount, round2


class PaymentStatus(str, Enum):
    """Settlement state of anything with a total and payments against it."""

    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


@dataclass(slots=True, frozen=True)
class StatusResolution:
    remaining: Decimal
    status: PaymentStatus


def resolve_status(total: Amount, paid: Amount) -> StatusResolution:
    """Return the outstanding amount and settlement status."""

    total_cents = round2(total)
    paid_cents = round2(paid)
    if paid_cents >= total_cents:
        return StatusResolution(remaining=round2(ZERO), status=PaymentStatus.PAID)
    remaining = round2(total_cents - paid_cents)
    if paid_cents == ZERO:
        return StatusResolution(remaining=remaining, status=PaymentStatus.UNPAID)
    return StatusResolution(remaining=remaining, status=PaymentStatus.PARTIALLY_PAID)
