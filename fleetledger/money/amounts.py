"""Mini README: Decimal coercion and rounding helpers for monetary values.

Every component works in ``Decimal``. Callers may pass ints, floats or
strings; floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")``
rather than its binary expansion. Rounding happens only at the terminal
points that need it (display and status comparison) using half-up to the
currency minor unit.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from ..errors import ValidationError

Amount = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Amount, *, field: str = "amount") -> Decimal:
    """Coerce ``value`` into a finite ``Decimal``."""

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValidationError(f"{field} must be numeric, got a boolean")
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, AttributeError) as error:
            raise ValidationError(f"{field} must be numeric, got {value!r}") from error
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite, got {value!r}")
    return result


def round2(value: Amount) -> Decimal:
    """Round to two decimal places, halves away from zero."""

    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def require_non_negative(value: Amount, *, field: str) -> Decimal:
    amount = to_decimal(value, field=field)
    if amount < ZERO:
        raise ValidationError(f"{field} cannot be negative, got {amount}")
    return amount


def require_positive(value: Amount, *, field: str = "amount") -> Decimal:
    amount = to_decimal(value, field=field)
    if amount <= ZERO:
        raise ValidationError(f"{field} must be greater than zero, got {amount}")
    return amount
