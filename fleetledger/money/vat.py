"""Mini README: VAT-aware cost breakdowns for itemised work.

Structure:
    * VAT_RATE - the fixed 20% rate applied to flagged lines.
    * ItemisedLine - a part, expense item or VAT description line.
    * CostBreakdown - net/VAT/gross totals plus parts and labour subtotals.
    * calculate_costs - pure calculator used by maintenance and VD finance.
    * line_total / lines_total - gross value of one line or a list of lines.

The calculator keeps full precision: nothing is rounded until a caller asks
for ``CostBreakdown.rounded()`` for display. That keeps results additive, so
costing two line lists separately and summing equals costing their
concatenation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable

from ..errors import ValidationError
from ..logging_utils import get_logger
from .amounts import ZERO, Amount, require_non_negative, round2, to_decimal

LOGGER = get_logger(__name__)

VAT_RATE = Decimal("0.20")


@dataclass(slots=True, frozen=True)
class ItemisedLine:
    """One priced line; quantity and unit price are validated on creation."""

    quantity: Decimal
    unit_price: Decimal
    include_vat: bool = False
    description: str = ""
    discount_percentage: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", require_non_negative(self.quantity, field="quantity"))
        object.__setattr__(
            self, "unit_price", require_non_negative(self.unit_price, field="unit_price")
        )
        discount = require_non_negative(self.discount_percentage, field="discount_percentage")
        if discount > 100:
            raise ValidationError(f"discount_percentage cannot exceed 100, got {discount}")
        object.__setattr__(self, "discount_percentage", discount)

    @classmethod
    def of(
        cls,
        quantity: Amount,
        unit_price: Amount,
        include_vat: bool = False,
        *,
        description: str = "",
        discount_percentage: Amount = 0,
    ) -> "ItemisedLine":
        """Build a line from loosely typed form values."""

        return cls(
            quantity=to_decimal(quantity, field="quantity"),
            unit_price=to_decimal(unit_price, field="unit_price"),
            include_vat=bool(include_vat),
            description=description,
            discount_percentage=to_decimal(discount_percentage, field="discount_percentage"),
        )

    @property
    def net(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def vat(self) -> Decimal:
        return self.net * VAT_RATE if self.include_vat else ZERO


@dataclass(slots=True, frozen=True)
class CostBreakdown:
    """Totals produced by :func:`calculate_costs`."""

    net_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    parts_total: Decimal
    labor_total: Decimal

    def __add__(self, other: "CostBreakdown") -> "CostBreakdown":
        if not isinstance(other, CostBreakdown):
            return NotImplemented
        return CostBreakdown(
            net_amount=self.net_amount + other.net_amount,
            vat_amount=self.vat_amount + other.vat_amount,
            total_amount=self.total_amount + other.total_amount,
            parts_total=self.parts_total + other.parts_total,
            labor_total=self.labor_total + other.labor_total,
        )

    def rounded(self) -> "CostBreakdown":
        """Return a display copy with every figure rounded to pennies."""

        return CostBreakdown(
            net_amount=round2(self.net_amount),
            vat_amount=round2(self.vat_amount),
            total_amount=round2(self.total_amount),
            parts_total=round2(self.parts_total),
            labor_total=round2(self.labor_total),
        )

    def as_dict(self) -> Dict[str, str]:
        return {
            "net_amount": str(self.net_amount),
            "vat_amount": str(self.vat_amount),
            "total_amount": str(self.total_amount),
            "parts_total": str(self.parts_total),
            "labor_total": str(self.labor_total),
        }


def line_total(line: ItemisedLine) -> Decimal:
    """Gross value of a line: ``quantity x unit_price x (1 + VAT if flagged)``."""

    return line.net + line.vat


def lines_total(lines: Iterable[ItemisedLine]) -> Decimal:
    return sum((line_total(line) for line in lines), ZERO)


def calculate_costs(
    lines: Iterable[ItemisedLine],
    labor_hours: Amount = 0,
    labor_rate: Amount = 0,
    labor_includes_vat: bool = False,
) -> CostBreakdown:
    """Compute net, VAT and gross totals for parts plus labour."""

    lines = list(lines)
    parts_net = sum((line.net for line in lines), ZERO)
    parts_vat = sum((line.vat for line in lines), ZERO)

    labor_net = to_decimal(labor_hours, field="labor_hours") * to_decimal(
        labor_rate, field="labor_rate"
    )
    labor_vat = labor_net * VAT_RATE if labor_includes_vat else ZERO

    net_amount = parts_net + labor_net
    vat_amount = parts_vat + labor_vat
    breakdown = CostBreakdown(
        net_amount=net_amount,
        vat_amount=vat_amount,
        total_amount=net_amount + vat_amount,
        parts_total=parts_net + parts_vat,
        labor_total=labor_net + labor_vat,
    )
    LOGGER.debug(
        "Costed %s lines: net=%s vat=%s total=%s",
        len(lines),
        breakdown.net_amount,
        breakdown.vat_amount,
        breakdown.total_amount,
    )
    return breakdown
