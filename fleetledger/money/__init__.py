"""Mini README: Pure money helpers for the finance core.

This package holds the side-effect free calculators: Decimal coercion and
rounding (``amounts``), VAT-aware cost breakdowns (``vat``), payment status
derivation (``status``) and the vehicle-damage finance and share
calculators (``vd_finance``). Everything here is safe to call concurrently.
"""

from .amounts import CENT, ZERO, round2, to_decimal
from .status import PaymentStatus, StatusResolution, resolve_status
from .vat import VAT_RATE, CostBreakdown, ItemisedLine, calculate_costs, line_total, lines_total
from .vd_finance import (
    PercentOrFixed,
    VDFinanceBreakdown,
    calculate_vd_finance,
    hire_amount,
    legal_fee_cost,
)

__all__ = [
    "CENT",
    "CostBreakdown",
    "ItemisedLine",
    "PaymentStatus",
    "PercentOrFixed",
    "StatusResolution",
    "VAT_RATE",
    "VDFinanceBreakdown",
    "ZERO",
    "calculate_costs",
    "calculate_vd_finance",
    "hire_amount",
    "legal_fee_cost",
    "line_total",
    "lines_total",
    "resolve_status",
    "round2",
    "to_decimal",
]
