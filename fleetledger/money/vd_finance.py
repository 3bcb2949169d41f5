"""Mini README: Vehicle-damage finance and share calculators.

Structure:
    * PercentOrFixed - exclusive choice between a percentage of a base and a
      fixed override (client repair, legal fees).
    * VDFinanceBreakdown - figures stored on a VD finance record.
    * calculate_vd_finance - gross claim value to profit, via parts, labour,
      fees and deductions.
    * legal_fee_cost - legal fee on the amount actually paid out.
    * hire_amount - hire charge for a date range, billed per started week.

A record may specify a client repair (or legal fee) either as a percentage
or as a fixed amount, never both. Supplying both non-zero values is
rejected instead of letting whichever field was edited last win.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional

from ..configuration import get_settings
from ..errors import ValidationError
from ..logging_utils import get_logger
from .amounts import HUNDRED, ZERO, Amount, require_non_negative, round2, to_decimal
from .vat import VAT_RATE, ItemisedLine

LOGGER = get_logger(__name__)

DEFAULT_SOLICITOR_FEE_RATE = Decimal("0.10")
DEFAULT_CLIENT_REPAIR_PERCENTAGE = Decimal("20")


@dataclass(slots=True, frozen=True)
class PercentOrFixed:
    """Either ``percentage`` of a base amount or a ``fixed`` amount."""

    percentage: Optional[Decimal] = None
    fixed: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if (self.percentage is None) == (self.fixed is None):
            raise ValidationError("Provide exactly one of percentage or fixed amount")
        if self.percentage is not None:
            pct = require_non_negative(self.percentage, field="percentage")
            if pct > HUNDRED:
                raise ValidationError(f"percentage cannot exceed 100, got {pct}")
            object.__setattr__(self, "percentage", pct)
        if self.fixed is not None:
            object.__setattr__(self, "fixed", require_non_negative(self.fixed, field="fixed"))

    @classmethod
    def percent(cls, value: Amount) -> "PercentOrFixed":
        return cls(percentage=to_decimal(value, field="percentage"))

    @classmethod
    def amount(cls, value: Amount) -> "PercentOrFixed":
        return cls(fixed=to_decimal(value, field="fixed"))

    @classmethod
    def from_form(
        cls, percentage: Optional[Amount], fixed: Optional[Amount], *, default_percentage: Amount = 0
    ) -> "PercentOrFixed":
        """Interpret the paired form fields, refusing ambiguous input."""

        pct = to_decimal(percentage, field="percentage") if percentage not in (None, "") else ZERO
        amt = to_decimal(fixed, field="fixed") if fixed not in (None, "") else ZERO
        if pct > ZERO and amt > ZERO:
            raise ValidationError(
                "Both a percentage and a fixed amount were supplied; choose one"
            )
        if amt > ZERO:
            return cls.amount(amt)
        if pct > ZERO:
            return cls.percent(pct)
        return cls.percent(default_percentage)

    def resolve(self, base: Amount) -> Decimal:
        if self.fixed is not None:
            return self.fixed
        return to_decimal(base, field="base") * self.percentage / HUNDRED


@dataclass(slots=True, frozen=True)
class VDFinanceBreakdown:
    net_amount: Decimal
    vat_in: Decimal
    solicitor_fee: Decimal
    purchased_items: Decimal
    vat_out: Decimal
    total_discount: Decimal
    client_repair: Decimal
    salvage: Decimal
    client_referral_fee: Decimal
    profit: Decimal

    def as_dict(self) -> Dict[str, str]:
        return {name: str(getattr(self, name)) for name in self.__dataclass_fields__}


def calculate_vd_finance(
    gross_amount: Amount,
    vat_percentage: Amount,
    parts: Iterable[ItemisedLine] = (),
    labor_hours: Amount = 0,
    labor_rate: Amount = 0,
    labor_includes_vat: bool = False,
    *,
    client_repair: Optional[PercentOrFixed] = None,
    solicitor_fee: Optional[Amount] = None,
    salvage: Amount = 0,
    client_referral_fee: Amount = 0,
) -> VDFinanceBreakdown:
    """Break a VAT-inclusive claim value down into costs and profit.

    Net and VAT-in are rounded to pennies first so that they always add back
    up to the gross value; every other figure keeps full precision until the
    returned breakdown is rounded.
    """

    gross = require_non_negative(gross_amount, field="gross_amount")
    vat_fraction = require_non_negative(vat_percentage, field="vat_percentage") / HUNDRED
    net_amount = round2(gross / (1 + vat_fraction))
    vat_in = gross - net_amount

    parts_total = ZERO
    parts_vat = ZERO
    total_discount = ZERO
    for part in parts:
        discount = part.net * part.discount_percentage / HUNDRED
        after_discount = part.net - discount
        vat = after_discount * VAT_RATE if part.include_vat else ZERO
        total_discount += discount
        parts_total += after_discount + vat
        parts_vat += vat

    labor_base = to_decimal(labor_hours, field="labor_hours") * to_decimal(
        labor_rate, field="labor_rate"
    )
    labor_vat = labor_base * VAT_RATE if labor_includes_vat else ZERO
    purchased_items = parts_total + labor_base + labor_vat
    vat_out = parts_vat + labor_vat

    if solicitor_fee is None:
        solicitor = net_amount * DEFAULT_SOLICITOR_FEE_RATE
    else:
        solicitor = require_non_negative(solicitor_fee, field="solicitor_fee")
    repair_choice = client_repair or PercentOrFixed.percent(DEFAULT_CLIENT_REPAIR_PERCENTAGE)
    repair = repair_choice.resolve(net_amount)
    salvage_value = require_non_negative(salvage, field="salvage")
    referral = require_non_negative(client_referral_fee, field="client_referral_fee")

    profit = net_amount - repair - purchased_items - solicitor - salvage_value - referral
    LOGGER.debug("VD finance gross=%s net=%s profit=%s", gross, net_amount, profit)
    return VDFinanceBreakdown(
        net_amount=net_amount,
        vat_in=round2(vat_in),
        solicitor_fee=round2(solicitor),
        purchased_items=round2(purchased_items),
        vat_out=round2(vat_out),
        total_discount=round2(total_discount),
        client_repair=round2(repair),
        salvage=round2(salvage_value),
        client_referral_fee=round2(referral),
        profit=round2(profit),
    )


def legal_fee_cost(actual_paid: Amount, fee: PercentOrFixed) -> Decimal:
    """Legal fee owed on the amount actually paid, rounded to pennies."""

    return round2(fee.resolve(require_non_negative(actual_paid, field="actual_paid")))


def hire_amount(start: date, end: date, weekly_rate: Optional[Amount] = None) -> Decimal:
    """Charge for hiring between ``start`` and ``end``; part weeks count as whole.

    ``weekly_rate`` defaults to the configured ``hire_weekly_rate``.
    """

    if end < start:
        raise ValidationError(f"Hire end {end} is before start {start}")
    weeks = math.ceil((end - start).days / 7)
    if weekly_rate is None:
        weekly_rate = get_settings().hire_weekly_rate
    return weeks * require_non_negative(weekly_rate, field="weekly_rate")
