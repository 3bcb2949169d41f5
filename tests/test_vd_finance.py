"""Mini README: Tests covering the VD finance and share calculators.

Structure:
    * test_vd_finance_breakdown - net, VAT, fees and profit for a typical claim.
    * test_fixed_client_repair_overrides_percentage - explicit amounts win.
    * test_percent_or_fixed_is_exclusive - supplying both is rejected.
    * test_legal_fee_cost - percentage and fixed legal fees.
    * test_hire_amount_counts_part_weeks - partial weeks charge a full week.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from fleetledger.errors import ValidationError
from fleetledger.money import (
    ItemisedLine,
    PercentOrFixed,
    calculate_vd_finance,
    hire_amount,
    legal_fee_cost,
)


def test_vd_finance_breakdown() -> None:
    """A 1200 gross claim at 20% VAT splits into 1000 net and 200 VAT."""

    parts = [ItemisedLine.of(2, 50, include_vat=True, discount_percentage=10)]

    breakdown = calculate_vd_finance(
        1200,
        20,
        parts,
        labor_hours=2,
        labor_rate=30,
        salvage=25,
        client_referral_fee=15,
    )

    assert breakdown.net_amount == Decimal("1000.00")
    assert breakdown.vat_in == Decimal("200.00")
    assert breakdown.total_discount == Decimal("10.00")
    assert breakdown.purchased_items == Decimal("168.00")
    assert breakdown.vat_out == Decimal("18.00")
    assert breakdown.solicitor_fee == Decimal("100.00")
    assert breakdown.client_repair == Decimal("200.00")
    assert breakdown.profit == Decimal("492.00")


def test_fixed_client_repair_overrides_percentage() -> None:
    breakdown = calculate_vd_finance(
        1200,
        20,
        client_repair=PercentOrFixed.amount(150),
        solicitor_fee=0,
    )

    assert breakdown.client_repair == Decimal("150.00")
    assert breakdown.profit == Decimal("850.00")


def test_percent_or_fixed_is_exclusive() -> None:
    """Ambiguous form input raises instead of picking a winner silently."""

    with pytest.raises(ValidationError):
        PercentOrFixed(percentage=Decimal("10"), fixed=Decimal("50"))
    with pytest.raises(ValidationError):
        PercentOrFixed.from_form("10", "50")
    with pytest.raises(ValidationError):
        PercentOrFixed.percent(101)

    assert PercentOrFixed.from_form("", "50").fixed == Decimal("50")
    assert PercentOrFixed.from_form(None, None, default_percentage=20).percentage == Decimal("20")


def test_legal_fee_cost() -> None:
    assert legal_fee_cost(1000, PercentOrFixed.percent("12.5")) == Decimal("125.00")
    assert legal_fee_cost(1000, PercentOrFixed.amount(90)) == Decimal("90.00")


def test_hire_amount_counts_part_weeks() -> None:
    """Eight days of hire is charged as two weeks."""

    assert hire_amount(date(2024, 1, 1), date(2024, 1, 9)) == Decimal("800")
    assert hire_amount(date(2024, 1, 1), date(2024, 1, 8), weekly_rate=350) == Decimal("350")
    assert hire_amount(date(2024, 1, 1), date(2024, 1, 1)) == Decimal("0")
    with pytest.raises(ValidationError):
        hire_amount(date(2024, 1, 9), date(2024, 1, 1))
