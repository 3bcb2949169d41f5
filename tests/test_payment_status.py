"""Mini README: Tests covering payment status derivation.

Structure:
    * test_status_thresholds - unpaid, partially paid and paid boundaries.
    * test_rounding_noise_settles_as_paid - 99.999 against 100.00 is paid.
    * test_overpayment_never_goes_negative - remaining is floored at zero.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from fleetledger.money import PaymentStatus, resolve_status


@pytest.mark.parametrize(
    "total, paid, remaining, status",
    [
        ("100.00", 0, "100.00", PaymentStatus.UNPAID),
        ("100.00", "0.01", "99.99", PaymentStatus.PARTIALLY_PAID),
        ("100.00", "99.99", "0.01", PaymentStatus.PARTIALLY_PAID),
        ("100.00", "100.00", "0.00", PaymentStatus.PAID),
        (0, 0, "0.00", PaymentStatus.PAID),
    ],
)
def test_status_thresholds(total, paid, remaining, status) -> None:
    """Status follows the paid amount relative to the total."""

    resolution = resolve_status(total, paid)

    assert resolution.remaining == Decimal(remaining)
    assert resolution.status is status


def test_rounding_noise_settles_as_paid() -> None:
    """Payments a fraction of a penny short still settle the record."""

    resolution = resolve_status(Decimal("100.00"), 99.999)

    assert resolution.status is PaymentStatus.PAID
    assert resolution.remaining == Decimal("0")


def test_overpayment_never_goes_negative() -> None:
    resolution = resolve_status(50, 75)

    assert resolution.status is PaymentStatus.PAID
    assert resolution.remaining == Decimal("0.00")
