"""Mini README: Profit splits over dated windows of share income and expenses.

Structure:
    * DateWindow - closed date interval with an overlap test.
    * IncomeEntry / ExpenseEntry - dated share-module records; an expense's
      total is the VAT-inclusive sum of its itemised lines.
    * Recipient / SplitRecord - a percentage distribution and its amounts.
    * compute_balance - distributable money left in a window.
    * allocate / build_split - percentage allocation, capped at 100% total.
    * split_history_ledger - combined income/expense/split running balance.
    * summarise_shares - totals and per-recipient breakdown.

Splits already made over an overlapping window reduce the distributable
balance, except the split being edited. The balance never goes below zero.
Percentages are compared exactly; a total of 100.001 is rejected rather
than clamped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import ValidationError
from ..logging_utils import get_logger
from ..money.amounts import HUNDRED, ZERO, Amount, require_non_negative, round2, to_decimal
from ..money.vat import ItemisedLine, lines_total
from .projector import LedgerEntry, ProjectedEntry, project

LOGGER = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class DateWindow:
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValidationError(f"Window end {self.end} is before start {self.start}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def overlaps(self, other: "DateWindow") -> bool:
        """Closed-interval overlap: touching on a single day counts."""

        return not (other.end < self.start or other.start > self.end)


@dataclass(slots=True, frozen=True)
class IncomeEntry:
    entry_id: str
    occurred_on: date
    amount: Decimal
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", require_non_negative(self.amount, field="amount"))


@dataclass(slots=True, frozen=True)
class ExpenseEntry:
    entry_id: str
    occurred_on: date
    lines: Tuple[ItemisedLine, ...] = ()
    description: str = ""

    @property
    def total(self) -> Decimal:
        return lines_total(self.lines)


@dataclass(slots=True, frozen=True)
class Recipient:
    name: str
    percentage: Decimal
    amount: Decimal = ZERO

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Recipient name is required")
        object.__setattr__(
            self, "percentage", require_non_negative(self.percentage, field="percentage")
        )
        object.__setattr__(self, "amount", to_decimal(self.amount))


@dataclass(slots=True, frozen=True)
class SplitRecord:
    split_id: str
    start_date: date
    end_date: date
    recipients: Tuple[Recipient, ...]
    total_split_amount: Decimal
    created_at: Optional[datetime] = None
    created_by: str = ""

    @property
    def window(self) -> DateWindow:
        return DateWindow(self.start_date, self.end_date)


def compute_balance(
    window: DateWindow,
    income: Iterable[IncomeEntry],
    expenses: Iterable[ExpenseEntry],
    prior_splits: Iterable[SplitRecord],
    exclude_split_id: Optional[str] = None,
) -> Decimal:
    """Income minus expenses minus overlapping prior splits, floored at zero."""

    income_total = sum((e.amount for e in income if window.contains(e.occurred_on)), ZERO)
    expense_total = sum((e.total for e in expenses if window.contains(e.occurred_on)), ZERO)
    shared_total = sum(
        (
            split.total_split_amount
            for split in prior_splits
            if split.split_id != exclude_split_id and window.overlaps(split.window)
        ),
        ZERO,
    )
    balance = max(ZERO, income_total - expense_total - shared_total)
    LOGGER.debug(
        "Split window %s..%s: income=%s expenses=%s shared=%s balance=%s",
        window.start,
        window.end,
        income_total,
        expense_total,
        shared_total,
        balance,
    )
    return balance


def allocate(balance: Amount, recipients: Sequence[Recipient]) -> List[Recipient]:
    """Give each recipient ``round2(balance * percentage / 100)``."""

    balance = to_decimal(balance, field="balance")
    total_percentage = sum((recipient.percentage for recipient in recipients), ZERO)
    if total_percentage > HUNDRED:
        raise ValidationError(f"Total percentage cannot exceed 100%, got {total_percentage}")
    return [
        Recipient(
            name=recipient.name,
            percentage=recipient.percentage,
            amount=round2(balance * recipient.percentage / HUNDRED),
        )
        for recipient in recipients
    ]


def build_split(
    split_id: str,
    window: DateWindow,
    balance: Amount,
    recipients: Sequence[Recipient],
    *,
    created_by: str = "",
    created_at: Optional[datetime] = None,
) -> SplitRecord:
    allocated = allocate(balance, recipients)
    return SplitRecord(
        split_id=split_id,
        start_date=window.start,
        end_date=window.end,
        recipients=tuple(allocated),
        total_split_amount=sum((recipient.amount for recipient in allocated), ZERO),
        created_at=created_at,
        created_by=created_by,
    )


def split_history_ledger(
    income: Iterable[IncomeEntry],
    expenses: Iterable[ExpenseEntry],
    splits: Iterable[SplitRecord],
) -> List[ProjectedEntry]:
    """Running balance of share money; splits leave on their window's end date."""

    entries: List[LedgerEntry] = []
    for item in income:
        entries.append(
            LedgerEntry(item.entry_id, item.occurred_on, amount_in=item.amount, description=item.description)
        )
    for item in expenses:
        entries.append(
            LedgerEntry(item.entry_id, item.occurred_on, amount_out=item.total, description=item.description)
        )
    for split in splits:
        entries.append(
            LedgerEntry(
                split.split_id,
                split.end_date,
                amount_out=split.total_split_amount,
                created_at=split.created_at,
                description=f"Split {split.start_date.isoformat()} to {split.end_date.isoformat()}",
            )
        )
    return project(entries)


@dataclass(slots=True, frozen=True)
class ShareSummary:
    total_income: Decimal
    total_expense: Decimal
    total_shared: Decimal
    breakdown: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense - self.total_shared


def summarise_shares(
    income: Iterable[IncomeEntry],
    expenses: Iterable[ExpenseEntry],
    splits: Iterable[SplitRecord],
) -> ShareSummary:
    splits = list(splits)
    breakdown: Dict[str, Decimal] = {}
    for split in splits:
        for recipient in split.recipients:
            breakdown[recipient.name] = breakdown.get(recipient.name, ZERO) + recipient.amount
    return ShareSummary(
        total_income=sum((item.amount for item in income), ZERO),
        total_expense=sum((item.total for item in expenses), ZERO),
        total_shared=sum((split.total_split_amount for split in splits), ZERO),
        breakdown=breakdown,
    )
