"""Mini README: Running-balance projection for petty cash and split history.

Structure:
    * LedgerEntry - a dated movement with money in or money out.
    * ProjectedEntry - an entry paired with the balance after it.
    * LedgerTotals - totals of a set of entries.
    * project - chronological projection seeded at zero.
    * project_recent_first / restore_chronological - display helpers.
    * balance_as_of - balance up to a moment, optionally skipping one entry.

Entries are ordered by ``(occurred_on, created_at, sequence, entry_id)`` so
the order is total even when two rows share a date and creation time. The
running sum is always taken in chronological order; "most recent first"
views reverse the projected rows afterwards rather than summing backwards.
All functions are pure and keep no state between calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Union

from ..errors import ValidationError
from ..logging_utils import get_logger
from ..money.amounts import ZERO, Amount, require_non_negative

LOGGER = get_logger(__name__)

Moment = Union[date, datetime]


def _moment(value: Optional[Moment]) -> datetime:
    """Normalise dates and aware/naive datetimes to naive UTC datetimes."""

    if value is None:
        return datetime.min
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


@dataclass(slots=True, frozen=True)
class LedgerEntry:
    """One movement; an entry carries money in or money out, never both."""

    entry_id: str
    occurred_on: Moment
    amount_in: Decimal = ZERO
    amount_out: Decimal = ZERO
    created_at: Optional[datetime] = None
    description: str = ""
    sequence: int = 0

    def __post_init__(self) -> None:
        amount_in = require_non_negative(self.amount_in, field="amount_in")
        amount_out = require_non_negative(self.amount_out, field="amount_out")
        if amount_in > ZERO and amount_out > ZERO:
            raise ValidationError(
                f"Entry {self.entry_id} cannot have both in and out amounts"
            )
        object.__setattr__(self, "amount_in", amount_in)
        object.__setattr__(self, "amount_out", amount_out)

    @property
    def net(self) -> Decimal:
        return self.amount_in - self.amount_out

    def sort_key(self) -> tuple:
        return (_moment(self.occurred_on), _moment(self.created_at), self.sequence, self.entry_id)


@dataclass(slots=True, frozen=True)
class ProjectedEntry:
    entry: LedgerEntry
    running_balance: Decimal

    @property
    def entry_id(self) -> str:
        return self.entry.entry_id


@dataclass(slots=True, frozen=True)
class LedgerTotals:
    total_in: Decimal
    total_out: Decimal

    @property
    def balance(self) -> Decimal:
        return self.total_in - self.total_out


def chronological(entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
    return sorted(entries, key=LedgerEntry.sort_key)


def project(entries: Iterable[LedgerEntry]) -> List[ProjectedEntry]:
    """Attach the cumulative balance to each entry in chronological order."""

    running = ZERO
    projected: List[ProjectedEntry] = []
    for entry in chronological(entries):
        running += entry.net
        projected.append(ProjectedEntry(entry=entry, running_balance=running))
    LOGGER.debug("Projected %s ledger entries, closing balance %s", len(projected), running)
    return projected


def project_recent_first(entries: Iterable[LedgerEntry]) -> List[ProjectedEntry]:
    """Project chronologically, then present the newest entry first."""

    return list(reversed(project(entries)))


def restore_chronological(projected: Sequence[ProjectedEntry]) -> List[ProjectedEntry]:
    """Undo a display ordering without recomputing any balance."""

    return sorted(projected, key=lambda row: row.entry.sort_key())


def totals(entries: Iterable[LedgerEntry]) -> LedgerTotals:
    total_in = ZERO
    total_out = ZERO
    for entry in entries:
        total_in += entry.amount_in
        total_out += entry.amount_out
    return LedgerTotals(total_in=total_in, total_out=total_out)


def balance_as_of(
    entries: Iterable[LedgerEntry],
    moment: Moment,
    *,
    exclude_entry_id: Optional[str] = None,
) -> Decimal:
    """Balance of every entry dated at or before ``moment``.

    ``exclude_entry_id`` leaves out the entry being edited so its previous
    amounts do not count twice.
    """

    cutoff = _moment(moment)
    return sum(
        (
            entry.net
            for entry in entries
            if entry.entry_id != exclude_entry_id and _moment(entry.occurred_on) <= cutoff
        ),
        ZERO,
    )


def make_entry(
    entry_id: str,
    occurred_on: Moment,
    *,
    amount_in: Amount = 0,
    amount_out: Amount = 0,
    created_at: Optional[datetime] = None,
    description: str = "",
    sequence: int = 0,
) -> LedgerEntry:
    """Build an entry from loosely typed form values."""

    return LedgerEntry(
        entry_id=entry_id,
        occurred_on=occurred_on,
        amount_in=require_non_negative(amount_in, field="amount_in"),
        amount_out=require_non_negative(amount_out, field="amount_out"),
        created_at=created_at,
        description=description,
        sequence=sequence,
    )
