"""Mini README: Chronological ledgers built from signed entries.

``projector`` turns petty-cash style in/out rows into running balances and
``splits`` computes and allocates profit splits over dated windows, reusing
the projector for the split history view. Everything here is pure.
"""

from .projector import (
    LedgerEntry,
    LedgerTotals,
    ProjectedEntry,
    balance_as_of,
    make_entry,
    project,
    project_recent_first,
    restore_chronological,
    totals,
)
from .splits import (
    DateWindow,
    ExpenseEntry,
    IncomeEntry,
    Recipient,
    ShareSummary,
    SplitRecord,
    allocate,
    build_split,
    compute_balance,
    split_history_ledger,
    summarise_shares,
)

__all__ = [
    "DateWindow",
    "ExpenseEntry",
    "IncomeEntry",
    "LedgerEntry",
    "LedgerTotals",
    "ProjectedEntry",
    "Recipient",
    "ShareSummary",
    "SplitRecord",
    "allocate",
    "balance_as_of",
    "build_split",
    "compute_balance",
    "make_entry",
    "project",
    "project_recent_first",
    "restore_chronological",
    "split_history_ledger",
    "summarise_shares",
    "totals",
]
