"""Mini README: Ledger accounts and their serialised balance store.

The ``store`` module owns the only sanctioned balance mutator,
``AccountStore.adjust_balance``, together with the audit trail used to
verify and replay balances.
"""

from .store import Account, AccountRepository, AccountStore, BalanceAdjustment

__all__ = ["Account", "AccountRepository", "AccountStore", "BalanceAdjustment"]
