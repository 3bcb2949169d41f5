"""Mini README: Ledger account store with serialised balance mutation.

Structure:
    * Account - a named pool of money with a running balance.
    * BalanceAdjustment - audit event written for every balance change.
    * AccountRepository - keyed document store for accounts.
    * AccountStore - the only sanctioned balance mutator.

``AccountStore.adjust_balance`` performs its read-modify-write while holding
a per-account re-entrant lock, so concurrent effects on the same account
cannot lose updates while disjoint accounts proceed in parallel. Callers
that must touch several accounts as one step (an edit reversing one effect
and applying another) take ``lock_accounts`` for the whole section; locks
are acquired in sorted order to avoid deadlocks.

Every adjustment is appended to an audit trail. Replaying that trail from
the opening balance reconstructs what the balance should be, which is how
``verify`` detects corruption and how an operator clears the "balance
unverified" flag raised after a partial failure.
"""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional

from ..configuration import get_settings
from ..errors import NotFoundError, ValidationError
from ..logging_utils import get_logger
from ..money.amounts import ZERO, Amount, to_decimal
from ..storage import InMemoryRepository

LOGGER = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class Account:
    """Snapshot of an account; the store replaces it on every change."""

    account_id: str
    name: str
    currency: str
    balance: Decimal
    opening_balance: Decimal
    created_at: datetime
    updated_at: datetime

    def as_dict(self) -> Dict[str, str]:
        return {
            "account_id": self.account_id,
            "name": self.name,
            "currency": self.currency,
            "balance": str(self.balance),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class BalanceAdjustment:
    account_id: str
    old_balance: Decimal
    delta: Decimal
    new_balance: Decimal
    transaction_id: Optional[str]
    recorded_at: datetime


class AccountRepository(InMemoryRepository[Account]):
    kind = "account"

    def __init__(self, items: Optional[Iterable[Account]] = None) -> None:
        super().__init__("account_id", prefix="acc", items=items)


class AccountStore:
    """Hold accounts and serialise every balance change per account."""

    def __init__(self, repository: Optional[AccountRepository] = None) -> None:
        self.repository = repository if repository is not None else AccountRepository()
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self._history: Dict[str, List[BalanceAdjustment]] = {}
        self._unverified: Dict[str, str] = {}

    def open_account(
        self,
        name: str,
        *,
        account_id: Optional[str] = None,
        currency: Optional[str] = None,
        opening_balance: Amount = 0,
    ) -> Account:
        """Create an account; administrators call this, effects never do."""

        if not name or not name.strip():
            raise ValidationError("Account name is required")
        settings_currency = get_settings().currency
        currency = (currency or settings_currency).upper()
        if currency != settings_currency:
            raise ValidationError(
                f"Account currency {currency} differs from operating currency {settings_currency}"
            )
        now = _utcnow()
        opening = to_decimal(opening_balance, field="opening_balance")
        account = Account(
            account_id=account_id or self.repository.next_id(),
            name=name.strip(),
            currency=currency,
            balance=opening,
            opening_balance=opening,
            created_at=now,
            updated_at=now,
        )
        self.repository.create(account)
        LOGGER.info("Opened account %s (%s) with balance %s", account.account_id, account.name, opening)
        return account

    def exists(self, account_id: str) -> bool:
        return self.repository.exists(account_id)

    def get_account(self, account_id: str) -> Account:
        return self.repository.get(account_id)

    def list_accounts(self) -> List[Account]:
        return sorted(self.repository.all(), key=lambda account: account.account_id)

    def _lock_for(self, account_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = self._locks[account_id] = threading.RLock()
            return lock

    @contextmanager
    def lock_accounts(self, account_ids: Iterable[str]) -> Iterator[None]:
        """Hold the locks of every listed account for the enclosed block."""

        with ExitStack() as stack:
            for account_id in sorted(set(account_ids)):
                stack.enter_context(self._lock_for(account_id))
            yield

    def adjust_balance(
        self, account_id: str, delta: Amount, *, transaction_id: Optional[str] = None
    ) -> Account:
        """Add ``delta`` to the balance and record the audit event."""

        delta = to_decimal(delta, field="delta")
        with self._lock_for(account_id):
            account = self.get_account(account_id)
            updated = replace(
                account,
                balance=account.balance + delta,
                updated_at=_utcnow(),
            )
            self.repository.update(account_id, updated)
            event = BalanceAdjustment(
                account_id=account_id,
                old_balance=account.balance,
                delta=delta,
                new_balance=updated.balance,
                transaction_id=transaction_id,
                recorded_at=updated.updated_at,
            )
            self._history.setdefault(account_id, []).append(event)
        LOGGER.info(
            "Balance %s: %s delta %s -> %s (transaction %s)",
            account_id,
            event.old_balance,
            event.delta,
            event.new_balance,
            transaction_id,
        )
        return updated

    def history(self, account_id: Optional[str] = None) -> List[BalanceAdjustment]:
        """Audit events for one account, or for every account in order."""

        if account_id is not None:
            return list(self._history.get(account_id, []))
        events = [event for trail in self._history.values() for event in trail]
        return sorted(events, key=lambda event: event.recorded_at)

    def replayed_balance(self, account_id: str) -> Decimal:
        """Opening balance plus every recorded delta."""

        account = self.get_account(account_id)
        return account.opening_balance + sum(
            (event.delta for event in self._history.get(account_id, [])), ZERO
        )

    def verify(self, account_id: str) -> bool:
        """Compare the stored balance against the audit trail."""

        account = self.get_account(account_id)
        expected = self.replayed_balance(account_id)
        if account.balance != expected:
            self.mark_unverified(
                account_id, f"stored balance {account.balance} != replayed {expected}"
            )
            return False
        return account_id not in self._unverified

    def mark_unverified(self, account_id: str, reason: str) -> None:
        if not self.exists(account_id):
            raise NotFoundError("account", account_id)
        self._unverified[account_id] = reason
        LOGGER.warning("Account %s marked balance unverified: %s", account_id, reason)

    def mark_verified(self, account_id: str) -> None:
        if self._unverified.pop(account_id, None) is not None:
            LOGGER.info("Account %s balance verified", account_id)

    def unverified_accounts(self) -> Dict[str, str]:
        return dict(self._unverified)

    def is_verified(self, account_id: str) -> bool:
        return account_id not in self._unverified
