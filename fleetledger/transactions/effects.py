"""Mini README: Balance effects of income, expense and transfer transactions.

Structure:
    * classify - derive the transaction type from which sides are internal.
    * EffectEngine - resolves party references against the account store and
      applies or reverses a stored transaction's balance effect.

An expense or transfer debits an internal ``account_from``; an income or
transfer credits an internal ``account_to``. Reversal is the exact negated
mirror and always works from the transaction as stored, never from the
caller's in-progress form. Each call locks and resolves every account it
needs before adjusting any of them, so a single apply or reverse either
moves all of its balances or none.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Tuple, Union

from ..accounts.store import Account, AccountStore
from ..logging_utils import get_logger
from .models import PartyRef, Transaction, TransactionType

LOGGER = get_logger(__name__)

_DEBITS_FROM = {TransactionType.EXPENSE, TransactionType.TRANSFER}
_CREDITS_TO = {TransactionType.INCOME, TransactionType.TRANSFER}


def classify(
    account_from: Optional[PartyRef],
    account_to: Optional[PartyRef],
    default: TransactionType = TransactionType.EXPENSE,
) -> TransactionType:
    """Map the internal/external shape of a transaction onto its type."""

    from_internal = account_from is not None and account_from.is_internal
    to_internal = account_to is not None and account_to.is_internal
    if from_internal and to_internal:
        return TransactionType.TRANSFER
    if to_internal:
        return TransactionType.INCOME
    if from_internal:
        return TransactionType.EXPENSE
    return default


class EffectEngine:
    """Apply and reverse transaction effects on an :class:`AccountStore`."""

    def __init__(self, store: AccountStore) -> None:
        self.store = store

    def resolve_party(self, raw: Union[str, PartyRef, None]) -> Optional[PartyRef]:
        """Turn form input into a party: known account ids become internal."""

        if raw is None:
            return None
        if isinstance(raw, PartyRef):
            return raw
        value = raw.strip()
        if not value:
            return None
        if self.store.exists(value):
            account = self.store.get_account(value)
            return PartyRef.internal(account.account_id, account.name)
        return PartyRef.external(value)

    def classify(
        self,
        raw_from: Union[str, PartyRef, None],
        raw_to: Union[str, PartyRef, None],
        default: TransactionType = TransactionType.EXPENSE,
    ) -> TransactionType:
        return classify(self.resolve_party(raw_from), self.resolve_party(raw_to), default)

    @staticmethod
    def planned_deltas(transaction: Transaction, *, reverse: bool = False) -> List[Tuple[str, Decimal]]:
        """Balance deltas the transaction causes (negated when reversing)."""

        sign = -1 if reverse else 1
        deltas: List[Tuple[str, Decimal]] = []
        source, target = transaction.account_from, transaction.account_to
        if source is not None and source.is_internal and transaction.transaction_type in _DEBITS_FROM:
            deltas.append((source.account_id, -transaction.amount * sign))
        if target is not None and target.is_internal and transaction.transaction_type in _CREDITS_TO:
            deltas.append((target.account_id, transaction.amount * sign))
        return deltas

    def apply_effect(self, transaction: Transaction) -> List[Account]:
        return self._run(transaction, reverse=False)

    def reverse_effect(self, transaction: Transaction) -> List[Account]:
        return self._run(transaction, reverse=True)

    def _run(self, transaction: Transaction, *, reverse: bool) -> List[Account]:
        deltas = self.planned_deltas(transaction, reverse=reverse)
        action = "Reversing" if reverse else "Applying"
        LOGGER.debug(
            "%s %s effect of %s: %s",
            action,
            transaction.transaction_type.value,
            transaction.transaction_id,
            deltas,
        )
        with self.store.lock_accounts(account_id for account_id, _ in deltas):
            for account_id, _ in deltas:
                self.store.get_account(account_id)
            return [
                self.store.adjust_balance(
                    account_id, delta, transaction_id=transaction.transaction_id
                )
                for account_id, delta in deltas
            ]
