"""Mini README: Error taxonomy shared by every fleetledger component.

Structure:
    * FleetLedgerError - common base class.
    * ValidationError - bad input rejected before any balance is touched.
    * NotFoundError - referenced account, transaction or record is missing.
    * ReconciliationError - a mutation sequence stopped half way (or could
      not start) and balances need operator attention.
    * RoundingDiscrepancy - data-integrity warning returned (not raised) when
      stored totals drift from their lines or payments.

``ValidationError`` and ``NotFoundError`` subclass ``ValueError`` and
``KeyError`` so callers written against plain built-in exceptions keep
working.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

NO_CHANGES_MESSAGE = "could not save; no changes applied"
NEEDS_VERIFICATION_MESSAGE = "saved, but balances may need verification"


class FleetLedgerError(Exception):
    """Base class for all finance core errors."""


class ValidationError(FleetLedgerError, ValueError):
    """Input rejected before any mutation took place."""

    user_message = NO_CHANGES_MESSAGE


class NotFoundError(FleetLedgerError, KeyError):
    """A referenced entity does not exist."""

    user_message = NO_CHANGES_MESSAGE

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")

    def __str__(self) -> str:
        return str(self.args[0])


class ReconciliationError(FleetLedgerError):
    """Balances may disagree with the stored transactions."""

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        partial: bool,
        old_snapshot: Optional[Dict[str, Any]] = None,
        new_snapshot: Optional[Dict[str, Any]] = None,
        affected_accounts: Sequence[str] = (),
        entry_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.partial = partial
        self.old_snapshot = old_snapshot
        self.new_snapshot = new_snapshot
        self.affected_accounts = tuple(affected_accounts)
        self.entry_id = entry_id

    @property
    def user_message(self) -> str:
        """Message the boundary shows; never claims full success."""

        return NEEDS_VERIFICATION_MESSAGE if self.partial else NO_CHANGES_MESSAGE


class RoundingDiscrepancy(FleetLedgerError):
    """Stored figure differs from its derived value by more than one minor unit."""

    def __init__(self, record_id: str, field: str, expected: Decimal, actual: Decimal) -> None:
        self.record_id = record_id
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{record_id}: stored {field}={actual} differs from derived {expected}"
        )

    @property
    def difference(self) -> Decimal:
        return self.actual - self.expected
