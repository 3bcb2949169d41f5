"""Mini README: Core package initializer for the fleetledger finance core.

The package keeps fleet back-office balances consistent as income, expense
and transfer transactions are created, edited and deleted. Subpackages:

    * ``money`` - Decimal helpers, VAT cost breakdowns, payment status and
      the VD finance calculators.
    * ``accounts`` - the account store and its balance audit trail.
    * ``transactions`` - effect engine, edit orchestrator and the
      reconciliation queue.
    * ``ledgers`` - running-balance projection and profit splits.
    * ``payables`` - invoices, maintenance logs and VD finance payments.
    * ``interface`` - the FastAPI JSON service.

Only the logger factory is imported eagerly so that importing the package
stays cheap.
"""

from .logging_utils import get_logger

__all__ = ["get_logger"]
