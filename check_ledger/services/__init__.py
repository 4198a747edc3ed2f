"""Business logic services."""

from check_ledger.services.ledger_store import LedgerStore
from check_ledger.services.transaction_builder import TransactionBuilder
from check_ledger.services.batch_controller import BatchController
from check_ledger.services.single_controller import SingleCheckController
from check_ledger.services.gl_codes import GLCodeService

__all__ = [
    "LedgerStore",
    "TransactionBuilder",
    "BatchController",
    "SingleCheckController",
    "GLCodeService",
]
