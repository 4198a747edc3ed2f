"""
Exception hierarchy for the check ledger.

Print failures are not exceptions: a print adapter returns a
PrintResult and the controllers decide what to do with it.
Everything here is raised by the ledger store, the transaction
builder or the controllers.
"""


class CheckLedgerError(Exception):
    """Base class for all check ledger errors."""


class ItemValidationError(CheckLedgerError):
    """A pending item cannot become a transaction (bad amount, no payee)."""


class LedgerStoreError(CheckLedgerError):
    """A ledger store operation was refused."""


class LedgerNotFoundError(LedgerStoreError):
    def __init__(self, ledger_id: str):
        super().__init__(f"Ledger {ledger_id} not found")
        self.ledger_id = ledger_id


class TransactionNotFoundError(LedgerStoreError):
    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction {transaction_id} not found")
        self.transaction_id = transaction_id


class ProfileNotFoundError(LedgerStoreError):
    def __init__(self, profile_id: str):
        super().__init__(f"Profile {profile_id} not found")
        self.profile_id = profile_id


class LedgerCommitError(LedgerStoreError):
    """The atomic merge failed and was rolled back. Nothing was written."""


class LedgerInvariantError(CheckLedgerError):
    """
    A stored transaction breaks the balance arithmetic.

    This is a programming error, not a user-facing failure.
    Controllers never catch it.
    """


class BatchError(CheckLedgerError):
    """A batch cannot be started or steered (already running, bad options)."""
