"""
Pydantic schemas for ledger operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from check_ledger.models.base import new_id

# Width of the ledgers.name column
LEDGER_NAME_MAX = 100


class LedgerDraft(BaseModel):
    """
    A ledger staged during a batch run.

    The id is generated up front so that drafts can reference the
    ledger before it exists in the store.
    """
    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1, max_length=LEDGER_NAME_MAX)
    starting_balance: Decimal = Decimal("0.00")


class LedgerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=LEDGER_NAME_MAX)
    starting_balance: Decimal = Decimal("0.00")


class LedgerUpdate(BaseModel):
    """Rename a ledger and/or change its starting balance."""
    name: str | None = Field(default=None, min_length=1, max_length=LEDGER_NAME_MAX)
    starting_balance: Decimal | None = None


class LedgerResponse(BaseModel):
    id: str
    name: str
    starting_balance: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class LedgerBalanceResponse(BaseModel):
    """Derived balance of a ledger."""
    ledger_id: str
    name: str
    starting_balance: Decimal
    balance: Decimal
    transaction_count: int


class IntegrityReport(BaseModel):
    ledger_id: str
    transaction_count: int
    derived_balance: Decimal
    folded_balance: Decimal
    is_consistent: bool
