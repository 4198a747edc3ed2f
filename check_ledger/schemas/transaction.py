"""
Pydantic schemas for pending items, commit drafts and
transaction responses.

A PendingItem is what a caller queues: raw, unvalidated, naming
its ledger by free text. A TransactionDraft is what the
transaction builder produces from it: validated, resolved to a
ledger id, carrying its balance snapshot, but without an id or
timestamp. Only the ledger store turns drafts into rows.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from check_ledger.models.enums import TransactionType, SheetSlot


class LedgerSnapshot(BaseModel):
    """Balance triple captured when a transaction is committed."""
    previous_balance: Decimal
    transaction_amount: Decimal
    new_balance: Decimal

    model_config = {"frozen": True}


class PendingItem(BaseModel):
    """
    A check or deposit waiting to be printed and recorded.

    amount and date are kept raw (imports hand over strings like
    "$1,250.00" or Excel serial numbers); the transaction builder
    normalizes them.
    """
    type: TransactionType = TransactionType.CHECK
    date: str | int | float | None = None
    payee: str = ""
    description: str = ""
    address: str = ""
    amount: str | int | float | Decimal | None = None
    memo: str = ""
    external_memo: str = ""
    internal_memo: str = ""
    line_items_text: str = ""
    gl_code: str = ""
    gl_description: str = ""
    check_number: str = ""
    ledger: str = ""

    model_config = {"extra": "ignore"}

    @property
    def label(self) -> str:
        """Name shown to the user when this item's print fails."""
        return (self.payee or self.description).strip() or "Check"


class TransactionDraft(BaseModel):
    """
    A validated transaction that has not been committed yet.

    Text limits match the transaction table's column widths.
    """
    type: TransactionType
    ledger_id: str
    profile_id: str | None = None
    date: str = Field(max_length=10)
    payee: str = Field(max_length=255)
    address: str = ""
    amount: Decimal = Field(gt=0)
    memo: str = Field(default="", max_length=255)
    external_memo: str = Field(default="", max_length=255)
    internal_memo: str = Field(default="", max_length=255)
    line_items_text: str = ""
    gl_code: str = Field(default="", max_length=50)
    gl_description: str = Field(default="", max_length=255)
    check_number: str = Field(default="", max_length=20)
    sheet_slot: SheetSlot | None = None
    balance_after: Decimal
    ledger_snapshot: LedgerSnapshot

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def snapshot_must_add_up(self) -> "TransactionDraft":
        snap = self.ledger_snapshot
        if snap.transaction_amount != self.amount:
            raise ValueError("snapshot amount differs from transaction amount")
        if self.type == TransactionType.DEPOSIT:
            expected = snap.previous_balance + snap.transaction_amount
        else:
            expected = snap.previous_balance - snap.transaction_amount
        if snap.new_balance != expected:
            raise ValueError(
                f"snapshot does not add up: {snap.previous_balance} "
                f"{'+' if self.type == TransactionType.DEPOSIT else '-'} "
                f"{snap.transaction_amount} != {snap.new_balance}"
            )
        if self.balance_after != snap.new_balance:
            raise ValueError("balance_after must equal the snapshot's new balance")
        return self

    @property
    def signed_amount(self) -> Decimal:
        if self.type == TransactionType.DEPOSIT:
            return self.amount
        return -self.amount


# --- API Schemas ---

class DepositCreate(BaseModel):
    """Request to record a deposit or balance adjustment."""
    description: str = Field(min_length=1, max_length=255)
    amount: str | int | float | Decimal
    date: str | None = None
    memo: str = ""
    ledger_id: str | None = None


class RecordRequest(BaseModel):
    """Request to print (or only record) a single check."""
    item: PendingItem
    ledger_id: str | None = None
    profile_id: str | None = None


class SheetRecordRequest(BaseModel):
    """Request to print one three-up sheet of up to three checks."""
    items: list[PendingItem] = Field(min_length=1, max_length=3)
    ledger_id: str | None = None
    profile_id: str | None = None


class RecordResult(BaseModel):
    success: bool
    error: str | None = None
    transaction_ids: list[str] = Field(default_factory=list)
    form_cleared: bool = False


class TransactionResponse(BaseModel):
    id: str
    type: TransactionType
    ledger_id: str
    profile_id: str | None
    date: str
    payee: str
    address: str
    amount: Decimal
    memo: str
    external_memo: str
    internal_memo: str
    line_items_text: str
    gl_code: str
    gl_description: str
    check_number: str
    sheet_slot: SheetSlot | None
    timestamp: datetime
    balance_after: Decimal
    ledger_snapshot: LedgerSnapshot

    model_config = {"from_attributes": True}
