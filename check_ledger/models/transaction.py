"""
Transaction model.

One printed check or one recorded deposit. Rows are inserted by
the ledger store's commit and never updated afterwards; the only
other mutation is deletion.

The ledger snapshot columns are a point-in-time record of the
balance when the transaction was committed. They are not
recomputed when an earlier transaction is deleted.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, ForeignKey, Text,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from check_ledger.models.base import Base, new_id
from check_ledger.models.enums import TransactionType, SheetSlot


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="transaction_type_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    ledger_id: Mapped[str] = mapped_column(
        ForeignKey("ledgers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    payee: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)
    memo: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    external_memo: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )
    internal_memo: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )
    line_items_text: Mapped[str] = mapped_column(
        Text, nullable=False, default=""
    )
    gl_code: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    gl_description: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )
    check_number: Mapped[str] = mapped_column(
        String(20), nullable=False, default=""
    )
    sheet_slot: Mapped[SheetSlot | None] = mapped_column(
        SAEnum(SheetSlot, name="sheet_slot_enum", create_constraint=True),
        nullable=True,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )
    balance_after: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False
    )
    snapshot_previous_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False
    )
    snapshot_transaction_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False
    )
    snapshot_new_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False
    )

    ledger: Mapped["Ledger"] = relationship(back_populates="transactions")

    @property
    def ledger_snapshot(self):
        from check_ledger.schemas.transaction import LedgerSnapshot

        return LedgerSnapshot(
            previous_balance=self.snapshot_previous_balance,
            transaction_amount=self.snapshot_transaction_amount,
            new_balance=self.snapshot_new_balance,
        )

    @property
    def signed_amount(self) -> Decimal:
        """Effect on the ledger balance: deposits add, checks subtract."""
        if self.type == TransactionType.DEPOSIT:
            return self.amount
        return -self.amount

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.type.value} {self.amount} "
            f"{self.payee!r} ledger={self.ledger_id}>"
        )
