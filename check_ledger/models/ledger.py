"""
Ledger model.

A ledger is a named account with an admin-set starting balance.
Its current balance is never stored: the ledger store derives it
from the starting balance and the transaction log.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from check_ledger.models.base import Base, new_id


class Ledger(Base):
    """
    A named account.

    Deleting a ledger deletes every transaction recorded
    against it. There is no way back.
    """

    __tablename__ = "ledgers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    starting_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 2), nullable=False, default=Decimal("0.00")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="ledger",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Ledger {self.name!r} start={self.starting_balance}>"
