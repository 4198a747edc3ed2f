"""
Audit log model.

One row per ledger merge, transaction or ledger deletion and
starting-balance change, written in the same database
transaction as the change itself.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from check_ledger.models.base import Base


class AuditLog(Base):
    """
    ledger_id is a plain column, not a foreign key: the trail of
    a deleted ledger stays readable after the ledger is gone.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    ledger_id: Mapped[str | None] = mapped_column(
        String(32), nullable=True, index=True
    )
    details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.event_type} ledger={self.ledger_id}>"
