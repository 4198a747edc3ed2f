"""
Print profile model.

A profile owns the check-number cursor and the layout mode.
Transactions remember which profile produced them, for display
only.
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from check_ledger.models.base import Base, new_id
from check_ledger.models.enums import LayoutMode


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    layout_mode: Mapped[LayoutMode] = mapped_column(
        SAEnum(LayoutMode, name="layout_mode_enum", create_constraint=True),
        nullable=False,
        default=LayoutMode.STANDARD,
    )
    next_check_number: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1001
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Profile {self.name!r} next={self.next_check_number}>"
