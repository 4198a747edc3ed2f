"""
GL code model.

Codes are learned from recorded checks: the first time a code is
seen it is added, and a later non-empty description replaces the
stored one.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from check_ledger.models.base import Base


class GLCode(Base):
    __tablename__ = "gl_codes"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )

    def __repr__(self) -> str:
        return f"<GLCode {self.code} {self.description!r}>"
