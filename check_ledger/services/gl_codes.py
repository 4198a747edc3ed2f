"""
GL code learner.

Every committed check that carries a GL code teaches the code
list: unknown codes are added, and a known code takes the newest
non-empty description.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from check_ledger.models.gl_code import GLCode

logger = logging.getLogger(__name__)


class GLCodeService:

    def __init__(self, db: Session):
        self.db = db

    def observe(self, code: str, description: str) -> None:
        code = (code or "").strip()
        if not code:
            return
        description = (description or "").strip()

        existing = self.db.execute(
            select(GLCode).where(GLCode.code == code)
        ).scalar_one_or_none()

        if existing is None:
            self.db.add(GLCode(code=code, description=description))
            logger.info("Learned GL code %s", code)
        elif description and description != existing.description:
            existing.description = description
        else:
            return
        self.db.commit()

    def is_known(self, code: str) -> bool:
        """Case-insensitive lookup, used to flag novel codes before printing."""
        wanted = (code or "").strip().lower()
        return any(g.code.lower() == wanted for g in self.list_codes())

    def list_codes(self) -> list[GLCode]:
        codes = self.db.execute(
            select(GLCode).order_by(GLCode.code)
        ).scalars().all()
        return list(codes)
