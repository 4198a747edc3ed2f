"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from check_ledger.models.base import Base
from check_ledger.models.enums import (
    TransactionType,
    SheetSlot,
    LayoutMode,
    PrintMode,
    FailureDecision,
    BatchState,
)
from check_ledger.models.audit_log import AuditLog
from check_ledger.models.ledger import Ledger
from check_ledger.models.transaction import Transaction
from check_ledger.models.profile import Profile
from check_ledger.models.gl_code import GLCode

__all__ = [
    "Base",
    "TransactionType",
    "SheetSlot",
    "LayoutMode",
    "PrintMode",
    "FailureDecision",
    "BatchState",
    "AuditLog",
    "Ledger",
    "Transaction",
    "Profile",
    "GLCode",
]
