"""
Shared enumerations for models, schemas and controllers.

Values are the lowercase strings used by persisted documents
and by API clients.
"""

import enum


class TransactionType(str, enum.Enum):
    """A check debits the ledger, a deposit credits it."""
    CHECK = "check"
    DEPOSIT = "deposit"


class SheetSlot(str, enum.Enum):
    """Position of a check on a three-up sheet."""
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


SHEET_SLOTS: tuple[SheetSlot, ...] = (
    SheetSlot.TOP,
    SheetSlot.MIDDLE,
    SheetSlot.BOTTOM,
)


class LayoutMode(str, enum.Enum):
    """Commit granularity: one check per print, or one sheet of three."""
    STANDARD = "standard"
    THREE_UP = "three_up"


class PrintMode(str, enum.Enum):
    INTERACTIVE = "interactive"
    SILENT = "silent"
    PDF = "pdf"


class FailureDecision(str, enum.Enum):
    CONTINUE = "continue"
    ABORT = "abort"


class BatchState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ABORTED = "aborted"
    COMPLETED = "completed"
