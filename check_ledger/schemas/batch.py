"""
Pydantic schemas for batch runs and print jobs.
"""

from pydantic import BaseModel, Field, model_validator

from check_ledger.models.enums import (
    BatchState,
    FailureDecision,
    LayoutMode,
    PrintMode,
)
from check_ledger.schemas.transaction import PendingItem, TransactionDraft


def print_target_error(
    print_mode: PrintMode, printer_device: str, export_path: str
) -> str | None:
    """Why a print mode cannot run with this target, or None."""
    if print_mode == PrintMode.SILENT and not printer_device:
        return "Select a printer for silent printing mode"
    if print_mode == PrintMode.PDF and not export_path:
        return "Select a folder for PDF export mode"
    return None


class BatchOptions(BaseModel):
    """
    How a batch is printed and numbered.

    start_number falls back to the profile's next check number
    when auto-numbering is on and no explicit start is given.
    """
    mode: LayoutMode = LayoutMode.STANDARD
    auto_number: bool = True
    start_number: int | None = Field(default=None, ge=1)
    print_mode: PrintMode = PrintMode.INTERACTIVE
    printer_device: str = ""
    pdf_export_path: str = ""

    @model_validator(mode="after")
    def print_target_must_be_set(self) -> "BatchOptions":
        error = print_target_error(
            self.print_mode, self.printer_device, self.pdf_export_path
        )
        if error:
            raise ValueError(error)
        return self


class PrintJob(BaseModel):
    """
    What goes to the print adapter for one print unit.

    Standard mode sends one check; three-up mode sends one sheet
    of up to three checks, each tagged with its slot.
    """
    filename: str
    checks: list[TransactionDraft]
    printer_device: str = ""
    export_path: str = ""


class PrintResult(BaseModel):
    success: bool
    error: str | None = None


class FailureContext(BaseModel):
    """What the user is shown when a print unit fails."""
    label: str
    error: str


class BatchProgress(BaseModel):
    state: BatchState
    current: int
    total: int
    processed: int
    failed: int


class BatchSummary(BaseModel):
    processed: int
    total: int
    failed: int
    cancelled: bool
    transaction_ids: list[str] = Field(default_factory=list)
    new_ledger_ids: list[str] = Field(default_factory=list)
    next_check_number: int | None = None


# --- API Schemas ---

class BatchCreate(BaseModel):
    items: list[PendingItem] = Field(min_length=1)
    options: BatchOptions = Field(default_factory=BatchOptions)
    profile_id: str | None = None
    default_ledger_id: str | None = None


class BatchStatusResponse(BaseModel):
    batch_id: str
    progress: BatchProgress
    pending_failure: FailureContext | None = None
    summary: BatchSummary | None = None
    error: str | None = None


class DecisionRequest(BaseModel):
    decision: FailureDecision
