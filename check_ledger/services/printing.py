"""
Interfaces to the collaborators that live outside the ledger:
the print adapter, the user's continue-or-abort decision and the
GL code learner.

The controllers only depend on these protocols. Tests supply
scripted implementations; the HTTP layer supplies a dry-run
printer and an oracle that waits for a decision request.
"""

import asyncio
import logging
import re
from typing import Protocol

from check_ledger.models.enums import FailureDecision, PrintMode
from check_ledger.schemas.batch import FailureContext, PrintJob, PrintResult
from check_ledger.schemas.transaction import TransactionDraft

logger = logging.getLogger(__name__)


class PrintAdapter(Protocol):
    async def submit(self, job: PrintJob, mode: PrintMode) -> PrintResult:
        ...


class ConfirmationOracle(Protocol):
    async def ask_continue_or_abort(
        self, context: FailureContext
    ) -> FailureDecision:
        ...


class GLCodeLearner(Protocol):
    def observe(self, code: str, description: str) -> None:
        ...


async def submit_print_job(
    adapter: PrintAdapter, job: PrintJob, mode: PrintMode
) -> PrintResult:
    """
    Run one print job and always come back with a PrintResult.

    An adapter that raises is treated the same as one that
    reports failure: the unit did not print.
    """
    try:
        result = await adapter.submit(job, mode)
    except Exception as e:
        logger.warning("Print error for %s: %s", job.filename, e)
        return PrintResult(success=False, error=str(e) or "Unknown print error")

    if result is None or not result.success:
        error = (result.error if result else None) or "Print was cancelled or failed"
        logger.warning("Print failed for %s: %s", job.filename, error)
        return PrintResult(success=False, error=error)
    return result


def print_filename(draft: TransactionDraft, index: int | None = None) -> str:
    """
    File name for a print job, e.g. Check_003_Acme_Co_2024-05-01_10000.

    index is the 1-based position in a batch (or sheet number in
    three-up mode).
    """
    payee = re.sub(r"[^a-zA-Z0-9]", "_", draft.payee or "Unknown")
    date = draft.date.replace("/", "-")
    amount = f"{draft.amount:.2f}".replace(".", "")
    prefix = f"{index:03d}_" if index is not None else ""
    return f"Check_{prefix}{payee}_{date}_{amount}"


class DryRunPrintAdapter:
    """Accepts every job without printing. Used when no printer is wired up."""

    def __init__(self):
        self.jobs: list[tuple[PrintJob, PrintMode]] = []

    async def submit(self, job: PrintJob, mode: PrintMode) -> PrintResult:
        self.jobs.append((job, mode))
        logger.info(
            "Dry-run print %s (%d check(s), mode=%s)",
            job.filename, len(job.checks), mode.value,
        )
        return PrintResult(success=True)


class PendingDecisionOracle:
    """
    Oracle whose answer arrives later from somewhere else.

    ask_continue_or_abort parks the batch on a future; resolve()
    completes it. Both must run on the same event loop.
    """

    def __init__(self):
        self._future: asyncio.Future | None = None
        self.pending: FailureContext | None = None

    async def ask_continue_or_abort(
        self, context: FailureContext
    ) -> FailureDecision:
        loop = asyncio.get_running_loop()
        self._future = loop.create_future()
        self.pending = context
        try:
            return await self._future
        finally:
            self._future = None
            self.pending = None

    def resolve(self, decision: FailureDecision) -> bool:
        """Deliver the user's decision. Returns False if nobody is waiting."""
        if self._future is None or self._future.done():
            return False
        self._future.set_result(FailureDecision(decision))
        return True

    def abandon(self) -> None:
        """Answer a waiting question with abort (e.g. the batch was cancelled)."""
        self.resolve(FailureDecision.ABORT)
