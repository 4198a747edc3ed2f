"""
Batch controller: prints a queue of checks and records them.

For each print unit (one check in standard mode, one sheet of up
to three checks in three-up mode):
1. Stop if the user asked to cancel (checked only between units)
2. Build drafts for the unit's valid items, chaining each
   ledger's running balance; invalid items are skipped silently
3. Send the unit to the print adapter and wait
4. Printed: keep the drafts, make the unit's balances and check
   numbers permanent
5. Failed: ask the user to continue or abort; either way the
   unit's tentative balances and check numbers are dropped

When the loop ends, for whatever reason, everything that printed
is merged into the ledger store in one commit. Nothing is written
to the store before that point.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Sequence

from check_ledger.config import get_settings
from check_ledger.exceptions import ItemValidationError
from check_ledger.models.base import new_id
from check_ledger.models.enums import (
    SHEET_SLOTS,
    BatchState,
    FailureDecision,
    LayoutMode,
)
from check_ledger.money import ZERO
from check_ledger.schemas.batch import (
    BatchOptions,
    BatchProgress,
    BatchSummary,
    FailureContext,
    PrintJob,
)
from check_ledger.schemas.transaction import PendingItem, TransactionDraft
from check_ledger.services.ledger_store import LedgerStore
from check_ledger.services.printing import (
    ConfirmationOracle,
    PrintAdapter,
    print_filename,
    submit_print_job,
)
from check_ledger.services.transaction_builder import (
    TransactionBuilder,
    WorkingLedgerSet,
)

logger = logging.getLogger(__name__)

THREE_UP_SHEET_SIZE = 3

ProgressCallback = Callable[[BatchProgress], None]


@dataclass
class BatchRunState:
    """Everything a run tracks between print units. Never persisted."""
    working: WorkingLedgerSet
    balances: dict[str, Decimal]
    total: int
    check_number: int | None = None
    drafts: list[TransactionDraft] = field(default_factory=list)
    processed: int = 0
    failed: int = 0
    cancelled: bool = False
    current: int = 0
    state: BatchState = BatchState.IDLE


@dataclass
class PrintUnit:
    """Drafts that share one print action, plus their tentative effects."""
    start: int
    items: list[PendingItem]
    drafts: list[TransactionDraft]
    balances: dict[str, Decimal]
    next_check_number: int | None


class BatchHandle:
    """
    Caller's view of a running batch.

    cancel() is cooperative: the unit being printed finishes and
    no further unit starts. Await `result` for the BatchSummary.
    """

    def __init__(self, items: Sequence[PendingItem]):
        self.id = new_id()
        self.items = list(items)
        self.state = BatchState.IDLE
        self.progress: BatchProgress | None = None
        self.remaining: list[PendingItem] = []
        self.failed_items: list[PendingItem] = []
        self.summary: BatchSummary | None = None
        self.result: asyncio.Task | None = None
        self._cancel_requested = False
        self._callbacks: list[ProgressCallback] = []

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def cancel(self) -> None:
        self._cancel_requested = True

    def on_progress(self, callback: ProgressCallback) -> None:
        self._callbacks.append(callback)

    def publish(self, progress: BatchProgress) -> None:
        self.progress = progress
        self.state = progress.state
        for callback in self._callbacks:
            callback(progress)


class BatchController:

    def __init__(
        self,
        store: LedgerStore,
        print_adapter: PrintAdapter,
        oracle: ConfirmationOracle,
        *,
        profile_id: str | None = None,
        default_ledger_id: str | None = None,
        builder: TransactionBuilder | None = None,
    ):
        self.store = store
        self.print_adapter = print_adapter
        self.oracle = oracle
        self.profile_id = profile_id
        self.default_ledger_id = default_ledger_id
        self.builder = builder or TransactionBuilder(
            profile_id=profile_id,
            payee_defaults=store.payee_defaults,
        )

    def enqueue_batch(
        self, items: Sequence[PendingItem], options: BatchOptions
    ) -> BatchHandle:
        """Start a batch on the running event loop and return its handle."""
        handle = BatchHandle(items)
        handle.result = asyncio.create_task(self.run(items, options, handle))
        return handle

    async def run(
        self,
        items: Sequence[PendingItem],
        options: BatchOptions,
        handle: BatchHandle | None = None,
    ) -> BatchSummary:
        handle = handle or BatchHandle(items)
        items = list(items)
        state = self._start(items, options)
        unit_size = (
            THREE_UP_SHEET_SIZE if options.mode == LayoutMode.THREE_UP else 1
        )

        logger.info(
            "Batch %s started: %d item(s), mode=%s, auto_number=%s",
            handle.id, len(items), options.mode.value, options.auto_number,
        )
        state.state = BatchState.RUNNING
        self._publish(handle, state)

        position = 0
        requeue_from = len(items)
        try:
            while position < len(items):
                if handle.cancel_requested:
                    state.cancelled = True
                    requeue_from = position
                    break

                chunk = items[position:position + unit_size]
                unit = self._build_unit(state, position, chunk, options)
                position += len(chunk)
                state.current = position

                if unit is None:
                    self._publish(handle, state)
                    continue

                self._publish(handle, state)
                job = self._print_job(unit, options, unit_size)
                result = await submit_print_job(
                    self.print_adapter, job, options.print_mode
                )

                if result.success:
                    self._accept(state, unit)
                    self._publish(handle, state)
                    continue

                decision = await self._ask(
                    handle, state, unit, options, result.error
                )
                if decision == FailureDecision.ABORT:
                    state.cancelled = True
                    state.state = BatchState.ABORTED
                    # A standard-mode check that failed never printed and
                    # goes back in the queue; a failed sheet is dropped whole.
                    requeue_from = (
                        unit.start if options.mode == LayoutMode.STANDARD
                        else position
                    )
                    self._publish(handle, state)
                    logger.info(
                        "Batch %s aborted at item %d", handle.id, unit.start + 1
                    )
                    break

                state.failed += len(unit.drafts)
                handle.failed_items.extend(
                    item for item in chunk if self._is_valid(item)
                )
                state.state = BatchState.RUNNING
                self._publish(handle, state)
        finally:
            handle.remaining = items[requeue_from:]
            summary = self._merge(state)
            state.state = BatchState.COMPLETED
            self._publish(handle, state)
            handle.summary = summary

        logger.info(
            "Batch %s finished: processed=%d failed=%d total=%d cancelled=%s",
            handle.id, summary.processed, summary.failed,
            summary.total, summary.cancelled,
        )
        return summary

    # --- Steps ---

    def _start(
        self, items: list[PendingItem], options: BatchOptions
    ) -> BatchRunState:
        """Snapshot the store's derived balances into a working copy."""
        ledgers = self.store.list_ledgers()
        balances = self.store.balances()
        working = WorkingLedgerSet(
            names={ledger.id: ledger.name for ledger in ledgers},
            default_ledger_id=self.default_ledger_id or (
                ledgers[0].id if ledgers else None
            ),
        )
        return BatchRunState(
            working=working,
            balances=balances,
            total=len(items),
            check_number=self._first_check_number(options),
        )

    def _first_check_number(self, options: BatchOptions) -> int | None:
        if not options.auto_number:
            return None
        if options.start_number is not None:
            return options.start_number
        if self.profile_id is not None:
            return self.store.get_profile(self.profile_id).next_check_number
        return get_settings().DEFAULT_START_NUMBER

    def _build_unit(
        self,
        state: BatchRunState,
        start: int,
        chunk: list[PendingItem],
        options: BatchOptions,
    ) -> PrintUnit | None:
        """
        Build drafts for one print unit against tentative balances.

        Returns None when no item in the chunk is valid; such a
        unit is skipped without printing.
        """
        balances = dict(state.balances)
        check_number = state.check_number
        three_up = options.mode == LayoutMode.THREE_UP
        drafts = []

        for offset, item in enumerate(chunk):
            if not self._is_valid(item):
                continue

            try:
                ledger_id = self.builder.resolve_ledger(
                    item.ledger, state.working
                )
                built = self.builder.build(
                    item,
                    ledger_id,
                    balances.get(ledger_id, ZERO),
                    check_number=check_number,
                    sheet_slot=SHEET_SLOTS[offset] if three_up else None,
                )
            except ItemValidationError as e:
                logger.info("Skipping item %d: %s", start + offset + 1, e)
                continue
            balances[ledger_id] = built.new_running_balance
            drafts.append(built.draft)
            if check_number is not None:
                check_number += 1

        if not drafts:
            return None
        return PrintUnit(
            start=start,
            items=chunk,
            drafts=drafts,
            balances=balances,
            next_check_number=check_number,
        )

    def _is_valid(self, item: PendingItem) -> bool:
        try:
            self.builder.validate(item)
        except ItemValidationError:
            return False
        return True

    def _print_job(
        self, unit: PrintUnit, options: BatchOptions, unit_size: int
    ) -> PrintJob:
        index = unit.start // unit_size + 1
        return PrintJob(
            filename=print_filename(unit.drafts[0], index),
            checks=unit.drafts,
            printer_device=options.printer_device,
            export_path=options.pdf_export_path,
        )

    def _accept(self, state: BatchRunState, unit: PrintUnit) -> None:
        state.drafts.extend(unit.drafts)
        state.balances.update(unit.balances)
        state.check_number = unit.next_check_number
        state.processed += len(unit.drafts)

    async def _ask(
        self,
        handle: BatchHandle,
        state: BatchRunState,
        unit: PrintUnit,
        options: BatchOptions,
        error: str | None,
    ) -> FailureDecision:
        if options.mode == LayoutMode.THREE_UP:
            label = (
                f"Sheet ({len(unit.drafts)} checks starting with "
                f"{unit.drafts[0].payee})"
            )
        else:
            label = unit.drafts[0].payee

        state.state = BatchState.PAUSED
        self._publish(handle, state)

        decision = FailureDecision(await self.oracle.ask_continue_or_abort(
            FailureContext(label=label, error=error or "Unknown error")
        ))
        logger.warning(
            "Print failed for %s (%s); user chose %s",
            label, error, decision.value,
        )
        return decision

    def _merge(self, state: BatchRunState) -> BatchSummary:
        """
        Write the run's result to the store in one commit.

        Only staged ledgers that received a printed transaction are
        created, so a ledger never appears without its transactions.
        """
        used = {draft.ledger_id for draft in state.drafts}
        new_ledgers = [
            draft for draft in state.working.staged if draft.id in used
        ]

        profile_cursor = None
        if (
            state.check_number is not None
            and state.processed > 0
            and self.profile_id is not None
        ):
            profile_cursor = (self.profile_id, state.check_number)

        rows = self.store.commit(new_ledgers, state.drafts, profile_cursor)

        return BatchSummary(
            processed=state.processed,
            total=state.total,
            failed=state.failed,
            cancelled=state.cancelled,
            transaction_ids=[row.id for row in rows],
            new_ledger_ids=[draft.id for draft in new_ledgers],
            next_check_number=state.check_number,
        )

    def _publish(self, handle: BatchHandle, state: BatchRunState) -> None:
        handle.publish(BatchProgress(
            state=state.state,
            current=state.current,
            total=state.total,
            processed=state.processed,
            failed=state.failed,
        ))
