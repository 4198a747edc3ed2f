"""
Single-check controller: print one check (or one three-up sheet)
now and record it.

Same rule as the batch: the transaction is committed only after
the print adapter confirms the check printed. A failed print
leaves the ledger untouched, so there is nothing to revert.
"""

import logging
from decimal import Decimal
from typing import Sequence

from check_ledger.exceptions import ItemValidationError
from check_ledger.models.enums import SHEET_SLOTS, PrintMode, TransactionType
from check_ledger.models.profile import Profile
from check_ledger.money import ZERO
from check_ledger.schemas.batch import PrintJob, print_target_error
from check_ledger.schemas.transaction import (
    PendingItem,
    RecordResult,
    TransactionDraft,
)
from check_ledger.services.ledger_store import LedgerStore
from check_ledger.services.printing import (
    PrintAdapter,
    print_filename,
    submit_print_job,
)
from check_ledger.services.transaction_builder import (
    TransactionBuilder,
    WorkingLedgerSet,
)

logger = logging.getLogger(__name__)


class SingleCheckController:

    def __init__(
        self,
        store: LedgerStore,
        print_adapter: PrintAdapter,
        *,
        profile_id: str | None = None,
        default_ledger_id: str | None = None,
        print_mode: PrintMode = PrintMode.INTERACTIVE,
        printer_device: str = "",
        export_path: str = "",
        builder: TransactionBuilder | None = None,
    ):
        self.store = store
        self.print_adapter = print_adapter
        self.profile_id = profile_id
        self.default_ledger_id = default_ledger_id
        self.print_mode = print_mode
        self.printer_device = printer_device
        self.export_path = export_path
        self.builder = builder or TransactionBuilder(
            profile_id=profile_id,
            payee_defaults=store.payee_defaults,
        )

    async def record_single(
        self, item: PendingItem, ledger_id: str | None = None
    ) -> RecordResult:
        """
        Print one check and record it once the print succeeded.

        On success the caller clears its input form
        (form_cleared=True). On failure nothing is written.
        """
        target_error = self._print_target_error()
        if target_error:
            return RecordResult(success=False, error=target_error)

        working = self._working_set(ledger_id)
        try:
            target = ledger_id or self.builder.resolve_ledger(item.ledger, working)
            built = self.builder.build(
                item,
                target,
                self._opening_balance(working, target),
                check_number=self._auto_number(item),
            )
        except ItemValidationError as e:
            return RecordResult(success=False, error=str(e))

        result = await submit_print_job(
            self.print_adapter,
            self._print_job([built.draft]),
            self.print_mode,
        )
        if not result.success:
            return RecordResult(success=False, error=f"Print failed: {result.error}")

        return self._commit(working, [built.draft])

    async def record_sheet(
        self, items: Sequence[PendingItem], ledger_id: str | None = None
    ) -> RecordResult:
        """
        Print one three-up sheet and record its checks.

        items are the top, middle and bottom slots in that order;
        an empty slot (no payee and no amount) is left blank. Every
        filled slot must be valid, otherwise nothing is printed.
        """
        if len(items) > len(SHEET_SLOTS):
            return RecordResult(success=False, error="A sheet holds at most 3 checks")
        target_error = self._print_target_error()
        if target_error:
            return RecordResult(success=False, error=target_error)

        working = self._working_set(ledger_id)
        drafts: list[TransactionDraft] = []
        balances = {}
        cursor = self._next_number()
        try:
            for slot, item in zip(SHEET_SLOTS, items):
                if _is_empty(item):
                    continue
                target = ledger_id or self.builder.resolve_ledger(item.ledger, working)
                if target not in balances:
                    balances[target] = self._opening_balance(working, target)

                number = None
                if not item.check_number and cursor is not None:
                    number = cursor
                    cursor += 1

                built = self.builder.build(
                    item,
                    target,
                    balances[target],
                    check_number=number,
                    sheet_slot=slot,
                )
                balances[target] = built.new_running_balance
                drafts.append(built.draft)
        except ItemValidationError as e:
            return RecordResult(success=False, error=f"{slot.value} slot: {e}")

        if not drafts:
            return RecordResult(
                success=False, error="Fill at least one slot before printing"
            )

        result = await submit_print_job(
            self.print_adapter,
            self._print_job(drafts),
            self.print_mode,
        )
        if not result.success:
            return RecordResult(success=False, error=f"Print failed: {result.error}")

        return self._commit(working, drafts)

    def record_only(
        self, item: PendingItem, ledger_id: str | None = None
    ) -> RecordResult:
        """Record a check that was printed elsewhere (or handwritten)."""
        working = self._working_set(ledger_id)
        try:
            target = ledger_id or self.builder.resolve_ledger(item.ledger, working)
            built = self.builder.build(
                item,
                target,
                self._opening_balance(working, target),
                check_number=self._auto_number(item),
            )
        except ItemValidationError as e:
            return RecordResult(success=False, error=str(e))
        return self._commit(working, [built.draft])

    def record_deposit(
        self, item: PendingItem, ledger_id: str | None = None
    ) -> RecordResult:
        """Record a deposit or balance adjustment. Nothing is printed."""
        deposit = item.model_copy(update={"type": TransactionType.DEPOSIT})
        working = self._working_set(ledger_id)
        try:
            target = ledger_id or self.builder.resolve_ledger(deposit.ledger, working)
            built = self.builder.build(
                deposit, target, self._opening_balance(working, target)
            )
        except ItemValidationError as e:
            return RecordResult(success=False, error=str(e))
        return self._commit(working, [built.draft])

    # --- Internals ---

    def _print_target_error(self) -> str | None:
        return print_target_error(
            self.print_mode, self.printer_device, self.export_path
        )

    def _print_job(self, drafts: list[TransactionDraft]) -> PrintJob:
        return PrintJob(
            filename=print_filename(drafts[0]),
            checks=drafts,
            printer_device=self.printer_device,
            export_path=self.export_path,
        )

    def _working_set(self, ledger_id: str | None) -> WorkingLedgerSet:
        if ledger_id is not None:
            # Raises LedgerNotFoundError for an unknown id
            self.store.get_ledger(ledger_id)

        ledgers = self.store.list_ledgers()
        return WorkingLedgerSet(
            names={ledger.id: ledger.name for ledger in ledgers},
            default_ledger_id=self.default_ledger_id or (
                ledgers[0].id if ledgers else None
            ),
        )

    def _opening_balance(
        self, working: WorkingLedgerSet, ledger_id: str
    ) -> Decimal:
        """Derived balance, or zero for a ledger staged by this call."""
        if any(draft.id == ledger_id for draft in working.staged):
            return ZERO
        return self.store.derived_balance(ledger_id)

    def _profile(self) -> Profile | None:
        if self.profile_id is None:
            return None
        return self.store.get_profile(self.profile_id)

    def _next_number(self) -> int | None:
        profile = self._profile()
        return profile.next_check_number if profile else None

    def _auto_number(self, item: PendingItem) -> int | None:
        """Use the profile's next number when the item has none."""
        if item.check_number:
            return None
        return self._next_number()

    def _commit(
        self, working: WorkingLedgerSet, drafts: list[TransactionDraft]
    ) -> RecordResult:
        used = {draft.ledger_id for draft in drafts}
        new_ledgers = [draft for draft in working.staged if draft.id in used]

        rows = self.store.commit(new_ledgers, drafts, self._cursor_after(drafts))
        logger.info("Recorded %d transaction(s)", len(rows))
        return RecordResult(
            success=True,
            transaction_ids=[row.id for row in rows],
            form_cleared=True,
        )

    def _cursor_after(
        self, drafts: list[TransactionDraft]
    ) -> tuple[str, int] | None:
        """
        Profile cursor after recording these checks.

        The cursor moves past the highest numeric check number used;
        it never moves backwards.
        """
        profile = self._profile()
        if profile is None:
            return None

        numbers = [
            int(draft.check_number) for draft in drafts
            if draft.type == TransactionType.CHECK and draft.check_number.isdigit()
        ]
        if not numbers:
            return None
        next_number = max(profile.next_check_number, max(numbers) + 1)
        if next_number == profile.next_check_number:
            return None
        return (profile.id, next_number)


def _is_empty(item: PendingItem) -> bool:
    return not item.payee.strip() and item.amount in (None, "")
