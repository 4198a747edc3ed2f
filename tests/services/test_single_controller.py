"""
Tests for the SingleCheckController: one check or one sheet,
printed and recorded, plus record-only checks and deposits.
"""

from decimal import Decimal

import pytest

from check_ledger.exceptions import LedgerNotFoundError
from check_ledger.models.enums import PrintMode, SheetSlot, TransactionType
from check_ledger.schemas.batch import PrintResult
from check_ledger.schemas.profile import ProfileCreate
from check_ledger.schemas.transaction import PendingItem
from check_ledger.services.single_controller import SingleCheckController


class FailingPrintAdapter:
    def __init__(self):
        self.jobs = []

    async def submit(self, job, mode):
        self.jobs.append(job)
        return PrintResult(success=False, error="Paper out")


def make_controller(store, ledger, adapter, profile_id=None, **options):
    return SingleCheckController(
        store,
        adapter,
        profile_id=profile_id,
        default_ledger_id=ledger.id,
        **options,
    )


class TestRecordSingle:

    @pytest.mark.asyncio
    async def test_printed_check_is_recorded(self, store, ledger, print_adapter):
        controller = make_controller(store, ledger, print_adapter)

        result = await controller.record_single(
            PendingItem(payee="Acme Co", amount="100.00")
        )

        assert result.success is True
        assert result.form_cleared is True
        [txn] = store.list_transactions()
        assert txn.id == result.transaction_ids[0]
        assert store.derived_balance(ledger.id) == Decimal("900.00")
        assert len(print_adapter.jobs) == 1

    @pytest.mark.asyncio
    async def test_failed_print_records_nothing(self, store, ledger):
        controller = make_controller(store, ledger, FailingPrintAdapter())

        result = await controller.record_single(
            PendingItem(payee="Acme Co", amount="100.00")
        )

        assert result.success is False
        assert result.form_cleared is False
        assert "Paper out" in result.error
        assert store.list_transactions() == []

    @pytest.mark.asyncio
    async def test_invalid_item_is_not_printed(self, store, ledger, print_adapter):
        controller = make_controller(store, ledger, print_adapter)

        result = await controller.record_single(
            PendingItem(payee="Acme Co", amount="0")
        )

        assert result.success is False
        assert print_adapter.jobs == []

    @pytest.mark.asyncio
    async def test_profile_numbering_advances(self, store, ledger, print_adapter):
        profile = store.create_profile(
            ProfileCreate(name="Main", next_check_number=3001)
        )
        controller = make_controller(
            store, ledger, print_adapter, profile_id=profile.id
        )

        await controller.record_single(PendingItem(payee="A", amount="1"))
        await controller.record_single(PendingItem(payee="B", amount="1"))

        numbers = [t.check_number for t in store.list_transactions(sort="date-asc")]
        assert numbers == ["3001", "3002"]
        assert store.get_profile(profile.id).next_check_number == 3003

    @pytest.mark.asyncio
    async def test_unknown_ledger_id_raises(self, store, ledger, print_adapter):
        controller = make_controller(store, ledger, print_adapter)

        with pytest.raises(LedgerNotFoundError):
            await controller.record_single(
                PendingItem(payee="A", amount="1"), ledger_id="missing"
            )

    @pytest.mark.asyncio
    async def test_named_ledger_is_created_on_success(
        self, store, ledger, print_adapter
    ):
        controller = make_controller(store, ledger, print_adapter)

        await controller.record_single(
            PendingItem(payee="A", amount="5", ledger="Travel")
        )

        names = sorted(l.name for l in store.list_ledgers())
        assert names == ["Operating", "Travel"]

    @pytest.mark.asyncio
    async def test_overlong_ledger_name_is_refused(
        self, store, ledger, print_adapter
    ):
        controller = make_controller(store, ledger, print_adapter)

        result = await controller.record_single(
            PendingItem(payee="A", amount="5", ledger="Y" * 101)
        )

        assert result.success is False
        assert "Ledger name" in result.error
        assert print_adapter.jobs == []
        assert [l.name for l in store.list_ledgers()] == ["Operating"]

    @pytest.mark.asyncio
    async def test_overlong_payee_is_not_printed(
        self, store, ledger, print_adapter
    ):
        controller = make_controller(store, ledger, print_adapter)

        result = await controller.record_single(
            PendingItem(payee="A" * 256, amount="5")
        )

        assert result.success is False
        assert result.error.startswith("payee")
        assert print_adapter.jobs == []


class TestRecordSheet:

    @pytest.mark.asyncio
    async def test_sheet_skips_empty_slots(self, store, ledger, print_adapter):
        controller = make_controller(store, ledger, print_adapter)

        result = await controller.record_sheet([
            PendingItem(payee="A", amount="10"),
            PendingItem(),
            PendingItem(payee="C", amount="20"),
        ])

        assert result.success is True
        slots = [t.sheet_slot for t in store.list_transactions(sort="date-asc")]
        assert slots == [SheetSlot.TOP, SheetSlot.BOTTOM]
        [(job, _mode)] = print_adapter.jobs
        assert len(job.checks) == 2
        assert store.derived_balance(ledger.id) == Decimal("970.00")

    @pytest.mark.asyncio
    async def test_one_bad_slot_blocks_the_sheet(
        self, store, ledger, print_adapter
    ):
        controller = make_controller(store, ledger, print_adapter)

        result = await controller.record_sheet([
            PendingItem(payee="A", amount="10"),
            PendingItem(payee="B", amount="-1"),
        ])

        assert result.success is False
        assert result.error.startswith("middle slot")
        assert print_adapter.jobs == []

    @pytest.mark.asyncio
    async def test_empty_sheet_is_refused(self, store, ledger, print_adapter):
        controller = make_controller(store, ledger, print_adapter)

        result = await controller.record_sheet([PendingItem(), PendingItem()])

        assert result.success is False
        assert "at least one slot" in result.error


class TestPrintTarget:

    @pytest.mark.asyncio
    async def test_silent_mode_without_printer_is_refused(
        self, store, ledger, print_adapter
    ):
        controller = make_controller(
            store, ledger, print_adapter, print_mode=PrintMode.SILENT
        )

        result = await controller.record_single(
            PendingItem(payee="Acme Co", amount="10")
        )

        assert result.success is False
        assert result.error == "Select a printer for silent printing mode"
        assert print_adapter.jobs == []
        assert store.list_transactions() == []

    @pytest.mark.asyncio
    async def test_pdf_mode_without_folder_refuses_sheet(
        self, store, ledger, print_adapter
    ):
        controller = make_controller(
            store, ledger, print_adapter, print_mode=PrintMode.PDF
        )

        result = await controller.record_sheet(
            [PendingItem(payee="A", amount="10")]
        )

        assert result.success is False
        assert result.error == "Select a folder for PDF export mode"
        assert print_adapter.jobs == []

    @pytest.mark.asyncio
    async def test_target_travels_with_the_job(
        self, store, ledger, print_adapter
    ):
        controller = make_controller(
            store, ledger, print_adapter,
            print_mode=PrintMode.PDF,
            export_path="/srv/checks",
            printer_device="Back Office",
        )

        await controller.record_single(PendingItem(payee="A", amount="10"))
        await controller.record_sheet([PendingItem(payee="B", amount="10")])

        for job, mode in print_adapter.jobs:
            assert mode == PrintMode.PDF
            assert job.export_path == "/srv/checks"
            assert job.printer_device == "Back Office"
        assert len(print_adapter.jobs) == 2


class TestRecordWithoutPrinting:

    def test_record_only(self, store, ledger, print_adapter):
        controller = make_controller(store, ledger, print_adapter)

        result = controller.record_only(
            PendingItem(payee="Acme Co", amount="12.34", check_number="5000")
        )

        assert result.success is True
        assert print_adapter.jobs == []
        [txn] = store.list_transactions()
        assert txn.check_number == "5000"

    def test_record_only_moves_profile_cursor_forward(
        self, store, ledger, print_adapter
    ):
        profile = store.create_profile(
            ProfileCreate(name="Main", next_check_number=100)
        )
        controller = make_controller(
            store, ledger, print_adapter, profile_id=profile.id
        )

        controller.record_only(
            PendingItem(payee="A", amount="1", check_number="250")
        )
        controller.record_only(
            PendingItem(payee="B", amount="1", check_number="90")
        )

        assert store.get_profile(profile.id).next_check_number == 251

    def test_deposit_raises_balance(self, store, ledger, print_adapter):
        controller = make_controller(store, ledger, print_adapter)

        result = controller.record_deposit(
            PendingItem(description="Client payment", amount="$2,500.00")
        )

        assert result.success is True
        [txn] = store.list_transactions()
        assert txn.type == TransactionType.DEPOSIT
        assert txn.payee == "Client payment"
        assert store.derived_balance(ledger.id) == Decimal("3500.00")
