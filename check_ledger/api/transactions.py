"""
Transaction API endpoints: single checks, sheets, deposits and
deletion.

Printing endpoints only record once the print adapter reports
success. A refused item or a failed print comes back as 400
with nothing written.
"""

from fastapi import APIRouter, Depends, HTTPException

from check_ledger.api.deps import (
    ensure_printer_idle,
    get_print_adapter,
    get_store,
)
from check_ledger.config import get_settings
from check_ledger.exceptions import (
    LedgerNotFoundError,
    ProfileNotFoundError,
    TransactionNotFoundError,
)
from check_ledger.models.enums import PrintMode, TransactionType
from check_ledger.schemas.transaction import (
    DepositCreate,
    PendingItem,
    RecordRequest,
    RecordResult,
    SheetRecordRequest,
)
from check_ledger.services.ledger_store import LedgerStore
from check_ledger.services.printing import PrintAdapter
from check_ledger.services.single_controller import SingleCheckController

router = APIRouter(tags=["Transactions"])


def _controller(
    store: LedgerStore,
    adapter: PrintAdapter,
    profile_id: str | None,
) -> SingleCheckController:
    if profile_id is not None:
        try:
            store.get_profile(profile_id)
        except ProfileNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    settings = get_settings()
    return SingleCheckController(
        store,
        adapter,
        profile_id=profile_id,
        default_ledger_id=store.ensure_default_ledger().id,
        print_mode=PrintMode(settings.BATCH_PRINT_MODE),
        printer_device=settings.BATCH_PRINTER_DEVICE,
        export_path=settings.BATCH_PDF_EXPORT_PATH,
    )


def _recorded(result: RecordResult) -> RecordResult:
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    store: LedgerStore = Depends(get_store),
):
    """
    Delete one transaction. Its ledger's derived balance changes by
    exactly its signed amount; no other row is touched.
    """
    try:
        store.delete_transaction(transaction_id)
    except TransactionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/checks/print",
    response_model=RecordResult,
    status_code=201,
    dependencies=[Depends(ensure_printer_idle)],
)
async def print_check(
    request: RecordRequest,
    store: LedgerStore = Depends(get_store),
    adapter: PrintAdapter = Depends(get_print_adapter),
):
    """Print one check and record it after the print succeeded."""
    controller = _controller(store, adapter, request.profile_id)
    try:
        result = await controller.record_single(request.item, request.ledger_id)
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _recorded(result)


@router.post(
    "/checks/sheet",
    response_model=RecordResult,
    status_code=201,
    dependencies=[Depends(ensure_printer_idle)],
)
async def print_sheet(
    request: SheetRecordRequest,
    store: LedgerStore = Depends(get_store),
    adapter: PrintAdapter = Depends(get_print_adapter),
):
    """Print one three-up sheet (top, middle, bottom) and record it."""
    controller = _controller(store, adapter, request.profile_id)
    try:
        result = await controller.record_sheet(request.items, request.ledger_id)
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _recorded(result)


@router.post("/checks/record", response_model=RecordResult, status_code=201)
def record_check(
    request: RecordRequest,
    store: LedgerStore = Depends(get_store),
    adapter: PrintAdapter = Depends(get_print_adapter),
):
    """Record a check without printing it."""
    controller = _controller(store, adapter, request.profile_id)
    try:
        result = controller.record_only(request.item, request.ledger_id)
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _recorded(result)


@router.post("/deposits", response_model=RecordResult, status_code=201)
def record_deposit(
    request: DepositCreate,
    store: LedgerStore = Depends(get_store),
    adapter: PrintAdapter = Depends(get_print_adapter),
):
    """Record a deposit or balance adjustment."""
    controller = _controller(store, adapter, None)
    item = PendingItem(
        type=TransactionType.DEPOSIT,
        description=request.description,
        amount=request.amount,
        date=request.date,
        memo=request.memo,
    )
    try:
        result = controller.record_deposit(item, request.ledger_id)
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _recorded(result)
