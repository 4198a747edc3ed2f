"""
Ledger API endpoints.

Thin layer over the LedgerStore: it maps store errors to status
codes and never computes a balance itself.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from check_ledger.api.deps import get_store
from check_ledger.exceptions import LedgerNotFoundError, LedgerStoreError
from check_ledger.schemas.ledger import (
    IntegrityReport,
    LedgerBalanceResponse,
    LedgerCreate,
    LedgerResponse,
    LedgerUpdate,
)
from check_ledger.schemas.transaction import TransactionResponse
from check_ledger.services.ledger_store import LedgerStore

router = APIRouter(prefix="/ledgers", tags=["Ledgers"])


@router.post("", response_model=LedgerResponse, status_code=201)
def create_ledger(
    request: LedgerCreate,
    store: LedgerStore = Depends(get_store),
):
    try:
        return store.create_ledger(request.name, request.starting_balance)
    except LedgerStoreError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=list[LedgerResponse])
def list_ledgers(store: LedgerStore = Depends(get_store)):
    return store.list_ledgers()


@router.get("/{ledger_id}", response_model=LedgerResponse)
def get_ledger(ledger_id: str, store: LedgerStore = Depends(get_store)):
    try:
        return store.get_ledger(ledger_id)
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{ledger_id}", response_model=LedgerResponse)
def update_ledger(
    ledger_id: str,
    request: LedgerUpdate,
    store: LedgerStore = Depends(get_store),
):
    """Rename a ledger and/or change its starting balance."""
    try:
        ledger = store.get_ledger(ledger_id)
        if request.name is not None:
            ledger = store.rename_ledger(ledger_id, request.name)
        if request.starting_balance is not None:
            ledger = store.set_starting_balance(ledger_id, request.starting_balance)
        return ledger
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except LedgerStoreError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{ledger_id}")
def delete_ledger(ledger_id: str, store: LedgerStore = Depends(get_store)):
    """
    Delete a ledger and all of its transactions.

    Irreversible; clients confirm with the user first. The last
    remaining ledger is refused with 400.
    """
    try:
        count = store.delete_ledger(ledger_id)
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except LedgerStoreError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ledger_id": ledger_id, "transactions_deleted": count}


@router.get("/{ledger_id}/balance", response_model=LedgerBalanceResponse)
def get_ledger_balance(ledger_id: str, store: LedgerStore = Depends(get_store)):
    """Derived balance: starting balance + deposits - checks."""
    try:
        ledger = store.get_ledger(ledger_id)
        balance = store.derived_balance(ledger_id)
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return LedgerBalanceResponse(
        ledger_id=ledger.id,
        name=ledger.name,
        starting_balance=ledger.starting_balance,
        balance=balance,
        transaction_count=len(ledger.transactions),
    )


@router.get(
    "/{ledger_id}/transactions",
    response_model=list[TransactionResponse],
)
def list_ledger_transactions(
    ledger_id: str,
    search: str | None = None,
    sort: str = Query(default="date-desc"),
    store: LedgerStore = Depends(get_store),
):
    try:
        store.get_ledger(ledger_id)
        return store.list_transactions(ledger_id, search=search, sort=sort)
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{ledger_id}/integrity", response_model=IntegrityReport)
def check_ledger_integrity(
    ledger_id: str, store: LedgerStore = Depends(get_store)
):
    """
    Re-verify every snapshot of a ledger.

    A broken snapshot is a bug and surfaces as a 500.
    """
    try:
        return store.check_integrity(ledger_id)
    except LedgerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
