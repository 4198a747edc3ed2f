"""
Import and export of the persisted ledger document.
"""

from fastapi import APIRouter, Body, Depends, HTTPException

from check_ledger.api.deps import get_store
from check_ledger.exceptions import LedgerStoreError
from check_ledger.services.ledger_store import LedgerStore
from check_ledger.services.legacy_import import (
    ImportReport,
    export_document,
    import_legacy_document,
)

router = APIRouter(tags=["Data"])


@router.post("/import/legacy", response_model=ImportReport, status_code=201)
def import_legacy(
    document: dict = Body(...),
    store: LedgerStore = Depends(get_store),
):
    """
    Load a saved document (including the old single-balance
    format). Refused with 409 once the store holds transactions.
    """
    try:
        return import_legacy_document(store, document)
    except LedgerStoreError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/export")
def export(store: LedgerStore = Depends(get_store)):
    return export_document(store)
