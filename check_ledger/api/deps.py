"""
Shared dependencies for the API routers.

The ledger store is built per request on the request's session.
The print adapter and the batch registry live on app.state so
that tests (or a real printer integration) can replace them.
"""

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from check_ledger.models.base import get_db
from check_ledger.services.gl_codes import GLCodeService
from check_ledger.services.ledger_store import LedgerStore
from check_ledger.services.printing import PrintAdapter


def get_store(db: Session = Depends(get_db)) -> LedgerStore:
    return LedgerStore(db, gl_learner=GLCodeService(db))


def get_print_adapter(request: Request) -> PrintAdapter:
    return request.app.state.print_adapter


async def ensure_printer_idle(request: Request) -> None:
    """Single prints are refused while a batch holds the printer."""
    if request.app.state.batches.active() is not None:
        raise HTTPException(status_code=409, detail="A batch is printing")
