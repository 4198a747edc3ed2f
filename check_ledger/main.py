"""
Check Ledger: FastAPI application.

Entry point for the service. All routers are registered here,
along with the process-wide collaborators the routers share:
the print adapter, the batch registry and the session factory
used by background batches.
"""

from fastapi import FastAPI

from check_ledger.api.batches import BatchRegistry
from check_ledger.api.batches import router as batches_router
from check_ledger.api.data import router as data_router
from check_ledger.api.health import router as health_router
from check_ledger.api.ledgers import router as ledgers_router
from check_ledger.api.profiles import router as profiles_router
from check_ledger.api.transactions import router as transactions_router
from check_ledger.config import get_settings
from check_ledger.logging_config import configure_logging
from check_ledger.models.base import SessionLocal
from check_ledger.services.printing import DryRunPrintAdapter

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Check printing ledger with derived balances and batch printing",
)

# No printer integration ships with the service; replace on startup
app.state.print_adapter = DryRunPrintAdapter()
app.state.batches = BatchRegistry()
app.state.session_factory = SessionLocal

# Register routers
app.include_router(health_router)
app.include_router(ledgers_router)
app.include_router(transactions_router)
app.include_router(profiles_router)
app.include_router(batches_router)
app.include_router(data_router)
