"""
Health check endpoint.

Reports whether the service can reach its database and whether
a batch currently holds the printer.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from check_ledger.config import get_settings
from check_ledger.models.base import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request, db: Session = Depends(get_db)):
    """A database that does not answer marks the service degraded."""
    try:
        db.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        database = "unhealthy"

    return {
        "status": "healthy" if database == "healthy" else "degraded",
        "service": "check-ledger",
        "version": get_settings().APP_VERSION,
        "database": database,
        "batch_running": request.app.state.batches.active() is not None,
    }
