"""
Database engine, session management, and base model.

Every model inherits from Base. Every request gets a session
from get_db(). Background batch runs open their own session
through SessionLocal.
"""

import uuid

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from check_ledger.config import get_settings

settings = get_settings()

# SQLite connections are shared between the request thread and
# the event loop that runs batch jobs.
_connect_args = {"check_same_thread": False} if settings.is_sqlite else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args,
)

# autocommit=False: the ledger store decides when a batch merge
# is committed, so a half-applied batch is never visible.
# autoflush=False: nothing is sent to the database while a batch
# is still staging drafts.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


def new_id() -> str:
    """Opaque identifier for ledgers, transactions and profiles."""
    return uuid.uuid4().hex


def get_db():
    """
    Provide a database session for a single request.

    The try/finally pattern ensures the session is always
    closed, even if the endpoint raises.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
