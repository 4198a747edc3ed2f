"""
Shared test fixtures.

Sets up an isolated test database so tests never touch the real
database. Each test starts from freshly created tables, which
are dropped again afterwards.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from check_ledger.api.batches import BatchRegistry
from check_ledger.main import app
from check_ledger.models.base import Base, get_db
from check_ledger.services.gl_codes import GLCodeService
from check_ledger.services.ledger_store import LedgerStore
from check_ledger.services.printing import DryRunPrintAdapter


# SQLite keeps the suite free of database infrastructure.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def store(db_session):
    return LedgerStore(db_session, gl_learner=GLCodeService(db_session))


@pytest.fixture
def ledger(store):
    """The ledger most tests record against: $1000.00 to start."""
    return store.create_ledger("Operating", Decimal("1000.00"))


@pytest.fixture
def print_adapter():
    return DryRunPrintAdapter()


@pytest.fixture
def client(db_session, print_adapter):
    """
    Provide a test client with the test database.

    get_db is overridden for request handlers. Background batches
    open their own sessions from app.state.session_factory, which
    points at the test database too. The client is used as a
    context manager so batch tasks keep their event loop between
    requests.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.session_factory = TestSessionLocal
    app.state.print_adapter = print_adapter
    app.state.batches = BatchRegistry()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
