import os

# Settings are read on first import; point the app at an in-memory database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from report_builder.core.db.deps import get_db  # noqa: E402
from report_builder.core.db.session import Base  # noqa: E402
from report_builder.core.reporting.catalog import source_metadata  # noqa: E402
from report_builder.main import app  # noqa: E402
from tests.helpers import SALES_ROWS, insert_rows  # noqa: E402

# One shared connection so every session sees the same in-memory database
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    future=True,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session():
    """Database session with the builder tables and the catalog source tables."""
    Base.metadata.create_all(bind=test_engine)
    source_metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        source_metadata.drop_all(bind=test_engine)
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database dependency override."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def sales_data(db_session):
    """Sales of organizations 1 and 2 around January 2024."""
    insert_rows(db_session, "sales", SALES_ROWS)
    return SALES_ROWS


@pytest.fixture
def org_headers():
    return {"X-Organization-Id": "1", "X-User-Id": "user-1"}


@pytest.fixture
def other_org_headers():
    return {"X-Organization-Id": "2", "X-User-Id": "user-2"}
