"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema rebuilt for every test
- HTTPX AsyncClient bound to the app with get_db overridden
"""
import os
import tempfile
from typing import AsyncGenerator, Generator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOCAL_STORAGE_PATH"] = tempfile.mkdtemp(prefix="formdesk-uploads-")
os.environ["UPLOAD_STAGING_PATH"] = tempfile.mkdtemp(prefix="formdesk-staging-")

from formdesk.main import app
from formdesk.core.deps import get_db
from formdesk.db.base import Base
from formdesk.db.session import engine, SessionLocal
import formdesk.db.models  # noqa: F401


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; the in-memory database lives on one connection."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
