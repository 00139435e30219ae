"""
NoteCraft Backend: Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set before anything imports notecraft, so
       the settings singleton, the engine and the service singletons all pick
       up the test configuration (SQLite file DB, temporary storage).

Fixtures:
    mock_db_session   AsyncMock standing in for AsyncSession
    temp_storage      fresh storage directory per test
    sample_pdf_bytes  tiny payload with a PDF header
    make_note         factory for Note ORM instances
    db_tables         creates the schema in the SQLite test database
    test_client       httpx AsyncClient bound to the ASGI app
"""

import os
import tempfile
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ── Test environment (must run before notecraft is imported) ──────────────
_TEST_DIR = tempfile.mkdtemp(prefix="notecraft_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_ROOT"] = os.path.join(_TEST_DIR, "storage")
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["LOG_LEVEL"] = "WARNING"


@pytest.fixture
def mock_db_session():
    """
    Mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = note
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_pdf_bytes():
    """Not a renderable PDF, only enough to look like one."""
    return b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"


@pytest.fixture
def make_note():
    from notecraft.models.note import Note

    def _make(owner_id="user-1", title="Groceries", content="milk and eggs", tags=None):
        return Note(
            id=uuid.uuid4(),
            owner_id=owner_id,
            title=title,
            content=content,
            tags=tags if tags is not None else [],
            created_at=datetime.now(timezone.utc),
        )

    return _make


@pytest_asyncio.fixture
async def db_tables():
    """Fresh notes table in the SQLite test database."""
    from notecraft.database import Base, engine
    from notecraft.models.note import Note  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    # Pooled aiosqlite connections belong to this test's event loop
    await engine.dispose()


@pytest_asyncio.fixture
async def test_client():
    """
    Async HTTP client talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from notecraft.database import engine
    from notecraft.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await engine.dispose()
