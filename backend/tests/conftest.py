"""
A+ Marketplace Backend — Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── engine:          In-memory SQLite (aiosqlite) with every table created
    ├── session_factory: Sessions bound to that engine; also used for
    │                    after-commit notification delivery
    ├── db_session:      One session for service-level tests
    ├── make_user / make_note: Row factories
    ├── seller, buyer, admin: Ready-made users
    ├── temp_storage:    Temporary directory for file operations
    ├── sample_*_bytes:  Minimal PDF / PNG payloads that pass MIME validation
    └── client:          HTTPX AsyncClient wired to a fresh app and the test engine
"""

import os
import tempfile

# Override settings for testing BEFORE any aplus imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="aplus_test_")
os.environ["JWT_SECRET"] = "test-secret-for-the-aplus-suite-0123456789"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["MOYASAR_SECRET_KEY"] = ""
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["RATE_LIMIT_SENSITIVE_REQUESTS"] = "100000"

from decimal import Decimal  # noqa: E402
from typing import Any, Dict, Optional  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import aplus.models  # noqa: E402,F401
from aplus.database import Base, commit_session, get_db_session, rollback_session  # noqa: E402
from aplus.models.note import Note  # noqa: E402
from aplus.models.user import ROLE_ADMIN, ROLE_STUDENT, User  # noqa: E402
from aplus.services.file_service import file_service  # noqa: E402
from aplus.services.notification_service import notification_service  # noqa: E402
from aplus.services.security import create_access_token  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """
    A private in-memory database per test.

    StaticPool keeps the single connection alive, so every session opened
    by the test (and by after-commit delivery) sees the same data.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    # Notifications are persisted in their own session after commit
    monkeypatch.setattr(notification_service, "session_factory", factory)
    return factory


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Row Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(session_factory):
    """
    Insert and commit a user; returns the detached instance.

    Usage:
        seller = await make_user(balance=Decimal("100"))
    """
    counter = {"n": 0}

    async def _make(
        full_name: Optional[str] = None,
        role: str = ROLE_STUDENT,
        balance: Decimal = Decimal("0"),
        **fields: Any,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            full_name=full_name or f"User {n}",
            email=fields.pop("email", f"user{n}@example.com"),
            password_hash=fields.pop("password_hash", "not-a-real-hash"),
            role=role,
            balance=balance,
            **fields,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _make


@pytest.fixture
def make_note(session_factory):
    """Insert and commit a published note owned by `owner`."""

    async def _make(owner: User, **fields: Any) -> Note:
        values: Dict[str, Any] = {
            "title": "Linear Algebra Notes",
            "description": "Chapters 1-4 with solved exercises",
            "subject": "Mathematics",
            "price": Decimal("100.00"),
            "file_path": "/api/v1/files/2024/01/15/linear-algebra.pdf",
            "pages_number": 42,
            "year": 2024,
            "college": "Science",
            "university": "King Saud University",
        }
        values.update(fields)
        note = Note(owner_id=owner.id, **values)
        async with session_factory() as session:
            session.add(note)
            await session.commit()
        return note

    return _make


@pytest_asyncio.fixture
async def seller(make_user):
    return await make_user(full_name="Sara Seller")


@pytest_asyncio.fixture
async def buyer(make_user):
    return await make_user(full_name="Bilal Buyer")


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(full_name="Ada Admin", role=ROLE_ADMIN)


@pytest.fixture
def auth_headers():
    """Bearer header builder: `auth_headers(user)`."""

    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path, monkeypatch):
    """
    Point the shared FileService at a fresh directory for this test.
    """
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    monkeypatch.setattr(file_service, "storage_root", storage_dir.resolve())
    return storage_dir


@pytest.fixture
def sample_pdf_bytes():
    """Smallest PDF that libmagic identifies as application/pdf."""
    return (
        b"%PDF-1.4\n"
        b"1 0 obj << /Type /Catalog /Pages 2 0 R >> endobj\n"
        b"2 0 obj << /Type /Pages /Kids [] /Count 0 >> endobj\n"
        b"trailer << /Root 1 0 R >>\n"
        b"%%EOF\n"
    )


@pytest.fixture
def sample_image_bytes():
    """
    A 1x1 PNG: signature, IHDR, IDAT and IEND chunks.
    """
    return (
        b"\x89PNG\r\n\x1a\n"
        b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
        b"\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N"
        b"\x00\x00\x00\x00IEND\xaeB`\x82"
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def client(session_factory):
    """
    HTTPX AsyncClient talking to a freshly built app.

    The request session dependency is swapped for one bound to the test
    engine, with the same commit / after-commit / rollback behaviour.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from aplus.main import create_app

    app = create_app()

    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await commit_session(session)
            except Exception:
                await rollback_session(session)
                raise

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
