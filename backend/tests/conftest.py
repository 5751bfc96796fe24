"""
DentalHub Backend: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite) with the
       full schema, an AsyncSession bound to it, small seed factories and an
       HTTPX client whose ``get_db_session`` dependency yields that session.

Fixture Hierarchy (all function-scoped):
    engine
    └── db_session
        ├── make_user / make_category / make_post / make_case
        └── test_client
    mock_db_session: AsyncMock session for storage-failure paths
"""

import os

# Settings are read at import time: configure the environment first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import dentalhub.models  # noqa: F401
from dentalhub.database import Base, get_db_session
from dentalhub.models import Case, ForumCategory, ForumPost, User
from dentalhub.models.enums import CaseType, Priority, ProfessionalType
from dentalhub.services.passwords import hash_password

DEFAULT_PASSWORD = "correct-horse-battery"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite; StaticPool keeps the single connection alive."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    Usage:
        mock_db_session.execute.side_effect = OperationalError(...)
        with pytest.raises(DatabaseError): ...
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest.fixture
def reload(db_session):
    """Fetch a row and refresh it so counters reflect SQL-side updates."""

    async def _reload(model, pk):
        obj = await db_session.get(model, pk)
        if obj is not None:
            await db_session.refresh(obj)
        return obj

    return _reload


# ══════════════════════════════════════════════════════════════════════════
# Seed Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    async def _make(
        name: Optional[str] = None,
        email: Optional[str] = None,
        professional_type: ProfessionalType = ProfessionalType.CLINICIAN,
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@dentalhub.io",
            password=hash_password(password),
            professional_type=professional_type,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest.fixture
def make_category(db_session):
    async def _make(name: str = "Prosthodontics", description: Optional[str] = None):
        category = ForumCategory(name=name, description=description)
        db_session.add(category)
        await db_session.flush()
        return category

    return _make


@pytest.fixture
def make_post(db_session):
    async def _make(author: User, category: ForumCategory, title: str = "Shade matching"):
        post = ForumPost(
            title=title,
            content=f"<p>{title} discussion</p>",
            excerpt=title,
            author_id=author.id,
            category_id=category.id,
        )
        db_session.add(post)
        await db_session.flush()
        return post

    return _make


@pytest.fixture
def make_case(db_session):
    async def _make(
        creator: User,
        title: str = "Upper molar crown",
        is_public: bool = False,
        case_type: CaseType = CaseType.CROWN,
        priority: Priority = Priority.MEDIUM,
    ) -> Case:
        case = Case(
            title=title,
            description=f"{title} description",
            case_type=case_type,
            priority=priority,
            is_public=is_public,
            creator_id=creator.id,
        )
        db_session.add(case)
        await db_session.flush()
        return case

    return _make


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_session):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.post("/rpc/healthcheck")
            assert response.status_code == 200
    """
    from dentalhub.main import app

    async def _override_session():
        yield db_session

    app.dependency_overrides[get_db_session] = _override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
