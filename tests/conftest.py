"""Shared pytest fixtures for research board tests.

Fixture summary
---------------
engine            — Async engine on a fresh in-memory SQLite database per test.
session_factory   — async_sessionmaker bound to ``engine``.
db_session        — One AsyncSession for the test body.
client            — httpx.AsyncClient against a fresh FastAPI app.
admin_user        — User with role 'admin'.
owner_user        — User with role 'owner' (a researcher).
student_user      — User with role 'student'.
student_profile   — StudentProfile belonging to ``student_user``.
specialty         — Active specialty board.
headers_for       — Build caller headers for a user.
make_student      — Persist additional student users with profiles.

Every test gets a brand-new database created from ``Base.metadata``, so
services can commit freely and nothing leaks between tests.  SQLite runs
with ``PRAGMA foreign_keys=ON`` (see ``build_engine``) so ON DELETE CASCADE
and the unique constraints behave as on PostgreSQL.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set required env vars before any application modules are imported so that
# Settings() does not raise a ValidationError during collection.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "DATABASE_URL": "sqlite+aiosqlite://",
    "LOG_LEVEL": "INFO",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

# ---------------------------------------------------------------------------
# Application imports (after env bootstrap)
# ---------------------------------------------------------------------------

from research_board.config.settings import get_settings  # noqa: E402
from research_board.core.database import Base, build_engine, build_session_factory  # noqa: E402
from research_board.core.models.specialty import Specialty  # noqa: E402
from research_board.core.models.users import StudentProfile, User, UserRole  # noqa: E402
from tests.factories.projects import SpecialtyFactory  # noqa: E402
from tests.factories.users import AdminUserFactory, StudentProfileFactory, UserFactory  # noqa: E402

# Clear the lru_cache so Settings() re-reads from the patched environment.
get_settings.cache_clear()

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Yield an engine on a fresh in-memory database with all tables created."""
    test_engine = build_engine(TEST_DATABASE_URL)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an AsyncSession for the test body.

    Services commit on it, so fixtures and tests may open further sessions
    from ``session_factory`` to observe what was persisted.
    """
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx.AsyncClient against a freshly built app.

    The app's session factory is pointed at the test database, so every
    request gets its own session on the same in-memory store.  ASGITransport
    does not run the lifespan, so no production engine is created.
    """
    from research_board.api.main import create_app  # noqa: PLC0415

    app = create_app()
    app.state.session_factory = session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    """Return a helper building the caller-identity header for a user."""
    header_name = get_settings().caller_id_header

    def _headers(user: User) -> dict[str, str]:
        return {header_name: str(user.id)}

    return _headers


# ---------------------------------------------------------------------------
# Row fixtures
# ---------------------------------------------------------------------------


async def _persist(session_factory: async_sessionmaker[AsyncSession], row: object) -> None:
    async with session_factory() as session:
        session.add(row)
        await session.commit()


@pytest_asyncio.fixture
async def admin_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    user = User(**AdminUserFactory.build())
    await _persist(session_factory, user)
    return user


@pytest_asyncio.fixture
async def owner_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    user = User(**UserFactory.build(role=UserRole.OWNER.value))
    await _persist(session_factory, user)
    return user


@pytest_asyncio.fixture
async def student_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    user = User(**UserFactory.build(role=UserRole.STUDENT.value))
    await _persist(session_factory, user)
    return user


@pytest_asyncio.fixture
async def student_profile(
    session_factory: async_sessionmaker[AsyncSession],
    student_user: User,
) -> StudentProfile:
    profile = StudentProfile(**StudentProfileFactory.build(user_id=student_user.id))
    await _persist(session_factory, profile)
    return profile


@pytest_asyncio.fixture
async def specialty(session_factory: async_sessionmaker[AsyncSession]) -> Specialty:
    row = Specialty(**SpecialtyFactory.build())
    await _persist(session_factory, row)
    return row


@pytest.fixture
def make_student(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[StudentProfile]]:
    """Return a coroutine that persists another student user and profile."""

    async def _make(**overrides: object) -> StudentProfile:
        user = User(**UserFactory.build(role=UserRole.STUDENT.value))
        await _persist(session_factory, user)
        profile = StudentProfile(**StudentProfileFactory.build(user_id=user.id, **overrides))
        await _persist(session_factory, profile)
        return profile

    return _make


