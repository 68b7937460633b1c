"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, leave, approvals, holidays, users).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import hashlib
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from leavedesk.auth.service import hash_password
from leavedesk.common.calendar import utc_today
from leavedesk.common.constants import UserRole
from leavedesk.config import settings
from leavedesk.database import Base, get_db
from leavedesk.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import leavedesk.auth.models  # noqa: F401
import leavedesk.holidays.models  # noqa: F401
import leavedesk.leave.models  # noqa: F401
import leavedesk.users.models  # noqa: F401

# ── SQLite compat: compile PG-specific types ────────────────────────

from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() as a SQLite custom function."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)

TEST_PASSWORD = "correct-horse-battery"
# bcrypt is deliberately slow; hash once for every seeded user
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from leavedesk.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Dates ───────────────────────────────────────────────────────────

def next_monday(weeks_ahead: int = 1) -> date:
    """A Monday strictly after today (UTC), *weeks_ahead* weeks out."""
    today = utc_today()
    return today + timedelta(days=7 - today.weekday() + 7 * (weeks_ahead - 1))


# ── Model factories ─────────────────────────────────────────────────

def _make_user(
    *,
    role: UserRole = UserRole.employee,
    leave_balance: int = 10,
    name: str | None = None,
    email: str | None = None,
) -> dict:
    suffix = uuid.uuid4().hex[:8]
    return dict(
        id=uuid.uuid4(),
        name=name or f"{role.value.title()} {suffix}",
        email=email or f"{role.value}.{suffix}@leavedesk.test",
        password_hash=TEST_PASSWORD_HASH,
        role=role,
        leave_balance=leave_balance,
        joined_at=datetime.now(timezone.utc),
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


async def seed_user(
    db: AsyncSession,
    *,
    role: UserRole = UserRole.employee,
    leave_balance: int = 10,
    name: str | None = None,
    email: str | None = None,
):
    """Insert a user and return the ORM instance."""
    from leavedesk.users.models import User

    user = User(**_make_user(role=role, leave_balance=leave_balance, name=name, email=email))
    db.add(user)
    await db.flush()
    return user


async def seed_holiday(db: AsyncSession, holiday_date: date, name: str = "Founders Day"):
    """Insert a holiday directly (no cascade)."""
    from leavedesk.holidays.models import PublicHoliday

    holiday = PublicHoliday(date=holiday_date, name=name)
    db.add(holiday)
    await db.flush()
    return holiday


@pytest.fixture
async def employee(db):
    return await seed_user(db, role=UserRole.employee)


@pytest.fixture
async def hr_user(db):
    return await seed_user(db, role=UserRole.hr)


@pytest.fixture
async def manager(db):
    return await seed_user(db, role=UserRole.management)


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": "access",
        "exp": exp,
        # Unique per call so two tokens for one user never share a session hash
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def auth_headers_for(db: AsyncSession, user) -> dict[str, str]:
    """Return Bearer auth headers with a valid session persisted in the DB."""
    from leavedesk.auth.models import UserSession

    token = create_access_token(user.id, user.role)
    session = UserSession(
        id=uuid.uuid4(),
        user_id=user.id,
        token_hash=hashlib.sha256(token.encode()).hexdigest(),
        expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
        is_revoked=False,
        created_at=datetime.now(timezone.utc),
    )
    db.add(session)
    await db.commit()
    return {"Authorization": f"Bearer {token}"}
