"""Shared test fixtures — file-backed SQLite store, services, client, factories.

Each test gets its own SQLite file so concurrent units of work behave as
they would against the embedded backend in production.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_LEVEL", "warning")

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from timeoff.auth.models import User
from timeoff.balances.repository import (
    AggregatedBalanceRepository,
    PerTypeBalanceRepository,
)
from timeoff.balances.service import BalanceLedger
from timeoff.common.audit import AuditTrail
from timeoff.common.constants import UserRole
from timeoff.config import settings
from timeoff.database import Base, build_engine
from timeoff.dependencies import get_notifier, get_store
from timeoff.leave.service import TimeOffRequestService
from timeoff.leave.validator import TimeOffRequestValidator, ValidationRules
from timeoff.main import create_app
from timeoff.overtime.service import OvertimeService
from timeoff.store import TransactionalStore

# Rules used by service tests unless a test builds its own
DEFAULT_RULES = ValidationRules(
    min_notice_days=0,
    max_consecutive_days=30,
    max_requests_per_year=20,
)


# ── Test database (SQLite file per test) ────────────────────────────

@pytest.fixture
async def engine(tmp_path):
    eng = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'timeoff.db'}",
        poolclass=NullPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(params=["per_type"])
def balance_schema(request) -> str:
    """Overridden with ``indirect`` parametrisation to run on both layouts."""
    return request.param


@pytest.fixture
def store(session_factory, balance_schema) -> TransactionalStore:
    repo = (
        AggregatedBalanceRepository()
        if balance_schema == "aggregated"
        else PerTypeBalanceRepository()
    )
    return TransactionalStore(session_factory, repo)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and inspecting rows directly."""
    async with session_factory() as session:
        yield session
        await session.commit()


# ── Services ────────────────────────────────────────────────────────

@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def audit(store) -> AuditTrail:
    return AuditTrail(store)


@pytest.fixture
def ledger(store, audit) -> BalanceLedger:
    return BalanceLedger(store, audit=audit)


@pytest.fixture
def service(store, ledger, audit, notifier) -> TimeOffRequestService:
    return TimeOffRequestService(
        store,
        ledger=ledger,
        audit=audit,
        notifier=notifier,
        validator=TimeOffRequestValidator(ledger, DEFAULT_RULES),
    )


@pytest.fixture
def overtime_service(store, ledger, audit, notifier) -> OvertimeService:
    return OvertimeService(store, ledger=ledger, audit=audit, notifier=notifier)


# ── Model factories ─────────────────────────────────────────────────

def _make_user(
    *,
    email: str | None = None,
    name: str = "Test User",
    role: UserRole = UserRole.EMPLOYEE,
    is_active: bool = True,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
        name=name,
        role=role,
        is_active=is_active,
    )


async def seed_user(store: TransactionalStore, **kwargs) -> User:
    user = User(**_make_user(**kwargs))
    async with store.transaction() as session:
        session.add(user)
    return user


@pytest.fixture
async def employee(store) -> User:
    return await seed_user(store, name="Erin Employee")


@pytest.fixture
async def admin(store) -> User:
    return await seed_user(store, name="Ada Admin", role=UserRole.ADMIN)


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    expired: bool = False,
) -> str:
    """Generate an identity-provider style JWT for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {"sub": str(user_id), "exp": exp}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from timeoff.common.rate_limit import limiter

    limiter.reset()
    yield


@pytest.fixture
async def app(store, notifier):
    """Create a fresh app instance wired to the test store."""
    application = create_app()
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_notifier] = lambda: notifier
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
