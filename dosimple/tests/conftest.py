"""
Test configuration and shared fixtures.
Every test gets its own in-memory SQLite database, so tests are isolated
and need no cleanup.
"""
from __future__ import annotations

import os

# Must be set before the app (and its settings) are imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["ADMIN_SECRET_KEY"] = "test-admin-secret"
os.environ["SMTP_USERNAME"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ["CLOUDINARY_CLOUD_NAME"] = ""

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from dataclasses import dataclass, field  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.security import create_access_token, hash_password  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.enums import UserRole  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.email_service import email_service  # noqa: E402

TEST_PASSWORD = "secret123"


# ── Database ──────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
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
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """One session shared by the test body and every request it makes."""
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP test client with the test DB injected."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Outbound email ────────────────────────────────────────────────────────────

@dataclass
class Outbox:
    verification: list[dict[str, str]] = field(default_factory=list)
    password_reset: list[dict[str, str]] = field(default_factory=list)
    password_changed: list[dict[str, str]] = field(default_factory=list)
    deliver: bool = True


@pytest.fixture
def outbox(monkeypatch: pytest.MonkeyPatch) -> Outbox:
    """Capture outgoing emails (and their raw tokens) instead of sending them."""
    box = Outbox()

    async def fake_verification(*, to_email: str, name: str, token: str) -> bool:
        box.verification.append({"to": to_email, "name": name, "token": token})
        return box.deliver

    async def fake_reset(*, to_email: str, name: str, token: str) -> bool:
        box.password_reset.append({"to": to_email, "name": name, "token": token})
        return box.deliver

    async def fake_changed(*, to_email: str, name: str) -> bool:
        box.password_changed.append({"to": to_email, "name": name})
        return box.deliver

    monkeypatch.setattr(email_service, "send_email_verification", fake_verification)
    monkeypatch.setattr(email_service, "send_password_reset_email", fake_reset)
    monkeypatch.setattr(email_service, "send_password_changed_confirmation", fake_changed)
    return box


# ── Users ─────────────────────────────────────────────────────────────────────

UserFactory = Callable[..., Awaitable[User]]


@pytest_asyncio.fixture
async def make_user(db: AsyncSession) -> UserFactory:
    """Factory inserting users directly, verified unless told otherwise."""
    counter = {"n": 0}

    async def _make(
        *,
        name: str | None = None,
        email: str | None = None,
        role: UserRole = UserRole.USER,
        verified: bool = True,
        password: str = TEST_PASSWORD,
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            email=(email or f"user{counter['n']}@example.com").lower(),
            hashed_password=hash_password(password),
            role=role,
            is_email_verified=verified,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    return _make


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user).token}"}


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    return bearer


@pytest_asyncio.fixture
async def alice(make_user: UserFactory) -> User:
    return await make_user(name="Alice", email="alice@example.com")


@pytest_asyncio.fixture
async def bob(make_user: UserFactory) -> User:
    return await make_user(name="Bob", email="bob@example.com")


@pytest_asyncio.fixture
async def admin(make_user: UserFactory) -> User:
    return await make_user(name="Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def alice_headers(alice: User) -> dict[str, str]:
    return bearer(alice)


@pytest.fixture
def bob_headers(bob: User) -> dict[str, str]:
    return bearer(bob)


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return bearer(admin)


# ── Tasks ─────────────────────────────────────────────────────────────────────

TaskFactory = Callable[..., Awaitable[dict[str, Any]]]


@pytest.fixture
def create_task(client: AsyncClient) -> TaskFactory:
    """Create a task through the API and return its JSON representation."""

    async def _create(headers: dict[str, str], title: str = "Test Task", **fields: Any) -> dict[str, Any]:
        form = {"title": title, "category": "General", **fields}
        form = {key: str(value) for key, value in form.items() if value is not None}
        response = await client.post("/api/v1/task", data=form, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
