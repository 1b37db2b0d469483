"""Shared test fixtures."""

import os
import shutil
import tempfile
from collections.abc import AsyncGenerator, Iterator

import pytest
from httpx import ASGITransport, AsyncClient

# Mock auth and a throwaway SQLite file (not :memory:), so each session gets
# its own connection and concurrent requests run in separate transactions.
_DB_DIR = tempfile.mkdtemp(prefix="weraise-tests-")
os.environ.setdefault("COGNITO_MOCK", "true")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_DIR}/weraise.db")
os.environ.setdefault("EMAIL_DEV_MODE", "true")

import weraise.models  # noqa: E402, F401
from weraise.core.dependencies import get_notifier, get_payment_provider  # noqa: E402
from weraise.core.security import create_mock_access_token  # noqa: E402
from weraise.db.base import Base  # noqa: E402
from weraise.db.session import engine as app_engine  # noqa: E402
from weraise.main import app  # noqa: E402

from tests.fakes import FakeNotifier, FakePaymentProvider  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _database_dir() -> Iterator[None]:
    yield
    shutil.rmtree(_DB_DIR, ignore_errors=True)


@pytest.fixture
async def database() -> AsyncGenerator[None, None]:
    """Create the schema for one test and drop it afterwards."""
    async with app_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with app_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await app_engine.dispose()


@pytest.fixture
def payment_provider() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
async def client(
    database, payment_provider: FakePaymentProvider, notifier: FakeNotifier
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP test client for the FastAPI app.

    PayPal and email are swapped for in-memory fakes via dependency overrides.
    """
    app.dependency_overrides[get_payment_provider] = lambda: payment_provider
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def make_token(sub: str = "test-sub", email: str = "test@example.com", **kwargs) -> str:
    """Generate a mock JWT for testing."""
    return create_mock_access_token(sub=sub, email=email, **kwargs)


def auth_headers(sub: str = "test-sub", email: str = "test@example.com") -> dict:
    """Return Authorization headers with a mock JWT."""
    token = make_token(sub=sub, email=email)
    return {"Authorization": f"Bearer {token}"}
