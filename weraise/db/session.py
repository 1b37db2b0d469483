"""Async engine and session factory shared by the app, migrations and tests."""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from weraise.core.config import settings


def _engine_options(url: str) -> dict:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}
    if parsed.database in (None, "", ":memory:"):
        # One shared connection, otherwise every checkout gets a new in-memory database.
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    # File databases: a connection per session so concurrent requests get separate transactions
    return {"poolclass": NullPool, "connect_args": {"timeout": 30}}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
