from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tenant_access.core.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, **kwargs: Any) -> AsyncEngine:
    """
    Async engine for `url`.

    Postgres gets pre-ping and periodic recycling. SQLite (dev and tests)
    gets foreign key enforcement so membership/invite cascades behave the
    same way they do in production.
    """
    is_sqlite = make_url(url).get_backend_name() == "sqlite"
    options: dict[str, Any] = {"echo": False, "future": True}
    if not is_sqlite:
        options.update(pool_pre_ping=True, pool_recycle=300)
    options.update(kwargs)

    eng = create_async_engine(url, **options)
    if is_sqlite:
        event.listen(eng.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return eng


# CLEAN URL: asyncpg rejects sslmode/channel_binding query params.
engine: AsyncEngine = build_engine(settings.DATABASE_URL_ASYNC_CLEAN)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One AsyncSession per request. Transactions are owned by MembershipService;
    anything left open here is rolled back when the session closes.
    """
    async with AsyncSessionLocal() as session:
        yield session
