"""Database Connection and Session Management"""

import re
import ssl
from typing import AsyncGenerator, Dict, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from app.config import settings


def _async_url(raw_url: str) -> Tuple[str, Dict]:
    """
    Convert postgresql:// to postgresql+asyncpg:// and move sslmode into
    connect_args (asyncpg takes ssl=SSLContext, not sslmode).
    """
    url = raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    connect_args: Dict = {}
    if re.search(r"[?&]sslmode=(require|required|verify-full)", url, re.I):
        # Managed Postgres certs often fail verification; encrypt without verifying
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ctx
    url = re.sub(r"[?&]sslmode=[^&]+", "", url, flags=re.I)
    url = url.replace("?&", "?").rstrip("?")
    return url, connect_args


database_url, connect_args = _async_url(settings.DATABASE_URL)

# Request handlers and the reaper share this pool
engine = create_async_engine(
    database_url,
    connect_args=connect_args,
    pool_pre_ping=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_recycle=settings.DB_POOL_RECYCLE,
    echo=settings.DEBUG,
    future=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for declarative models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency yielding a session; commits on success, rolls back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables (development only; production schemas are managed outside the app)"""
    import app.models  # noqa: F401  register models on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
