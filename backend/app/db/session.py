"""
Async engine and session factories.

Two factories exist: the request-scoped one used for every write, and a
privileged one bound to DATABASE_ADMIN_URL. The privileged factory is used
only to read back freshly generated booking access tokens, which row-level
policies hide from the request-scoped role.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings

settings = get_settings()


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_kwargs(settings.DATABASE_URL),
)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

admin_engine = (
    engine
    if settings.admin_database_url == settings.DATABASE_URL
    else create_async_engine(
        settings.admin_database_url,
        echo=settings.DEBUG,
        **_engine_kwargs(settings.admin_database_url),
    )
)
AdminSessionLocal = async_sessionmaker(admin_engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session. Store primitives commit on their own."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def dispose_engines() -> None:
    await engine.dispose()
    if admin_engine is not engine:
        await admin_engine.dispose()
