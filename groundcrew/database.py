"""
Database engine and session factory.
Binds the document store to SQLAlchemy asyncio sessions.
"""
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from groundcrew.core.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict:
    options = {"echo": settings.DATABASE_ECHO, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.DB_POOL_SIZE
        options["max_overflow"] = settings.DB_MAX_OVERFLOW
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    from groundcrew.models import crew, turnaround, task  # noqa: F401 (registers tables)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    await engine.dispose()
