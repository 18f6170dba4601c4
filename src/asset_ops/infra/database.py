"""Async database engine and session management."""

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from asset_ops.app.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""
    pass


settings = get_settings()

# Auto-detect driver from DATABASE_URL
_is_sqlite = "sqlite" in settings.database_url
_connect_args = {}
if _is_sqlite:
    _connect_args["check_same_thread"] = False
    _connect_args["timeout"] = 30  # Wait up to 30s for write lock (default 5s)

_engine_kwargs = {
    "echo": False,
    "connect_args": _connect_args,
}
if not _is_sqlite:
    _engine_kwargs["pool_size"] = 5
    _engine_kwargs["max_overflow"] = 10

engine = create_async_engine(settings.database_url, **_engine_kwargs)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency: yield an async database session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def seed_default_settings(session: AsyncSession) -> int:
    """Insert the default system_settings rows that are not present yet.

    Existing rows are never overwritten; admins own those values.
    Returns the number of rows inserted.
    """
    from asset_ops.domain.models import SystemSetting
    from asset_ops.services.settings_service import DEFAULT_SETTINGS

    result = await session.execute(select(SystemSetting.key))
    existing = set(result.scalars().all())

    inserted = 0
    for key, (value, data_type, description) in DEFAULT_SETTINGS.items():
        if key in existing:
            continue
        session.add(
            SystemSetting(key=key, value=value, data_type=data_type, description=description)
        )
        inserted += 1

    await session.commit()
    return inserted


async def init_db():
    """Create all tables (for local dev) and seed default settings."""
    # Ensure models are registered with Base.metadata
    import asset_ops.domain.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # WAL mode lets the reconcile loop write while requests read.
    if _is_sqlite:
        async with engine.begin() as conn:
            await conn.execute(text("PRAGMA journal_mode=WAL"))
            await conn.execute(text("PRAGMA busy_timeout=30000"))

    async with async_session() as session:
        inserted = await seed_default_settings(session)
        if inserted:
            print(f"[init_db] Seeded {inserted} default system settings")
