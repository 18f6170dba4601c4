"""Shared test infrastructure for the Asset Ops test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- make_matrix / make_asset / make_pin / make_transaction / make_setting:
  row factories
- make_client: factory for an HTTPX AsyncClient wired to a minimal app
"""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from asset_ops.infra.database import Base

import asset_ops.domain.models  # noqa: F401

from asset_ops.domain.models import Asset, Matrix, Pin, SystemSetting, Transaction


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_matrix(db_session):
    """Factory that creates a Matrix row.

    Usage:
        matrix = await make_matrix("ANUEL")
    """
    async def _factory(code: str, matrix_type: str = "PRIMARY", name: str = None) -> Matrix:
        matrix = Matrix(id=str(uuid.uuid4()), code=code, name=name or code, type=matrix_type)
        db_session.add(matrix)
        await db_session.commit()
        return matrix

    return _factory


@pytest.fixture
def make_asset(db_session):
    """Factory that creates an Asset row with explicit cached scores.

    Usage:
        asset = await make_asset(traffic=40, highest="RARE")
    """
    async def _factory(
        sku_slug: str = None,
        traffic: float = 0,
        current: str = "COMMON",
        highest: str = "COMMON",
        payhip_link: str = None,
        is_retired: bool = False,
    ) -> Asset:
        asset = Asset(
            id=str(uuid.uuid4()),
            sku_slug=sku_slug or f"SKU-TEST-{uuid.uuid4().hex[:8].upper()}",
            payhip_link=payhip_link,
            cached_traffic_score=traffic,
            cached_revenue_score=0,
            current_rarity=current,
            highest_rarity_achieved=highest,
            lifecycle_state="INCUBATION",
            is_retired=is_retired,
        )
        db_session.add(asset)
        await db_session.commit()
        return asset

    return _factory


@pytest.fixture
def make_pin(db_session):
    """Factory that creates a Pin row carrying *clicks* outbound clicks.

    Usage:
        pin = await make_pin(clicks=51)               # orphan
        pin = await make_pin(clicks=10, asset_id=a.id)
    """
    async def _factory(clicks=0, asset_id: str = None, external_pin_id: str = None) -> Pin:
        pin = Pin(
            id=str(uuid.uuid4()),
            external_pin_id=external_pin_id or uuid.uuid4().hex,
            asset_id=asset_id,
            title="Test pin",
            last_stats={"outbound_clicks": clicks},
        )
        db_session.add(pin)
        await db_session.commit()
        return pin

    return _factory


@pytest.fixture
def make_transaction(db_session):
    """Factory that creates a Transaction row.

    Usage:
        tx = await make_transaction(asset.id, 12.5)
    """
    async def _factory(asset_id: str, amount: float, payhip_transaction_id: str = None) -> Transaction:
        tx = Transaction(
            id=str(uuid.uuid4()),
            asset_id=asset_id,
            amount=amount,
            payhip_transaction_id=payhip_transaction_id or f"TX-{uuid.uuid4().hex[:12]}",
            source="PAYHIP",
        )
        db_session.add(tx)
        await db_session.commit()
        return tx

    return _factory


@pytest.fixture
def make_setting(db_session):
    """Factory that creates a SystemSetting row.

    Usage:
        await make_setting("ORPHAN_VIRALITY_TRIGGER", "50", "integer")
    """
    async def _factory(key: str, value: str, data_type: str = "string") -> SystemSetting:
        setting = SystemSetting(key=key, value=value, data_type=data_type)
        db_session.add(setting)
        await db_session.commit()
        return setting

    return _factory


# ---------------------------------------------------------------------------
# HTTP client factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_client(db_session):
    """Build an HTTPX AsyncClient wired to a test FastAPI app.

    Uses a fresh FastAPI app with only the given routers so the lifespan
    (init_db against the configured database) never runs.

    Usage:
        async with make_client(genesis_router) as client:
            resp = await client.post("/api/genesis-seed", json={...})
    """
    def _factory(*routers) -> AsyncClient:
        from fastapi import FastAPI

        from asset_ops.app.errors import register_error_handlers
        from asset_ops.infra.database import get_db

        test_app = FastAPI()
        register_error_handlers(test_app)
        for router in routers:
            test_app.include_router(router)

        async def _override_get_db():
            yield db_session

        test_app.dependency_overrides[get_db] = _override_get_db

        return AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://testserver",
        )

    return _factory
