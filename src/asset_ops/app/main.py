"""FastAPI application entry point for the asset operations API."""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from asset_ops.app.config import get_settings
from asset_ops.app.errors import register_error_handlers
from asset_ops.infra.database import async_session, init_db
from asset_ops.services.reconciliation_service import reconcile_all

logger = logging.getLogger(__name__)


async def reconcile_loop(interval_minutes: int):
    """Run bulk reconciliation every *interval_minutes*."""
    settings = get_settings()
    while True:
        try:
            async with async_session() as db:
                summary = await reconcile_all(
                    db, time_budget_seconds=settings.reconcile_time_budget_seconds
                )
                logger.info(
                    "Reconcile loop: processed=%d updated=%d",
                    summary.processed,
                    summary.updated,
                )
        except Exception as e:
            logger.error("Reconcile loop error: %s", e)
        await asyncio.sleep(interval_minutes * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database, start the reconcile loop."""
    await init_db()

    settings = get_settings()
    task = None
    if settings.reconcile_interval_minutes > 0:
        task = asyncio.create_task(reconcile_loop(settings.reconcile_interval_minutes))
    yield
    if task is not None:
        task.cancel()


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="Asset Ops API",
    lifespan=lifespan,
    debug=settings.debug,
)

_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from asset_ops.app.routes.assets import router as assets_router
from asset_ops.app.routes.genesis import router as genesis_router
from asset_ops.app.routes.orphans import router as orphans_router
from asset_ops.app.routes.payhip_webhook import router as payhip_router
from asset_ops.app.routes.sync import router as sync_router

app.include_router(genesis_router)
app.include_router(orphans_router)
app.include_router(sync_router)
app.include_router(payhip_router)
app.include_router(assets_router)


@app.get("/health", tags=["health"])
async def health_check():
    """Return service health status."""
    return {"status": "ok", "service": "asset-ops"}


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "asset_ops.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
