"""Cronos sync endpoint - reconciliation and Pinterest harvest."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.app.errors import handle_error
from asset_ops.domain.schemas import SyncRequest
from asset_ops.infra.database import get_db
from asset_ops.services.sync_service import run_sync

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["sync"])


@router.post("/cronos-sync")
async def cronos_sync(body: SyncRequest, db: AsyncSession = Depends(get_db)):
    """Run a sync pass for the requested scope.

    Per-asset reconcile failures are reported inside ``results``; only a
    failure of the pass itself turns into an error response.
    """
    try:
        logs, results = await run_sync(db, body.scope)
    except Exception as e:
        return handle_error(e, "Cronos sync", status_code=500)

    return {"status": "success", "logs": logs, "results": results}
