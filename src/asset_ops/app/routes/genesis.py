"""Genesis seed endpoint - create an asset from a matrix code pair."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.app.errors import handle_error
from asset_ops.domain.schemas import GenesisSeedRequest
from asset_ops.infra.database import get_db
from asset_ops.services.asset_service import serialize_asset
from asset_ops.services.genesis_service import spawn_asset

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["genesis"])


@router.post("/genesis-seed", status_code=201)
async def genesis_seed(body: GenesisSeedRequest, db: AsyncSession = Depends(get_db)):
    """Seed a new asset in INCUBATION / COMMON.

    The slug is SKU-{secondary}-{primary}; a second seed of the same pair
    is rejected.
    """
    try:
        asset = await spawn_asset(
            db,
            primary_code=body.primary_matrix_code,
            secondary_code=body.secondary_matrix_code,
            drive_link=body.drive_link,
            payhip_link=body.payhip_link,
        )
    except Exception as e:
        return handle_error(e, "Genesis seed")

    return JSONResponse(
        {
            "status": "success",
            "message": "Asset successfully seeded.",
            "data": serialize_asset(asset),
        },
        status_code=201,
    )
