"""Orphan pin endpoints - red-alert scan and adoption."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.app.errors import handle_error
from asset_ops.domain.schemas import AdoptOrphanRequest
from asset_ops.infra.database import get_db
from asset_ops.services.asset_service import serialize_pin
from asset_ops.services.orphan_service import adopt_orphan, scan_orphans

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["orphans"])


@router.post("/scan-orphans")
async def scan_orphans_endpoint(db: AsyncSession = Depends(get_db)):
    """List unlinked pins above ORPHAN_VIRALITY_TRIGGER outbound clicks."""
    try:
        scan = await scan_orphans(db)
    except Exception as e:
        return handle_error(e, "Orphan scan", status_code=500)

    return {
        "status": "success",
        "meta": {
            "timestamp": scan.scanned_at.isoformat(),
            "trigger_threshold": scan.trigger_threshold,
            "total_orphans_scanned": scan.total_orphans_scanned,
            "red_alerts_found": len(scan.red_alerts),
        },
        "data": [serialize_pin(pin) for pin in scan.red_alerts],
    }


@router.post("/adopt-orphan")
async def adopt_orphan_endpoint(body: AdoptOrphanRequest, db: AsyncSession = Depends(get_db)):
    """Link an orphan pin to an asset and rescore the asset."""
    try:
        result = await adopt_orphan(db, pin_id=body.pin_id, asset_id=body.asset_id)
    except Exception as e:
        return handle_error(e, "Orphan adoption")

    return {
        "status": "success",
        "message": "Pin adopted and asset metrics recalculated.",
        "previous_rarity": result.previous_rarity,
        "new_rarity": result.new_rarity,
        "added_traffic_mass": result.added_traffic_mass,
        "pin_traffic": result.pin_traffic,
    }
