"""Asset administration endpoints used by the dashboard's tactical actions."""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.app.errors import handle_error
from asset_ops.domain.schemas import ManifestUpdateRequest, ManualTransactionRequest
from asset_ops.infra.database import get_db
from asset_ops.services.asset_service import (
    list_assets,
    retire_asset,
    serialize_asset,
    serialize_transaction,
    update_manifest,
)
from asset_ops.services.reconciliation_service import reconcile_asset
from asset_ops.services.transaction_service import log_manual_transaction

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/assets", tags=["assets"])


@router.get("")
async def get_assets(
    include_retired: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    """List assets, newest first."""
    try:
        assets = await list_assets(db, include_retired=include_retired)
    except Exception as e:
        return handle_error(e, "List assets")
    return {"status": "success", "data": [serialize_asset(a) for a in assets]}


@router.patch("/{asset_id}")
async def patch_manifest(
    asset_id: str,
    body: ManifestUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Update drive/payhip links. Only fields present in the body change."""
    try:
        asset = await update_manifest(db, asset_id, body.model_dump(exclude_unset=True))
    except Exception as e:
        return handle_error(e, "Manifest update")
    return {"status": "success", "data": serialize_asset(asset)}


@router.post("/{asset_id}/transactions", status_code=201)
async def post_manual_transaction(
    asset_id: str,
    body: ManualTransactionRequest,
    db: AsyncSession = Depends(get_db),
):
    """Log a manual sale and return the asset's new rarity."""
    try:
        tx, outcome = await log_manual_transaction(
            db,
            asset_id,
            amount=body.amount,
            occurred_at=body.occurred_at,
            currency=body.currency,
        )
    except Exception as e:
        return handle_error(e, "Manual transaction")

    return JSONResponse(
        {
            "status": "success",
            "data": serialize_transaction(tx),
            "new_rarity": outcome.score.current_tier.value,
            "highest_rarity_achieved": outcome.score.highest_tier_achieved.value,
        },
        status_code=201,
    )


@router.post("/{asset_id}/recalculate")
async def recalculate(asset_id: str, db: AsyncSession = Depends(get_db)):
    """Reconcile one asset on demand."""
    try:
        outcome = await reconcile_asset(db, asset_id)
    except Exception as e:
        return handle_error(e, "Recalculate")

    return {
        "status": "success",
        "data": serialize_asset(outcome.asset),
        "final_score": outcome.score.final_score,
        "total_revenue": outcome.score.total_revenue,
    }


@router.post("/{asset_id}/retire")
async def retire(asset_id: str, db: AsyncSession = Depends(get_db)):
    """Soft-delete an asset."""
    try:
        asset = await retire_asset(db, asset_id)
    except Exception as e:
        return handle_error(e, "Retire asset")
    return {"status": "success", "data": serialize_asset(asset)}
