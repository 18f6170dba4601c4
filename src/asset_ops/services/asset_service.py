"""Asset administration: listing, manifest links and retirement."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.domain.errors import StorageError, ValidationError
from asset_ops.domain.models import Asset
from asset_ops.services.reconciliation_service import load_asset

logger = logging.getLogger(__name__)

MANIFEST_FIELDS = ("drive_link", "payhip_link")


async def list_assets(db: AsyncSession, include_retired: bool = False) -> list[Asset]:
    query = select(Asset).order_by(Asset.created_at.desc())
    if not include_retired:
        query = query.where(Asset.is_retired.isnot(True))
    try:
        result = await db.execute(query)
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to list assets: {exc}") from exc
    return list(result.scalars().all())


async def update_manifest(db: AsyncSession, asset_id: str, updates: dict) -> Asset:
    """Update the asset's external links. The slug is immutable and not accepted here."""
    changes = {key: updates[key] for key in MANIFEST_FIELDS if key in updates}
    if not changes:
        raise ValidationError("Nothing to update: provide drive_link and/or payhip_link")

    asset = await load_asset(db, asset_id)
    for key, value in changes.items():
        setattr(asset, key, value or None)

    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StorageError(f"Manifest update failed: {exc}") from exc

    logger.info("Manifest updated for asset %s: %s", asset_id, sorted(changes))
    return asset


async def retire_asset(db: AsyncSession, asset_id: str) -> Asset:
    """Soft-delete: flag the asset so bulk reconciliation skips it."""
    asset = await load_asset(db, asset_id)
    asset.is_retired = True
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StorageError(f"Retirement failed: {exc}") from exc

    logger.info("Asset retired: %s", asset_id)
    return asset


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_asset(asset: Asset) -> dict:
    return {
        "id": asset.id,
        "sku_slug": asset.sku_slug,
        "primary_matrix_id": asset.primary_matrix_id,
        "secondary_matrix_id": asset.secondary_matrix_id,
        "drive_link": asset.drive_link,
        "payhip_link": asset.payhip_link,
        "cached_traffic_score": asset.cached_traffic_score or 0,
        "cached_revenue_score": asset.cached_revenue_score or 0,
        "total_score": asset.total_score,
        "current_rarity": asset.current_rarity,
        "highest_rarity_achieved": asset.highest_rarity_achieved,
        "lifecycle_state": asset.lifecycle_state,
        "created_at": _iso(asset.created_at),
        "last_synced_at": _iso(asset.last_synced_at),
        "is_retired": bool(asset.is_retired),
    }


def serialize_pin(pin) -> dict:
    return {
        "id": pin.id,
        "external_pin_id": pin.external_pin_id,
        "asset_id": pin.asset_id,
        "title": pin.title,
        "description": pin.description,
        "image_url": pin.image_url,
        "last_stats": pin.last_stats,
        "is_active_on_platform": pin.is_active_on_platform,
        "last_synced_at": _iso(pin.last_synced_at),
    }


def serialize_transaction(tx) -> dict:
    return {
        "id": tx.id,
        "payhip_transaction_id": tx.payhip_transaction_id,
        "asset_id": tx.asset_id,
        "amount": tx.amount,
        "currency": tx.currency,
        "source": tx.source,
        "occurred_at": _iso(tx.occurred_at),
    }
