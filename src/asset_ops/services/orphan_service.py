"""Orphan pins: find viral pins with no asset and adopt them into one.

An adoption links the pin first and rescores second. If the rescore fails the
link stays in place and the asset keeps stale scores until the next
reconciliation pass.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.domain.errors import NotFoundError, StorageError
from asset_ops.domain.models import Asset, Pin
from asset_ops.services.reconciliation_service import (
    outbound_clicks,
    reconcile_asset,
    recount_traffic,
)
from asset_ops.services.settings_service import get_virality_trigger

logger = logging.getLogger(__name__)


@dataclass
class OrphanScan:
    trigger_threshold: int
    total_orphans_scanned: int
    red_alerts: list[Pin] = field(default_factory=list)
    scanned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class AdoptionResult:
    pin_id: str
    asset_id: str
    added_traffic_mass: int  # asset traffic after the full re-sum
    pin_traffic: int  # clicks carried by the adopted pin
    previous_rarity: Optional[str]
    new_rarity: str


async def _load_orphans(db: AsyncSession) -> list[Pin]:
    try:
        result = await db.execute(select(Pin).where(Pin.asset_id.is_(None)))
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to scan pins: {exc}") from exc
    return list(result.scalars().all())


def filter_red_alerts(pins: list[Pin], threshold: int) -> list[Pin]:
    """Pins whose outbound clicks are strictly above *threshold*."""
    return [pin for pin in pins if outbound_clicks(pin.last_stats) > threshold]


async def find_orphans(db: AsyncSession, threshold: int) -> list[Pin]:
    """Unlinked pins with more than *threshold* outbound clicks."""
    return filter_red_alerts(await _load_orphans(db), threshold)


async def scan_orphans(db: AsyncSession) -> OrphanScan:
    """Run the red-alert scan using ORPHAN_VIRALITY_TRIGGER from settings."""
    threshold = await get_virality_trigger(db)
    orphans = await _load_orphans(db)
    red_alerts = filter_red_alerts(orphans, threshold)

    logger.info(
        "Orphan scan: trigger=%d scanned=%d red_alerts=%d",
        threshold,
        len(orphans),
        len(red_alerts),
    )
    return OrphanScan(
        trigger_threshold=threshold,
        total_orphans_scanned=len(orphans),
        red_alerts=red_alerts,
    )


async def adopt_orphan(db: AsyncSession, pin_id: str, asset_id: str) -> AdoptionResult:
    """Link *pin_id* to *asset_id*, re-sum the asset's traffic and rescore it.

    A pin already linked elsewhere is moved, and its previous asset is
    re-summed and rescored as well.

    Raises:
        NotFoundError: if the pin or the asset does not exist.
        StorageError: if linking or persisting the new scores fails.
        ConfigurationError: if the scoring weights cannot be read.
    """
    # 1. Validate existence
    try:
        pin = (await db.execute(select(Pin).where(Pin.id == pin_id))).scalar_one_or_none()
        asset = (await db.execute(select(Asset).where(Asset.id == asset_id))).scalar_one_or_none()
    except SQLAlchemyError as exc:
        raise StorageError(f"Adoption lookup failed: {exc}") from exc

    if pin is None:
        raise NotFoundError("Pin", pin_id)
    if asset is None:
        raise NotFoundError("Asset", asset_id)

    previous_rarity = asset.current_rarity
    pin_traffic = outbound_clicks(pin.last_stats)
    previous_owner = pin.asset_id

    # 2. Link the pin (committed on its own)
    pin.asset_id = asset_id
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StorageError(f"Failed to link pin: {exc}") from exc

    logger.info("Pin %s linked to asset %s", pin_id, asset_id)

    # 3. Full re-sum of the asset's traffic
    total_traffic = await recount_traffic(db, asset_id)

    # 4-5. Rescore with the fresh traffic and persist both in one update
    outcome = await reconcile_asset(db, asset_id, traffic=total_traffic)

    # 6. A relinked pin leaves its old asset; that asset loses the clicks too
    if previous_owner and previous_owner != asset_id:
        logger.info("Pin %s moved away from asset %s", pin_id, previous_owner)
        await reconcile_asset(
            db, previous_owner, traffic=await recount_traffic(db, previous_owner)
        )

    return AdoptionResult(
        pin_id=pin_id,
        asset_id=asset_id,
        added_traffic_mass=total_traffic,
        pin_traffic=pin_traffic,
        previous_rarity=previous_rarity,
        new_rarity=outcome.score.current_tier.value,
    )
