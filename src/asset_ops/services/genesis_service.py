"""Asset genesis - create a new asset from a primary/secondary matrix pair."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.domain.enums import LifecycleStage, RarityTier
from asset_ops.domain.errors import ConflictError, NotFoundError, StorageError, ValidationError
from asset_ops.domain.models import Asset, Matrix

logger = logging.getLogger(__name__)


def build_sku_slug(primary_code: str, secondary_code: str) -> str:
    """SKU-{SECONDARY}-{PRIMARY}, upper-cased. Secondary always comes first."""
    return f"SKU-{secondary_code}-{primary_code}".upper()


async def spawn_asset(
    db: AsyncSession,
    primary_code: str,
    secondary_code: str,
    drive_link: Optional[str] = None,
    payhip_link: Optional[str] = None,
) -> Asset:
    """Resolve both matrix codes and insert the asset in its initial state.

    Raises:
        ValidationError: if either code is blank.
        NotFoundError: if a code has no matrix row.
        ConflictError: if the derived slug already exists.
    """
    if not primary_code or not secondary_code:
        raise ValidationError(
            "Missing matrix codes. Both Primary and Secondary codes are required."
        )

    try:
        result = await db.execute(
            select(Matrix).where(Matrix.code.in_([primary_code, secondary_code]))
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Matrix lookup failed: {exc}") from exc
    by_code = {m.code: m for m in result.scalars().all()}

    primary = by_code.get(primary_code)
    if primary is None:
        raise NotFoundError("Primary Matrix code", primary_code)
    secondary = by_code.get(secondary_code)
    if secondary is None:
        raise NotFoundError("Secondary Matrix code", secondary_code)

    sku_slug = build_sku_slug(primary_code, secondary_code)
    conflict = ConflictError(
        f"Genesis Error: Asset with slug '{sku_slug}' already exists for this code pair."
    )

    try:
        existing = await db.execute(select(Asset.id).where(Asset.sku_slug == sku_slug))
    except SQLAlchemyError as exc:
        raise StorageError(f"Slug lookup failed: {exc}") from exc
    if existing.scalar_one_or_none():
        raise conflict

    asset = Asset(
        primary_matrix_id=primary.id,
        secondary_matrix_id=secondary.id,
        sku_slug=sku_slug,
        drive_link=drive_link or None,
        payhip_link=payhip_link or None,
        lifecycle_state=LifecycleStage.INCUBATION.value,
        current_rarity=RarityTier.COMMON.value,
        highest_rarity_achieved=RarityTier.COMMON.value,
        cached_traffic_score=0,
        cached_revenue_score=0,
        is_retired=False,
    )
    db.add(asset)

    try:
        await db.commit()
    except IntegrityError as exc:
        # Lost a race against a concurrent genesis of the same pair.
        await db.rollback()
        raise conflict from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StorageError(f"Genesis Insert Failed: {exc}") from exc

    await db.refresh(asset)
    logger.info("Genesis: created asset %s (%s)", asset.id, sku_slug)
    return asset
