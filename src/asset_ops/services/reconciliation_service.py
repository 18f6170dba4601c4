"""Reconciliation - recompute asset scores from stored history.

Shared by the Payhip webhook, manual transactions, orphan adoption and the
scheduled/bulk sync. Every write of the kernel output is guarded by a
compare-and-swap on ``highest_rarity_achieved`` so that two concurrent
reconciliations of one asset cannot lower the persisted high-water mark.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.domain.errors import NotFoundError, StorageError
from asset_ops.domain.models import Asset, Pin, Transaction
from asset_ops.services.asset_scoring import ScoreResult, ScoringWeights, compute_score
from asset_ops.services.settings_service import load_scoring_weights

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 3


@dataclass(frozen=True)
class _ScoringView:
    """Kernel input detached from the ORM row."""

    id: str
    cached_traffic_score: float
    highest_rarity_achieved: Optional[str]


@dataclass
class ReconcileOutcome:
    asset_id: str
    asset: Asset
    previous_rarity: str
    score: ScoreResult
    traffic: float


@dataclass
class BulkReconcileResult:
    processed: int = 0
    updated: int = 0
    failed: list[dict] = field(default_factory=list)
    truncated: bool = False

    def as_dict(self) -> dict:
        return {
            "assets_processed": self.processed,
            "assets_updated": self.updated,
            "assets_failed": len(self.failed),
            "failures": self.failed,
            "truncated": self.truncated,
        }


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------


async def load_asset(db: AsyncSession, asset_id: str) -> Asset:
    """Load a fresh copy of the asset row. Raises NotFoundError."""
    try:
        result = await db.execute(
            select(Asset)
            .where(Asset.id == asset_id)
            .execution_options(populate_existing=True)
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to load asset {asset_id}: {exc}") from exc
    asset = result.scalar_one_or_none()
    if asset is None:
        raise NotFoundError("Asset", asset_id)
    return asset


async def load_transactions(db: AsyncSession, asset_id: str) -> list[Transaction]:
    """All transactions for *asset_id*; order is irrelevant to scoring."""
    try:
        result = await db.execute(select(Transaction).where(Transaction.asset_id == asset_id))
    except SQLAlchemyError as exc:
        raise StorageError(f"History Fetch Error: {exc}") from exc
    return list(result.scalars().all())


def outbound_clicks(stats) -> int:
    """Read outbound_clicks from a pin's last_stats blob.

    The Pinterest payload sometimes carries numbers as strings; anything that
    does not parse counts as zero.
    """
    if not isinstance(stats, dict):
        return 0
    raw = stats.get("outbound_clicks")
    if raw is None or raw == "":
        return 0
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, (int, float)):
        return int(raw)
    try:
        return int(float(str(raw).strip()))
    except ValueError:
        return 0


async def recount_traffic(db: AsyncSession, asset_id: str) -> int:
    """Sum outbound clicks over every pin currently linked to the asset.

    Always a full re-sum: individual pin stats change between syncs, so the
    previous cached value cannot be incremented.
    """
    try:
        result = await db.execute(select(Pin.last_stats).where(Pin.asset_id == asset_id))
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to recalculate traffic: {exc}") from exc
    return sum(outbound_clicks(stats) for stats in result.scalars().all())


# ---------------------------------------------------------------------------
# Single asset
# ---------------------------------------------------------------------------


async def _guarded_update(
    db: AsyncSession,
    asset_id: str,
    expected_highest: Optional[str],
    payload: dict,
) -> bool:
    """UPDATE the asset only if the high-water mark is still what we read."""
    if expected_highest is None:
        guard = Asset.highest_rarity_achieved.is_(None)
    else:
        guard = Asset.highest_rarity_achieved == expected_highest

    try:
        result = await db.execute(
            update(Asset)
            .where(Asset.id == asset_id, guard)
            .values(**payload)
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Asset Score Update Failed: {exc}") from exc
    return result.rowcount == 1


async def reconcile_asset(
    db: AsyncSession,
    asset_id: str,
    weights: Optional[ScoringWeights] = None,
    traffic: Optional[float] = None,
) -> ReconcileOutcome:
    """Rescore one asset and persist the result in a single update.

    Args:
        db: Active async session. Committed on success.
        asset_id: Asset to reconcile.
        weights: Pre-loaded snapshot; loaded from settings when omitted.
        traffic: Freshly summed traffic to score with and persist. When None
            the stored ``cached_traffic_score`` is used and left untouched.

    Raises:
        NotFoundError, StorageError, ConfigurationError
    """
    if weights is None:
        weights = await load_scoring_weights(db)

    for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
        asset = await load_asset(db, asset_id)
        previous_rarity = asset.current_rarity
        expected_highest = asset.highest_rarity_achieved
        transactions = await load_transactions(db, asset_id)

        effective_traffic = asset.cached_traffic_score or 0
        if traffic is not None:
            effective_traffic = traffic

        scoring_input = _ScoringView(
            id=asset.id,
            cached_traffic_score=effective_traffic,
            highest_rarity_achieved=expected_highest,
        )
        score = compute_score(scoring_input, transactions, weights)

        payload = score.update_payload(datetime.now(timezone.utc))
        if traffic is not None:
            payload["cached_traffic_score"] = traffic

        if await _guarded_update(db, asset_id, expected_highest, payload):
            try:
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                raise StorageError(f"Asset Score Update Failed: {exc}") from exc

            asset = await load_asset(db, asset_id)

            logger.info(
                "Reconciled asset=%s score=%.2f rarity=%s highest=%s",
                asset_id,
                score.final_score,
                score.current_tier.value,
                score.highest_tier_achieved.value,
            )
            return ReconcileOutcome(
                asset_id=asset_id,
                asset=asset,
                previous_rarity=previous_rarity,
                score=score,
                traffic=effective_traffic,
            )

        logger.warning(
            "High-water mark moved under reconcile: asset=%s attempt=%d", asset_id, attempt
        )
        await db.rollback()

    raise StorageError(
        f"Asset {asset_id} high-water mark kept changing; gave up after {MAX_WRITE_ATTEMPTS} attempts"
    )


# ---------------------------------------------------------------------------
# Bulk
# ---------------------------------------------------------------------------


async def reconcile_all(
    db: AsyncSession,
    time_budget_seconds: Optional[float] = None,
) -> BulkReconcileResult:
    """Reconcile every non-retired asset.

    One asset failing never aborts the batch: the error is logged and
    recorded, and the loop moves on. When *time_budget_seconds* runs out the
    loop stops before the next asset and the result is marked truncated.
    """
    weights = await load_scoring_weights(db)

    try:
        result = await db.execute(
            select(Asset.id)
            .where(Asset.is_retired.isnot(True))
            .order_by(Asset.created_at, Asset.id)
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to list assets: {exc}") from exc
    asset_ids = list(result.scalars().all())

    summary = BulkReconcileResult()
    started = time.monotonic()

    for asset_id in asset_ids:
        if time_budget_seconds is not None and time.monotonic() - started >= time_budget_seconds:
            summary.truncated = True
            logger.warning(
                "Reconcile time budget exhausted after %d of %d assets",
                summary.processed,
                len(asset_ids),
            )
            break

        summary.processed += 1
        try:
            await reconcile_asset(db, asset_id, weights=weights)
        except Exception as exc:
            await db.rollback()
            logger.error("Reconcile failed for asset=%s: %s", asset_id, exc)
            summary.failed.append({"asset_id": asset_id, "error": str(exc)})
            continue
        summary.updated += 1

    logger.info(
        "Bulk reconcile: processed=%d updated=%d failed=%d truncated=%s",
        summary.processed,
        summary.updated,
        len(summary.failed),
        summary.truncated,
    )
    return summary
