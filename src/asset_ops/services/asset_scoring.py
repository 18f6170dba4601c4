"""Asset scoring kernel: score, rarity tier and the high-water-mark ratchet.

Pure computation. Weights arrive as an explicit snapshot so the same inputs
always give the same output and the kernel never touches the database.

    score = traffic * WEIGHT_OUTBOUND + revenue * WEIGHT_DOLLAR_REVENUE

The score maps to the greatest ladder tier whose threshold it reaches
(boundaries inclusive). ``highest_rarity_achieved`` is then raised to the new
tier if, and only if, the new tier sits higher on the ladder.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from asset_ops.domain.enums import RarityTier

logger = logging.getLogger(__name__)

R = RarityTier

# Index is the rank; never compare tiers as strings.
RARITY_LADDER: tuple[RarityTier, ...] = (
    R.COMMON,
    R.UNCOMMON,
    R.RARE,
    R.EPIC,
    R.LEGENDARY,
)

RARITY_THRESHOLDS: dict[RarityTier, float] = {
    R.COMMON: 0,
    R.UNCOMMON: 100,
    R.RARE: 500,
    R.EPIC: 2500,
    R.LEGENDARY: 10000,
}

_RANK: dict[RarityTier, int] = {tier: index for index, tier in enumerate(RARITY_LADDER)}


@dataclass(frozen=True)
class ScoringWeights:
    """Read-only weights snapshot taken from system_settings."""

    outbound: float = 5.0
    revenue: float = 50.0


@dataclass(frozen=True)
class ScoreResult:
    total_revenue: float
    revenue_score_part: float
    traffic_score_part: float
    final_score: float
    current_tier: RarityTier
    highest_tier_achieved: RarityTier

    def update_payload(self, synced_at: Optional[datetime] = None) -> dict:
        """Asset columns to persist. cached_traffic_score is left to the caller."""
        return {
            "cached_revenue_score": self.revenue_score_part,
            "current_rarity": self.current_tier.value,
            "highest_rarity_achieved": self.highest_tier_achieved.value,
            "last_synced_at": synced_at or datetime.now(timezone.utc),
        }


def to_tier(value: Any) -> RarityTier:
    """Coerce a stored value (None, str or enum) into a RarityTier."""
    if value is None or value == "":
        return R.COMMON
    if isinstance(value, RarityTier):
        return value
    return RarityTier(str(value).upper())


def rarity_rank(tier: Any) -> int:
    """Ladder position of *tier*; COMMON is 0."""
    return _RANK[to_tier(tier)]


def classify_score(score: float) -> RarityTier:
    """Return the highest tier whose threshold is <= *score*."""
    for tier in reversed(RARITY_LADDER):
        if score >= RARITY_THRESHOLDS[tier]:
            return tier
    return R.COMMON


def apply_ratchet(calculated: RarityTier, current_highest: Any) -> RarityTier:
    """Keep the historical maximum unless *calculated* outranks it."""
    historical = to_tier(current_highest)
    if rarity_rank(calculated) > rarity_rank(historical):
        return calculated
    return historical


def _amount(tx: Any) -> float:
    raw = getattr(tx, "amount", tx)
    return float(raw or 0)


def compute_score(asset: Any, transactions: Iterable[Any], weights: ScoringWeights) -> ScoreResult:
    """Score an asset and apply the rarity ratchet.

    Args:
        asset: Anything exposing ``cached_traffic_score`` and
            ``highest_rarity_achieved`` (ORM row or a plain namespace).
        transactions: Transaction rows or bare amounts; order is irrelevant.
        weights: Snapshot from ``settings_service.load_scoring_weights``.

    Returns:
        ScoreResult carrying the tier pair and the score breakdown.
    """
    traffic = float(getattr(asset, "cached_traffic_score", 0) or 0)
    total_revenue = sum(_amount(tx) for tx in transactions)

    revenue_score_part = total_revenue * weights.revenue
    traffic_score_part = traffic * weights.outbound
    final_score = traffic_score_part + revenue_score_part

    calculated = classify_score(final_score)
    new_highest = apply_ratchet(calculated, getattr(asset, "highest_rarity_achieved", None))

    logger.debug(
        "Scored asset=%s traffic=%s revenue=%s score=%s tier=%s highest=%s",
        getattr(asset, "id", None),
        traffic,
        total_revenue,
        final_score,
        calculated.value,
        new_highest.value,
    )

    return ScoreResult(
        total_revenue=total_revenue,
        revenue_score_part=revenue_score_part,
        traffic_score_part=traffic_score_part,
        final_score=final_score,
        current_tier=calculated,
        highest_tier_achieved=new_highest,
    )
