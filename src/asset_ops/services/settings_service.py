"""Read-only accessor for the system_settings table.

Values are stored as strings alongside a declared data_type. Callers get a
parsed value or a ConfigurationError naming the offending key; nothing here
caches, so every request sees what the admin surface last wrote.
"""

import logging
import math
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.domain.enums import SettingDataType
from asset_ops.domain.errors import ConfigurationError
from asset_ops.domain.models import SystemSetting
from asset_ops.services.asset_scoring import ScoringWeights

logger = logging.getLogger(__name__)

WEIGHT_OUTBOUND_KEY = "WEIGHT_OUTBOUND"
WEIGHT_REVENUE_KEY = "WEIGHT_DOLLAR_REVENUE"
ORPHAN_VIRALITY_TRIGGER_KEY = "ORPHAN_VIRALITY_TRIGGER"

DEFAULT_WEIGHT_OUTBOUND = 5.0
DEFAULT_WEIGHT_REVENUE = 50.0

# key -> (value, data_type, description); inserted by init_db when absent
DEFAULT_SETTINGS: dict[str, tuple[str, str, str]] = {
    WEIGHT_OUTBOUND_KEY: (
        str(DEFAULT_WEIGHT_OUTBOUND),
        SettingDataType.FLOAT.value,
        "Score points per outbound click",
    ),
    WEIGHT_REVENUE_KEY: (
        str(DEFAULT_WEIGHT_REVENUE),
        SettingDataType.FLOAT.value,
        "Score points per unit of revenue",
    ),
}

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def parse_setting(key: str, raw: str, data_type: str):
    """Parse *raw* according to *data_type*.

    Raises:
        ConfigurationError: if the value does not parse or the type is unknown.
    """
    try:
        declared = SettingDataType(data_type or SettingDataType.STRING.value)
    except ValueError:
        raise ConfigurationError(f"Unknown data_type '{data_type}' for setting {key}")

    text = (raw or "").strip()

    if declared == SettingDataType.STRING:
        return raw

    if declared == SettingDataType.BOOLEAN:
        lowered = text.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigurationError(f"Invalid boolean value for {key}: {raw!r}")

    try:
        if declared == SettingDataType.INTEGER:
            return int(text)
        return float(text)
    except ValueError:
        raise ConfigurationError(f"Invalid {declared.value} value for {key}: {raw!r}")


async def _fetch_settings(db: AsyncSession, keys: list[str]) -> dict[str, SystemSetting]:
    try:
        result = await db.execute(select(SystemSetting).where(SystemSetting.key.in_(keys)))
    except SQLAlchemyError as exc:
        raise ConfigurationError(f"Failed to fetch settings: {exc}") from exc
    return {row.key: row for row in result.scalars().all()}


async def get_setting_value(db: AsyncSession, key: str) -> Optional[str]:
    """Return the raw string value for *key*, or None when absent."""
    rows = await _fetch_settings(db, [key])
    row = rows.get(key)
    return row.value if row else None


def _numeric_weight(row: Optional[SystemSetting], key: str, default: float) -> float:
    if row is None:
        return default
    try:
        value = float(row.value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid numeric weight for {key}: {row.value!r}")
    if math.isnan(value) or value <= 0:
        raise ConfigurationError(f"Weight {key} must be a positive number, got {row.value!r}")
    return value


async def load_scoring_weights(db: AsyncSession) -> ScoringWeights:
    """Snapshot the scoring weights, applying defaults for absent keys."""
    rows = await _fetch_settings(db, [WEIGHT_OUTBOUND_KEY, WEIGHT_REVENUE_KEY])
    weights = ScoringWeights(
        outbound=_numeric_weight(rows.get(WEIGHT_OUTBOUND_KEY), WEIGHT_OUTBOUND_KEY, DEFAULT_WEIGHT_OUTBOUND),
        revenue=_numeric_weight(rows.get(WEIGHT_REVENUE_KEY), WEIGHT_REVENUE_KEY, DEFAULT_WEIGHT_REVENUE),
    )
    logger.debug("Scoring weights loaded: %s", weights)
    return weights


async def get_virality_trigger(db: AsyncSession) -> int:
    """Return ORPHAN_VIRALITY_TRIGGER. There is no default for this key."""
    raw = await get_setting_value(db, ORPHAN_VIRALITY_TRIGGER_KEY)
    if raw is None:
        raise ConfigurationError(f"Missing setting: {ORPHAN_VIRALITY_TRIGGER_KEY}")
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"Invalid {ORPHAN_VIRALITY_TRIGGER_KEY} value: {raw}")
