"""Domain enumerations for the asset operations backend.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class RarityTier(str, Enum):
    """Rarity classification of an asset. Ordering lives in the scoring kernel."""

    COMMON = "COMMON"
    UNCOMMON = "UNCOMMON"
    RARE = "RARE"
    EPIC = "EPIC"
    LEGENDARY = "LEGENDARY"


class LifecycleStage(str, Enum):
    """Commercial lifecycle of an asset, independent of its rarity."""

    INCUBATION = "INCUBATION"
    MONETIZATION = "MONETIZATION"
    DOMINANCE = "DOMINANCE"


class MatrixType(str, Enum):
    """Classification axis a matrix code belongs to."""

    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"


class TransactionSource(str, Enum):
    """Where a transaction was recorded from."""

    PAYHIP = "PAYHIP"
    MANUAL = "MANUAL"


class SettingDataType(str, Enum):
    """Declared type of a system_settings value."""

    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"


class SyncScope(str, Enum):
    """Scope of a cronos-sync run."""

    TOP_PINS = "top_pins"
    FINANCIAL = "financial"
    FULL = "full"
