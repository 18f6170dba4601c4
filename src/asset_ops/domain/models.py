"""SQLAlchemy ORM models for the asset operations backend.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for structured data (no JSONB)
- DateTime for timestamps (no TIMESTAMPTZ)
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from asset_ops.domain.enums import (
    LifecycleStage,
    MatrixType,
    RarityTier,
    SettingDataType,
    TransactionSource,
)
from asset_ops.infra.database import Base


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class SystemSetting(Base):
    """Typed key/value pair used for weights and thresholds.

    data_type values: integer, float, boolean, string
    """

    __tablename__ = "system_settings"

    key = Column(String(100), primary_key=True)
    value = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    data_type = Column(String(20), nullable=False, default=SettingDataType.STRING.value)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class Matrix(Base):
    """Classification code on the PRIMARY or SECONDARY axis."""

    __tablename__ = "matrices"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    type = Column(String(20), nullable=False, default=MatrixType.PRIMARY.value)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


class Asset(Base):
    """Monetizable unit scored from pin traffic and sales.

    sku_slug is derived at genesis and never changes afterwards.
    highest_rarity_achieved only ever moves up the ladder.
    """

    __tablename__ = "assets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    primary_matrix_id = Column(String(36), ForeignKey("matrices.id"), nullable=True)
    secondary_matrix_id = Column(String(36), ForeignKey("matrices.id"), nullable=True)
    sku_slug = Column(String(120), unique=True, nullable=False, index=True)
    drive_link = Column(String(500), nullable=True)
    payhip_link = Column(String(500), nullable=True)
    cached_traffic_score = Column(Float, default=0)  # raw outbound click sum
    cached_revenue_score = Column(Float, default=0)  # revenue * WEIGHT_DOLLAR_REVENUE
    current_rarity = Column(String(20), default=RarityTier.COMMON.value)
    highest_rarity_achieved = Column(String(20), default=RarityTier.COMMON.value)
    lifecycle_state = Column(String(20), default=LifecycleStage.INCUBATION.value)
    created_at = Column(DateTime, default=func.now())
    last_synced_at = Column(DateTime, nullable=True)
    is_retired = Column(Boolean, default=False, index=True)

    # Relationships
    primary_matrix = relationship("Matrix", foreign_keys=[primary_matrix_id])
    secondary_matrix = relationship("Matrix", foreign_keys=[secondary_matrix_id])
    pins = relationship("Pin", back_populates="asset")
    transactions = relationship("Transaction", back_populates="asset")

    @property
    def total_score(self) -> float:
        return (self.cached_traffic_score or 0) + (self.cached_revenue_score or 0)


class Pin(Base):
    """Pinterest pin. asset_id is NULL while the pin is an orphan.

    last_stats holds at least outbound_clicks, plus impressions/saves when
    the analytics sync has seen the pin.
    """

    __tablename__ = "pins"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    external_pin_id = Column(String(100), unique=True, nullable=False, index=True)
    asset_id = Column(String(36), ForeignKey("assets.id"), nullable=True, index=True)
    title = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(1000), nullable=True)
    last_stats = Column(JSON, nullable=True)
    is_active_on_platform = Column(Boolean, default=True)
    last_synced_at = Column(DateTime, nullable=True)

    # Relationships
    asset = relationship("Asset", back_populates="pins")


class Transaction(Base):
    """Append-only sale record. payhip_transaction_id is the idempotency key."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    payhip_transaction_id = Column(String(100), unique=True, nullable=True)
    asset_id = Column(String(36), ForeignKey("assets.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(10), default="USD")
    source = Column(String(20), default=TransactionSource.PAYHIP.value)
    occurred_at = Column(DateTime, default=func.now())

    # Relationships
    asset = relationship("Asset", back_populates="transactions")
