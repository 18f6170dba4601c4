"""Pydantic v2 schemas for API request validation."""

from datetime import datetime

from pydantic import BaseModel, Field

from asset_ops.domain.enums import SyncScope


# ---------------------------------------------------------------------------
# Genesis
# ---------------------------------------------------------------------------


class GenesisSeedRequest(BaseModel):
    """Body for POST /api/genesis-seed."""

    primary_matrix_code: str = Field(..., min_length=1)
    secondary_matrix_code: str = Field(..., min_length=1)
    drive_link: str | None = None
    payhip_link: str | None = None


# ---------------------------------------------------------------------------
# Orphans
# ---------------------------------------------------------------------------


class AdoptOrphanRequest(BaseModel):
    """Body for POST /api/adopt-orphan."""

    pin_id: str = Field(..., min_length=1)
    asset_id: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class SyncRequest(BaseModel):
    """Body for POST /api/cronos-sync."""

    scope: SyncScope


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


class ManualTransactionRequest(BaseModel):
    """Body for POST /api/assets/{asset_id}/transactions."""

    amount: float = Field(..., gt=0, allow_inf_nan=False)
    occurred_at: datetime | None = None
    currency: str | None = None


class ManifestUpdateRequest(BaseModel):
    """Body for PATCH /api/assets/{asset_id}. Only sent fields are applied."""

    drive_link: str | None = None
    payhip_link: str | None = None
