"""Tests for asset genesis from a matrix code pair."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from asset_ops.domain.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from asset_ops.domain.models import Asset
from asset_ops.services.genesis_service import build_sku_slug, spawn_asset


class TestBuildSkuSlug:
    def test_secondary_comes_first(self):
        assert build_sku_slug("ANUEL", "TRAP26") == "SKU-TRAP26-ANUEL"

    def test_upper_cases(self):
        assert build_sku_slug("anuel", "trap26") == "SKU-TRAP26-ANUEL"


class TestSpawnAsset:
    async def test_creates_incubating_common_asset(self, db_session, make_matrix):
        primary = await make_matrix("ANUEL")
        secondary = await make_matrix("TRAP26", matrix_type="SECONDARY")

        asset = await spawn_asset(
            db_session, "ANUEL", "TRAP26", drive_link="https://drive.example/x"
        )

        assert asset.sku_slug == "SKU-TRAP26-ANUEL"
        assert asset.primary_matrix_id == primary.id
        assert asset.secondary_matrix_id == secondary.id
        assert asset.lifecycle_state == "INCUBATION"
        assert asset.current_rarity == "COMMON"
        assert asset.highest_rarity_achieved == "COMMON"
        assert asset.cached_traffic_score == 0
        assert asset.cached_revenue_score == 0
        assert asset.drive_link == "https://drive.example/x"
        assert asset.payhip_link is None

    async def test_second_seed_conflicts(self, db_session, make_matrix):
        await make_matrix("ANUEL")
        await make_matrix("TRAP26", matrix_type="SECONDARY")
        await spawn_asset(db_session, "ANUEL", "TRAP26")

        with pytest.raises(ConflictError, match="SKU-TRAP26-ANUEL"):
            await spawn_asset(db_session, "ANUEL", "TRAP26")

        count = await db_session.scalar(select(func.count()).select_from(Asset))
        assert count == 1

    async def test_swapped_pair_is_a_different_asset(self, db_session, make_matrix):
        await make_matrix("ANUEL")
        await make_matrix("TRAP26")
        first = await spawn_asset(db_session, "ANUEL", "TRAP26")
        second = await spawn_asset(db_session, "TRAP26", "ANUEL")

        assert first.sku_slug == "SKU-TRAP26-ANUEL"
        assert second.sku_slug == "SKU-ANUEL-TRAP26"

    @pytest.mark.parametrize("primary,secondary", [("", "TRAP26"), ("ANUEL", "")])
    async def test_blank_codes_rejected(self, db_session, primary, secondary):
        with pytest.raises(ValidationError, match="Missing matrix codes"):
            await spawn_asset(db_session, primary, secondary)

    async def test_unknown_primary(self, db_session, make_matrix):
        await make_matrix("TRAP26", matrix_type="SECONDARY")
        with pytest.raises(NotFoundError, match="Primary Matrix code not found: NOPE"):
            await spawn_asset(db_session, "NOPE", "TRAP26")

    async def test_unknown_secondary(self, db_session, make_matrix):
        await make_matrix("ANUEL")
        with pytest.raises(NotFoundError, match="Secondary Matrix code not found: NOPE"):
            await spawn_asset(db_session, "ANUEL", "NOPE")

    async def test_slug_lookup_failure_is_storage_error(
        self, db_session, make_matrix, monkeypatch
    ):
        await make_matrix("ANUEL")
        await make_matrix("TRAP26", matrix_type="SECONDARY")
        real_execute = db_session.execute
        calls = []

        async def failing_second_read(statement, *args, **kwargs):
            calls.append(statement)
            if len(calls) == 2:
                raise OperationalError("SELECT", {}, Exception("db down"))
            return await real_execute(statement, *args, **kwargs)

        monkeypatch.setattr(db_session, "execute", failing_second_read)

        with pytest.raises(StorageError, match="Slug lookup failed"):
            await spawn_asset(db_session, "ANUEL", "TRAP26")
