"""Tests for single-asset and bulk reconciliation."""

import pytest
from sqlalchemy import select, update

from asset_ops.domain.errors import NotFoundError, StorageError
from asset_ops.domain.models import Asset
from asset_ops.services import reconciliation_service
from asset_ops.services.reconciliation_service import (
    outbound_clicks,
    reconcile_all,
    reconcile_asset,
    recount_traffic,
)


class TestOutboundClicks:
    @pytest.mark.parametrize("stats,expected", [
        ({"outbound_clicks": 12}, 12),
        ({"outbound_clicks": "34"}, 34),
        ({"outbound_clicks": " 7.0 "}, 7),
        ({"outbound_clicks": None}, 0),
        ({"outbound_clicks": "n/a"}, 0),
        ({"outbound_clicks": True}, 0),
        ({"impressions": 900}, 0),
        (None, 0),
        ("garbage", 0),
    ])
    def test_tolerates_payload_shapes(self, stats, expected):
        assert outbound_clicks(stats) == expected


class TestRecountTraffic:
    async def test_sums_only_linked_pins(self, db_session, make_asset, make_pin):
        asset = await make_asset()
        other = await make_asset()
        await make_pin(clicks=10, asset_id=asset.id)
        await make_pin(clicks="20", asset_id=asset.id)
        await make_pin(clicks=99, asset_id=other.id)
        await make_pin(clicks=500)

        assert await recount_traffic(db_session, asset.id) == 30

    async def test_no_pins_is_zero(self, db_session, make_asset):
        asset = await make_asset()
        assert await recount_traffic(db_session, asset.id) == 0


class TestReconcileAsset:
    async def test_persists_score_and_tier(self, db_session, make_asset, make_transaction):
        asset = await make_asset(traffic=40)
        await make_transaction(asset.id, 10)

        outcome = await reconcile_asset(db_session, asset.id)

        assert outcome.score.final_score == 700
        assert outcome.previous_rarity == "COMMON"
        assert outcome.asset.current_rarity == "RARE"
        assert outcome.asset.highest_rarity_achieved == "RARE"
        assert outcome.asset.cached_revenue_score == 500
        assert outcome.asset.cached_traffic_score == 40
        assert outcome.asset.last_synced_at is not None

    async def test_explicit_traffic_is_persisted(self, db_session, make_asset):
        asset = await make_asset(traffic=999)

        outcome = await reconcile_asset(db_session, asset.id, traffic=20)

        assert outcome.asset.cached_traffic_score == 20
        assert outcome.asset.current_rarity == "UNCOMMON"

    async def test_ratchet_survives_a_drop(self, db_session, make_asset):
        asset = await make_asset(traffic=10, current="EPIC", highest="EPIC")

        outcome = await reconcile_asset(db_session, asset.id)

        assert outcome.asset.current_rarity == "COMMON"
        assert outcome.asset.highest_rarity_achieved == "EPIC"

    async def test_unknown_asset_raises(self, db_session):
        with pytest.raises(NotFoundError, match="Asset not found"):
            await reconcile_asset(db_session, "missing-id")

    async def test_retries_when_high_water_mark_moves(
        self, db_session, make_asset, make_transaction, monkeypatch
    ):
        asset = await make_asset()
        await make_transaction(asset.id, 10)  # 500 -> RARE
        real_update = reconciliation_service._guarded_update
        expectations = []

        async def racing_update(db, asset_id, expected_highest, payload):
            expectations.append(expected_highest)
            if len(expectations) == 1:
                # A concurrent writer promotes the asset to EPIC first.
                await db.execute(
                    update(Asset)
                    .where(Asset.id == asset_id)
                    .values(highest_rarity_achieved="EPIC")
                )
                await db.commit()
            return await real_update(db, asset_id, expected_highest, payload)

        monkeypatch.setattr(reconciliation_service, "_guarded_update", racing_update)

        outcome = await reconcile_asset(db_session, asset.id)

        assert expectations == ["COMMON", "EPIC"]
        assert outcome.asset.current_rarity == "RARE"
        assert outcome.asset.highest_rarity_achieved == "EPIC"

    async def test_gives_up_after_max_attempts(self, db_session, make_asset, monkeypatch):
        asset = await make_asset()

        async def always_lose(db, asset_id, expected_highest, payload):
            return False

        monkeypatch.setattr(reconciliation_service, "_guarded_update", always_lose)

        with pytest.raises(StorageError, match="gave up"):
            await reconcile_asset(db_session, asset.id)


class TestReconcileAll:
    async def test_partial_failure_does_not_abort(
        self, db_session, make_asset, make_transaction, monkeypatch
    ):
        assets = [await make_asset(traffic=20 * i) for i in range(1, 6)]
        for asset in assets:
            await make_transaction(asset.id, 1)
        asset_ids = [a.id for a in assets]
        broken_id = asset_ids[2]
        real_load = reconciliation_service.load_transactions

        async def flaky_load(db, asset_id):
            if asset_id == broken_id:
                raise StorageError("History Fetch Error: connection reset")
            return await real_load(db, asset_id)

        monkeypatch.setattr(reconciliation_service, "load_transactions", flaky_load)

        summary = await reconcile_all(db_session)

        assert summary.processed == 5
        assert summary.updated == 4
        assert summary.failed == [
            {"asset_id": broken_id, "error": "History Fetch Error: connection reset"}
        ]
        assert summary.as_dict()["assets_failed"] == 1

        rows = (await db_session.execute(select(Asset))).scalars().all()
        synced = {row.id for row in rows if row.last_synced_at is not None}
        assert synced == set(asset_ids) - {broken_id}

    async def test_skips_retired_assets(self, db_session, make_asset):
        await make_asset()
        await make_asset(is_retired=True)

        summary = await reconcile_all(db_session)

        assert summary.processed == 1
        assert summary.updated == 1

    async def test_exhausted_budget_truncates(self, db_session, make_asset):
        await make_asset()
        await make_asset()

        summary = await reconcile_all(db_session, time_budget_seconds=0)

        assert summary.truncated is True
        assert summary.processed == 0
        assert summary.as_dict()["truncated"] is True

    async def test_empty_table(self, db_session):
        summary = await reconcile_all(db_session)
        assert summary.as_dict() == {
            "assets_processed": 0,
            "assets_updated": 0,
            "assets_failed": 0,
            "failures": [],
            "truncated": False,
        }
