"""Tests for the orphan red-alert scan and adoption."""

import pytest
from sqlalchemy import select

from asset_ops.domain.errors import ConfigurationError, NotFoundError
from asset_ops.domain.models import Pin
from asset_ops.services.orphan_service import adopt_orphan, find_orphans, scan_orphans
from asset_ops.services.settings_service import ORPHAN_VIRALITY_TRIGGER_KEY


class TestScanOrphans:
    async def test_threshold_is_strict(self, db_session, make_pin, make_setting):
        await make_setting(ORPHAN_VIRALITY_TRIGGER_KEY, "50", "integer")
        for clicks in [10, 51, 50, 200]:
            await make_pin(clicks=clicks)

        scan = await scan_orphans(db_session)

        assert scan.trigger_threshold == 50
        assert scan.total_orphans_scanned == 4
        assert sorted(p.last_stats["outbound_clicks"] for p in scan.red_alerts) == [51, 200]

    async def test_linked_pins_are_not_orphans(
        self, db_session, make_asset, make_pin, make_setting
    ):
        await make_setting(ORPHAN_VIRALITY_TRIGGER_KEY, "5", "integer")
        asset = await make_asset()
        await make_pin(clicks=1000, asset_id=asset.id)
        orphan = await make_pin(clicks=6)

        scan = await scan_orphans(db_session)

        assert scan.total_orphans_scanned == 1
        assert [p.id for p in scan.red_alerts] == [orphan.id]

    async def test_string_clicks_are_compared_numerically(self, db_session, make_pin):
        await make_pin(clicks="120")
        await make_pin(clicks="9")

        found = await find_orphans(db_session, 100)

        assert [p.last_stats["outbound_clicks"] for p in found] == ["120"]

    async def test_missing_trigger_raises(self, db_session, make_pin):
        await make_pin(clicks=500)
        with pytest.raises(ConfigurationError):
            await scan_orphans(db_session)


class TestAdoptOrphan:
    async def test_traffic_is_fully_resummed(self, db_session, make_asset, make_pin):
        # Stale cache (999) disagrees with the linked pins (10 + 20 + 30)
        asset = await make_asset(traffic=999)
        for clicks in (10, 20, 30):
            await make_pin(clicks=clicks, asset_id=asset.id)
        orphan = await make_pin(clicks=15)

        result = await adopt_orphan(db_session, orphan.id, asset.id)

        assert result.added_traffic_mass == 75
        assert result.pin_traffic == 15
        assert result.previous_rarity == "COMMON"
        # 75 * 5.0 = 375
        assert result.new_rarity == "UNCOMMON"

        await db_session.refresh(asset)
        assert asset.cached_traffic_score == 75
        assert asset.current_rarity == "UNCOMMON"

        pin = (await db_session.execute(select(Pin).where(Pin.id == orphan.id))).scalar_one()
        assert pin.asset_id == asset.id

    async def test_adoption_can_promote_highest(self, db_session, make_asset, make_pin):
        asset = await make_asset()
        orphan = await make_pin(clicks=600)  # 3000 -> EPIC

        result = await adopt_orphan(db_session, orphan.id, asset.id)

        assert result.new_rarity == "EPIC"
        await db_session.refresh(asset)
        assert asset.highest_rarity_achieved == "EPIC"

    async def test_moving_a_linked_pin_resums_the_old_asset(
        self, db_session, make_asset, make_pin
    ):
        old_owner = await make_asset(traffic=100, current="RARE", highest="RARE")
        new_owner = await make_asset()
        pin = await make_pin(clicks=100, asset_id=old_owner.id)

        result = await adopt_orphan(db_session, pin.id, new_owner.id)

        assert result.added_traffic_mass == 100
        assert result.new_rarity == "RARE"

        await db_session.refresh(old_owner)
        assert old_owner.cached_traffic_score == 0
        assert old_owner.current_rarity == "COMMON"
        assert old_owner.highest_rarity_achieved == "RARE"

    async def test_unknown_pin(self, db_session, make_asset):
        asset = await make_asset()
        with pytest.raises(NotFoundError, match="Pin not found"):
            await adopt_orphan(db_session, "no-such-pin", asset.id)

    async def test_unknown_asset_leaves_pin_unlinked(self, db_session, make_pin):
        orphan = await make_pin(clicks=80)

        with pytest.raises(NotFoundError, match="Asset not found"):
            await adopt_orphan(db_session, orphan.id, "no-such-asset")

        await db_session.refresh(orphan)
        assert orphan.asset_id is None
