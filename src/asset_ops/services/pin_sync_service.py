"""Pin sync - mirror Pinterest pins into the pins table.

Sync owns pin metadata and stats only. The asset association belongs to the
adoption workflow, so every upsert is projected onto SYNC_OWNED_COLUMNS and
asset_id can never appear in a sync write.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.domain.errors import StorageError
from asset_ops.domain.models import Pin
from asset_ops.infra.pinterest_client import PinterestClient

logger = logging.getLogger(__name__)

SYNC_OWNED_COLUMNS = (
    "title",
    "description",
    "image_url",
    "last_stats",
    "is_active_on_platform",
    "last_synced_at",
)


@dataclass
class InventorySyncResult:
    total_synced: int = 0
    pages: int = 0
    truncated: bool = False
    logs: list[str] = field(default_factory=list)


def map_top_pin(item: dict, now: datetime, window_days: int = 30) -> dict:
    """Analytics row -> pin upsert row. Title only when the API sent one."""
    metrics = item.get("metrics") or {}
    row = {
        "external_pin_id": str(item.get("pin_id")),
        "last_stats": {
            "outbound_clicks": metrics.get("OUTBOUND_CLICK") or 0,
            "impressions": metrics.get("IMPRESSION") or 0,
            "saves": metrics.get("SAVE") or 0,
            "date_range": f"{window_days}d",
        },
        "is_active_on_platform": True,
        "last_synced_at": now,
    }
    if item.get("title"):
        row["title"] = item["title"]
    return row


def map_inventory_pin(pin: dict, now: datetime) -> dict:
    """/pins row -> pin upsert row. Stats are not part of this payload."""
    images = (pin.get("media") or {}).get("images") or {}
    image_url = (images.get("600x") or {}).get("url") or (images.get("originals") or {}).get("url")
    return {
        "external_pin_id": str(pin.get("id")),
        "title": pin.get("title"),
        "description": pin.get("description"),
        "image_url": image_url,
        "is_active_on_platform": True,
        "last_synced_at": now,
    }


async def upsert_pins(db: AsyncSession, rows: list[dict]) -> int:
    """Insert or update pins keyed on external_pin_id.

    Only SYNC_OWNED_COLUMNS are written; any other key in a row is dropped.
    """
    if not rows:
        return 0

    external_ids = [row["external_pin_id"] for row in rows]
    try:
        result = await db.execute(select(Pin).where(Pin.external_pin_id.in_(external_ids)))
        existing = {pin.external_pin_id: pin for pin in result.scalars().all()}

        for row in rows:
            owned = {key: row[key] for key in SYNC_OWNED_COLUMNS if key in row}
            pin = existing.get(row["external_pin_id"])
            if pin is None:
                pin = Pin(external_pin_id=row["external_pin_id"], **owned)
                db.add(pin)
                existing[pin.external_pin_id] = pin
            else:
                for key, value in owned.items():
                    setattr(pin, key, value)

        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StorageError(f"DB Upsert Error: {exc}") from exc

    return len(rows)


async def sync_top_pins(
    db: AsyncSession,
    client: PinterestClient,
    window_days: int = 30,
    limit: int = 50,
    today: Optional[date] = None,
) -> int:
    """Harvest top pins by outbound clicks over the trailing window."""
    end_date = today or datetime.now(timezone.utc).date()
    start_date = end_date - timedelta(days=window_days)

    items = await client.top_pins(start_date, end_date, limit=limit)
    now = datetime.now(timezone.utc)
    rows = [map_top_pin(item, now, window_days) for item in items if item.get("pin_id")]
    await upsert_pins(db, rows)
    logger.info("Top pins sync: %d pins", len(items))
    return len(items)


async def sync_inventory(
    db: AsyncSession,
    client: PinterestClient,
    max_pages: int = 10,
    page_size: int = 25,
) -> InventorySyncResult:
    """Walk /pins by bookmark, stopping after *max_pages* pages."""
    result = InventorySyncResult()
    bookmark: Optional[str] = None

    while True:
        items, bookmark = await client.list_pins(bookmark=bookmark, page_size=page_size)
        if items:
            now = datetime.now(timezone.utc)
            rows = [map_inventory_pin(pin, now) for pin in items if pin.get("id")]
            await upsert_pins(db, rows)
            result.total_synced += len(items)
        result.pages += 1

        if not bookmark:
            break
        if result.pages >= max_pages:
            result.truncated = True
            message = "WARNING: Pagination limit reached for execution time safety."
            result.logs.append(message)
            logger.warning("Inventory sync stopped after %d pages", result.pages)
            break

    return result
