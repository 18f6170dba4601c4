"""Cronos sync - the scheduled/on-demand reconciliation entry point.

Scopes:
    financial  -> bulk reconciliation of every live asset
    top_pins   -> Pinterest analytics harvest (stats for top pins)
    full       -> bulk reconciliation + paged inventory scan of all pins
"""

import logging
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from asset_ops.app.config import get_settings
from asset_ops.domain.enums import SyncScope
from asset_ops.infra.pinterest_client import PinterestClient, get_pinterest_client
from asset_ops.services.pin_sync_service import sync_inventory, sync_top_pins
from asset_ops.services.reconciliation_service import reconcile_all

logger = logging.getLogger(__name__)


async def run_sync(
    db: AsyncSession,
    scope: SyncScope,
    client_factory: Callable[[], PinterestClient] = get_pinterest_client,
) -> tuple[list[str], dict]:
    """Run one sync pass. Returns (logs, results) for the caller to report."""
    settings = get_settings()
    scope = SyncScope(scope)
    logs: list[str] = [f"Starting CRONOS-SYNC with scope: {scope.value}"]
    results: dict = {}

    if scope in (SyncScope.FINANCIAL, SyncScope.FULL):
        logs.append(">>> Executing Financial Reconciliation")
        summary = await reconcile_all(db, time_budget_seconds=settings.reconcile_time_budget_seconds)
        results["financial"] = summary.as_dict()
        if summary.failed:
            logs.append(f"WARNING: {len(summary.failed)} asset(s) failed to reconcile.")
        if summary.truncated:
            logs.append("WARNING: Time budget reached; remaining assets deferred to the next run.")

    if scope in (SyncScope.TOP_PINS, SyncScope.FULL):
        client = client_factory()

        if scope == SyncScope.TOP_PINS:
            logs.append(">>> Mode: TOP_PINS (Analytic Harvest)")
            count = await sync_top_pins(
                db,
                client,
                window_days=settings.top_pins_window_days,
                limit=settings.top_pins_limit,
            )
            logs.append(f"Fetched {count} top performing pins.")
            results["top_pins"] = {"count": count}

        if scope == SyncScope.FULL:
            logs.append(">>> Mode: FULL (Deep Inventory Scan)")
            inventory = await sync_inventory(
                db,
                client,
                max_pages=settings.sync_max_pages,
                page_size=settings.sync_page_size,
            )
            logs.extend(inventory.logs)
            results["full_sync"] = {
                "total_synced": inventory.total_synced,
                "pages": inventory.pages,
                "truncated": inventory.truncated,
            }

    logger.info("Cronos sync finished: scope=%s results=%s", scope.value, results)
    return logs, results
