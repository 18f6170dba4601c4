"""Cron script: run one cronos-sync pass without going through HTTP.

Usage:
    python scripts/run_sync.py [financial|top_pins|full]

Defaults to the financial scope (bulk reconciliation only). The top_pins and
full scopes need PINTEREST_ACCESS_TOKEN in .env.
"""

import asyncio
import logging
import sys

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger(__name__)


async def main(scope: str) -> int:
    from asset_ops.domain.enums import SyncScope
    from asset_ops.infra.database import async_session, init_db
    from asset_ops.services.sync_service import run_sync

    try:
        sync_scope = SyncScope(scope)
    except ValueError:
        logger.error("Unknown scope %r; expected one of %s", scope, [s.value for s in SyncScope])
        return 2

    await init_db()

    async with async_session() as session:
        logs, results = await run_sync(session, sync_scope)

    for line in logs:
        logger.info(line)
    logger.info("Results: %s", results)

    failed = results.get("financial", {}).get("assets_failed", 0)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "financial")))
