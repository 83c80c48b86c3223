#!/usr/bin/env python3
"""CLI script to reset the score-sync cursor (administrative clear-storage job).

Usage:
    python scripts/reset_sync_cursor.py
    python scripts/reset_sync_cursor.py --deployment-id prod-eu --show

Connects directly to Redis using REDIS_URL from environment or .env file and
deletes the next-page token and last-completed-date for the deployment. The
next scheduled tick then starts a fresh full sync.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.crm_bridge
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


async def reset(deployment_id: str | None, show_only: bool) -> None:
    from src.crm_bridge.config import get_settings
    from src.crm_bridge.core.http import redact_url
    from src.crm_bridge.core.redis import RedisKeyValueStore, close_redis, get_redis_pool
    from src.crm_bridge.sync.cursor import SyncCursorStore

    settings = get_settings()
    deployment = deployment_id or settings.DEPLOYMENT_ID
    cursor = SyncCursorStore(RedisKeyValueStore(get_redis_pool(), deployment))

    try:
        snapshot = await cursor.snapshot()
        print(f"Deployment: {deployment}")
        next_page = redact_url(snapshot.next_page_token) if snapshot.next_page_token else "-"
        print(f"  Next page:      {next_page}")
        print(f"  Last completed: {snapshot.last_completed_date or '-'}")
        if not show_only:
            await cursor.clear()
            print("Cursor cleared.")
    finally:
        await close_redis()


def main() -> None:
    parser = argparse.ArgumentParser(description="Reset the HubSpot score-sync cursor")
    parser.add_argument("--deployment-id", help="Override DEPLOYMENT_ID from settings")
    parser.add_argument("--show", action="store_true", help="Print the cursor without clearing it")
    args = parser.parse_args()

    asyncio.run(reset(args.deployment_id, args.show))


if __name__ == "__main__":
    main()
