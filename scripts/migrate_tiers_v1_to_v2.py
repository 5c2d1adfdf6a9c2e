#!/usr/bin/env python3
"""
migrate_tiers_v1_to_v2.py
-------------------------

Copies the legacy player cache (tiers-v1-profile:*) into the current layout
(tiers-v2-profile:* plus the tiers-v2-unknown sorted set).

USAGE:
  python -m scripts.migrate_tiers_v1_to_v2 plan    # Count legacy keys (safe)
  python -m scripts.migrate_tiers_v1_to_v2 apply   # Execute migration

NOTES:
- Additive only: legacy keys are left to expire on their own
- Safe to re-run; a second run rewrites the same values
- Connects to REDIS_URL from the environment / .env
"""

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from src.core.cache.codec import printable_key
from src.core.cache.migration import CacheMigrator
from src.core.cache.player import PlayerCacheStore
from src.core.config.config import Config
from src.core.exceptions import TierCacheException
from src.core.logging.logger import setup_logging, shutdown_logging
from src.core.redis.service import RedisService


async def _run(command: str) -> int:
    backend = await RedisService.connect(
        Config.REDIS_URL,
        max_connections=Config.REDIS_MAX_CONNECTIONS,
        socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
        scan_count=Config.SCAN_BATCH_SIZE,
        mget_chunk_size=Config.MGET_CHUNK_SIZE,
    )
    try:
        store = PlayerCacheStore(
            backend,
            profile_ttl=Config.PROFILE_TTL_SECONDS,
            unknown_ttl=Config.UNKNOWN_TTL_SECONDS,
        )
        migrator = CacheMigrator(backend, target_store=store)

        if command == "plan":
            report = await migrator.plan()
            print("=" * 60)
            print("MIGRATION PLAN")
            print("=" * 60)
            print(f"Legacy keys found:   {report.scanned}")
            print(f"Malformed (skipped): {len(report.skipped_keys)}")
            for key in report.skipped_keys:
                print(f"  {printable_key(key)}")
            print("\nRun 'python -m scripts.migrate_tiers_v1_to_v2 apply' to execute")
            return 0

        print("=" * 60)
        print("APPLYING MIGRATION")
        print("=" * 60)
        report = await migrator.run()
        print(json.dumps(report.to_dict(), indent=2))
        print(f"\n✓ Migrated {report.known} profiles and {report.unknown} unknown players")
        return 0
    finally:
        await backend.shutdown()


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Tier cache v1 -> v2 migration tool")
    parser.add_argument("command", choices=["plan", "apply"])
    args = parser.parse_args(argv)

    Config.validate()
    setup_logging(log_to_file=False)
    try:
        code = asyncio.run(_run(args.command))
    except TierCacheException as exc:
        print(f"❌ {exc}")
        code = 1
    finally:
        shutdown_logging()
    sys.exit(code)


if __name__ == "__main__":
    main()
