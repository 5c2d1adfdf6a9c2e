"""
Tier cache - Application Entry Point
====================================

Composition root. Builds every long-lived object once and hands them to the
caller; nothing in the cache layer looks up a global instance.

Bootstrap
---------
- Config validation
- Redis connection (fails fast if unreachable)
- Player cache store
- Graceful shutdown, reporting any log records the queue dropped
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import asdict, dataclass
from typing import Optional, Type

from src.core.cache.player import PlayerCacheStore
from src.core.config.config import Config
from src.core.config.errors import ConfigError
from src.core.exceptions import TierCacheException
from src.core.logging.logger import get_logger, get_logging_health, setup_logging, shutdown_logging
from src.core.redis.service import RedisService

logger = get_logger(__name__)


@dataclass
class Application:
    """Long-lived objects owned by the process entry point."""

    config: Type[Config]
    backend: RedisService
    store: PlayerCacheStore

    async def close(self) -> None:
        await self.backend.shutdown()


# ============================================================================
# Application Bootstrap
# ============================================================================


async def build_application(config: Type[Config] = Config) -> Application:
    """
    Connect to Redis and build the player cache.

    Raises
    ------
    BackendConnectivityError
        If Redis does not answer PING.
    """
    backend = await RedisService.connect(
        config.REDIS_URL,
        max_connections=config.REDIS_MAX_CONNECTIONS,
        socket_timeout=config.REDIS_SOCKET_TIMEOUT,
        scan_count=config.SCAN_BATCH_SIZE,
        mget_chunk_size=config.MGET_CHUNK_SIZE,
    )
    logger.info("✓ Redis connected")

    store = PlayerCacheStore(
        backend,
        profile_ttl=config.PROFILE_TTL_SECONDS,
        unknown_ttl=config.UNKNOWN_TTL_SECONDS,
        scan_batch_size=config.MGET_CHUNK_SIZE,
    )
    logger.info("✓ Player cache store ready")
    return Application(config=config, backend=backend, store=store)


# ============================================================================
# Application Entrypoint
# ============================================================================


async def main() -> int:
    """
    Lifecycle:
        1. Set up logging and validate configuration
        2. Connect and build the cache
        3. Log a cache summary
        4. Shut down cleanly
    """
    setup_logging()
    logger.info("========== TIER CACHE INITIALIZATION START ==========")
    app: Optional[Application] = None

    try:
        Config.validate()
        logger.info("✓ Configuration validated", extra=Config.get_config_summary())

        app = await build_application(Config)

        snapshot = await app.store.get_all_players()
        logger.info(
            "Player cache summary",
            extra={
                "present_count": len(snapshot.players),
                "unknown_count": len(snapshot.unknown),
            },
        )
        return 0

    except (ConfigError, TierCacheException) as exc:
        logger.critical(f"Fatal startup error: {exc}", exc_info=True)
        return 1

    finally:
        if app is not None:
            await app.close()
        health = get_logging_health()
        if health.records_dropped or health.listener_errors:
            logger.warning("Log records were lost during this run", extra=asdict(health))
        logger.info("========== SHUTDOWN COMPLETE ==========")
        shutdown_logging()


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)
