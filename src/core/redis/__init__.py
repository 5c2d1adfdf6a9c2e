"""
Redis infrastructure for the tier cache.

Exports
-------
RedisService - Pooled async adapter (GET/SET/MGET/SCAN/sorted sets/pipelines)
KeyValueBatch - Builder for writes applied as one MULTI/EXEC pipeline

Example Usage
-------------
>>> backend = await RedisService.connect(Config.REDIS_URL)
>>> batch = KeyValueBatch().set("key", "value", ttl_seconds=60).zrem("set", "member")
>>> await backend.execute(batch)
>>> await backend.shutdown()
"""

from __future__ import annotations

from src.core.redis.batch import BatchOp, BatchOperation, KeyValueBatch
from src.core.redis.service import RedisService

__all__ = [
    "RedisService",
    "KeyValueBatch",
    "BatchOp",
    "BatchOperation",
]
