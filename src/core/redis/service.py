"""
RedisService: async key-value backend adapter for the tier cache.

Purpose
-------
Provide a thin, observable wrapper around a pooled `redis.asyncio` client
exposing exactly the primitives the cache layer needs:

- existence checks, GET, order-preserving chunked MGET
- atomic SET-with-expiry (one round trip, never SET followed by EXPIRE)
- lazy cursor-based SCAN that never materializes the key space
- sorted-set primitives for the score-ordered "unknown" set
- batched writes applied as one MULTI/EXEC pipeline

Responsibilities
----------------
- Build a bounded connection pool and verify it with PING at startup
- Fail fast with `BackendConnectivityError` when the store is unreachable
- Translate every redis-py error into `BackendOperationError`
- Log each operation with latency at DEBUG and failures at ERROR

Non-Responsibilities
--------------------
- Retries, circuit breaking, timeouts beyond the client's socket timeout
- Key naming or value encoding (handled by the cache codecs)
- Any notion of players or profiles

Architecture Notes
------------------
- Instances are constructed explicitly by the composition root and passed to
  their users. There is no process-wide accessor.
- The pool hands each command an exclusive connection and takes it back on
  completion, so one instance is safe to share across concurrent tasks.
- Initialization is idempotent and guarded by an asyncio.Lock.
- Replies are decoded with the "surrogateescape" error handler, so keys and
  values that are not valid UTF-8 reach the codecs as strings instead of
  failing inside the client. Encoding a command reverses the escape, so such
  a key can still be addressed.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Sequence, TypeVar, Union
from urllib.parse import urlparse

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import RedisError

from src.core.config.config import Config
from src.core.exceptions import BackendConnectivityError, BackendOperationError
from src.core.logging.logger import get_logger
from src.core.redis.batch import BatchOp, KeyValueBatch

logger = get_logger(__name__)

T = TypeVar("T")

RESPONSE_ENCODING_ERRORS = "surrogateescape"
Score = Union[float, str]


class RedisService:
    """
    Pooled async Redis adapter.

    Usage
    -----
    >>> backend = await RedisService.connect(Config.REDIS_URL)
    >>> await backend.set("key", "value", ttl_seconds=60)
    >>> await backend.get("key")
    'value'
    >>> await backend.shutdown()
    """

    def __init__(
        self,
        url: str,
        max_connections: Optional[int] = None,
        socket_timeout: Optional[int] = None,
        scan_count: Optional[int] = None,
        mget_chunk_size: Optional[int] = None,
    ) -> None:
        self._url = url
        self._max_connections = max_connections or Config.REDIS_MAX_CONNECTIONS
        self._socket_timeout = socket_timeout or Config.REDIS_SOCKET_TIMEOUT
        self._scan_count = scan_count or Config.SCAN_BATCH_SIZE
        self._mget_chunk_size = mget_chunk_size or Config.MGET_CHUNK_SIZE
        self._client: Optional[AsyncRedis] = None
        self._init_lock = asyncio.Lock()

    @property
    def url_scheme(self) -> str:
        return urlparse(self._url).scheme or "unknown"

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE MANAGEMENT
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def connect(cls, url: str, **kwargs: Any) -> "RedisService":
        """Construct and initialize in one step."""
        service = cls(url, **kwargs)
        await service.initialize()
        return service

    async def initialize(self) -> None:
        """
        Build the connection pool and verify it with PING.

        Idempotent. Safe to call multiple times.

        Raises
        ------
        BackendConnectivityError
            If the store cannot be reached. No client is kept in that case.
        """
        if self._client is not None:
            logger.debug("RedisService already initialized, skipping")
            return

        async with self._init_lock:
            if self._client is not None:
                return

            start_time = time.monotonic()
            client: AsyncRedis = AsyncRedis.from_url(
                self._url,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_timeout,
                decode_responses=True,
                encoding_errors=RESPONSE_ENCODING_ERRORS,
                max_connections=self._max_connections,
            )

            try:
                await client.ping()  # type: ignore[misc]
            except (RedisError, OSError) as exc:
                try:
                    await client.aclose()
                except (RedisError, OSError):
                    # Root cause is the failed PING
                    pass

                logger.critical(
                    "Failed to connect to Redis",
                    extra={
                        "url_scheme": self.url_scheme,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                raise BackendConnectivityError(self.url_scheme, exc) from exc

            self._client = client
            initialization_time_ms = (time.monotonic() - start_time) * 1000

            logger.info(
                "RedisService initialized successfully",
                extra={
                    "url_scheme": self.url_scheme,
                    "socket_timeout_seconds": self._socket_timeout,
                    "max_connections": self._max_connections,
                    "initialization_time_ms": round(initialization_time_ms, 2),
                },
            )

    async def shutdown(self) -> None:
        """Close the pool. Safe to call even if not initialized."""
        client = self._client
        self._client = None

        if client is None:
            logger.debug("RedisService not initialized, nothing to shutdown")
            return

        try:
            await client.aclose()
            logger.info("RedisService shutdown complete")
        except (RedisError, OSError) as exc:
            logger.error(
                "Error during RedisService shutdown",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    def client(self) -> AsyncRedis:
        """
        Return the underlying client.

        Raises
        ------
        RuntimeError
            If `initialize()` has not completed.
        """
        if self._client is None:
            raise RuntimeError(
                "RedisService not initialized. "
                "Call `await service.initialize()` first."
            )
        return self._client

    async def health_check(self) -> bool:
        """PING the store; never raises."""
        if self._client is None:
            logger.warning("Health check failed: RedisService not initialized")
            return False

        try:
            start_time = time.monotonic()
            pong = await self._client.ping()  # type: ignore[misc]
            latency_ms = (time.monotonic() - start_time) * 1000
            logger.debug(
                "Redis health check",
                extra={"ok": bool(pong), "latency_ms": round(latency_ms, 2)},
            )
            return bool(pong)
        except (RedisError, OSError) as exc:
            logger.error(
                "Redis health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

    # ═══════════════════════════════════════════════════════════════════════
    # EXECUTION HELPER
    # ═══════════════════════════════════════════════════════════════════════

    async def _run(
        self,
        operation: str,
        call: Callable[[AsyncRedis], Awaitable[T]],
        key: Optional[str] = None,
        **log_fields: Any,
    ) -> T:
        """Run one command, logging latency and translating client errors."""
        client = self.client()
        start_time = time.monotonic()
        try:
            result = await call(client)
        except (RedisError, OSError) as exc:
            latency_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                f"Redis {operation} operation failed",
                extra={
                    "key": key,
                    "latency_ms": round(latency_ms, 2),
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    **log_fields,
                },
            )
            raise BackendOperationError(operation, exc, key=key) from exc

        latency_ms = (time.monotonic() - start_time) * 1000
        logger.debug(
            f"Redis {operation} operation",
            extra={"key": key, "latency_ms": round(latency_ms, 2), **log_fields},
        )
        return result

    # ═══════════════════════════════════════════════════════════════════════
    # KEY-VALUE OPERATIONS
    # ═══════════════════════════════════════════════════════════════════════

    async def exists(self, key: str) -> bool:
        count = await self._run("EXISTS", lambda c: c.exists(key), key=key)
        return bool(count)

    async def get(self, key: str) -> Optional[str]:
        return await self._run("GET", lambda c: c.get(key), key=key)

    async def mget(self, keys: Sequence[str]) -> List[Optional[str]]:
        """
        Fetch many keys, preserving input order.

        Large inputs are split into chunks of `mget_chunk_size` keys, one
        round trip each. An empty input returns ``[]`` without any I/O.
        """
        if not keys:
            return []

        values: List[Optional[str]] = []
        for i in range(0, len(keys), self._mget_chunk_size):
            chunk = list(keys[i:i + self._mget_chunk_size])
            values.extend(
                await self._run(
                    "MGET",
                    lambda c, chunk=chunk: c.mget(chunk),
                    key_count=len(chunk),
                )
            )

        if len(keys) > self._mget_chunk_size:
            logger.debug(
                "Batch GET chunked",
                extra={
                    "total_keys": len(keys),
                    "chunk_size": self._mget_chunk_size,
                    "found_count": sum(1 for v in values if v is not None),
                },
            )
        return values

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set `key` with an expiry in one atomic `SET ... EX` command."""
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        result = await self._run(
            "SET",
            lambda c: c.set(key, value, ex=ttl_seconds),
            key=key,
            ttl_seconds=ttl_seconds,
        )
        return bool(result)

    async def delete(self, key: str) -> int:
        return int(await self._run("DEL", lambda c: c.delete(key), key=key))

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -1 without expiry, -2 if missing."""
        return int(await self._run("TTL", lambda c: c.ttl(key), key=key))

    async def scan_match(self, pattern: str, count: Optional[int] = None) -> AsyncIterator[str]:
        """
        Lazily iterate keys matching `pattern` with SCAN cursors.

        Each step fetches one cursor page. The sequence is finite and is not
        restartable; call again for a fresh scan. Keys may repeat across pages
        (a SCAN guarantee), so callers that need uniqueness must dedupe.
        """
        client = self.client()
        page_size = count or self._scan_count
        cursor = 0
        yielded = 0
        start_time = time.monotonic()

        while True:
            try:
                cursor, keys = await client.scan(cursor=cursor, match=pattern, count=page_size)
            except (RedisError, OSError) as exc:
                logger.error(
                    "Redis SCAN operation failed",
                    extra={
                        "pattern": pattern,
                        "keys_yielded": yielded,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                raise BackendOperationError("SCAN", exc, key=pattern) from exc

            for key in keys:
                yielded += 1
                yield key

            if cursor == 0:
                break

        logger.debug(
            "Redis SCAN operation",
            extra={
                "pattern": pattern,
                "keys_yielded": yielded,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )

    # ═══════════════════════════════════════════════════════════════════════
    # SORTED-SET OPERATIONS
    # ═══════════════════════════════════════════════════════════════════════

    async def zadd(self, set_key: str, member: str, score: float) -> int:
        """Add or re-score `member`. Returns 1 when newly added."""
        return int(
            await self._run(
                "ZADD",
                lambda c: c.zadd(set_key, {member: score}),
                key=set_key,
                member=member,
            )
        )

    async def zscore(self, set_key: str, member: str) -> Optional[float]:
        score = await self._run(
            "ZSCORE",
            lambda c: c.zscore(set_key, member),
            key=set_key,
            member=member,
        )
        return None if score is None else float(score)

    async def zrangebyscore(self, set_key: str, min_score: Score, max_score: Score) -> List[str]:
        """Members with ``min_score <= score <= max_score``; prefix a bound with ``(`` to exclude it."""
        return list(
            await self._run(
                "ZRANGEBYSCORE",
                lambda c: c.zrangebyscore(set_key, min_score, max_score),
                key=set_key,
            )
        )

    async def zremrangebyscore(self, set_key: str, min_score: Score, max_score: Score) -> int:
        return int(
            await self._run(
                "ZREMRANGEBYSCORE",
                lambda c: c.zremrangebyscore(set_key, min_score, max_score),
                key=set_key,
            )
        )

    # ═══════════════════════════════════════════════════════════════════════
    # BATCHED WRITES
    # ═══════════════════════════════════════════════════════════════════════

    async def execute(self, batch: KeyValueBatch) -> List[Any]:
        """
        Apply `batch` as a single MULTI/EXEC pipeline.

        Returns the per-command replies. Any failure is raised as
        `BackendOperationError`; commands already applied by the server are
        not rolled back.
        """
        if not batch:
            return []

        async def run_pipeline(client: AsyncRedis) -> List[Any]:
            async with client.pipeline(transaction=True) as pipe:
                for operation in batch:
                    if operation.op is BatchOp.SET:
                        pipe.set(operation.key, operation.value, ex=operation.ttl_seconds)
                    elif operation.op is BatchOp.DELETE:
                        pipe.delete(operation.key)
                    elif operation.op is BatchOp.ZADD:
                        pipe.zadd(operation.key, {operation.member: operation.score})
                    elif operation.op is BatchOp.ZREM:
                        pipe.zrem(operation.key, operation.member)
                return await pipe.execute()

        return await self._run("PIPELINE", run_pipeline, **batch.summary())
