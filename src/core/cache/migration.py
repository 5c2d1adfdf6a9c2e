"""
One-shot v1 -> v2 player cache migration.

Purpose
-------
Copy every record under the legacy ``tiers-v1-profile:*`` namespace into
the current layout:

- present records -> ``tiers-v2-profile:{uuid}`` with the profile TTL
- unknown records -> ``tiers-v2-unknown`` member with a fresh expiry

Procedure
---------
1. SCAN legacy keys (malformed keys are logged and skipped).
2. No keys: log a warning and stop. Nothing is written.
3. MGET all values and decode them with the legacy codec.
4. Partition into known and unknown.
5. Queue one `KeyValueBatch` of ``SET ... EX`` and ``ZADD`` commands.
6. Send it as a single MULTI/EXEC pipeline.

The migration is additive. Legacy keys are never deleted and age out on
their own TTL. It never deletes current keys either, so rerunning it with a
new migrator only rewrites the same values and refreshes unknown expiries.

A failed pipeline is not rolled back; the `BackendOperationError` reaches
the caller.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from src.core.cache.codec import LegacyRecordCodec, RecordCodec, printable_key
from src.core.cache.player import PlayerCacheStore
from src.core.exceptions import MalformedKeyWarning, MigrationError
from src.core.logging.logger import LogContext, get_logger
from src.core.redis.batch import KeyValueBatch
from src.core.redis.service import RedisService
from src.domain.models import PlayerInfo, PlayerRecord

logger = get_logger(__name__)


class MigrationState(Enum):
    NOT_STARTED = "not_started"
    COMPLETED = "completed"


@dataclass
class MigrationReport:
    """Outcome of a migration run (or a dry-run plan)."""

    state: MigrationState
    scanned: int = 0
    known: int = 0
    unknown: int = 0
    skipped_keys: List[str] = field(default_factory=list)

    @property
    def written(self) -> int:
        return self.known + self.unknown

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "scanned": self.scanned,
            "known": self.known,
            "unknown": self.unknown,
            "skipped_keys": list(self.skipped_keys),
        }


class CacheMigrator:
    """
    Reads the legacy namespace and writes it into a `PlayerCacheStore` layout.

    Each instance runs at most once. Build a new instance to run again.

    Example
    -------
    >>> migrator = CacheMigrator(backend, target_store=store)
    >>> report = await migrator.run()
    >>> report.state
    <MigrationState.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        backend: RedisService,
        target_store: PlayerCacheStore,
        source: Optional[RecordCodec] = None,
    ) -> None:
        self._backend = backend
        self._source = source or LegacyRecordCodec()
        self._target = target_store
        self._state = MigrationState.NOT_STARTED

    @property
    def state(self) -> MigrationState:
        return self._state

    async def _scan_source_keys(self) -> Tuple[List[str], List[str]]:
        keys: List[str] = []
        skipped: List[str] = []
        seen = set()

        async for key in self._backend.scan_match(self._source.scan_pattern):
            if key in seen:
                continue
            seen.add(key)
            try:
                self._source.parse_key(key)
            except ValueError as exc:
                logger.warning(
                    "Skipping malformed legacy cache key",
                    extra={
                        "key": printable_key(key),
                        "reason": str(exc),
                        "category": MalformedKeyWarning.__name__,
                    },
                )
                skipped.append(key)
                continue
            keys.append(key)

        return keys, skipped

    async def plan(self) -> MigrationReport:
        """Count legacy keys without reading values or writing anything."""
        keys, skipped = await self._scan_source_keys()
        return MigrationReport(
            state=self._state,
            scanned=len(keys) + len(skipped),
            skipped_keys=skipped,
        )

    async def run(self) -> MigrationReport:
        """
        Run the migration.

        Returns
        -------
        MigrationReport
            Counts of scanned, known and unknown records, and skipped keys.

        Raises
        ------
        MigrationError
            If this instance has already completed a run.
        BackendOperationError
            If any scan, read or the final pipeline fails.
        DecodeError
            If a legacy value is corrupted. Nothing is written in that case.
        """
        if self._state is MigrationState.COMPLETED:
            raise MigrationError(
                "Migration already completed on this migrator",
                details={"source": self._source.key_prefix},
            )

        async with LogContext(component="cache_migrator", operation="migrate_v1_to_v2"):
            start_time = time.monotonic()
            keys, skipped = await self._scan_source_keys()
            report = MigrationReport(
                state=MigrationState.NOT_STARTED,
                scanned=len(keys) + len(skipped),
                skipped_keys=skipped,
            )

            if not keys:
                logger.warning(
                    "No legacy cache entries found, nothing to migrate",
                    extra={"pattern": self._source.scan_pattern, "skipped": len(skipped)},
                )
                self._state = report.state = MigrationState.COMPLETED
                return report

            values = await self._backend.mget(keys)
            known: List[PlayerInfo] = []
            unknown: List[UUID] = []
            for key, raw in zip(keys, values):
                uuid = self._source.parse_key(key)
                record = self._source.decode(raw, key)
                if record is not None and record.is_present and record.info is not None:
                    if record.info.uuid != uuid:
                        logger.warning(
                            "Legacy key does not match its profile, keying by profile uuid",
                            extra={"key": key, "profile_uuid": str(record.info.uuid)},
                        )
                    known.append(record.info)
                else:
                    unknown.append(uuid)

            batch = self._build_batch(known, unknown)
            await self._backend.execute(batch)

            report.known = len(known)
            report.unknown = len(unknown)
            self._state = report.state = MigrationState.COMPLETED

            logger.info(
                "Player cache migrated",
                extra={
                    **report.to_dict(),
                    "skipped_keys": len(skipped),
                    "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
                },
            )
            return report

    def _build_batch(
        self,
        known: List[PlayerInfo],
        unknown: List[UUID],
    ) -> KeyValueBatch:
        # SET and ZADD only; current-scheme data is never deleted here
        codec = self._target.codec
        unknown_expiry = self._target.now() + self._target.unknown_ttl
        batch = KeyValueBatch()
        for info in known:
            batch.set(
                codec.key_for(info.uuid),
                codec.encode(PlayerRecord.present(info)),
                self._target.profile_ttl,
            )
        for uuid in unknown:
            batch.zadd(self._target.unknown_set_key, str(uuid), unknown_expiry)
        return batch
