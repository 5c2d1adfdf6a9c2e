"""
Player profile cache for the tier-list service.

Purpose
-------
Map a player UUID to a cached profile with three observable states:

- **Present**: a profile fetched upstream, stored under
  ``tiers-v2-profile:{uuid}`` with a native Redis TTL.
- **Unknown**: upstream confirmed the player does not exist. Tracked as a
  member of the ``tiers-v2-unknown`` sorted set whose score is the absolute
  expiry time in epoch seconds.
- **Absent**: never looked up. No key and no set member.

Responsibilities
----------------
- Read and write profiles through a `RecordCodec`
- Keep at most one live classification per player by writing the profile
  key and the unknown-set member in the same MULTI/EXEC batch
- Enumerate every cached profile and unexpired unknown with cursor SCAN
- Prune expired unknown-set members lazily, on enumeration only

Non-Responsibilities
--------------------
- Fetching profiles upstream (callers pass results to `set_player_info`)
- Validating UUID format (the identifier is an opaque key here)
- Retrying backend failures (errors propagate unchanged)

Architecture Notes
------------------
- Instances are built by the composition root and passed to callers.
- Profile expiry is delegated to Redis (`SET ... EX`). Unknown expiry is a
  score comparison against the injected clock.
- `get_player_info` marks a miss in the unknown set with a check-then-write
  (ZSCORE, then ZADD). Two concurrent misses can both write; the only
  consequence is a slightly later expiry, so no compare-and-swap is used.
- Enumeration is not a snapshot. A member added right after the prune shows
  up in the next call.

Key Format
----------
- Profiles: ``tiers-v2-profile:{uuid}``
- Unknown set: ``tiers-v2-unknown`` (member = dashed UUID, score = expiry)
"""

from __future__ import annotations

import time
from typing import AsyncIterator, Callable, Dict, List, Optional, Set
from uuid import UUID

from src.core.cache.codec import CurrentRecordCodec, RecordCodec, printable_key
from src.core.config.config import Config
from src.core.exceptions import MalformedKeyWarning
from src.core.logging.logger import get_logger
from src.core.redis.batch import KeyValueBatch
from src.core.redis.service import RedisService
from src.domain.models import MODES, AllPlayers, PlayerInfo, PlayerRecord

logger = get_logger(__name__)

Clock = Callable[[], float]

UNKNOWN_SET_KEY = "tiers-v2-unknown"


class PlayerCacheStore:
    """
    Tri-state player profile cache backed by Redis.

    Parameters
    ----------
    backend:
        Initialized `RedisService` (or anything with the same interface).
    codec:
        Record codec for the profile namespace. Must track unknowns
        out-of-band; defaults to the current (v2) codec.
    unknown_set_key:
        Sorted-set key holding unknown players.
    profile_ttl, unknown_ttl:
        Lifetimes in seconds. Default to `Config`.
    scan_batch_size:
        Keys decoded per MGET during enumeration.
    clock:
        Returns the current time in epoch seconds. Injected for tests.

    Example
    -------
    >>> store = PlayerCacheStore(backend)
    >>> await store.set_player_info(uuid, profile)
    >>> await store.get_player_info(uuid) == profile
    True
    """

    def __init__(
        self,
        backend: RedisService,
        codec: Optional[RecordCodec] = None,
        unknown_set_key: str = UNKNOWN_SET_KEY,
        profile_ttl: Optional[int] = None,
        unknown_ttl: Optional[int] = None,
        scan_batch_size: Optional[int] = None,
        clock: Clock = time.time,
    ) -> None:
        self._backend = backend
        self._codec = codec or CurrentRecordCodec()
        if not self._codec.tracks_unknown_out_of_band:
            raise ValueError(
                f"{type(self._codec).__name__} keeps unknowns in the profile namespace; "
                "the store needs a codec that tracks them out-of-band"
            )
        self._unknown_set_key = unknown_set_key
        self._profile_ttl = profile_ttl or Config.PROFILE_TTL_SECONDS
        self._unknown_ttl = unknown_ttl or Config.UNKNOWN_TTL_SECONDS
        self._scan_batch_size = scan_batch_size or Config.MGET_CHUNK_SIZE
        self._clock = clock

    @property
    def codec(self) -> RecordCodec:
        return self._codec

    @property
    def unknown_set_key(self) -> str:
        return self._unknown_set_key

    @property
    def profile_ttl(self) -> int:
        return self._profile_ttl

    @property
    def unknown_ttl(self) -> int:
        return self._unknown_ttl

    def now(self) -> float:
        return self._clock()

    # =========================================================================
    # SINGLE-PLAYER OPERATIONS
    # =========================================================================

    async def has_player_info(self, uuid: UUID) -> bool:
        """True iff a profile is cached. The unknown set is not consulted."""
        return await self._backend.exists(self._codec.key_for(uuid))

    async def get_player_info(self, uuid: UUID) -> Optional[PlayerInfo]:
        """
        Return the cached profile, or ``None`` on a miss.

        On a miss the player is added to the unknown set with a fresh expiry,
        unless it already has a score there. This marks "about to be fetched"
        players so repeated misses do not keep refreshing the marker.

        Raises
        ------
        BackendOperationError
            On any backend failure.
        DecodeError
            If the stored value is corrupted.
        """
        key = self._codec.key_for(uuid)
        record = self._codec.decode(await self._backend.get(key), key)
        if record is not None and record.is_present:
            return record.info

        member = str(uuid)
        if await self._backend.zscore(self._unknown_set_key, member) is None:
            await self._backend.zadd(self._unknown_set_key, member, self.now() + self._unknown_ttl)
            logger.debug(
                "Cache miss recorded in unknown set",
                extra={"player_uuid": member, "unknown_ttl_seconds": self._unknown_ttl},
            )
        return None

    async def lookup(self, uuid: UUID) -> Optional[PlayerRecord]:
        """
        Tri-state read with no side effects.

        Returns
        -------
        Optional[PlayerRecord]
            ``PlayerRecord.present(info)`` when cached, ``PlayerRecord.UNKNOWN``
            when the unknown-set entry has not expired, otherwise ``None``.
        """
        key = self._codec.key_for(uuid)
        record = self._codec.decode(await self._backend.get(key), key)
        if record is not None and record.is_present:
            return record

        score = await self._backend.zscore(self._unknown_set_key, str(uuid))
        if score is not None and score > self.now():
            return PlayerRecord.UNKNOWN
        return None

    async def set_player_info(self, uuid: UUID, profile: Optional[PlayerInfo]) -> None:
        """
        Record the result of an upstream fetch.

        A profile replaces any unknown marker; ``None`` replaces any cached
        profile with a fresh unknown marker. Both writes go out as one
        MULTI/EXEC batch. Concurrent writers for the same player race and the
        last one applied wins.
        """
        batch = self.stage_player_info(KeyValueBatch(), uuid, profile, self.now())
        await self._backend.execute(batch)
        logger.debug(
            "Player info stored",
            extra={
                "player_uuid": str(uuid),
                "status": "present" if profile is not None else "unknown",
            },
        )

    def stage_player_info(
        self,
        batch: KeyValueBatch,
        uuid: UUID,
        profile: Optional[PlayerInfo],
        now: float,
    ) -> KeyValueBatch:
        """Append the writes for one player to `batch` without sending it."""
        key = self._codec.key_for(uuid)
        member = str(uuid)
        if profile is not None:
            batch.set(key, self._codec.encode(PlayerRecord.present(profile)), self._profile_ttl)
            batch.zrem(self._unknown_set_key, member)
        else:
            batch.delete(key)
            batch.zadd(self._unknown_set_key, member, now + self._unknown_ttl)
        return batch

    # =========================================================================
    # ENUMERATION
    # =========================================================================

    async def iter_profiles(self) -> AsyncIterator[PlayerInfo]:
        """
        Yield every cached profile.

        Keys are scanned with SCAN cursors and fetched in MGET batches, so the
        namespace is never loaded at once. Malformed keys are logged and
        skipped. Keys that expire between SCAN and MGET are skipped. Decode
        errors propagate.
        """
        seen: Set[str] = set()
        pending: List[str] = []

        async for key in self._backend.scan_match(self._codec.scan_pattern):
            if key in seen:
                continue
            seen.add(key)
            try:
                self._codec.parse_key(key)
            except ValueError as exc:
                logger.warning(
                    "Skipping malformed cache key",
                    extra={
                        "key": printable_key(key),
                        "reason": str(exc),
                        "category": MalformedKeyWarning.__name__,
                    },
                )
                continue

            pending.append(key)
            if len(pending) >= self._scan_batch_size:
                for profile in await self._fetch_profiles(pending):
                    yield profile
                pending = []

        if pending:
            for profile in await self._fetch_profiles(pending):
                yield profile

    async def _fetch_profiles(self, keys: List[str]) -> List[PlayerInfo]:
        values = await self._backend.mget(keys)
        profiles: List[PlayerInfo] = []
        for key, raw in zip(keys, values):
            record = self._codec.decode(raw, key)
            if record is None:
                logger.debug("Cache key vanished before MGET", extra={"key": key})
                continue
            if record.is_present and record.info is not None:
                profiles.append(record.info)
        return profiles

    async def get_all_players(self) -> AllPlayers:
        """
        Enumerate cached profiles and unexpired unknown players.

        Expired unknown-set members (score at or before now) are removed as a
        side effect, after the live ones are read.

        Raises
        ------
        BackendOperationError
            On any backend failure.
        DecodeError
            If any stored profile is corrupted.
        """
        start_time = time.monotonic()
        players = [profile async for profile in self.iter_profiles()]

        now = self.now()
        members = await self._backend.zrangebyscore(self._unknown_set_key, f"({now}", "+inf")
        unknown = self._parse_members(members)
        pruned = await self._backend.zremrangebyscore(self._unknown_set_key, "-inf", now)

        logger.info(
            "Enumerated player cache",
            extra={
                "present_count": len(players),
                "unknown_count": len(unknown),
                "pruned_unknown_count": pruned,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return AllPlayers(players=players, unknown=unknown)

    def _parse_members(self, members: List[str]) -> List[UUID]:
        unknown: List[UUID] = []
        for member in members:
            try:
                unknown.append(UUID(member))
            except ValueError:
                logger.warning(
                    "Skipping malformed unknown-set member",
                    extra={"member": printable_key(member), "category": MalformedKeyWarning.__name__},
                )
        return unknown

    async def get_mode_tiers(self, mode: str) -> Dict[str, str]:
        """
        Player name to tier label (``HT1``, ``LT3``, ...) for one game mode.

        Only cached profiles ranked in `mode` are included. An unrecognised
        mode yields an empty mapping without touching the backend.
        """
        if mode not in MODES:
            return {}

        tiers: Dict[str, str] = {}
        async for profile in self.iter_profiles():
            ranking = profile.ranking_for(mode)
            if ranking is not None:
                tiers[profile.name] = ranking.label
        return tiers

