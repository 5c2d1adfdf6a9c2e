"""
Pytest Configuration and Fixtures for the Tier Cache Tests
==========================================================

Purpose
-------
Centralized test fixtures for the tier cache test suite.

Responsibilities
----------------
- In-memory stand-in for `RedisService` with a controllable clock
- Testcontainers Redis for integration tests (skipped without Docker)
- Profile factories for test data

Architecture Notes
------------------
- Unit tests use `InMemoryRedis` (fast, isolated, deterministic expiry)
- Integration tests use testcontainers (real Redis)
- Fixtures follow scope hierarchy: session > function
"""

from __future__ import annotations

import fnmatch
from typing import Any, AsyncGenerator, AsyncIterator, Dict, Generator, List, Optional, Tuple, Union
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

from src.core.cache.player import PlayerCacheStore
from src.core.logging.logger import get_logger
from src.core.redis.batch import BatchOp, KeyValueBatch
from src.core.redis.service import RedisService
from src.domain.models import Badge, PlayerInfo, Ranking

logger = get_logger(__name__)

PROFILE_TTL = 600
UNKNOWN_TTL = 300
START_TIME = 1_700_000_000.0


# ============================================================================
# FAKE CLOCK + IN-MEMORY BACKEND (Unit Tests)
# ============================================================================


class FakeClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _parse_bound(bound: Union[float, str]) -> Tuple[float, bool]:
    """Return (value, exclusive) for a ZRANGEBYSCORE bound."""
    if isinstance(bound, str):
        exclusive = bound.startswith("(")
        text = bound[1:] if exclusive else bound
        return float(text), exclusive
    return float(bound), False


def _in_range(score: float, low: Tuple[float, bool], high: Tuple[float, bool]) -> bool:
    low_value, low_exclusive = low
    high_value, high_exclusive = high
    above = score > low_value if low_exclusive else score >= low_value
    below = score < high_value if high_exclusive else score <= high_value
    return above and below


class InMemoryRedis:
    """
    Dict-backed implementation of the `RedisService` operations the cache uses.

    Key expiry follows the injected clock. Every call is recorded in `calls`
    as ``(command, argument)`` so tests can assert on round trips.
    """

    def __init__(self, clock: FakeClock, scan_page_size: int = 2) -> None:
        self.clock = clock
        self.scan_page_size = scan_page_size
        self.values: Dict[str, Tuple[str, Optional[float]]] = {}
        self.sorted_sets: Dict[str, Dict[str, float]] = {}
        self.calls: List[Tuple[str, Any]] = []

    def commands(self) -> List[str]:
        return [command for command, _ in self.calls]

    def _live(self, key: str) -> Optional[str]:
        entry = self.values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self.clock() >= expires_at:
            del self.values[key]
            return None
        return value

    # -- seeding helpers (not recorded) ------------------------------------

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = None if ttl_seconds is None else self.clock() + ttl_seconds
        self.values[key] = (value, expires_at)

    def remaining_ttl(self, key: str) -> Optional[float]:
        entry = self.values.get(key)
        if entry is None or entry[1] is None:
            return None
        return entry[1] - self.clock()

    def members(self, set_key: str) -> Dict[str, float]:
        return dict(self.sorted_sets.get(set_key, {}))

    # -- RedisService interface --------------------------------------------

    async def exists(self, key: str) -> bool:
        self.calls.append(("EXISTS", key))
        return self._live(key) is not None

    async def get(self, key: str) -> Optional[str]:
        self.calls.append(("GET", key))
        return self._live(key)

    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        self.calls.append(("MGET", list(keys)))
        return [self._live(key) for key in keys]

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        self.calls.append(("SET", key))
        self.put(key, value, ttl_seconds)
        return True

    async def delete(self, key: str) -> int:
        self.calls.append(("DEL", key))
        return 1 if self.values.pop(key, None) is not None else 0

    async def scan_match(self, pattern: str, count: Optional[int] = None) -> AsyncIterator[str]:
        self.calls.append(("SCAN", pattern))
        matched = [key for key in list(self.values) if fnmatch.fnmatchcase(key, pattern) and self._live(key) is not None]
        for i in range(0, len(matched), self.scan_page_size):
            for key in matched[i:i + self.scan_page_size]:
                yield key

    async def zadd(self, set_key: str, member: str, score: float) -> int:
        self.calls.append(("ZADD", member))
        members = self.sorted_sets.setdefault(set_key, {})
        added = 0 if member in members else 1
        members[member] = float(score)
        return added

    async def zscore(self, set_key: str, member: str) -> Optional[float]:
        self.calls.append(("ZSCORE", member))
        return self.sorted_sets.get(set_key, {}).get(member)

    async def zrangebyscore(self, set_key: str, min_score: Union[float, str], max_score: Union[float, str]) -> List[str]:
        self.calls.append(("ZRANGEBYSCORE", (min_score, max_score)))
        low, high = _parse_bound(min_score), _parse_bound(max_score)
        members = self.sorted_sets.get(set_key, {})
        return [m for m, s in sorted(members.items(), key=lambda item: item[1]) if _in_range(s, low, high)]

    async def zremrangebyscore(self, set_key: str, min_score: Union[float, str], max_score: Union[float, str]) -> int:
        self.calls.append(("ZREMRANGEBYSCORE", (min_score, max_score)))
        low, high = _parse_bound(min_score), _parse_bound(max_score)
        members = self.sorted_sets.get(set_key, {})
        doomed = [m for m, s in members.items() if _in_range(s, low, high)]
        for member in doomed:
            del members[member]
        return len(doomed)

    async def execute(self, batch: KeyValueBatch) -> List[Any]:
        self.calls.append(("PIPELINE", len(batch)))
        replies: List[Any] = []
        for op in batch:
            if op.op is BatchOp.SET:
                self.put(op.key, op.value, op.ttl_seconds)
                replies.append(True)
            elif op.op is BatchOp.DELETE:
                replies.append(1 if self.values.pop(op.key, None) is not None else 0)
            elif op.op is BatchOp.ZADD:
                members = self.sorted_sets.setdefault(op.key, {})
                replies.append(0 if op.member in members else 1)
                members[op.member] = float(op.score)
            elif op.op is BatchOp.ZREM:
                replies.append(1 if self.sorted_sets.get(op.key, {}).pop(op.member, None) is not None else 0)
        return replies


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend(clock: FakeClock) -> InMemoryRedis:
    return InMemoryRedis(clock)


@pytest.fixture
def store(backend: InMemoryRedis, clock: FakeClock) -> PlayerCacheStore:
    return PlayerCacheStore(
        backend,  # type: ignore[arg-type]
        profile_ttl=PROFILE_TTL,
        unknown_ttl=UNKNOWN_TTL,
        scan_batch_size=3,
        clock=clock,
    )


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================


def make_profile(
    name: str = "Steve",
    uuid: Optional[UUID] = None,
    rankings: Optional[Dict[str, Ranking]] = None,
    **overrides: Any,
) -> PlayerInfo:
    """Build a profile with sensible defaults."""
    if rankings is None:
        rankings = {
            "sword": Ranking(tier=2, pos=0, peak_tier=1, peak_pos=1, attained=1_690_000_000),
            "uhc": Ranking(tier=4, pos=1, attained=1_695_000_000, retired=True),
        }
    fields: Dict[str, Any] = {
        "uuid": uuid or uuid4(),
        "name": name,
        "rankings": rankings,
        "region": "EU",
        "points": 120,
        "overall": 14,
        "badges": (Badge(title="Veteran", desc="Tested in 2023"),),
    }
    fields.update(overrides)
    return PlayerInfo(**fields)


@pytest.fixture
def profile() -> PlayerInfo:
    return make_profile()


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def redis_container() -> Generator[Any, None, None]:
    """
    Start Redis testcontainer for integration tests.

    Scope: session (container persists across all tests)
    Skipped when Docker is not available.
    """
    from testcontainers.redis import RedisContainer

    logger.info("Starting Redis testcontainer...")
    container = RedisContainer(image="redis:7-alpine")
    try:
        container.start()
    except Exception as exc:  # docker daemon missing or unreachable
        pytest.skip(f"Docker not available for Redis testcontainer: {exc}")

    logger.info(
        "Redis testcontainer started: %s:%s",
        container.get_container_host_ip(),
        container.get_exposed_port(6379),
    )

    yield container

    logger.info("Stopping Redis testcontainer...")
    container.stop()


@pytest.fixture(scope="session")
def redis_url(redis_container: Any) -> str:
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    return f"redis://{host}:{port}/0"


@pytest_asyncio.fixture
async def redis_service(redis_url: str) -> AsyncGenerator[RedisService, None]:
    """
    Connected RedisService on an empty database.

    Scope: function (FLUSHDB before each test)
    """
    service = await RedisService.connect(redis_url, scan_count=2, mget_chunk_size=3)
    await service.client().flushdb()
    yield service
    await service.shutdown()
