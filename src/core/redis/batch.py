"""
Batched write operations for the key-value backend.

Purpose
-------
Collect a group of writes (SET with expiry, DEL, ZADD, ZREM) so they can be
applied in a single MULTI/EXEC round trip by `RedisService.execute()`.

A `KeyValueBatch` is a plain builder: it holds no client and performs no
I/O, so callers can build, inspect, and log a batch before sending it.

Architecture Notes
------------------
- Operations keep insertion order; the backend applies them in that order.
- `SET` always carries its TTL so a key never exists without an expiry.
- Application is all-or-nothing at the transport level only. Redis does not
  roll back earlier commands when a later command in MULTI/EXEC fails.

Example
-------
>>> batch = KeyValueBatch()
>>> batch.set("tiers-v2-profile:<uuid>", payload, ttl_seconds=43200)
>>> batch.zrem("tiers-v2-unknown", "<uuid>")
>>> await backend.execute(batch)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class BatchOp(Enum):
    SET = "SET"
    DELETE = "DEL"
    ZADD = "ZADD"
    ZREM = "ZREM"


@dataclass(frozen=True)
class BatchOperation:
    """One queued write."""

    op: BatchOp
    key: str
    value: Optional[str] = None
    ttl_seconds: Optional[int] = None
    member: Optional[str] = None
    score: Optional[float] = None


@dataclass
class KeyValueBatch:
    """Ordered collection of writes applied as one pipeline."""

    operations: List[BatchOperation] = field(default_factory=list)

    def set(self, key: str, value: str, ttl_seconds: int) -> "KeyValueBatch":
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.operations.append(
            BatchOperation(BatchOp.SET, key, value=value, ttl_seconds=ttl_seconds)
        )
        return self

    def delete(self, key: str) -> "KeyValueBatch":
        self.operations.append(BatchOperation(BatchOp.DELETE, key))
        return self

    def zadd(self, set_key: str, member: str, score: float) -> "KeyValueBatch":
        self.operations.append(
            BatchOperation(BatchOp.ZADD, set_key, member=member, score=score)
        )
        return self

    def zrem(self, set_key: str, member: str) -> "KeyValueBatch":
        self.operations.append(BatchOperation(BatchOp.ZREM, set_key, member=member))
        return self

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self) -> Iterator[BatchOperation]:
        return iter(self.operations)

    def __bool__(self) -> bool:
        return bool(self.operations)

    def summary(self) -> Dict[str, Any]:
        """Per-command counts, for structured logs."""
        counts: Dict[str, int] = {}
        for operation in self.operations:
            counts[operation.op.value] = counts.get(operation.op.value, 0) + 1
        return {"total": len(self.operations), "by_command": counts}

    def keys(self) -> Tuple[str, ...]:
        return tuple(operation.key for operation in self.operations)
