"""
Player cache subsystem.

Modules
-------
- **codec.py**: key naming and value encoding per schema generation
- **player.py**: `PlayerCacheStore`, the tri-state profile cache
- **migration.py**: one-shot v1 -> v2 `CacheMigrator`
"""

from src.core.cache.codec import (
    CurrentRecordCodec,
    LegacyRecordCodec,
    RecordCodec,
    SchemaGeneration,
    codec_for,
)
from src.core.cache.migration import CacheMigrator, MigrationReport, MigrationState
from src.core.cache.player import UNKNOWN_SET_KEY, PlayerCacheStore

__all__ = [
    "RecordCodec",
    "LegacyRecordCodec",
    "CurrentRecordCodec",
    "SchemaGeneration",
    "codec_for",
    "PlayerCacheStore",
    "UNKNOWN_SET_KEY",
    "CacheMigrator",
    "MigrationReport",
    "MigrationState",
]
