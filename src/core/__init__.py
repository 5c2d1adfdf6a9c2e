"""
Core infrastructure layer for the tier cache service.

Purpose
-------
Provide a single import surface for the core infrastructure subsystems:

- Configuration (Config)
- Redis subsystem (RedisService, KeyValueBatch)
- Player cache (PlayerCacheStore, CacheMigrator, record codecs)
- Logging (structured logging, logger factory)
- Infrastructure exceptions (TierCacheException hierarchy)

Design Decisions
----------------
- This module is intentionally thin: no logic, no configuration, no I/O.
- Public API is explicit via __all__.
"""

from __future__ import annotations

from src.core.cache import (
    CacheMigrator,
    CurrentRecordCodec,
    LegacyRecordCodec,
    MigrationReport,
    MigrationState,
    PlayerCacheStore,
    RecordCodec,
    SchemaGeneration,
    codec_for,
)
from src.core.config import Config
from src.core.exceptions import (
    BackendConnectivityError,
    BackendError,
    BackendOperationError,
    DecodeError,
    ErrorSeverity,
    MalformedKeyWarning,
    MigrationError,
    TierCacheException,
)
from src.core.logging import get_logger
from src.core.redis import KeyValueBatch, RedisService

__all__ = [
    # Config
    "Config",
    # Redis
    "RedisService",
    "KeyValueBatch",
    # Cache
    "PlayerCacheStore",
    "CacheMigrator",
    "MigrationReport",
    "MigrationState",
    "RecordCodec",
    "LegacyRecordCodec",
    "CurrentRecordCodec",
    "SchemaGeneration",
    "codec_for",
    # Logging
    "get_logger",
    # Exceptions
    "TierCacheException",
    "BackendError",
    "BackendConnectivityError",
    "BackendOperationError",
    "DecodeError",
    "MigrationError",
    "MalformedKeyWarning",
    "ErrorSeverity",
]
