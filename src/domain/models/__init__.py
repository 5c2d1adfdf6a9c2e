"""
Domain models package.

Immutable value objects describing tier-list players and the tri-state
records the cache stores for them. Models know how to convert to and from
their JSON shape; they know nothing about Redis keys or expirations.
"""

from .player import (
    MODES,
    AllPlayers,
    Badge,
    PlayerInfo,
    PlayerRecord,
    Ranking,
    RecordStatus,
)

__all__ = [
    "MODES",
    "AllPlayers",
    "Badge",
    "PlayerInfo",
    "PlayerRecord",
    "Ranking",
    "RecordStatus",
]
