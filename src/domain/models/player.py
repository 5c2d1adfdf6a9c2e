"""
Player profile domain model.

Purpose
-------
Immutable value objects for a tier-list player profile as returned by the
upstream profile API, plus the tri-state cache record built around it.

Profiles are never mutated in place. A re-fetch replaces the whole object.

Upstream JSON Shape
-------------------
>>> {
...     "uuid": "2b1e...",                 # dashed or undashed
...     "name": "Steve",
...     "rankings": {
...         "sword": {"tier": 2, "pos": 0, "peak_tier": 1, "peak_pos": 1,
...                   "attained": 1700000000, "retired": false}
...     },
...     "region": "EU",
...     "points": 120,
...     "overall": 14,
...     "badges": [{"title": "Veteran", "desc": "Tested in 2023"}]
... }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

# Game modes tracked by the tier list
MODES: Tuple[str, ...] = ("axe", "neth_pot", "pot", "smp", "sword", "uhc", "vanilla")


# ============================================================================
# VALUE OBJECTS
# ============================================================================


@dataclass(frozen=True)
class Badge:
    title: str
    desc: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Badge":
        return cls(title=str(data["title"]), desc=str(data["desc"]))

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "desc": self.desc}


@dataclass(frozen=True)
class Ranking:
    """
    A player's standing in one game mode.

    Attributes
    ----------
    tier : int
        Tier number (1 is best).
    pos : int
        Position within the tier; 0 is the "high" sub-tier.
    peak_tier, peak_pos : Optional[int]
        Best tier/position ever held, when known.
    attained : int
        Epoch seconds when the ranking was attained.
    retired : bool
        Whether the player retired from this mode.
    """

    tier: int
    pos: int
    peak_tier: Optional[int] = None
    peak_pos: Optional[int] = None
    attained: int = 0
    retired: bool = False

    @property
    def is_high(self) -> bool:
        return self.pos == 0

    @property
    def label(self) -> str:
        """Short tier label, e.g. ``HT3`` or ``LT2``."""
        return _format_tier(self.tier, self.pos)

    @property
    def peak_label(self) -> Optional[str]:
        if self.peak_tier is None or self.peak_pos is None:
            return None
        return _format_tier(self.peak_tier, self.peak_pos)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Ranking":
        return cls(
            tier=int(data["tier"]),
            pos=int(data["pos"]),
            peak_tier=_optional_int(data.get("peak_tier")),
            peak_pos=_optional_int(data.get("peak_pos")),
            attained=int(data.get("attained", 0)),
            retired=bool(data.get("retired", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier,
            "pos": self.pos,
            "peak_tier": self.peak_tier,
            "peak_pos": self.peak_pos,
            "attained": self.attained,
            "retired": self.retired,
        }


@dataclass(frozen=True)
class PlayerInfo:
    """
    Immutable snapshot of a player's profile.

    Attributes
    ----------
    uuid : UUID
        Player identifier; also the cache key.
    name : str
        Display name at fetch time.
    rankings : Mapping[str, Ranking]
        Mode name to ranking. Read-only.
    region : str
    points : int
    overall : int
        Overall leaderboard position.
    badges : Tuple[Badge, ...]
    """

    uuid: UUID
    name: str
    rankings: Mapping[str, Ranking] = field(default_factory=dict)
    region: str = ""
    points: int = 0
    overall: int = 0
    badges: Tuple[Badge, ...] = ()

    def __post_init__(self) -> None:
        # Freeze the mutable containers handed in by callers
        object.__setattr__(self, "rankings", MappingProxyType(dict(self.rankings)))
        object.__setattr__(self, "badges", tuple(self.badges))

    def __hash__(self) -> int:
        return hash((self.uuid, self.name, self.points, self.overall))

    @property
    def has_rankings(self) -> bool:
        return bool(self.rankings)

    def ranking_for(self, mode: str) -> Optional[Ranking]:
        return self.rankings.get(mode)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlayerInfo":
        """
        Build a profile from upstream/cached JSON.

        Raises
        ------
        KeyError, TypeError, ValueError
            When required fields are missing or have the wrong shape.
        """
        rankings_raw = data.get("rankings") or {}
        if not isinstance(rankings_raw, Mapping):
            raise TypeError("rankings must be an object")
        badges_raw = data.get("badges") or []
        if not isinstance(badges_raw, list):
            raise TypeError("badges must be a list")

        return cls(
            uuid=UUID(str(data["uuid"])),
            name=str(data["name"]),
            rankings={str(mode): Ranking.from_dict(r) for mode, r in rankings_raw.items()},
            region=str(data.get("region") or ""),
            points=int(data.get("points", 0)),
            overall=int(data.get("overall", 0)),
            badges=tuple(Badge.from_dict(b) for b in badges_raw),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": str(self.uuid),
            "name": self.name,
            "rankings": {mode: r.to_dict() for mode, r in self.rankings.items()},
            "region": self.region,
            "points": self.points,
            "overall": self.overall,
            "badges": [b.to_dict() for b in self.badges],
        }


# ============================================================================
# CACHE RECORDS
# ============================================================================


class RecordStatus(Enum):
    PRESENT = "present"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PlayerRecord:
    """
    Tri-state cache record.

    ``PlayerRecord.present(info)`` means the profile was fetched upstream;
    ``PlayerRecord.UNKNOWN`` means upstream confirmed the player does not
    exist. A player that was never looked up has no record at all, which the
    cache API expresses as ``None``.
    """

    status: RecordStatus
    info: Optional[PlayerInfo] = None

    UNKNOWN: ClassVar["PlayerRecord"]

    def __post_init__(self) -> None:
        if (self.status is RecordStatus.PRESENT) != (self.info is not None):
            raise ValueError("a present record needs a profile; an unknown record must not have one")

    @classmethod
    def present(cls, info: PlayerInfo) -> "PlayerRecord":
        return cls(RecordStatus.PRESENT, info)

    @property
    def is_present(self) -> bool:
        return self.status is RecordStatus.PRESENT

    @property
    def is_unknown(self) -> bool:
        return self.status is RecordStatus.UNKNOWN


PlayerRecord.UNKNOWN = PlayerRecord(RecordStatus.UNKNOWN)


@dataclass(frozen=True)
class AllPlayers:
    """Result of a bulk enumeration of the cache."""

    players: List[PlayerInfo] = field(default_factory=list)
    unknown: List[UUID] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "players": [p.to_dict() for p in self.players],
            "unknown": [str(u) for u in self.unknown],
        }


# ============================================================================
# HELPERS
# ============================================================================


def _format_tier(tier: int, pos: int) -> str:
    return f"{'H' if pos == 0 else 'L'}T{tier}"


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)
