"""
Tier Lookup Service
===================

Purpose
-------
Serve player profiles through the cache: check the cache, fetch upstream on
a miss, and record the result so the next request is answered locally.

Protocol
--------
1. Validate the identifier (version-4 UUID).
2. `PlayerCacheStore.lookup`:
   - Present -> return the cached profile
   - Unknown -> return None without calling upstream
   - absent  -> continue
3. Call the injected `ProfileFetcher`.
4. Normalise: a profile with no rankings counts as "not found".
5. `PlayerCacheStore.set_player_info` with the profile or None.

Policy
------
Upstream returns a profile with empty rankings for players that exist but
were never tested. Those are cached as Unknown, the same as a 404, so every
cached profile has at least one ranking.

Errors
------
Backend and decode errors from the store propagate unchanged. Errors raised
by the fetcher propagate unchanged and nothing is cached for that request.
"""

from __future__ import annotations

from typing import Dict, Optional, Protocol, Union
from uuid import UUID

from src.core.cache.player import PlayerCacheStore
from src.core.logging.logger import LogContext, get_logger
from src.domain.models import AllPlayers, PlayerInfo
from src.modules.shared.base_service import BaseService
from src.modules.shared.validators import validate_profile_uuid


class ProfileFetcher(Protocol):
    """Upstream profile source. Returns None when upstream reports "not found"."""

    async def __call__(self, uuid: UUID) -> Optional[PlayerInfo]:
        ...


class TierLookupService(BaseService):
    """
    Cache-backed player profile lookups.

    Public Methods
    --------------
    - get_profile() -> Cached or freshly fetched profile, or None
    - remember_profile() -> Cache a profile obtained elsewhere
    - get_all() -> Every cached profile and unknown player
    - get_mode_tiers() -> Name to tier label for one game mode
    """

    def __init__(self, store: PlayerCacheStore, fetcher: ProfileFetcher) -> None:
        super().__init__(get_logger(__name__))
        self._store = store
        self._fetch = fetcher

    @staticmethod
    def normalise(profile: Optional[PlayerInfo]) -> Optional[PlayerInfo]:
        """Treat a profile without rankings as not found."""
        if profile is None or not profile.has_rankings:
            return None
        return profile

    async def get_profile(self, uuid: Union[UUID, str]) -> Optional[PlayerInfo]:
        """
        Return the player's profile, or None if the player is unknown.

        Raises:
            ValidationError: If `uuid` is not a version-4 UUID
            BackendOperationError: On cache failures
            DecodeError: If the cached value is corrupted
        """
        player_uuid = validate_profile_uuid(uuid)

        async with LogContext(component="tiers", operation="get_profile", player_uuid=str(player_uuid)):
            record = await self._store.lookup(player_uuid)
            if record is not None:
                if record.is_present:
                    self.log.debug("Profile served from cache")
                    return record.info
                self.log.debug("Player cached as unknown, skipping upstream")
                return None

            try:
                fetched = await self._fetch(player_uuid)
            except Exception as exc:
                self.log_error("get_profile", exc, player_uuid=str(player_uuid))
                raise
            profile = self.normalise(fetched)
            await self._store.set_player_info(player_uuid, profile)
            self.log_operation(
                "get_profile",
                player_uuid=str(player_uuid),
                cache="miss",
                found=profile is not None,
            )
            return profile

    async def remember_profile(self, profile: PlayerInfo) -> Optional[PlayerInfo]:
        """
        Cache a profile fetched by some other route (e.g. search by name).

        Returns the profile as cached, or None if it was recorded as unknown.
        """
        normalised = self.normalise(profile)
        await self._store.set_player_info(profile.uuid, normalised)
        self.log_operation(
            "remember_profile",
            player_uuid=str(profile.uuid),
            found=normalised is not None,
        )
        return normalised

    async def get_all(self) -> AllPlayers:
        return await self._store.get_all_players()

    async def get_mode_tiers(self, mode: str) -> Dict[str, str]:
        return await self._store.get_mode_tiers(mode.lower())

