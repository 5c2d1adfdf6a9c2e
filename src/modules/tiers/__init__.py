"""Tier-list player lookups backed by the player cache."""

from .service import ProfileFetcher, TierLookupService

__all__ = ["ProfileFetcher", "TierLookupService"]
