"""
Shared domain foundations for service modules.

- Domain exceptions (caller-facing errors)
- Identifier validators
"""

from __future__ import annotations

from .base_service import BaseService
from .exceptions import TierDomainException, ValidationError, should_alert
from .validators import is_profile_uuid, parse_profile_uuid, validate_profile_uuid

__all__ = [
    "BaseService",
    "TierDomainException",
    "ValidationError",
    "should_alert",
    "is_profile_uuid",
    "parse_profile_uuid",
    "validate_profile_uuid",
]
