"""
Domain validators for player identifiers.

Callers check identifiers here before touching the cache. The cache itself
treats identifiers as opaque keys and validates nothing.

Usage
-----
    from src.modules.shared.validators import validate_profile_uuid

    uuid = validate_profile_uuid("069a79f4-44e9-4726-a5be-fca90e38aaf5")
    # Raises ValidationError for anything but a version-4 RFC 4122 UUID
"""

from __future__ import annotations

from typing import Any, Optional
from uuid import RFC_4122, UUID

from .exceptions import ValidationError


def parse_profile_uuid(value: Any) -> Optional[UUID]:
    """Return `value` as a UUID if it is a version-4 RFC 4122 identifier, else None."""
    if isinstance(value, UUID):
        uuid = value
    elif isinstance(value, str):
        try:
            uuid = UUID(value.strip())
        except ValueError:
            return None
    else:
        return None

    if uuid.variant != RFC_4122 or uuid.version != 4:
        return None
    return uuid


def is_profile_uuid(value: Any) -> bool:
    """
    Check whether `value` is a valid player profile identifier.

    Accepts dashed or undashed strings and `UUID` instances.

    Example:
        >>> is_profile_uuid("069a79f444e94726a5befca90e38aaf5")
        True
        >>> is_profile_uuid("not-a-uuid")
        False
    """
    return parse_profile_uuid(value) is not None


def validate_profile_uuid(value: Any) -> UUID:
    """
    Validate and normalise a player identifier.

    Raises:
        ValidationError: If `value` is not a version-4 RFC 4122 UUID
    """
    uuid = parse_profile_uuid(value)
    if uuid is None:
        raise ValidationError("uuid", f"expected a version-4 UUID, got {value!r}")
    return uuid
