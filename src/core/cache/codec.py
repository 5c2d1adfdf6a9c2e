"""
Record codecs for the player cache.

Purpose
-------
Translate between `PlayerRecord` values and the strings stored in the
key-value backend, for each cache schema generation.

Two generations exist and differ in how "unknown" is represented:

- **V1** (`tiers-v1-profile:{uuid}`): present and unknown records share one
  namespace. Each value is a JSON object internally tagged with ``"type"``:
  ``{"type": "present", "uuid": ..., "name": ..., ...}`` or
  ``{"type": "unknown"}``. A missing value decodes to `PlayerRecord.UNKNOWN`.
- **V2** (`tiers-v2-profile:{uuid}`): only present records are stored under
  profile keys, as plain `PlayerInfo` JSON. Unknowns live out-of-band in a
  sorted set, so a missing value decodes to ``None`` and the caller must
  consult that set.

Both strategies share the `RecordCodec` interface so the migrator can read
one generation and write the other.

Error Handling
--------------
Malformed JSON, a non-object payload, an unrecognised tag, or missing/invalid
profile fields raise `DecodeError`. Corrupted data is never silently
interpreted as unknown.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union
from uuid import UUID

from src.core.exceptions import DecodeError
from src.domain.models import PlayerInfo, PlayerRecord

TYPE_TAG = "type"
PRESENT_TAG = "present"
UNKNOWN_TAG = "unknown"


def printable_key(key: str) -> str:
    """Render a key for logs, showing undecodable bytes as ``\\xNN`` escapes."""
    return key.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


class SchemaGeneration(Enum):
    V1 = "v1"
    V2 = "v2"


class RecordCodec(ABC):
    """
    Key naming and value encoding for one schema generation.

    Attributes
    ----------
    generation : SchemaGeneration
    key_prefix : str
        Namespace prefix, without the trailing ``:``.
    tracks_unknown_out_of_band : bool
        True when unknown records are kept outside the profile namespace, in
        which case `decode(None)` returns ``None`` rather than UNKNOWN.
    """

    generation: SchemaGeneration
    key_prefix: str
    tracks_unknown_out_of_band: bool

    def key_for(self, uuid: UUID) -> str:
        return f"{self.key_prefix}:{uuid}"

    def parse_key(self, key: str) -> UUID:
        """
        Extract the player identifier from a profile key.

        Raises
        ------
        ValueError
            If the key is outside this namespace or the suffix is not a UUID.
        """
        prefix = f"{self.key_prefix}:"
        if not key.startswith(prefix):
            raise ValueError(f"key {key!r} is not in namespace {self.key_prefix!r}")
        return UUID(key[len(prefix):])

    @property
    def scan_pattern(self) -> str:
        return f"{self.key_prefix}:*"

    @abstractmethod
    def encode(self, record: PlayerRecord) -> str:
        ...

    @abstractmethod
    def decode(self, raw: Optional[Union[str, bytes]], key: Optional[str] = None) -> Optional[PlayerRecord]:
        ...

    # ------------------------------------------------------------------ helpers

    @staticmethod
    def _load_object(raw: Union[str, bytes], key: Optional[str]) -> Dict[str, Any]:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"invalid JSON: {exc.msg}", raw, key) from exc
        except UnicodeDecodeError as exc:
            raise DecodeError(f"invalid UTF-8: {exc.reason}", raw, key) from exc
        if not isinstance(payload, dict):
            raise DecodeError(f"expected a JSON object, got {type(payload).__name__}", raw, key)
        return payload

    @staticmethod
    def _profile_from(fields: Mapping[str, Any], raw: Any, key: Optional[str]) -> PlayerInfo:
        try:
            return PlayerInfo.from_dict(fields)
        except KeyError as exc:
            raise DecodeError(f"missing profile field {exc.args[0]!r}", raw, key) from exc
        except (TypeError, ValueError, AttributeError) as exc:
            raise DecodeError(f"invalid profile field: {exc}", raw, key) from exc

    def _decode_tagged(self, payload: Dict[str, Any], raw: Any, key: Optional[str]) -> PlayerRecord:
        tag = payload.get(TYPE_TAG)
        if tag == UNKNOWN_TAG:
            return PlayerRecord.UNKNOWN
        if tag == PRESENT_TAG:
            fields = {k: v for k, v in payload.items() if k != TYPE_TAG}
            return PlayerRecord.present(self._profile_from(fields, raw, key))
        raise DecodeError(f"unrecognised record tag {tag!r}", raw, key)


class LegacyRecordCodec(RecordCodec):
    """V1: internally tagged records, absence means unknown."""

    generation = SchemaGeneration.V1
    key_prefix = "tiers-v1-profile"
    tracks_unknown_out_of_band = False

    def encode(self, record: PlayerRecord) -> str:
        if record.is_unknown or record.info is None:
            return json.dumps({TYPE_TAG: UNKNOWN_TAG})
        return json.dumps({TYPE_TAG: PRESENT_TAG, **record.info.to_dict()})

    def decode(self, raw: Optional[Union[str, bytes]], key: Optional[str] = None) -> PlayerRecord:
        if raw is None:
            return PlayerRecord.UNKNOWN
        return self._decode_tagged(self._load_object(raw, key), raw, key)


class CurrentRecordCodec(RecordCodec):
    """
    V2: profile keys hold plain `PlayerInfo` JSON.

    Unknown records cannot be encoded here; they belong in the unknown set.
    Tagged V1-style payloads are still accepted on decode.
    """

    generation = SchemaGeneration.V2
    key_prefix = "tiers-v2-profile"
    tracks_unknown_out_of_band = True

    def encode(self, record: PlayerRecord) -> str:
        if not record.is_present or record.info is None:
            raise ValueError("unknown records are tracked in the unknown set, not under profile keys")
        return json.dumps(record.info.to_dict())

    def decode(self, raw: Optional[Union[str, bytes]], key: Optional[str] = None) -> Optional[PlayerRecord]:
        if raw is None:
            return None
        payload = self._load_object(raw, key)
        if TYPE_TAG in payload:
            return self._decode_tagged(payload, raw, key)
        return PlayerRecord.present(self._profile_from(payload, raw, key))


_CODECS: Dict[SchemaGeneration, RecordCodec] = {
    SchemaGeneration.V1: LegacyRecordCodec(),
    SchemaGeneration.V2: CurrentRecordCodec(),
}


def codec_for(generation: SchemaGeneration) -> RecordCodec:
    """Return the codec for `generation`."""
    return _CODECS[generation]
