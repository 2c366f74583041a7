"""Cached entry model and expiry helpers."""

import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .serializers import encode_value

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


@dataclass(frozen=True)
class NumericValue:
    """A payload that supports increment and decrement."""

    number: int | float


@dataclass(frozen=True)
class OpaqueValue:
    """Any other payload, held in its serialized form."""

    data: bytes


Payload = NumericValue | OpaqueValue


def is_numeric(value: Any) -> bool:
    """True for ints and floats; bools are not counted as numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def tag_value(value: Any) -> Payload:
    """Tag a value as numeric or opaque."""
    if is_numeric(value):
        return NumericValue(value)
    return OpaqueValue(encode_value(value))


def format_timestamp(timestamp: float) -> str:
    """Render an epoch timestamp as sortable UTC text."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class Entry:
    """One cached value plus its metadata."""

    value: Any
    numeric: bool
    created_at: float = field(default_factory=time.time)
    expires_at: float | None = None

    @classmethod
    def build(cls, value: Any, ttl: int = 0, now: float | None = None) -> "Entry":
        """Create an entry; a ttl of 0 means the entry never expires."""
        created_at = time.time() if now is None else now
        expires_at = created_at + ttl if ttl > 0 else None
        return cls(
            value=value,
            numeric=is_numeric(value),
            created_at=created_at,
            expires_at=expires_at,
        )

    def is_live(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return True
        return self.expires_at > (time.time() if now is None else now)

    def payload(self) -> Payload:
        return tag_value(self.value)

    def encoded(self) -> bytes:
        """The serialized form written to external stores."""
        payload = self.payload()
        if isinstance(payload, NumericValue):
            return encode_value(payload.number)
        return payload.data

    def remaining_ttl(self, now: float | None = None) -> float | None:
        """Seconds until expiry, or None for entries without one."""
        if self.expires_at is None:
            return None
        return max(self.expires_at - (time.time() if now is None else now), 0.0)

    def remaining_ttl_seconds(self, now: float | None = None) -> int | None:
        """Remaining TTL rounded up to whole seconds, at least 1."""
        remaining = self.remaining_ttl(now)
        if remaining is None:
            return None
        return max(math.ceil(remaining), 1)

    def incremented(self, delta: int | float) -> "Entry":
        """Return a copy holding ``value + delta``; creation time is kept."""
        return Entry(
            value=self.value + delta,
            numeric=True,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )
