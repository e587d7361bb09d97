"""Cache entry domain entity."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """Domain entity for one cached GET result.

    Attributes:
        value: The decoded payload
        stored_at: Clock reading (seconds) when the entry was written
        ttl: Time-to-live in seconds
    """

    value: Any
    stored_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        """Whether the entry is still fresh at clock reading ``now``."""
        return now - self.stored_at < self.ttl
