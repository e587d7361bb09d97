"""Clock and sleep protocols.

The TTL cache reads a clock and the request executor sleeps between
attempts. Both are injectable so tests can control time.
"""

from collections.abc import Awaitable
from typing import Protocol


class Clock(Protocol):
    """Monotonic time source in seconds."""

    def __call__(self) -> float: ...


class Sleeper(Protocol):
    """Awaitable delay, compatible with ``asyncio.sleep``."""

    def __call__(self, delay: float, /) -> Awaitable[None]: ...
