"""Outcome of a single request attempt.

The retry loop switches on these tags instead of inspecting exception
subtypes. An outcome only lives inside one ``RequestExecutor.execute`` call.
"""

from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class Success:
    """The attempt produced a 2xx/3xx response."""

    response: httpx.Response


@dataclass(frozen=True)
class RetryableFailure:
    """The attempt failed in a way another attempt may fix (5xx, network)."""

    cause: Exception


@dataclass(frozen=True)
class TerminalFailure:
    """The attempt failed in a way no retry can fix (4xx, timeout)."""

    cause: Exception


RequestOutcome = Success | RetryableFailure | TerminalFailure
