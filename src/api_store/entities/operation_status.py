"""Lifecycle status of one store operation kind.

Each kind is exactly one of ``Idle``, ``InFlight`` or ``Failed``. An
in-flight operation carries no stale error, and a failed one always has
a message.
"""

from dataclasses import dataclass
from enum import Enum


class OperationKind(str, Enum):
    """Store operations that own an independent status."""

    LOAD_PAGE = "load_page"
    LOAD_ITEM = "load_item"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    OPTIMISTIC = "optimistic"


@dataclass(frozen=True)
class Idle:
    """No operation of this kind is running and the last one did not fail."""

    in_flight = False
    error = None


@dataclass(frozen=True)
class InFlight:
    """An operation of this kind is awaiting the network."""

    in_flight = True
    error = None


@dataclass(frozen=True)
class Failed:
    """The last operation of this kind failed.

    Attributes:
        error: User-facing failure message
    """

    error: str
    in_flight = False


OperationStatus = Idle | InFlight | Failed

IDLE = Idle()
IN_FLIGHT = InFlight()
