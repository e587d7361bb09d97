"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by the transport layer
and the entity store. They are NOT used for API contracts - use DTOs
from the dto package for that.

Entities should have:
- No JSON serialization logic
- No Pydantic validation
- Only domain logic
"""

from .cache_entry import CacheEntry
from .operation_status import IDLE, IN_FLIGHT, Failed, Idle, InFlight, OperationKind, OperationStatus
from .request_outcome import RequestOutcome, RetryableFailure, Success, TerminalFailure
from .store_state import ItemState, Page, PaginationState

__all__ = [
    "CacheEntry",
    "RequestOutcome",
    "Success",
    "RetryableFailure",
    "TerminalFailure",
    "OperationKind",
    "OperationStatus",
    "Idle",
    "InFlight",
    "Failed",
    "IDLE",
    "IN_FLIGHT",
    "Page",
    "PaginationState",
    "ItemState",
]
