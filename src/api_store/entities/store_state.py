"""Collection and single-item state held by an EntityStore.

Both are frozen: the store replaces them wholesale on every change, so a
consumer comparing references sees every update.
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from .operation_status import IDLE, OperationStatus

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of entities as returned by the backend.

    Attributes:
        content: Entities on this page, in server order
        page: Zero-based page number
        size: Requested page size
        total_elements: Number of entities across all pages
        total_pages: Number of pages
    """

    content: tuple[T, ...]
    page: int
    size: int
    total_elements: int
    total_pages: int


@dataclass(frozen=True)
class PaginationState(Generic[T]):
    """The currently loaded page of a collection."""

    items: tuple[T, ...] = ()
    page: int = 0
    page_size: int = 20
    total_items: int = 0
    total_pages: int = 0

    @classmethod
    def from_page(cls, page: Page[T]) -> "PaginationState[T]":
        """Build the state for a freshly loaded page."""
        return cls(
            items=tuple(page.content),
            page=page.page,
            page_size=page.size,
            total_items=page.total_elements,
            total_pages=page.total_pages,
        )

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages - 1

    @property
    def has_previous_page(self) -> bool:
        return self.page > 0

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass(frozen=True)
class ItemState(Generic[T]):
    """The selected entity and the status of its last load."""

    selected: T | None = None
    status: OperationStatus = field(default=IDLE)

    @property
    def loading(self) -> bool:
        return self.status.in_flight

    @property
    def error(self) -> str | None:
        return self.status.error
