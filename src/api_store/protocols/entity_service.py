"""Entity service protocol.

Defines the remote operations an EntityStore needs for one entity type.
RestEntityRepository is the default implementation; tests and feature
modules can plug in any object with the same methods.
"""

from collections.abc import Mapping
from typing import Any, Protocol, TypeVar, runtime_checkable

from api_store.dto import PaginationParams
from api_store.entities import Page

TEntity = TypeVar("TEntity", covariant=True)
TCreate = TypeVar("TCreate", contravariant=True)
TUpdate = TypeVar("TUpdate", contravariant=True)


@runtime_checkable
class EntityService(Protocol[TEntity, TCreate, TUpdate]):
    """Protocol for the remote CRUD operations of one entity type."""

    async def fetch_page(self, params: PaginationParams) -> Page[TEntity]:
        """Fetch one page of entities.

        Args:
            params: Page number, size and optional sort

        Returns:
            The requested page
        """
        ...

    async def fetch_item(self, item_id: str) -> TEntity:
        """Fetch a single entity by identifier."""
        ...

    async def create_item(self, payload: TCreate, files: Mapping[str, Any] | None = None) -> TEntity:
        """Create an entity and return the server's representation of it."""
        ...

    async def update_item(
        self,
        item_id: str,
        payload: TUpdate,
        files: Mapping[str, Any] | None = None,
    ) -> TEntity:
        """Update an entity and return the server's representation of it."""
        ...

    async def delete_item(self, item_id: str) -> None:
        """Delete an entity."""
        ...
