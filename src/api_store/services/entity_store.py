"""Generic entity store with optimistic updates.

The store holds one paginated collection and one selected item of a single
entity type, and runs CRUD operations against an EntityService. State is
never mutated in place: every change assigns a new PaginationState /
ItemState, so consumers comparing references see every update.
"""

import copy
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from loguru import logger

from api_store.config import settings
from api_store.dto import PaginationParams
from api_store.entities import (
    IDLE,
    IN_FLIGHT,
    Failed,
    ItemState,
    OperationKind,
    OperationStatus,
    PaginationState,
)
from api_store.exceptions import EntityNotFoundError, describe_error
from api_store.protocols import EntityService, LoggingNotificationSink, NotificationSink, notify_safely

TEntity = TypeVar("TEntity")
TCreate = TypeVar("TCreate")
TUpdate = TypeVar("TUpdate")
TResult = TypeVar("TResult")

Mutator = Callable[[TEntity], TEntity]

_MUTATION_TITLES = {
    OperationKind.CREATE: "Create failed",
    OperationKind.UPDATE: "Update failed",
    OperationKind.DELETE: "Delete failed",
}


def identity_of(entity: Any, field: str = "id") -> str | None:
    """Read an identifier from a dict entity or an attribute-style entity.

    Returns:
        The identifier as a string, or None if the entity has none
    """
    if isinstance(entity, Mapping):
        value = entity.get(field)
    else:
        value = getattr(entity, field, None)
    return None if value is None else str(value)


def matches_identity(entity: Any, item_id: str | int) -> bool:
    """Whether ``entity`` is identified by ``item_id`` (via ``id`` or ``uuid``)."""
    key = str(item_id)
    return identity_of(entity) == key or identity_of(entity, "uuid") == key


@dataclass(eq=False)
class _OptimisticWrite(Generic[TEntity]):
    """One in-flight optimistic change: what the slots held before and what was written."""

    snapshot: tuple[TEntity | None, TEntity | None]
    written: tuple[TEntity | None, TEntity | None]


class EntityStore(Generic[TEntity, TCreate, TUpdate]):
    """Collection + single-item state manager over one EntityService.

    Each operation kind (page load, item load, create, update, delete) has
    its own status. A call arriving while the same kind is in flight is
    rejected immediately with an empty result (None, or False for delete);
    different kinds run independently. Failures are recorded on the
    operation's own status and re-raised.

    Example:
        ```python
        store = EntityStore.from_service(RestEntityRepository(client, "/lesson"))

        await store.load_page(0, 20)
        lesson = await store.create({"title": "Intro"})
        await store.optimistic_update(
            lesson["id"],
            lambda current: {**current, "published": True},
            lambda: client.patch(f"/lesson/{lesson['id']}/publish"),
        )
        ```
    """

    def __init__(
        self,
        service: EntityService[TEntity, TCreate, TUpdate],
        notifier: NotificationSink | None = None,
        page_size: int | None = None,
    ) -> None:
        """Initialize an empty store.

        Args:
            service: Remote CRUD operations for the entity type (required).
            notifier: Receives create/update/delete failures. Defaults to the log.
            page_size: Default page size. Defaults to settings.
        """
        self._service = service
        self._notifier = notifier or LoggingNotificationSink()
        self._default_page_size = page_size or settings.page_size
        self._pagination: PaginationState[TEntity] = PaginationState(page_size=self._default_page_size)
        self._item: ItemState[TEntity] = ItemState()
        self._operations: dict[OperationKind, OperationStatus] = {kind: IDLE for kind in OperationKind}
        self._pending: dict[str, list[_OptimisticWrite[TEntity]]] = {}

    @classmethod
    def from_service(
        cls,
        service: EntityService[TEntity, TCreate, TUpdate],
        notifier: NotificationSink | None = None,
        page_size: int | None = None,
    ) -> "EntityStore[TEntity, TCreate, TUpdate]":
        """Factory method to create an EntityStore with defaults from settings."""
        return cls(service=service, notifier=notifier, page_size=page_size)

    # ==================================================================
    # State
    # ==================================================================

    @property
    def service(self) -> EntityService[TEntity, TCreate, TUpdate]:
        return self._service

    @property
    def pagination(self) -> PaginationState[TEntity]:
        return self._pagination

    @property
    def item_state(self) -> ItemState[TEntity]:
        return self._item

    @property
    def items(self) -> tuple[TEntity, ...]:
        return self._pagination.items

    @property
    def selected_item(self) -> TEntity | None:
        return self._item.selected

    def status(self, kind: OperationKind) -> OperationStatus:
        """Get the current status of an operation kind."""
        return self._operations[kind]

    @property
    def loading(self) -> bool:
        return self._operations[OperationKind.LOAD_PAGE].in_flight

    @property
    def error(self) -> str | None:
        return self._operations[OperationKind.LOAD_PAGE].error

    @property
    def loading_item(self) -> bool:
        return self._item.loading

    @property
    def item_error(self) -> str | None:
        return self._item.error

    @property
    def creating(self) -> bool:
        return self._operations[OperationKind.CREATE].in_flight

    @property
    def create_error(self) -> str | None:
        return self._operations[OperationKind.CREATE].error

    @property
    def updating(self) -> bool:
        return self._operations[OperationKind.UPDATE].in_flight

    @property
    def update_error(self) -> str | None:
        return self._operations[OperationKind.UPDATE].error

    @property
    def deleting(self) -> bool:
        return self._operations[OperationKind.DELETE].in_flight

    @property
    def delete_error(self) -> str | None:
        return self._operations[OperationKind.DELETE].error

    @property
    def optimistic_error(self) -> str | None:
        return self._operations[OperationKind.OPTIMISTIC].error

    @property
    def is_operating(self) -> bool:
        return any(status.in_flight for status in self._operations.values())

    @property
    def is_empty(self) -> bool:
        return self._pagination.is_empty and not self.loading

    @property
    def has_data(self) -> bool:
        return not self._pagination.is_empty

    @property
    def has_selected_item(self) -> bool:
        return self._item.selected is not None

    @property
    def current_page(self) -> int:
        return self._pagination.page

    @property
    def page_size(self) -> int:
        return self._pagination.page_size

    @property
    def total_items(self) -> int:
        return self._pagination.total_items

    @property
    def total_pages(self) -> int:
        return self._pagination.total_pages

    @property
    def has_next_page(self) -> bool:
        return self._pagination.has_next_page

    @property
    def has_previous_page(self) -> bool:
        return self._pagination.has_previous_page

    # ==================================================================
    # Operation status bookkeeping
    # ==================================================================

    def _set_status(self, kind: OperationKind, status: OperationStatus) -> None:
        self._operations[kind] = status
        if kind is OperationKind.LOAD_ITEM:
            self._item = replace(self._item, status=status)

    def _begin(self, kind: OperationKind) -> bool:
        if self._operations[kind].in_flight:
            logger.debug("{} already in flight, rejecting call", kind.value)
            return False
        self._set_status(kind, IN_FLIGHT)
        return True

    def _fail(self, kind: OperationKind, error: Exception) -> str:
        message = describe_error(error)
        self._set_status(kind, Failed(message))
        logger.error("{} failed: {}", kind.value, message)
        if kind in _MUTATION_TITLES:
            notify_safely(self._notifier, "error", _MUTATION_TITLES[kind], message)
        return message

    # ==================================================================
    # CRUD
    # ==================================================================

    async def load_page(self, page: int = 0, size: int | None = None) -> None:
        """Load one page and replace the collection with it.

        A no-op while another page load is in flight. On failure the
        previously loaded page is left untouched.

        Args:
            page: Zero-based page number
            size: Page size. Defaults to the current page size.

        Raises:
            Exception: Whatever the service raised, after recording it
        """
        if not self._begin(OperationKind.LOAD_PAGE):
            return

        params = PaginationParams(page=page, size=size or self._pagination.page_size)
        try:
            result = await self._service.fetch_page(params)
        except Exception as e:
            self._fail(OperationKind.LOAD_PAGE, e)
            raise

        self._pagination = PaginationState.from_page(result)
        self._set_status(OperationKind.LOAD_PAGE, IDLE)

    async def load_item(self, item_id: str) -> TEntity | None:
        """Load a single entity into the selected-item slot.

        The collection is not touched.

        Returns:
            The entity, or None if an item load is already in flight
        """
        if not self._begin(OperationKind.LOAD_ITEM):
            return None

        try:
            item = await self._service.fetch_item(str(item_id))
        except Exception as e:
            self._fail(OperationKind.LOAD_ITEM, e)
            raise

        self._item = ItemState(selected=item, status=IDLE)
        self._operations[OperationKind.LOAD_ITEM] = IDLE
        return item

    async def create(self, payload: TCreate, files: Mapping[str, Any] | None = None) -> TEntity | None:
        """Create an entity, prepend it to the collection and select it.

        Returns:
            The created entity, or None if a create is already in flight
        """
        if not self._begin(OperationKind.CREATE):
            return None

        try:
            created = await self._service.create_item(payload, files=files)
        except Exception as e:
            self._fail(OperationKind.CREATE, e)
            raise

        self._pagination = replace(
            self._pagination,
            items=(created, *self._pagination.items),
            total_items=self._pagination.total_items + 1,
        )
        self._item = replace(self._item, selected=created)
        self._set_status(OperationKind.CREATE, IDLE)
        return created

    async def update(
        self,
        item_id: str,
        payload: TUpdate,
        files: Mapping[str, Any] | None = None,
    ) -> TEntity | None:
        """Update an entity and patch it in the collection and selection.

        Returns:
            The updated entity, or None if an update is already in flight
        """
        if not self._begin(OperationKind.UPDATE):
            return None

        key = str(item_id)
        try:
            updated = await self._service.update_item(key, payload, files=files)
        except Exception as e:
            self._fail(OperationKind.UPDATE, e)
            raise

        self.update_item_in_store(key, updated)
        self._set_status(OperationKind.UPDATE, IDLE)
        return updated

    async def delete(self, item_id: str | int) -> bool:
        """Delete an entity and drop it from the collection and selection.

        Returns:
            True once deleted, False if a delete is already in flight
        """
        if not self._begin(OperationKind.DELETE):
            return False

        key = str(item_id)
        try:
            await self._service.delete_item(key)
        except Exception as e:
            self._fail(OperationKind.DELETE, e)
            raise

        self._pagination = replace(
            self._pagination,
            items=tuple(item for item in self._pagination.items if not matches_identity(item, key)),
            total_items=max(0, self._pagination.total_items - 1),
        )
        if self._item.selected is not None and matches_identity(self._item.selected, key):
            self._item = replace(self._item, selected=None)
        self._set_status(OperationKind.DELETE, IDLE)
        return True

    async def refresh_item(self, item_id: str) -> TEntity:
        """Re-fetch one entity and patch it wherever the store holds it."""
        key = str(item_id)
        try:
            item = await self._service.fetch_item(key)
        except Exception:
            logger.exception("Error refreshing item {}", key)
            raise
        self.update_item_in_store(key, item)
        return item

    # ==================================================================
    # Optimistic updates
    # ==================================================================

    async def optimistic_update(
        self,
        item_id: str | int,
        mutator: Mutator[TEntity],
        remote: Callable[[], Awaitable[TResult]],
    ) -> TResult:
        """Apply a local change now and reconcile it with the server.

        1. Snapshot the entity from the collection and/or selected slot.
        2. Write ``mutator(entity)`` into those slots immediately.
        3. Await ``remote()``. On success its own side effects (normally a
           patch with the server's answer) are the final state.
        4. On failure restore the snapshots, record the error and re-raise.
           A slot that has since been overwritten by something else is left
           alone; concurrent optimistic writes to one entity roll back to the
           last value the server accepted.

        Args:
            item_id: Identifier (id or uuid) of the entity to change
            mutator: Pure function producing the optimistic next entity
            remote: Zero-argument coroutine function performing the remote call

        Returns:
            Whatever ``remote()`` returned

        Raises:
            EntityNotFoundError: The store holds no entity with that identifier
        """
        key = str(item_id)
        snapshot = self._snapshot(key)
        if snapshot is None:
            raise EntityNotFoundError(key)

        self._set_status(OperationKind.OPTIMISTIC, IDLE)
        write: _OptimisticWrite[TEntity] | None = None
        try:
            write = self._write_optimistic(key, snapshot, mutator)
            result = await remote()
        except Exception as e:
            logger.warning("Optimistic update of {} failed, rolling back: {}", key, e)
            if write is not None:
                self._settle(key, write, failed=True)
            self._fail(OperationKind.OPTIMISTIC, e)
            raise
        self._settle(key, write, failed=False)
        return result

    async def batch_optimistic_update(
        self,
        updates: Sequence[tuple[str | int, Mutator[TEntity]]],
        remote: Callable[[], Awaitable[TResult]],
    ) -> TResult:
        """Optimistically change several entities behind one remote call.

        Identifiers the store does not hold are skipped. On failure every
        touched entity is restored.
        """
        writes: list[tuple[str, _OptimisticWrite[TEntity]]] = []
        self._set_status(OperationKind.OPTIMISTIC, IDLE)
        try:
            for item_id, mutator in updates:
                key = str(item_id)
                snapshot = self._snapshot(key)
                if snapshot is None:
                    continue
                writes.append((key, self._write_optimistic(key, snapshot, mutator)))
            result = await remote()
        except Exception as e:
            logger.warning("Batch optimistic update failed, rolling back {} items: {}", len(writes), e)
            for key, write in reversed(writes):
                self._settle(key, write, failed=True)
            self._fail(OperationKind.OPTIMISTIC, e)
            raise
        for key, write in writes:
            self._settle(key, write, failed=False)
        return result

    def _snapshot(self, key: str) -> tuple[TEntity | None, TEntity | None] | None:
        in_collection = self._find_in_collection(key)
        selected = self._item.selected
        in_selection = selected if selected is not None and matches_identity(selected, key) else None
        if in_collection is None and in_selection is None:
            return None
        return copy.deepcopy(in_collection), copy.deepcopy(in_selection)

    @staticmethod
    def _mutated(value: TEntity | None, mutator: Mutator[TEntity]) -> TEntity | None:
        return None if value is None else mutator(copy.deepcopy(value))

    def _write_optimistic(
        self,
        key: str,
        snapshot: tuple[TEntity | None, TEntity | None],
        mutator: Mutator[TEntity],
    ) -> _OptimisticWrite[TEntity]:
        write = _OptimisticWrite(
            snapshot=snapshot,
            written=(self._mutated(snapshot[0], mutator), self._mutated(snapshot[1], mutator)),
        )
        self._apply(key, *write.written)
        self._pending.setdefault(key, []).append(write)
        return write

    def _settle(self, key: str, write: _OptimisticWrite[TEntity], failed: bool) -> None:
        """Retire a pending optimistic write, rolling it back if it failed.

        Writes on the same key stack: each one's snapshot is the previous
        one's unconfirmed value. A failed write in the middle of the stack
        hands its own snapshot to the write above it, so nothing ever rolls
        back to a value the server did not accept. Only the top write
        touches the store, and only slots still holding what it wrote.
        """
        chain = self._pending.get(key, [])
        index = next((n for n, pending in enumerate(chain) if pending is write), None)
        if index is None:
            return
        del chain[index]
        if failed:
            if index < len(chain):
                above = chain[index]
                above.snapshot = tuple(
                    mine if mine is not None else theirs for mine, theirs in zip(write.snapshot, above.snapshot)
                )
            else:
                below = chain[-1].written if chain else (None, None)
                self._restore(write, below)
        if not chain:
            self._pending.pop(key, None)

    def _restore(
        self,
        write: _OptimisticWrite[TEntity],
        below: tuple[TEntity | None, TEntity | None],
    ) -> None:
        written_collection, written_selected = write.written
        restored_collection, restored_selected = (
            current if current is not None else previous for current, previous in zip(below, write.snapshot)
        )
        if written_collection is not None and restored_collection is not None:
            self._pagination = replace(
                self._pagination,
                items=tuple(
                    restored_collection if item is written_collection else item for item in self._pagination.items
                ),
            )
        if written_selected is not None and self._item.selected is written_selected:
            self._item = replace(self._item, selected=restored_selected)

    def _apply(self, key: str, collection_value: TEntity | None, selected_value: TEntity | None) -> None:
        if collection_value is not None:
            self._pagination = replace(
                self._pagination,
                items=tuple(
                    collection_value if matches_identity(item, key) else item for item in self._pagination.items
                ),
            )
        selected = self._item.selected
        if selected_value is not None and selected is not None and matches_identity(selected, key):
            self._item = replace(self._item, selected=selected_value)

    def update_item_in_store(self, item_id: str | int, entity: TEntity) -> None:
        """Replace the entity with ``item_id`` in the collection and selection."""
        self._apply(str(item_id), entity, entity)

    # ==================================================================
    # Lookup and selection
    # ==================================================================

    def _find_in_collection(self, key: str) -> TEntity | None:
        return next((item for item in self._pagination.items if matches_identity(item, key)), None)

    def get_item_by_id(self, item_id: str | int) -> TEntity | None:
        """Find an entity by id or uuid in the collection, then the selection."""
        key = str(item_id)
        found = self._find_in_collection(key)
        if found is not None:
            return found
        selected = self._item.selected
        if selected is not None and matches_identity(selected, key):
            return selected
        return None

    def select_item(self, item: TEntity | None) -> None:
        """Select an entity (or nothing) and clear the item error."""
        self._item = ItemState(selected=item, status=IDLE)
        self._operations[OperationKind.LOAD_ITEM] = IDLE

    def select_item_by_id(self, item_id: str | int) -> TEntity | None:
        """Select the collection entity with ``item_id``, if present."""
        item = self._find_in_collection(str(item_id))
        if item is not None:
            self.select_item(item)
        return item

    def clear_selection(self) -> None:
        self.select_item(None)

    # ==================================================================
    # Pagination navigation
    # ==================================================================

    async def next_page(self) -> None:
        if self.has_next_page:
            await self.load_page(self._pagination.page + 1, self._pagination.page_size)

    async def previous_page(self) -> None:
        if self.has_previous_page:
            await self.load_page(self._pagination.page - 1, self._pagination.page_size)

    async def goto_page(self, page: int) -> None:
        """Load ``page`` if it exists; out-of-range pages are ignored."""
        if 0 <= page < self._pagination.total_pages:
            await self.load_page(page, self._pagination.page_size)

    async def change_page_size(self, size: int) -> None:
        await self.load_page(0, size)

    async def refresh(self) -> None:
        await self.load_page(self._pagination.page, self._pagination.page_size)

    # ==================================================================
    # Resets
    # ==================================================================

    def clear_collection(self) -> None:
        self._pagination = PaginationState(page_size=self._default_page_size)
        self._operations[OperationKind.LOAD_PAGE] = IDLE

    def clear_item_state(self) -> None:
        self._item = ItemState()
        self._operations[OperationKind.LOAD_ITEM] = IDLE

    def clear_operation_states(self) -> None:
        for kind in (OperationKind.CREATE, OperationKind.UPDATE, OperationKind.DELETE, OperationKind.OPTIMISTIC):
            self._operations[kind] = IDLE

    def clear_errors(self) -> None:
        """Drop every recorded error; in-flight statuses are kept."""
        for kind, status in self._operations.items():
            if isinstance(status, Failed):
                self._set_status(kind, IDLE)

    def clear(self) -> None:
        """Reset collection, selection and every operation status."""
        self.clear_collection()
        self.clear_item_state()
        self.clear_operation_states()
