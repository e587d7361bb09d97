"""
Tests for the generic entity store.
"""

import asyncio

import pytest

from api_store.dto import PaginationParams
from api_store.entities import Failed, OperationKind, Page
from api_store.exceptions import ApiError, EntityNotFoundError, NetworkError
from api_store.protocols import EntityService
from api_store.services import EntityStore, identity_of, matches_identity


class InMemoryService:
    """EntityService over a list of dicts; every call yields to the event loop once."""

    def __init__(self, count: int = 25):
        self.items = [{"id": str(n), "uuid": f"uuid-{n}", "name": f"Item {n}", "f": 1} for n in range(count)]
        self.calls: list[str] = []
        self.fail_with: Exception | None = None

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with

    async def fetch_page(self, params: PaginationParams) -> Page[dict]:
        await self._enter("fetch_page")
        start = params.page * params.size
        return Page(
            content=tuple(self.items[start : start + params.size]),
            page=params.page,
            size=params.size,
            total_elements=len(self.items),
            total_pages=-(-len(self.items) // params.size),
        )

    async def fetch_item(self, item_id: str) -> dict:
        await self._enter("fetch_item")
        return dict(next(item for item in self.items if item["id"] == item_id))

    async def create_item(self, payload, files=None) -> dict:
        await self._enter("create_item")
        item = {"id": str(len(self.items) + 100), **payload}
        self.items.insert(0, item)
        return item

    async def update_item(self, item_id, payload, files=None) -> dict:
        await self._enter("update_item")
        for index, item in enumerate(self.items):
            if item["id"] == item_id:
                self.items[index] = {**item, **payload}
                return self.items[index]
        raise ApiError("Not found", 404)

    async def delete_item(self, item_id) -> None:
        await self._enter("delete_item")
        self.items = [item for item in self.items if item["id"] != item_id]


@pytest.fixture
def service():
    return InMemoryService()


@pytest.fixture
def store(service, notifier):
    return EntityStore.from_service(service, notifier=notifier, page_size=10)


@pytest.fixture
async def loaded_store(store):
    await store.load_page(0)
    return store


def test_in_memory_service_satisfies_protocol(service):
    assert isinstance(service, EntityService)


def test_identity_helpers():
    class Lesson:
        id = 7
        uuid = "abc"

    assert identity_of({"id": 3}) == "3"
    assert identity_of(Lesson()) == "7"
    assert identity_of({"name": "x"}) is None
    assert matches_identity(Lesson(), "abc")
    assert matches_identity({"uuid": "abc"}, "abc")
    assert not matches_identity({"id": "1"}, "2")


def test_initial_state(store):
    assert store.items == ()
    assert store.page_size == 10
    assert store.is_empty
    assert not store.has_data
    assert not store.is_operating
    assert store.status(OperationKind.CREATE).error is None


async def test_load_page_replaces_collection(store):
    before = store.pagination

    await store.load_page(0)

    assert store.pagination is not before
    assert len(store.items) == 10
    assert store.total_items == 25
    assert store.total_pages == 3
    assert store.has_next_page
    assert not store.has_previous_page
    assert not store.loading
    assert store.error is None


async def test_load_page_failure_keeps_previous_data(loaded_store, service):
    previous = loaded_store.items
    service.fail_with = ApiError("Server exploded", 500)

    with pytest.raises(ApiError):
        await loaded_store.load_page(1)

    assert loaded_store.items == previous
    assert loaded_store.error == "Server exploded"
    assert not loaded_store.loading


async def test_network_failure_records_connection_message(store, service):
    service.fail_with = NetworkError("Network error: refused")

    with pytest.raises(NetworkError):
        await store.load_page(0)

    assert "Unable to connect" in store.error


async def test_concurrent_page_loads_are_single_flight(store, service):
    await asyncio.gather(store.load_page(0), store.load_page(1))

    assert service.calls == ["fetch_page"]
    assert store.current_page == 0


async def test_different_operation_kinds_run_concurrently(loaded_store, service):
    service.calls.clear()

    created, loaded = await asyncio.gather(loaded_store.create({"name": "New"}), loaded_store.load_item("3"))

    assert sorted(service.calls) == ["create_item", "fetch_item"]
    assert created["name"] == "New"
    assert loaded["id"] == "3"


async def test_create_prepends_and_selects(loaded_store):
    created = await loaded_store.create({"name": "Fresh"})

    assert loaded_store.items[0] == created
    assert len(loaded_store.items) == 11
    assert loaded_store.total_items == 26
    assert loaded_store.selected_item == created
    assert not loaded_store.creating


async def test_concurrent_creates_are_single_flight(loaded_store, service):
    results = await asyncio.gather(loaded_store.create({"name": "A"}), loaded_store.create({"name": "B"}))

    assert results[1] is None
    assert service.calls.count("create_item") == 1
    assert loaded_store.total_items == 26


async def test_create_failure_records_notifies_and_raises(loaded_store, service, notifier):
    service.fail_with = ApiError("Name taken", 409)

    with pytest.raises(ApiError):
        await loaded_store.create({"name": "Dup"})

    assert loaded_store.create_error == "Name taken"
    assert isinstance(loaded_store.status(OperationKind.CREATE), Failed)
    assert loaded_store.total_items == 25
    assert notifier.notifications == [("error", "Create failed", "Name taken")]


async def test_new_attempt_clears_previous_error(loaded_store, service):
    service.fail_with = ApiError("Name taken", 409)
    with pytest.raises(ApiError):
        await loaded_store.create({"name": "Dup"})

    service.fail_with = None
    await loaded_store.create({"name": "Unique"})

    assert loaded_store.create_error is None


async def test_update_patches_collection_and_selection(loaded_store):
    await loaded_store.load_item("2")

    updated = await loaded_store.update("2", {"name": "Renamed"})

    assert updated["name"] == "Renamed"
    assert loaded_store.get_item_by_id("2")["name"] == "Renamed"
    assert loaded_store.selected_item["name"] == "Renamed"
    assert loaded_store.update_error is None


async def test_delete_removes_item_and_selection(loaded_store):
    loaded_store.select_item_by_id("4")

    deleted = await loaded_store.delete("4")

    assert deleted is True
    assert loaded_store.get_item_by_id("4") is None
    assert loaded_store.total_items == 24
    assert loaded_store.selected_item is None


async def test_delete_matches_uuid(loaded_store):
    await loaded_store.delete("uuid-5")

    assert all(item["uuid"] != "uuid-5" for item in loaded_store.items)


async def test_delete_never_makes_total_negative(store, service):
    service.items = []

    await store.delete("1")

    assert store.total_items == 0


async def test_concurrent_updates_are_single_flight(loaded_store, service):
    results = await asyncio.gather(
        loaded_store.update("1", {"name": "A"}),
        loaded_store.update("1", {"name": "B"}),
    )

    assert results[0]["name"] == "A"
    assert results[1] is None
    assert service.calls.count("update_item") == 1
    assert loaded_store.get_item_by_id("1")["name"] == "A"
    assert loaded_store.update_error is None


async def test_concurrent_deletes_are_single_flight(loaded_store, service):
    results = await asyncio.gather(loaded_store.delete("1"), loaded_store.delete("2"))

    assert results == [True, False]
    assert service.calls.count("delete_item") == 1
    assert loaded_store.get_item_by_id("1") is None
    assert loaded_store.get_item_by_id("2") is not None
    assert loaded_store.total_items == 24


async def test_delete_failure(loaded_store, service):
    service.fail_with = ApiError("Forbidden", 403)

    with pytest.raises(ApiError):
        await loaded_store.delete("1")

    assert loaded_store.delete_error == "Forbidden"
    assert loaded_store.get_item_by_id("1") is not None


async def test_load_item_failure_sets_item_error(store, service):
    service.fail_with = ApiError("Missing", 404)

    with pytest.raises(ApiError):
        await store.load_item("999")

    assert store.item_error == "Missing"
    assert not store.loading_item
    assert store.selected_item is None


async def test_optimistic_update_success(loaded_store):
    seen_during_remote = []

    async def remote():
        seen_during_remote.append(loaded_store.get_item_by_id("1")["f"])
        return "ok"

    result = await loaded_store.optimistic_update("1", lambda item: {**item, "f": 2}, remote)

    assert result == "ok"
    assert seen_during_remote == [2]
    assert loaded_store.get_item_by_id("1")["f"] == 2
    assert loaded_store.optimistic_error is None


async def test_optimistic_update_rolls_back_on_failure(loaded_store):
    loaded_store.select_item_by_id("1")

    async def remote():
        raise ApiError("Rejected", 400)

    with pytest.raises(ApiError):
        await loaded_store.optimistic_update("1", lambda item: {**item, "f": 2}, remote)

    assert loaded_store.get_item_by_id("1")["f"] == 1
    assert loaded_store.selected_item["f"] == 1
    assert loaded_store.optimistic_error == "Rejected"


async def test_optimistic_rollback_survives_in_place_mutation(loaded_store):
    def mutate_in_place(item):
        item["f"] = 99
        return item

    async def remote():
        raise ApiError("Rejected", 400)

    with pytest.raises(ApiError):
        await loaded_store.optimistic_update("1", mutate_in_place, remote)

    assert loaded_store.get_item_by_id("1")["f"] == 1


async def test_optimistic_update_on_selected_item_only(store):
    store.select_item({"id": "77", "f": 1})

    async def remote():
        return None

    await store.optimistic_update("77", lambda item: {**item, "f": 5}, remote)

    assert store.selected_item["f"] == 5
    assert store.items == ()


class GatedRemote:
    """Remote call that blocks until released, then fails or succeeds."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.released = asyncio.Event()

    async def __call__(self):
        await self.released.wait()
        if self.error is not None:
            raise self.error
        return "ok"


async def _start_optimistic(store, value, remote):
    task = asyncio.create_task(store.optimistic_update("1", lambda item: {**item, "f": value}, remote))
    await asyncio.sleep(0)
    return task


@pytest.mark.parametrize("failure_order", [("older", "newer"), ("newer", "older")])
async def test_interleaved_optimistic_failures_restore_server_value(loaded_store, failure_order):
    loaded_store.select_item_by_id("1")
    remotes = {"older": GatedRemote(ApiError("Rejected", 409)), "newer": GatedRemote(ApiError("Rejected", 409))}
    tasks = {
        "older": await _start_optimistic(loaded_store, 2, remotes["older"]),
        "newer": await _start_optimistic(loaded_store, 3, remotes["newer"]),
    }
    assert loaded_store.get_item_by_id("1")["f"] == 3

    for name in failure_order:
        remotes[name].released.set()
        with pytest.raises(ApiError):
            await tasks[name]

    assert loaded_store.get_item_by_id("1")["f"] == 1
    assert loaded_store.selected_item["f"] == 1


async def test_older_optimistic_failure_keeps_newer_pending_value(loaded_store):
    older = GatedRemote(ApiError("Rejected", 409))
    newer = GatedRemote()
    older_task = await _start_optimistic(loaded_store, 2, older)
    newer_task = await _start_optimistic(loaded_store, 3, newer)

    older.released.set()
    with pytest.raises(ApiError):
        await older_task

    assert loaded_store.get_item_by_id("1")["f"] == 3

    newer.released.set()
    await newer_task

    assert loaded_store.get_item_by_id("1")["f"] == 3


async def test_newer_optimistic_failure_rolls_back_to_confirmed_older_value(loaded_store):
    older = GatedRemote()
    newer = GatedRemote(ApiError("Rejected", 409))
    older_task = await _start_optimistic(loaded_store, 2, older)
    newer_task = await _start_optimistic(loaded_store, 3, newer)

    older.released.set()
    await older_task
    newer.released.set()
    with pytest.raises(ApiError):
        await newer_task

    assert loaded_store.get_item_by_id("1")["f"] == 2


async def test_rollback_skips_slot_replaced_by_server_data(loaded_store):
    remote = GatedRemote(ApiError("Rejected", 409))
    task = await _start_optimistic(loaded_store, 2, remote)

    loaded_store.update_item_in_store("1", {"id": "1", "uuid": "uuid-1", "name": "Reloaded", "f": 7})
    remote.released.set()
    with pytest.raises(ApiError):
        await task

    assert loaded_store.get_item_by_id("1")["f"] == 7


async def test_optimistic_update_unknown_item(loaded_store):
    async def remote():
        return None

    with pytest.raises(EntityNotFoundError):
        await loaded_store.optimistic_update("nope", lambda item: item, remote)


async def test_batch_optimistic_update_rolls_back_every_item(loaded_store):
    async def remote():
        raise ApiError("Rejected", 400)

    with pytest.raises(ApiError):
        await loaded_store.batch_optimistic_update(
            [("1", lambda item: {**item, "f": 2}), ("2", lambda item: {**item, "f": 3}), ("missing", lambda i: i)],
            remote,
        )

    assert loaded_store.get_item_by_id("1")["f"] == 1
    assert loaded_store.get_item_by_id("2")["f"] == 1
    assert loaded_store.optimistic_error == "Rejected"


async def test_batch_optimistic_update_success(loaded_store):
    async def remote():
        return 2

    count = await loaded_store.batch_optimistic_update(
        [("1", lambda item: {**item, "f": 2}), ("2", lambda item: {**item, "f": 2})],
        remote,
    )

    assert count == 2
    assert [loaded_store.get_item_by_id(i)["f"] for i in ("1", "2")] == [2, 2]


async def test_refresh_item_patches_store(loaded_store, service):
    service.items[3] = {**service.items[3], "name": "Changed on server"}

    await loaded_store.refresh_item("3")

    assert loaded_store.get_item_by_id("3")["name"] == "Changed on server"


async def test_navigation(loaded_store):
    await loaded_store.next_page()
    assert loaded_store.current_page == 1

    await loaded_store.goto_page(2)
    assert loaded_store.current_page == 2
    assert not loaded_store.has_next_page

    await loaded_store.next_page()
    assert loaded_store.current_page == 2

    await loaded_store.goto_page(7)
    assert loaded_store.current_page == 2

    await loaded_store.previous_page()
    assert loaded_store.current_page == 1

    await loaded_store.change_page_size(5)
    assert loaded_store.current_page == 0
    assert loaded_store.page_size == 5
    assert loaded_store.total_pages == 5


async def test_refresh_reloads_current_page(loaded_store, service):
    await loaded_store.next_page()
    service.calls.clear()

    await loaded_store.refresh()

    assert service.calls == ["fetch_page"]
    assert loaded_store.current_page == 1


async def test_selection(loaded_store):
    assert loaded_store.select_item_by_id("missing") is None
    assert not loaded_store.has_selected_item

    loaded_store.select_item_by_id("uuid-3")
    assert loaded_store.selected_item["id"] == "3"

    loaded_store.clear_selection()
    assert loaded_store.selected_item is None


async def test_clear_errors_and_clear(loaded_store, service):
    service.fail_with = ApiError("Boom", 500)
    for operation in (loaded_store.load_page(1), loaded_store.update("1", {}), loaded_store.delete("1")):
        with pytest.raises(ApiError):
            await operation

    loaded_store.clear_errors()

    assert loaded_store.error is None
    assert loaded_store.update_error is None
    assert loaded_store.delete_error is None
    assert loaded_store.has_data

    loaded_store.clear()

    assert loaded_store.items == ()
    assert loaded_store.total_items == 0
    assert loaded_store.page_size == 10
    assert loaded_store.selected_item is None
