"""REST implementation of EntityService.

Maps the CRUD operations of one entity type onto an ApiClient endpoint:

    GET    {endpoint}?page=&size=&sort=   -> Page
    GET    {endpoint}/all                 -> list
    GET    {endpoint}/{id}                -> entity
    POST   {endpoint}                     -> entity (multipart when files are given)
    PUT    {endpoint}/{id}                -> entity (multipart when files are given)
    DELETE {endpoint}/{id}                -> None
"""

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from api_store.dto import PageResponse, PaginationParams
from api_store.entities import Page
from api_store.transport import ApiClient

TEntity = TypeVar("TEntity")


class RestEntityRepository(Generic[TEntity]):
    """REST-backed implementation of the EntityService protocol.

    This class satisfies the EntityService protocol through structural
    typing - no explicit inheritance needed.

    Entities are plain dicts unless an ``entity_model`` is given, in which
    case every payload is validated into that pydantic model.

    Example:
        ```python
        client = ApiClient.create()
        lessons = RestEntityRepository(client, "/lesson", json_part_name="lesson")

        page = await lessons.fetch_page(PaginationParams(page=0, size=20))
        lesson = await lessons.create_item({"title": "Intro"}, files={"video": video_bytes})
        ```
    """

    def __init__(
        self,
        client: ApiClient,
        endpoint: str,
        entity_model: type[BaseModel] | None = None,
        json_part_name: str | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            client: The ApiClient used for every request.
            endpoint: Collection endpoint, e.g. "/course".
            entity_model: Optional pydantic model for entities.
            json_part_name: Name of the JSON part for multipart create/update.
                            Required when files are uploaded.
        """
        self._client = client
        self._endpoint = "/" + endpoint.strip("/")
        self._entity_model = entity_model
        self._json_part_name = json_part_name

    @classmethod
    def create(
        cls,
        client: ApiClient,
        endpoint: str,
        entity_model: type[BaseModel] | None = None,
        json_part_name: str | None = None,
    ) -> "RestEntityRepository[TEntity]":
        """Factory method to create a RestEntityRepository."""
        return cls(client, endpoint, entity_model=entity_model, json_part_name=json_part_name)

    @property
    def client(self) -> ApiClient:
        return self._client

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def item_path(self, item_id: str) -> str:
        """Endpoint path of a single entity."""
        return f"{self._endpoint}/{item_id}"

    async def fetch_page(self, params: PaginationParams) -> Page[TEntity]:
        data = await self._client.get(self._endpoint, params.to_query())
        page = PageResponse[Any].model_validate(data)
        return Page(
            content=tuple(self.to_entity(item) for item in page.content),
            page=page.number,
            size=page.size or params.size,
            total_elements=page.total_elements,
            total_pages=page.total_pages,
        )

    async def fetch_all(self) -> list[TEntity]:
        """Fetch every entity of the collection without pagination."""
        data = await self._client.get(f"{self._endpoint}/all")
        return [self.to_entity(item) for item in data or []]

    async def fetch_item(self, item_id: str) -> TEntity:
        return self.to_entity(await self._client.get(self.item_path(item_id)))

    async def create_item(self, payload: Any, files: Mapping[str, Any] | None = None) -> TEntity:
        if files:
            data = await self._client.post_multipart(
                self._endpoint, self._require_json_part_name(), payload, files
            )
        else:
            data = await self._client.post(self._endpoint, payload)
        return self.to_entity(data)

    async def update_item(
        self,
        item_id: str,
        payload: Any,
        files: Mapping[str, Any] | None = None,
    ) -> TEntity:
        if files:
            data = await self._client.put_multipart(
                self.item_path(item_id), self._require_json_part_name(), payload, files
            )
        else:
            data = await self._client.put(self.item_path(item_id), payload)
        return self.to_entity(data)

    async def delete_item(self, item_id: str) -> None:
        await self._client.delete(self.item_path(item_id))

    def to_entity(self, data: Any) -> TEntity:
        """Convert a decoded payload into an entity."""
        if self._entity_model is None:
            return data
        return self._entity_model.model_validate(data)  # type: ignore[return-value]

    def _require_json_part_name(self) -> str:
        if not self._json_part_name:
            raise ValueError(f"json_part_name is required for multipart requests to {self._endpoint}")
        return self._json_part_name
