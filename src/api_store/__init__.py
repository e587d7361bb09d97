"""API Store - resilient JSON API client with optimistic entity stores.

This package provides a layered architecture for talking to a REST backend:

Layers:
    - protocols: Interface contracts (EntityService, NotificationSink, Clock)
    - transport: HTTP client, retry executor, response decoding, TTL cache
    - repositories: Entity mapping over the client
    - services: Entity stores (state + optimistic updates)
    - dto: Data transfer objects (wire contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from api_store import ApiClient, EntityStore, RestEntityRepository

    client = ApiClient.create(base_url="http://localhost:8080")
    store = EntityStore.from_service(RestEntityRepository(client, "/lesson"))
    await store.load_page(0)
    ```
"""

from api_store.config import get_settings, settings
from api_store.dto import HealthStatus, PaginationParams, RequestOptions
from api_store.entities import ItemState, OperationKind, Page, PaginationState
from api_store.exceptions import (
    AbortError,
    ApiError,
    ApiStoreError,
    EntityNotFoundError,
    NetworkError,
    describe_error,
)
from api_store.log_config import configure_logging
from api_store.protocols import ConfirmationGate, EntityService, LoggingNotificationSink, NotificationSink
from api_store.repositories import CourseRepository, RestEntityRepository
from api_store.services import CourseStore, EntityStore
from api_store.transport import ApiClient, RequestExecutor, ResponseProcessor, TTLCache

__all__ = [
    # Configuration
    "settings",
    "get_settings",
    "configure_logging",
    # Protocols (interfaces)
    "EntityService",
    "NotificationSink",
    "ConfirmationGate",
    "LoggingNotificationSink",
    # Transport
    "ApiClient",
    "RequestExecutor",
    "ResponseProcessor",
    "TTLCache",
    # Repositories (data access)
    "RestEntityRepository",
    "CourseRepository",
    # Services (stores)
    "EntityStore",
    "CourseStore",
    # Entities (domain models)
    "Page",
    "PaginationState",
    "ItemState",
    "OperationKind",
    # DTOs (API contracts)
    "RequestOptions",
    "PaginationParams",
    "HealthStatus",
    # Errors
    "ApiStoreError",
    "ApiError",
    "NetworkError",
    "AbortError",
    "EntityNotFoundError",
    "describe_error",
]
