"""Service layer: entity stores.

Stores hold UI-facing state (a paginated collection and a selected item)
and orchestrate CRUD calls. They depend on the EntityService protocol,
not on a concrete repository, so they run equally on a RestEntityRepository
or an in-memory fake.

Architecture:
    Store -> Repository -> ApiClient
    (State) -> (Entity mapping) -> (HTTP)

Usage:
    ```python
    from api_store.services import EntityStore

    # Using factory method (recommended)
    store = EntityStore.from_service(RestEntityRepository(client, "/lesson"))

    # Or manual creation
    store = EntityStore(service=repo, notifier=toasts, page_size=50)
    ```
"""

from .course_store import CourseStore
from .entity_store import EntityStore, identity_of, matches_identity

__all__ = [
    "EntityStore",
    "CourseStore",
    "identity_of",
    "matches_identity",
]
