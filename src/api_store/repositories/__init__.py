"""Repository layer for data access.

This layer maps entity operations onto the remote JSON API through an
ApiClient. Repositories satisfy the EntityService protocol through
structural typing, so an EntityStore can run on any of them, or on an
in-memory fake in tests.
"""

from api_store.protocols import EntityService

from .course_repository import Course, CourseRepository
from .rest_entity_repository import RestEntityRepository

__all__ = [
    "EntityService",
    "RestEntityRepository",
    "CourseRepository",
    "Course",
]
