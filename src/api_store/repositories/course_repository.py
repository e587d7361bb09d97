"""Course repository.

Adds the course-specific endpoints on top of the generic CRUD mapping.
Every call returns the authoritative course as stored by the backend.
"""

from typing import Any

from api_store.transport import ApiClient

from .rest_entity_repository import RestEntityRepository

Course = dict[str, Any]


class CourseRepository(RestEntityRepository[Course]):
    """Remote operations for courses, their sections and linked lessons."""

    def __init__(self, client: ApiClient, endpoint: str = "/course") -> None:
        super().__init__(client, endpoint, json_part_name="course")

    async def feature(self, course_id: str) -> Course:
        return await self._client.patch(f"{self.item_path(course_id)}/feature")

    async def unfeature(self, course_id: str) -> Course:
        return await self._client.patch(f"{self.item_path(course_id)}/unfeature")

    async def fetch_featured(self) -> list[Course]:
        return await self._client.get(f"{self.endpoint}/featured") or []

    async def reorder_sections(self, course_id: str, section_ids: list[str]) -> Course:
        """Persist a new section order.

        Args:
            course_id: The course owning the sections
            section_ids: Section identifiers in their new order
        """
        return await self._client.post(f"{self.item_path(course_id)}/sections/reorder", section_ids)

    async def link_lesson(self, section_id: str, lesson_id: str) -> Course:
        return await self._client.post(f"{self.endpoint}/section/{section_id}/lesson/{lesson_id}")

    async def unlink_lesson(self, section_id: str, lesson_id: str) -> Course:
        return await self._client.delete(f"{self.endpoint}/section/{section_id}/lesson/{lesson_id}")

    async def delete_section(self, section_id: str) -> None:
        await self._client.delete(f"{self.endpoint}/section/{section_id}")
