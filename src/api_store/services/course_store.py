"""Course store.

Feature store over CourseRepository. Featuring, section ordering and
lesson linking are applied optimistically and then replaced by the
course the backend returns.
"""

import inspect
from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from api_store.exceptions import ApiStoreError, describe_error
from api_store.protocols import ConfirmationGate, NotificationSink
from api_store.repositories import Course, CourseRepository

from .entity_store import EntityStore, identity_of, matches_identity


def _key_of(section: Mapping[str, Any]) -> str | None:
    return identity_of(section) or identity_of(section, "uuid")


class CourseStore(EntityStore[Course, Mapping[str, Any], Mapping[str, Any]]):
    """EntityStore for courses plus the featured list and section editing."""

    def __init__(
        self,
        repository: CourseRepository,
        notifier: NotificationSink | None = None,
        page_size: int | None = None,
    ) -> None:
        super().__init__(repository, notifier=notifier, page_size=page_size)
        self._repository = repository
        self._featured: tuple[Course, ...] = ()
        self._featured_error: str | None = None

    @classmethod
    def from_service(
        cls,
        service: CourseRepository,
        notifier: NotificationSink | None = None,
        page_size: int | None = None,
    ) -> "CourseStore":
        """Factory method to create a CourseStore with defaults from settings."""
        return cls(repository=service, notifier=notifier, page_size=page_size)

    @property
    def featured(self) -> tuple[Course, ...]:
        return self._featured

    @property
    def featured_error(self) -> str | None:
        return self._featured_error

    @property
    def has_featured(self) -> bool:
        return bool(self._featured)

    async def fetch_featured(self) -> tuple[Course, ...]:
        """Load the featured courses into their own list."""
        self._featured_error = None
        try:
            courses = await self._repository.fetch_featured()
        except Exception as e:
            self._featured_error = describe_error(e)
            logger.error("Error fetching featured courses: {}", self._featured_error)
            raise
        self._featured = tuple(courses)
        return self._featured

    # ------------------------------------------------------------------
    # Featured flag
    # ------------------------------------------------------------------

    async def feature(self, course_id: str) -> Course:
        return await self._set_featured(course_id, True)

    async def unfeature(self, course_id: str) -> Course:
        return await self._set_featured(course_id, False)

    async def _set_featured(self, course_id: str, featured: bool) -> Course:
        async def remote() -> Course:
            call = self._repository.feature if featured else self._repository.unfeature
            updated = await call(course_id)
            self.update_item_in_store(course_id, updated)
            return updated

        return await self.optimistic_update(
            course_id,
            lambda course: {**course, "isFeatured": featured},
            remote,
        )

    # ------------------------------------------------------------------
    # Sections and lessons
    # ------------------------------------------------------------------

    async def reorder_sections(self, course_id: str, section_ids: Sequence[str | int]) -> Course:
        """Reorder the sections of a course.

        Sections are rearranged locally (with ``orderIndex`` renumbered from 1)
        before the backend confirms. Unknown section ids are dropped from the
        optimistic order.

        Args:
            course_id: The course owning the sections
            section_ids: Section identifiers in their new order

        Returns:
            The course as stored by the backend
        """
        order = [str(section_id) for section_id in section_ids]

        def reorder(course: Course) -> Course:
            by_id = {_key_of(section): section for section in course.get("sections") or []}
            sections = [
                {**by_id[section_id], "orderIndex": index}
                for index, section_id in enumerate(order, start=1)
                if section_id in by_id
            ]
            return {**course, "sections": sections}

        async def remote() -> Course:
            updated = await self._repository.reorder_sections(course_id, list(section_ids))
            self.update_item_in_store(course_id, updated)
            return updated

        return await self.optimistic_update(course_id, reorder, remote)

    async def link_lesson(self, course_id: str, section_id: str, lesson: Mapping[str, Any]) -> Course:
        """Attach a lesson to a section of a course.

        Args:
            course_id: The course owning the section
            section_id: Target section
            lesson: The lesson to show in the section until the backend answers

        Raises:
            ApiStoreError: The course has no such section or the lesson has no id
        """
        lesson_id = identity_of(lesson)
        if lesson_id is None:
            raise ApiStoreError("Lesson has no id")

        def link(course: Course) -> Course:
            sections = list(course.get("sections") or [])
            for index, section in enumerate(sections):
                if _key_of(section) != str(section_id):
                    continue
                lessons = list(section.get("lessons") or [])
                if any(matches_identity(existing, lesson_id) for existing in lessons):
                    logger.warning("Lesson {} already linked to section {}", lesson_id, section_id)
                    return course
                sections[index] = {**section, "lessons": [*lessons, dict(lesson)]}
                return {**course, "sections": sections}
            raise ApiStoreError(f"Section with id {section_id} not found")

        async def remote() -> Course:
            updated = await self._repository.link_lesson(str(section_id), lesson_id)
            self.update_item_in_store(course_id, updated)
            return updated

        return await self.optimistic_update(course_id, link, remote)

    async def unlink_lesson(self, section_id: str, lesson_id: str) -> Course:
        """Detach a lesson from a section of the selected course."""
        course_id = self._selected_course_id()

        def unlink(course: Course) -> Course:
            sections = [
                {
                    **section,
                    "lessons": [
                        lesson for lesson in section.get("lessons") or [] if not matches_identity(lesson, lesson_id)
                    ],
                }
                if _key_of(section) == str(section_id)
                else section
                for section in course.get("sections") or []
            ]
            return {**course, "sections": sections}

        async def remote() -> Course:
            updated = await self._repository.unlink_lesson(str(section_id), str(lesson_id))
            self.update_item_in_store(course_id, updated)
            return updated

        return await self.optimistic_update(course_id, unlink, remote)

    async def delete_section(self, section_id: str) -> None:
        """Remove a section from the selected course."""
        course_id = self._selected_course_id()

        def drop(course: Course) -> Course:
            sections = [s for s in course.get("sections") or [] if _key_of(s) != str(section_id)]
            return {**course, "sections": sections}

        await self.optimistic_update(course_id, drop, lambda: self._repository.delete_section(str(section_id)))

    def _selected_course_id(self) -> str:
        if self.selected_item is None:
            raise ApiStoreError("No course selected")
        course_id = _key_of(self.selected_item)
        if course_id is None:
            raise ApiStoreError("Course ID not found")
        return course_id

    # ------------------------------------------------------------------
    # Gated delete
    # ------------------------------------------------------------------

    async def confirm_and_delete(self, course_id: str, gate: ConfirmationGate) -> bool:
        """Ask the gate for consent, then delete the course.

        Returns:
            True if deleted, False if the user declined or a delete was
            already in flight
        """
        course = self.get_item_by_id(course_id)
        name = course.get("name") if isinstance(course, Mapping) else None
        confirmed = gate.confirm("Delete course", f"Delete course {name or course_id}? This cannot be undone.")
        if inspect.isawaitable(confirmed):
            confirmed = await confirmed
        if not confirmed:
            logger.debug("Deletion of course {} cancelled", course_id)
            return False
        return await self.delete(course_id)
