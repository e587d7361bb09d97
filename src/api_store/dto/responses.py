"""Response DTOs mirroring the backend's JSON shapes."""

from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from api_store.entities import Page

T = TypeVar("T")


class PageResponse(BaseModel, Generic[T]):
    """Spring ``Page`` envelope returned by paginated endpoints."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content: list[T] = Field(default_factory=list, description="Entities on this page")
    total_elements: int = Field(0, alias="totalElements", ge=0)
    total_pages: int = Field(0, alias="totalPages", ge=0)
    number: int = Field(0, description="Zero-based page number", ge=0)
    size: int = Field(0, ge=0)
    number_of_elements: int | None = Field(None, alias="numberOfElements")
    first: bool | None = None
    last: bool | None = None
    empty: bool | None = None

    def to_page(self) -> Page[T]:
        """Convert to the domain Page."""
        return Page(
            content=tuple(self.content),
            page=self.number,
            size=self.size,
            total_elements=self.total_elements,
            total_pages=self.total_pages,
        )


class ApiErrorBody(BaseModel):
    """Error body sent by the backend on failed requests.

    Accepts both the plain ``{message, code, field}`` shape and the
    Spring-style ``applicationError*`` shape.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    message: str | None = None
    code: str | None = None
    field: str | None = None
    application_error_code: str | None = Field(None, alias="applicationErrorCode")
    application_error_message: str | None = Field(None, alias="applicationErrorMessage")
    http_status_code: int | None = Field(None, alias="httpStatusCode")
    http_status: str | None = Field(None, alias="httpStatus")
    http_timestamp: str | None = Field(None, alias="httpTimestamp")

    @property
    def resolved_message(self) -> str | None:
        return self.message or self.application_error_message

    @property
    def resolved_code(self) -> str | None:
        return self.code or self.application_error_code


def is_application_error_body(value: Any) -> bool:
    """Check whether a decoded JSON value is an application error body."""
    return isinstance(value, dict) and "applicationErrorCode" in value


class HealthStatus(BaseModel):
    """Result of the advisory health check."""

    model_config = ConfigDict(extra="allow")

    status: str = Field(..., description='Backend health, e.g. "UP" or "DOWN"')
    timestamp: str | None = Field(None, description="ISO-8601 time of the check")

    @classmethod
    def down(cls) -> "HealthStatus":
        """Synthetic status reported when the health endpoint cannot be reached."""
        return cls(status="DOWN", timestamp=datetime.now(UTC).isoformat())

    @property
    def is_up(self) -> bool:
        return self.status.upper() == "UP"
