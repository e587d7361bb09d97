"""Request-side DTOs: per-call options and query parameters."""

from pydantic import BaseModel, ConfigDict, Field


class RequestOptions(BaseModel):
    """Per-call request configuration.

    Unset fields fall back to the client's defaults.
    """

    model_config = ConfigDict(frozen=True)

    timeout: float | None = Field(
        None,
        description="Per-attempt timeout in seconds",
        gt=0.0,
    )
    retries: int | None = Field(
        None,
        description="Additional attempts after the first one for retryable failures",
        ge=0,
    )
    cache: bool = Field(
        False,
        description="Serve and store this GET through the client's TTL cache",
    )
    cache_ttl: float | None = Field(
        None,
        description="Cache lifetime in seconds for this GET (defaults to settings)",
        gt=0.0,
    )
    notify_errors: bool = Field(
        True,
        description="Forward backend errors to the notification sink",
    )


class PaginationParams(BaseModel):
    """Query parameters for paginated endpoints."""

    page: int = Field(0, description="Zero-based page number", ge=0)
    size: int = Field(20, description="Page size", gt=0)
    sort: str | None = Field(
        None,
        description='Sort expression, e.g. "name,asc" or "createdAt,desc"',
    )

    def to_query(self) -> dict[str, int | str]:
        """Build the query dictionary, omitting an empty sort."""
        query: dict[str, int | str] = {"page": self.page, "size": self.size}
        if self.sort and self.sort.strip():
            query["sort"] = self.sort.strip()
        return query
