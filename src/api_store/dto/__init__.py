"""Data Transfer Objects for API contracts.

These Pydantic models define the wire contract with the backend and the
per-call request options. They are used for validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import PaginationParams, RequestOptions
from .responses import ApiErrorBody, HealthStatus, PageResponse, is_application_error_body

__all__ = [
    "RequestOptions",
    "PaginationParams",
    "PageResponse",
    "ApiErrorBody",
    "HealthStatus",
    "is_application_error_body",
]
