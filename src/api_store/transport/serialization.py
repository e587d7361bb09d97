"""Request body serialization.

The backend expects a single temporal wire format: UTC instants such as
``2025-10-02T00:00:00.000Z``. Bodies are normalized here before they are
sent as JSON or as the JSON part of a multipart request.
"""

import json
import re
from collections.abc import Mapping
from datetime import UTC, date, datetime, time
from typing import Any

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

_BARE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def to_instant(value: datetime | date) -> str:
    """Format a date or datetime as a UTC ISO-8601 instant with milliseconds.

    Naive datetimes are taken to be UTC. Dates map to midnight UTC.
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def transform_for_api(value: Any) -> Any:
    """Recursively convert a request body into JSON-ready values.

    - datetime / date objects become UTC instants
    - bare ``YYYY-MM-DD`` strings become UTC instants
    - pydantic models are dumped by alias first
    - anything else that JSON cannot hold goes through pydantic's encoder

    Args:
        value: The body as built by the caller

    Returns:
        A structure made of dicts, lists, strings, numbers, booleans and None
    """
    if isinstance(value, BaseModel):
        return transform_for_api(value.model_dump(by_alias=True))
    if isinstance(value, (datetime, date)):
        return to_instant(value)
    if isinstance(value, str):
        if _BARE_DATE.match(value):
            try:
                return to_instant(date.fromisoformat(value))
            except ValueError:
                return value
        return value
    if isinstance(value, Mapping):
        return {str(key): transform_for_api(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [transform_for_api(item) for item in value]
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return to_jsonable_python(value)


def build_multipart(
    json_part_name: str,
    payload: Any,
    files: Mapping[str, Any] | None = None,
) -> dict[str, tuple[str | None, Any, str | None]]:
    """Build an httpx ``files`` mapping: one JSON part plus binary parts.

    Args:
        json_part_name: Name of the JSON part (e.g. "course", "lesson")
        payload: Body for the JSON part; normalized with transform_for_api
        files: Part name -> file content. Values may be bytes, a file object,
               or an httpx-style ``(filename, content[, content_type])`` tuple.
               None values are skipped.

    Returns:
        Mapping suitable for ``httpx.AsyncClient.build_request(files=...)``
    """
    parts: dict[str, tuple[str | None, Any, str | None]] = {
        json_part_name: (
            None,
            json.dumps(transform_for_api(payload)).encode("utf-8"),
            "application/json",
        )
    }
    for name, content in (files or {}).items():
        if content is None:
            continue
        if isinstance(content, tuple):
            filename, data, *rest = content
            parts[name] = (filename, data, rest[0] if rest else None)
        else:
            filename = getattr(content, "name", None) or name
            parts[name] = (str(filename).rsplit("/", 1)[-1], content, None)
    return parts
