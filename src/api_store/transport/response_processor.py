"""Decoding of raw HTTP responses into payloads and errors."""

import json
from typing import Any

import httpx
from pydantic import ValidationError

from api_store.dto import ApiErrorBody
from api_store.exceptions import ApiError, MalformedResponseError, UnsupportedContentTypeError


def _is_json(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def _is_text(content_type: str) -> bool:
    return content_type.strip().lower().startswith("text/")


class ResponseProcessor:
    """Turns httpx responses into typed payloads or ApiError instances.

    Decoding rules:
    - 204 No Content: None, whatever the declared content type
    - JSON: parsed, envelope-unwrapped (``{"data": X}`` -> X), ids normalized
    - text/*: the raw text
    - anything else: UnsupportedContentTypeError

    The processor is stateless; one instance can serve any number of clients.
    """

    def decode(self, response: httpx.Response) -> Any:
        """Decode a success response.

        Args:
            response: A fully read httpx response

        Returns:
            The payload, or None for 204

        Raises:
            UnsupportedContentTypeError: Content type is neither JSON nor text
            MalformedResponseError: Declared JSON but the body does not parse
        """
        if response.status_code == 204:
            return None

        content_type = response.headers.get("content-type", "")
        if _is_json(content_type):
            return self.normalize_ids(self.unwrap_envelope(self._parse_json(response)))
        if _is_text(content_type):
            return response.text
        raise UnsupportedContentTypeError(content_type or None)

    def read_json(self, response: httpx.Response) -> Any | None:
        """Parse a JSON body without unwrapping, or None if it is not JSON."""
        if not _is_json(response.headers.get("content-type", "")):
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

    def to_api_error(self, response: httpx.Response) -> ApiError:
        """Build an ApiError for a non-success response.

        Message, application code and field come from the JSON body when it
        has them; otherwise the message is a generic ``HTTP <status>`` text.
        """
        fallback = f"HTTP {response.status_code}: {response.reason_phrase}".rstrip(": ")
        body = self.read_json(response)
        if not isinstance(body, dict):
            return ApiError(fallback, response.status_code)

        try:
            error_body = ApiErrorBody.model_validate(body)
        except ValidationError:
            return ApiError(fallback, response.status_code)

        return ApiError(
            error_body.resolved_message or fallback,
            response.status_code,
            application_code=error_body.resolved_code,
            field=error_body.field,
        )

    @staticmethod
    def unwrap_envelope(value: Any) -> Any:
        """Return ``value["data"]`` when ``value`` is a ``{"data": ...}`` envelope."""
        if isinstance(value, dict) and "data" in value:
            return value["data"]
        return value

    @classmethod
    def normalize_ids(cls, value: Any) -> Any:
        """Recursively rewrite numeric ``id`` properties to strings.

        Other keys and string ids are left as they are.
        """
        if isinstance(value, list):
            return [cls.normalize_ids(item) for item in value]
        if isinstance(value, dict):
            normalized = {}
            for key, item in value.items():
                if key == "id" and isinstance(item, (int, float)) and not isinstance(item, bool):
                    normalized[key] = cls._id_to_str(item)
                else:
                    normalized[key] = cls.normalize_ids(item)
            return normalized
        return value

    @staticmethod
    def _id_to_str(value: int | float) -> str:
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedResponseError(
                f"Invalid JSON body in {response.status_code} response: {e}",
                cause=e,
            ) from e
