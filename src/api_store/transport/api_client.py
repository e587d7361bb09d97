"""HTTP verb surface over httpx.

ApiClient composes RequestExecutor, ResponseProcessor and TTLCache. Every
verb follows the same pipeline:

    build URL -> check cache (GET) -> build headers -> execute -> decode
              -> store in cache (GET) / invalidate cached reads (writes)
"""

import uuid
from collections.abc import Mapping
from typing import Any

import httpx
from loguru import logger

from api_store.config import settings
from api_store.dto import HealthStatus, RequestOptions, is_application_error_body
from api_store.exceptions import ApiError
from api_store.protocols import LoggingNotificationSink, NotificationSink, notify_safely

from .request_executor import RequestExecutor
from .response_processor import ResponseProcessor
from .serialization import build_multipart, transform_for_api
from .ttl_cache import TTLCache

_READ_PREFIX = "GET:"


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(item) for item in value)
    return str(value)


class ApiClient:
    """Resilient JSON API client.

    Owns URL and header construction, a private TTL cache, and the error
    notification side effect. Feature repositories are built on top of one
    instance.

    Example:
        ```python
        async with ApiClient.create(base_url="http://localhost:8080") as client:
            courses = await client.get("/course", {"page": 0, "size": 20})
            course = await client.post("/course", {"name": "Python 101"})
            await client.delete(f"/course/{course['id']}")
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        executor: RequestExecutor | None = None,
        processor: ResponseProcessor | None = None,
        cache: TTLCache | None = None,
        notifier: NotificationSink | None = None,
        api_prefix: str | None = None,
        cache_ttl: float | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Absolute origin such as "http://localhost:8080". Empty
                      means same-origin; URLs are then root-relative and the
                      http_client must carry the origin. Defaults to settings.
            http_client: Preconfigured httpx.AsyncClient. If None, one is
                         created and closed by this client.
            executor: Retry/timeout policy. Defaults to settings.
            processor: Response decoder.
            cache: GET cache owned by this client.
            notifier: Receives user-facing error notifications.
            api_prefix: Versioned path prefix. Defaults to settings ("/api/v1").
            cache_ttl: Default lifetime of cached GETs in seconds.
        """
        self._base_url = (settings.api_base_url if base_url is None else base_url).rstrip("/")
        self._api_prefix = "/" + (api_prefix if api_prefix is not None else settings.api_prefix).strip("/")
        self._processor = processor or ResponseProcessor()
        self._executor = executor or RequestExecutor(processor=self._processor)
        self._cache = cache if cache is not None else TTLCache()
        self._notifier = notifier or LoggingNotificationSink()
        self._cache_ttl = cache_ttl or settings.cache_ttl
        self._owns_http_client = http_client is None
        self._http_client = http_client or self._create_default_http_client()

    @classmethod
    def create(
        cls,
        base_url: str | None = None,
        notifier: NotificationSink | None = None,
    ) -> "ApiClient":
        """Factory method to create an ApiClient with defaults from settings.

        Args:
            base_url: Backend origin. If None, uses settings.
            notifier: Notification sink. If None, notifications are logged.

        Returns:
            Configured ApiClient
        """
        return cls(base_url=base_url, notifier=notifier)

    def _create_default_http_client(self) -> httpx.AsyncClient:
        # Timeouts are enforced per attempt by the executor
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=None,
            follow_redirects=True,
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        )

    @property
    def cache(self) -> TTLCache:
        """Get the client's private GET cache."""
        return self._cache

    @property
    def notifier(self) -> NotificationSink:
        return self._notifier

    # ------------------------------------------------------------------
    # URL and headers
    # ------------------------------------------------------------------

    def build_url(self, endpoint: str, params: Mapping[str, Any] | None = None) -> str:
        """Build the request URL for ``endpoint``.

        The path is always rooted at "/" and prefixed with the API prefix.
        Query parameters whose value is None are dropped.

        Args:
            endpoint: Endpoint path such as "/course" or "course/42"
            params: Optional query parameters

        Returns:
            "/api/v1/course?page=0" or, with a base URL,
            "http://host/api/v1/course?page=0"
        """
        path = f"{self._api_prefix}/{endpoint.lstrip('/')}".rstrip("/")
        if params:
            query = httpx.QueryParams(
                [(key, _query_value(value)) for key, value in params.items() if value is not None]
            )
            if query:
                path = f"{path}?{query}"
        return f"{self._base_url}{path}" if self._base_url else path

    def build_headers(self, multipart: bool = False, correlation_id: str | None = None) -> dict[str, str]:
        """Build request headers.

        Args:
            multipart: Omit Content-Type so httpx can set the multipart boundary
            correlation_id: Tracing id to send. A new one is generated if None.

        Returns:
            Header dictionary
        """
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            settings.correlation_header: correlation_id or self.generate_correlation_id(),
        }
        if multipart:
            del headers["Content-Type"]
        return headers

    @staticmethod
    def generate_correlation_id() -> str:
        return str(uuid.uuid4())

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    async def get(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """Send a GET request, optionally served from the cache.

        Args:
            endpoint: Endpoint path
            params: Query parameters
            options: Per-call options; ``cache=True`` enables the TTL cache

        Returns:
            The decoded payload
        """
        options = options or RequestOptions()
        url = self.build_url(endpoint, params)
        cache_key = f"{_READ_PREFIX}{url}"

        if options.cache:
            entry = self._cache.get_entry(cache_key)
            if entry is not None:
                logger.debug("Cache hit: {}", cache_key)
                return entry.value
            logger.debug("Cache miss: {}", cache_key)

        data = await self._send("GET", url, options)

        if options.cache:
            self._cache.set(cache_key, data, options.cache_ttl or self._cache_ttl)
        return data

    async def post(self, endpoint: str, body: Any = None, options: RequestOptions | None = None) -> Any:
        """Send a JSON POST request and invalidate cached reads."""
        return await self._write("POST", self.build_url(endpoint), body, options)

    async def put(self, endpoint: str, body: Any = None, options: RequestOptions | None = None) -> Any:
        """Send a JSON PUT request and invalidate cached reads."""
        return await self._write("PUT", self.build_url(endpoint), body, options)

    async def patch(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """Send a PATCH request and invalidate cached reads.

        Most PATCH endpoints of the backend take their arguments as query
        parameters (e.g. ``/course/42/feature``), so ``params`` comes first.
        """
        return await self._write("PATCH", self.build_url(endpoint, params), body, options)

    async def delete(self, endpoint: str, options: RequestOptions | None = None) -> Any:
        """Send a DELETE request and invalidate cached reads."""
        return await self._write("DELETE", self.build_url(endpoint), None, options)

    async def post_multipart(
        self,
        endpoint: str,
        json_part_name: str,
        payload: Any,
        files: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """Send a multipart POST with one JSON part plus file parts.

        Args:
            endpoint: Endpoint path
            json_part_name: Name of the JSON part (e.g. "course")
            payload: Body of the JSON part
            files: Part name -> file content
            options: Per-call options

        Returns:
            The decoded payload
        """
        parts = build_multipart(json_part_name, payload, files)
        return await self._write("POST", self.build_url(endpoint), None, options, files=parts)

    async def put_multipart(
        self,
        endpoint: str,
        json_part_name: str,
        payload: Any,
        files: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """Send a multipart PUT with one JSON part plus file parts."""
        parts = build_multipart(json_part_name, payload, files)
        return await self._write("PUT", self.build_url(endpoint), None, options, files=parts)

    async def health_check(self) -> HealthStatus:
        """Query the backend health endpoint.

        Advisory only: any failure is reported as a synthetic DOWN status
        instead of being raised.

        Returns:
            The backend's status, or HealthStatus.down()
        """
        options = RequestOptions(timeout=settings.health_timeout, retries=0, notify_errors=False)
        try:
            data = await self.get(settings.health_endpoint, options=options)
            return HealthStatus.model_validate(data)
        except Exception as e:
            logger.warning("Health check failed: {}", e)
            return HealthStatus.down()

    def invalidate_cache(self, pattern: str | None = None) -> int:
        """Drop cached entries whose key contains ``pattern`` (all if None)."""
        return self._cache.invalidate(pattern)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _write(
        self,
        method: str,
        url: str,
        body: Any,
        options: RequestOptions | None,
        files: Mapping[str, Any] | None = None,
    ) -> Any:
        json_body = transform_for_api(body) if body is not None else None
        data = await self._send(method, url, options or RequestOptions(), json_body=json_body, files=files)
        self._cache.invalidate_prefix(_READ_PREFIX)
        return data

    async def _send(
        self,
        method: str,
        url: str,
        options: RequestOptions,
        json_body: Any = None,
        files: Mapping[str, Any] | None = None,
    ) -> Any:
        # One correlation id per logical call, shared by all retry attempts
        headers = self.build_headers(multipart=files is not None)

        def request_factory():
            request = self._http_client.build_request(
                method,
                url,
                headers=headers,
                json=json_body,
                files=files,
            )
            return self._http_client.send(request)

        try:
            response = await self._executor.execute(request_factory, options, description=f"{method} {url}")
        except ApiError as e:
            if options.notify_errors and e.status_code:
                self._notify_error(e)
            raise

        data = self._processor.decode(response)
        if options.notify_errors and is_application_error_body(data):
            notify_safely(
                self._notifier,
                "warning",
                f"Error - {data.get('applicationErrorCode')}",
                str(data.get("applicationErrorMessage") or ""),
            )
        return data

    def _notify_error(self, error: ApiError) -> None:
        title = f"Error - {error.application_code}" if error.application_code else f"HTTP {error.status_code}"
        notify_safely(self._notifier, "warning", title, error.message)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
