"""Transport layer: talking to the remote JSON API.

Leaf to root:
    RequestExecutor   - timeout, retry with backoff, error classification
    ResponseProcessor - envelope unwrapping, id normalization, error bodies
    TTLCache          - short-lived GET cache owned by one client
    ApiClient         - verb methods composing the three above

Usage:
    ```python
    from api_store.transport import ApiClient

    client = ApiClient.create(base_url="http://localhost:8080")
    page = await client.get("/course", {"page": 0, "size": 20})
    ```
"""

from .api_client import ApiClient
from .request_executor import RequestExecutor, RequestFactory
from .response_processor import ResponseProcessor
from .serialization import build_multipart, to_instant, transform_for_api
from .ttl_cache import TTLCache

__all__ = [
    "ApiClient",
    "RequestExecutor",
    "RequestFactory",
    "ResponseProcessor",
    "TTLCache",
    "build_multipart",
    "to_instant",
    "transform_for_api",
]
