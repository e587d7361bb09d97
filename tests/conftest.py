"""Shared fixtures: controllable time, recording collaborators, mocked HTTP."""

import httpx
import pytest

from api_store.transport import ApiClient, RequestExecutor, TTLCache

BASE_URL = "http://backend.test"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that returns immediately and records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(float(delay))


class RecordingNotifier:
    """NotificationSink collecting every notification."""

    def __init__(self) -> None:
        self.notifications: list[tuple[str, str, str]] = []

    def notify(self, kind: str, title: str, message: str) -> None:
        self.notifications.append((kind, title, message))

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.notifications]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_client(clock, sleep, notifier):
    """Build an ApiClient whose HTTP traffic goes to ``handler``.

    ``handler`` receives each httpx.Request and returns an httpx.Response
    (or raises an httpx exception), as with httpx.MockTransport.
    """

    def factory(handler=None, transport=None, retries: int = 3, timeout: float = 5.0) -> ApiClient:
        http_client = httpx.AsyncClient(
            transport=transport or httpx.MockTransport(handler),
            base_url=BASE_URL,
        )
        return ApiClient(
            base_url=BASE_URL,
            http_client=http_client,
            executor=RequestExecutor(timeout=timeout, retries=retries, backoff_base=1.0, sleep=sleep),
            cache=TTLCache(clock=clock),
            notifier=notifier,
            api_prefix="/api/v1",
            cache_ttl=300,
        )

    return factory
