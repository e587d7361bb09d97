"""
Tests for the retrying request executor.
"""

import asyncio

import httpx
import pytest

from api_store.dto import RequestOptions
from api_store.entities import RetryableFailure, Success, TerminalFailure
from api_store.exceptions import AbortError, ApiError, NetworkError
from api_store.transport import RequestExecutor


class ScriptedFactory:
    """Request factory replaying a script of responses or exceptions."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.calls = 0

    def __call__(self):
        step = self.steps[min(self.calls, len(self.steps) - 1)]
        self.calls += 1
        return self._run(step)

    @staticmethod
    async def _run(step):
        if isinstance(step, Exception):
            raise step
        return step


@pytest.fixture
def executor(sleep):
    return RequestExecutor(timeout=5.0, retries=3, backoff_base=1.0, sleep=sleep)


async def test_success_on_first_attempt(executor, sleep):
    factory = ScriptedFactory(httpx.Response(200, json={"ok": True}))

    response = await executor.execute(factory)

    assert response.status_code == 200
    assert factory.calls == 1
    assert sleep.delays == []


async def test_client_error_is_not_retried(executor, sleep):
    factory = ScriptedFactory(httpx.Response(404, json={"message": "Course not found"}))

    with pytest.raises(ApiError) as exc_info:
        await executor.execute(factory)

    assert factory.calls == 1
    assert sleep.delays == []
    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Course not found"
    assert exc_info.value.is_client_error


async def test_server_error_exhausts_retries_with_exponential_backoff(executor, sleep):
    factory = ScriptedFactory(httpx.Response(503))

    with pytest.raises(ApiError) as exc_info:
        await executor.execute(factory)

    assert factory.calls == 4
    assert sleep.delays == [1.0, 2.0, 4.0]
    assert exc_info.value.status_code == 503
    assert exc_info.value.is_retryable


async def test_server_error_then_success(executor, sleep):
    factory = ScriptedFactory(httpx.Response(500), httpx.Response(502), httpx.Response(200, json={}))

    response = await executor.execute(factory)

    assert response.status_code == 200
    assert factory.calls == 3
    assert sleep.delays == [1.0, 2.0]


async def test_network_error_is_retried(executor, sleep):
    factory = ScriptedFactory(httpx.ConnectError("connection refused"), httpx.Response(200, json={}))

    response = await executor.execute(factory)

    assert response.status_code == 200
    assert factory.calls == 2
    assert sleep.delays == [1.0]


async def test_network_error_after_retries_raises_network_error(executor):
    factory = ScriptedFactory(httpx.ConnectError("connection refused"))

    with pytest.raises(NetworkError) as exc_info:
        await executor.execute(factory, RequestOptions(retries=1))

    assert factory.calls == 2
    assert exc_info.value.status_code == 0
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


async def test_timeout_aborts_without_retry(sleep):
    executor = RequestExecutor(timeout=0.01, retries=3, backoff_base=1.0, sleep=sleep)
    calls = 0

    async def hang():
        await asyncio.sleep(10)

    def factory():
        nonlocal calls
        calls += 1
        return hang()

    with pytest.raises(AbortError) as exc_info:
        await executor.execute(factory)

    assert calls == 1
    assert sleep.delays == []
    assert exc_info.value.timeout == 0.01


async def test_httpx_timeout_is_an_abort(executor):
    factory = ScriptedFactory(httpx.ReadTimeout("read timed out"))

    with pytest.raises(AbortError):
        await executor.execute(factory)

    assert factory.calls == 1


async def test_zero_retries_means_single_attempt(executor, sleep):
    factory = ScriptedFactory(httpx.Response(500))

    with pytest.raises(ApiError):
        await executor.execute(factory, RequestOptions(retries=0))

    assert factory.calls == 1
    assert sleep.delays == []


def test_backoff_delay_doubles():
    executor = RequestExecutor(backoff_base=0.5)

    assert [executor.backoff_delay(n) for n in range(4)] == [0.5, 1.0, 2.0, 4.0]


def test_classify():
    executor = RequestExecutor()

    assert isinstance(executor.classify(httpx.Response(201, json={})), Success)
    assert isinstance(executor.classify(httpx.Response(304)), Success)
    assert isinstance(executor.classify(httpx.Response(422)), TerminalFailure)
    assert isinstance(executor.classify(httpx.Response(500)), RetryableFailure)


async def test_retry_waits_follow_backoff_base(sleep):
    executor = RequestExecutor(timeout=5.0, retries=2, backoff_base=0.5, sleep=sleep)
    factory = ScriptedFactory(httpx.Response(502))

    with pytest.raises(ApiError):
        await executor.execute(factory)

    assert factory.calls == 3
    assert sleep.delays == [executor.backoff_delay(0), executor.backoff_delay(1)] == [0.5, 1.0]


async def test_unexpected_exception_propagates_unwrapped(executor, sleep):
    factory = ScriptedFactory(ValueError("bad request factory"))

    with pytest.raises(ValueError):
        await executor.execute(factory)

    assert factory.calls == 1
    assert sleep.delays == []
