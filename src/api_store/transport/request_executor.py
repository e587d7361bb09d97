"""Execution of one logical HTTP request with timeout, retry and backoff."""

import asyncio
from collections.abc import Awaitable, Callable

import httpx
from loguru import logger
from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_exponential

from api_store.config import settings
from api_store.dto import RequestOptions
from api_store.entities import RequestOutcome, RetryableFailure, Success, TerminalFailure
from api_store.exceptions import AbortError, NetworkError
from api_store.protocols import Sleeper

from .response_processor import ResponseProcessor

RequestFactory = Callable[[], Awaitable[httpx.Response]]


class RequestExecutor:
    """Runs a request factory until it succeeds, fails terminally, or runs out of retries.

    Each attempt is classified into a RequestOutcome:
    - Success: status below 400
    - TerminalFailure: 4xx (as ApiError) or a fired timeout (as AbortError)
    - RetryableFailure: 5xx (as ApiError) or a transport error (as NetworkError)

    Attempts are strictly sequential and driven by tenacity. Between attempt
    n and n+1 the executor waits ``backoff_base * 2**n`` seconds (1s, 2s,
    4s, ... by default).

    The executor keeps no state between calls.

    Example:
        ```python
        executor = RequestExecutor.create()
        response = await executor.execute(
            lambda: http.send(http.build_request("GET", "/api/v1/course")),
            RequestOptions(timeout=10, retries=1),
        )
        ```
    """

    def __init__(
        self,
        timeout: float | None = None,
        retries: int | None = None,
        backoff_base: float | None = None,
        processor: ResponseProcessor | None = None,
        sleep: Sleeper | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            timeout: Default per-attempt timeout in seconds. Defaults to settings.
            retries: Default number of retries after the first attempt. Defaults to settings.
            backoff_base: Delay before the first retry, in seconds. Defaults to settings.
            processor: Builds ApiError instances from failed responses.
            sleep: Awaitable delay used between attempts. Defaults to asyncio.sleep.
        """
        self._timeout = timeout if timeout is not None else settings.request_timeout
        self._retries = retries if retries is not None else settings.request_retries
        self._backoff_base = backoff_base if backoff_base is not None else settings.backoff_base
        self._processor = processor or ResponseProcessor()
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def create(
        cls,
        timeout: float | None = None,
        retries: int | None = None,
    ) -> "RequestExecutor":
        """Factory method to create a RequestExecutor with defaults from settings."""
        return cls(timeout=timeout, retries=retries)

    @property
    def default_timeout(self) -> float:
        return self._timeout

    @property
    def default_retries(self) -> int:
        return self._retries

    def backoff_delay(self, attempt: int) -> float:
        """Delay in seconds after the failed attempt with zero-based index ``attempt``."""
        return (2**attempt) * self._backoff_base

    async def execute(
        self,
        request_factory: RequestFactory,
        options: RequestOptions | None = None,
        description: str = "request",
    ) -> httpx.Response:
        """Execute one logical request.

        Args:
            request_factory: Zero-argument callable producing a fresh request
                             coroutine per attempt
            options: Per-call timeout and retry overrides
            description: Label used in log messages (e.g. "GET /api/v1/course")

        Returns:
            The first successful response

        Raises:
            ApiError: 4xx immediately; 5xx after the retry budget is spent
            NetworkError: Transport failure after the retry budget is spent
            AbortError: An attempt timed out (never retried)
        """
        timeout = options.timeout if options and options.timeout is not None else self._timeout
        retries = options.retries if options and options.retries is not None else self._retries

        def log_attempt(retry_state: RetryCallState) -> None:
            logger.debug("{} attempt {}/{}", description, retry_state.attempt_number, retries + 1)

        def log_retry(retry_state: RetryCallState) -> None:
            cause = retry_state.outcome.result().cause
            delay = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.warning("{} failed ({}), retrying in {:g}s", description, cause, delay)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            wait=wait_exponential(multiplier=self._backoff_base, exp_base=2),
            retry=retry_if_result(lambda outcome: isinstance(outcome, RetryableFailure)),
            sleep=self._sleep,
            before=log_attempt,
            before_sleep=log_retry,
            # Hand back the last outcome instead of wrapping it in RetryError
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )
        outcome = await retrying(self.attempt, request_factory, timeout)

        if isinstance(outcome, Success):
            return outcome.response
        if isinstance(outcome, TerminalFailure):
            logger.error("{} failed terminally: {}", description, outcome.cause)
        else:
            logger.error("{} failed after {} attempts: {}", description, retries + 1, outcome.cause)
        raise outcome.cause

    async def attempt(self, request_factory: RequestFactory, timeout: float) -> RequestOutcome:
        """Run a single attempt bounded by ``timeout`` and classify the result."""
        try:
            response = await asyncio.wait_for(request_factory(), timeout)
        except (TimeoutError, httpx.TimeoutException):
            return TerminalFailure(AbortError(timeout))
        except httpx.TransportError as e:
            return RetryableFailure(NetworkError(f"Network error: {e}", cause=e))
        return self.classify(response)

    def classify(self, response: httpx.Response) -> RequestOutcome:
        """Classify a received response by status code."""
        if response.status_code < 400:
            return Success(response)

        error = self._processor.to_api_error(response)
        if error.is_client_error:
            return TerminalFailure(error)
        return RetryableFailure(error)
