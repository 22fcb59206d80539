"""
HTTP client that wraps each outbound call as a retried operation.

Uses httpx (sync Client and AsyncClient) for transport. Classification of a
single attempt:

- Transport errors (connect, read, timeouts): retryable
- 5xx and 429 responses: retryable
- Any other non-2xx response: sentinel stop, raised to the caller as the
  original httpx.HTTPStatusError without further attempts

Every call rebuilds the request, so bodies given as content/json/data are
re-sent intact on each attempt.
"""

from types import TracebackType
from typing import Any, Optional

import httpx
import structlog

from retrykit.config import Settings
from retrykit.retry.executor import Retrier
from retrykit.retry.exceptions import StopRetrying
from retrykit.retry.policy import RetryPolicy
from retrykit.retry.stop import max_attempts

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (httpx.TransportError, httpx.HTTPStatusError)


def is_retryable_status(status_code: int) -> bool:
    """True for responses worth another attempt (server errors, rate limits)."""
    return status_code >= 500 or status_code == 429


def check_response(response: httpx.Response) -> httpx.Response:
    """
    Classify one response for the retry loop.

    Returns:
        The response when it is successful

    Raises:
        httpx.HTTPStatusError: Retryable status
        StopRetrying: Permanent failure, wrapping the HTTPStatusError
    """
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        if is_retryable_status(response.status_code):
            raise
        logger.info(
            "Non-retryable HTTP status",
            method=response.request.method,
            url=str(response.request.url),
            status_code=response.status_code,
        )
        raise StopRetrying(f"HTTP {response.status_code}", cause=e) from e
    return response


def _retrier_for(policy: RetryPolicy, **kwargs: Any) -> Retrier:
    kwargs.setdefault("name", "http")
    return Retrier.from_policy(policy, retry_on=RETRYABLE_ERRORS, **kwargs)


class RetryingClient:
    """
    Synchronous HTTP client with retries.

    Attributes:
        retrier: Executor applied to every request
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        headers: Optional[dict[str, str]] = None,
        policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.BaseTransport] = None,
        **retrier_kwargs: Any,
    ):
        """
        Initialize client.

        Args:
            base_url: Prefix resolved against relative request URLs
            timeout: Per-attempt timeout in seconds (<= 0 uses the default)
            headers: Headers sent with every request
            policy: Retry policy; None performs exactly one attempt per call
            transport: httpx transport override (tests, proxies)
            **retrier_kwargs: Extra Retrier options (sleep, clock, name, ...)
        """
        if timeout <= 0:
            timeout = DEFAULT_TIMEOUT_SECONDS
        if policy is None:
            policy = RetryPolicy(stopper=max_attempts(1))

        self.retrier = _retrier_for(policy, **retrier_kwargs)
        self._client = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
            follow_redirects=True,
        )

        logger.debug("HTTP client initialized", base_url=base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "RetryingClient":
        """Build a client from HTTP_* and RETRY_* settings."""
        options = {
            "max_history": settings.RETRY_MAX_HISTORY,
            "record_metrics": settings.METRICS_ENABLED,
            **kwargs,
        }
        return cls(
            base_url=settings.HTTP_BASE_URL or "",
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            policy=RetryPolicy.from_settings(settings),
            **options,
        )

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, retrying transient failures.

        Raises:
            httpx.HTTPStatusError: Non-retryable status
            RetryExhausted: Retryable failures outlasted the policy
        """

        def attempt() -> httpx.Response:
            return check_response(self._client.request(method, url, **kwargs))

        return self.retrier.call(attempt)

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", url, **kwargs)

    def json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body."""
        return self.request(method, url, **kwargs).json()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RetryingClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()


class AsyncRetryingClient:
    """Asynchronous twin of RetryingClient built on httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str = "",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        headers: Optional[dict[str, str]] = None,
        policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **retrier_kwargs: Any,
    ):
        if timeout <= 0:
            timeout = DEFAULT_TIMEOUT_SECONDS
        if policy is None:
            policy = RetryPolicy(stopper=max_attempts(1))

        self.retrier = _retrier_for(policy, **retrier_kwargs)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
            follow_redirects=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "AsyncRetryingClient":
        options = {
            "max_history": settings.RETRY_MAX_HISTORY,
            "record_metrics": settings.METRICS_ENABLED,
            **kwargs,
        }
        return cls(
            base_url=settings.HTTP_BASE_URL or "",
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            policy=RetryPolicy.from_settings(settings),
            **options,
        )

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        async def attempt() -> httpx.Response:
            return check_response(await self._client.request(method, url, **kwargs))

        return await self.retrier.call_async(attempt)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self.request(method, url, **kwargs)
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncRetryingClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()
