"""
Retry executor: the loop that ties delayers and stoppers together.

State machine per execution:
    1. Running: call the operation
    2. Returned normally            -> Succeeded
    3. Raised StopRetrying          -> Aborted (policies are not consulted)
    4. Raised a retryable error     -> attempts += 1, ask the Stopper
           stop                     -> Exhausted
           keep going               -> ask the Delayer, sleep if > 0, goto 1

Attempts never overlap: the loop is sequential and the only suspension point
is the sleep between attempts. Start time and attempt count live on the
stack of one execution, so a Retrier can be shared freely across threads and
tasks as long as its policies are stateless.

Usage:
    retrier = Retrier(delayer=fixed(timedelta(milliseconds=100)), stopper=max_attempts(3))
    outcome = retrier.execute(fetch)      # never raises for operation errors
    value = retrier.call(fetch)           # returns value or raises
"""

import asyncio
import functools
import inspect
import threading
import time
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

import structlog

from retrykit.config import Settings
from retrykit.monitoring.metrics import (
    retry_attempts_total,
    retry_delay_seconds,
    retry_outcomes_total,
)
from retrykit.retry.delay import ZERO, Delayer
from retrykit.retry.exceptions import StopRetrying
from retrykit.retry.outcome import RetryOutcome, RetryStatus
from retrykit.retry.policy import RetryPolicy
from retrykit.retry.stop import Clock, Stopper, utc_now

logger = structlog.get_logger(__name__)

Operation = Callable[[], Any]
AsyncOperation = Callable[[], Awaitable[Any]]

# Most recent retryable errors kept per execution; older ones are dropped
DEFAULT_MAX_HISTORY = 100

# Longest single sleep the platform timers accept
MAX_SLEEP_SECONDS = threading.TIMEOUT_MAX


class _Execution:
    """Mutable bookkeeping for one run of the loop."""

    def __init__(self, start_time: datetime, max_history: Optional[int]):
        self.start_time = start_time
        self.attempts = 0
        self.errors: deque[BaseException] = deque(maxlen=max_history)

    def failed(self, error: BaseException) -> None:
        self.attempts += 1
        self.errors.append(error)


class Retrier:
    """
    Executes operations under one retry policy.

    While an execution runs, ``operation`` and ``attempt`` are bound in
    structlog's contextvars, so log events emitted by the operation itself
    carry them too.

    Attributes:
        delayer: Wait computation (None: retry immediately)
        stopper: Give-up decision (None: retry until success or abort)
        retry_on: Exception types treated as retryable; anything else propagates
        name: Label used in log events and metrics
        max_history: Retryable errors kept per execution (None keeps all)
    """

    def __init__(
        self,
        delayer: Optional[Delayer] = None,
        stopper: Optional[Stopper] = None,
        *,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        name: str = "operation",
        max_history: Optional[int] = DEFAULT_MAX_HISTORY,
        sleep: Callable[[float], Any] = time.sleep,
        async_sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Clock = utc_now,
        record_metrics: bool = True,
    ):
        """
        Initialize retrier.

        Args:
            delayer: Delay strategy
            stopper: Stop strategy
            retry_on: Retryable exception types
            name: Operation label for logs and metrics
            max_history: Size of the error history window, or None for unbounded
            sleep: Blocking sleep taking seconds (injectable for tests)
            async_sleep: Awaitable sleep taking seconds (injectable for tests)
            clock: Source of timezone-aware "now"
            record_metrics: Whether to update Prometheus metrics

        Raises:
            ValueError: If max_history is below 1
        """
        if max_history is not None and max_history < 1:
            raise ValueError(f"max_history must be at least 1, got {max_history}")

        self.delayer = delayer
        self.stopper = stopper
        self.retry_on = retry_on
        self.name = name
        self.max_history = max_history
        self._sleep = sleep
        self._async_sleep = async_sleep
        self._clock = clock
        self._record_metrics = record_metrics

        if stopper is None:
            logger.debug("Retrier has no stopper, retries are unbounded", operation=name)

    @classmethod
    def from_policy(cls, policy: RetryPolicy, **kwargs: Any) -> "Retrier":
        """Build a retrier from a RetryPolicy pair."""
        return cls(policy.delayer, policy.stopper, **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "Retrier":
        """Build a retrier with the production policy, history size and metrics flag."""
        options = {
            "max_history": settings.RETRY_MAX_HISTORY,
            "record_metrics": settings.METRICS_ENABLED,
            **kwargs,
        }
        return cls.from_policy(RetryPolicy.from_settings(settings), **options)

    # ------------------------------------------------------------------
    # Synchronous execution
    # ------------------------------------------------------------------

    def execute(self, operation: Optional[Operation]) -> RetryOutcome:
        """
        Run ``operation`` until it succeeds, aborts or the policy gives up.

        Args:
            operation: Zero-argument callable. None is a no-op success.

        Returns:
            RetryOutcome describing the terminal state

        Raises:
            BaseException: Any error outside ``retry_on``, unchanged
        """
        if operation is None:
            return RetryOutcome(status=RetryStatus.SUCCEEDED, skipped=True)

        run = _Execution(self._clock(), self.max_history)

        with structlog.contextvars.bound_contextvars(operation=self.name, attempt=1):
            while True:
                try:
                    value = operation()
                except StopRetrying as stop:
                    return self._aborted(run, stop)
                except self.retry_on as error:
                    run.failed(error)
                    wait = self._after_failure(run, error)
                    if wait is None:
                        return self._exhausted(run)
                    if wait > ZERO:
                        self._sleep(min(wait.total_seconds(), MAX_SLEEP_SECONDS))
                    structlog.contextvars.bind_contextvars(attempt=run.attempts + 1)
                    continue

                return self._succeeded(run, value)

    def call(self, operation: Optional[Operation]) -> Any:
        """
        Run ``operation`` and return its value.

        Raises:
            RetryExhausted: Policy gave up; carries the error history
            BaseException: The StopRetrying cause when the operation aborted
        """
        return self.execute(operation).unwrap()

    # ------------------------------------------------------------------
    # Asynchronous execution
    # ------------------------------------------------------------------

    async def execute_async(self, operation: Optional[AsyncOperation]) -> RetryOutcome:
        """
        Async twin of execute(): awaits the operation and sleeps with asyncio.

        Args:
            operation: Zero-argument callable returning an awaitable
        """
        if operation is None:
            return RetryOutcome(status=RetryStatus.SUCCEEDED, skipped=True)

        run = _Execution(self._clock(), self.max_history)

        with structlog.contextvars.bound_contextvars(operation=self.name, attempt=1):
            while True:
                try:
                    value = await operation()
                except StopRetrying as stop:
                    return self._aborted(run, stop)
                except self.retry_on as error:
                    run.failed(error)
                    wait = self._after_failure(run, error)
                    if wait is None:
                        return self._exhausted(run)
                    if wait > ZERO:
                        await self._async_sleep(min(wait.total_seconds(), MAX_SLEEP_SECONDS))
                    structlog.contextvars.bind_contextvars(attempt=run.attempts + 1)
                    continue

                return self._succeeded(run, value)

    async def call_async(self, operation: Optional[AsyncOperation]) -> Any:
        """Async twin of call()."""
        outcome = await self.execute_async(operation)
        return outcome.unwrap()

    # ------------------------------------------------------------------
    # Shared transitions
    # ------------------------------------------------------------------

    def _after_failure(self, run: _Execution, error: BaseException) -> Optional[timedelta]:
        """Consult the policies. Returns None to stop, else the wait."""
        logger.debug(
            "Attempt failed",
            error_type=type(error).__name__,
            error=str(error),
        )
        if self._record_metrics:
            retry_attempts_total.labels(operation=self.name).inc()

        if self.stopper is not None and self.stopper.stop(run.start_time, run.attempts, error):
            return None

        if self.delayer is None:
            return ZERO

        wait = max(self.delayer.delay(run.start_time, run.attempts, error), ZERO)
        if wait > ZERO:
            logger.debug("Waiting before next attempt", delay=wait)
            if self._record_metrics:
                retry_delay_seconds.labels(operation=self.name).observe(wait.total_seconds())
        return wait

    def _outcome(self, run: _Execution, status: RetryStatus, **kwargs: Any) -> RetryOutcome:
        return RetryOutcome(
            status=status,
            attempts=run.attempts,
            errors=tuple(run.errors),
            elapsed=self._clock() - run.start_time,
            **kwargs,
        )

    def _succeeded(self, run: _Execution, value: Any) -> RetryOutcome:
        outcome = self._outcome(run, RetryStatus.SUCCEEDED, value=value)
        if outcome.attempts:
            logger.info("Operation succeeded after retries", attempts=outcome.attempts)
        return self._record(outcome)

    def _aborted(self, run: _Execution, stop: StopRetrying) -> RetryOutcome:
        outcome = self._outcome(run, RetryStatus.ABORTED, stop=stop)
        logger.info(
            "Operation requested stop",
            attempts=outcome.attempts,
            cause_type=type(stop.cause).__name__ if stop.cause else None,
        )
        return self._record(outcome)

    def _exhausted(self, run: _Execution) -> RetryOutcome:
        outcome = self._outcome(run, RetryStatus.EXHAUSTED)
        logger.warning(
            "Retries exhausted",
            attempts=outcome.attempts,
            elapsed=outcome.elapsed,
            final_error_type=type(outcome.last_error).__name__,
        )
        return self._record(outcome)

    def _record(self, outcome: RetryOutcome) -> RetryOutcome:
        if self._record_metrics:
            retry_outcomes_total.labels(operation=self.name, status=outcome.status.value).inc()
        return outcome


def do(
    operation: Optional[Operation],
    delayer: Optional[Delayer] = None,
    stopper: Optional[Stopper] = None,
    **kwargs: Any,
) -> Any:
    """
    One-shot execution: ``Retrier(delayer, stopper, **kwargs).call(operation)``.

    Raises:
        RetryExhausted: Policy gave up
    """
    return Retrier(delayer, stopper, **kwargs).call(operation)


async def do_async(
    operation: Optional[AsyncOperation],
    delayer: Optional[Delayer] = None,
    stopper: Optional[Stopper] = None,
    **kwargs: Any,
) -> Any:
    """Async twin of do()."""
    return await Retrier(delayer, stopper, **kwargs).call_async(operation)


def retrying(
    delayer: Optional[Delayer] = None,
    stopper: Optional[Stopper] = None,
    *,
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator that retries the wrapped function (sync or async).

    Each call of the wrapped function is one execution; its arguments are
    bound into a zero-argument operation.

        @retrying(stopper=max_attempts(3), retry_on=(ConnectionError,))
        def connect(host): ...
    """
    if policy is not None:
        delayer, stopper = policy.delayer, policy.stopper

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        options = {"name": fn.__qualname__, **kwargs}
        retrier = Retrier(delayer, stopper, **options)

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kw: Any) -> Any:
                return await retrier.call_async(lambda: fn(*args, **kw))

            async_wrapper.retrier = retrier  # type: ignore[attr-defined]
            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args: Any, **kw: Any) -> Any:
            return retrier.call(lambda: fn(*args, **kw))

        wrapper.retrier = retrier  # type: ignore[attr-defined]
        return wrapper

    return decorator
