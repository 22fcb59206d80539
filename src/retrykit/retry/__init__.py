"""
Retry engine: pluggable delay and stop policies driven by a sequential loop.

Main Components:
    - Retrier: Executes an operation under a (delayer, stopper) pair
    - Delayer strategies: fixed, linear, exponential_backoff, jittered,
      limit, min_delay, max_delay, sum_delay
    - Stopper strategies: max_attempts, timeout, deadline, any_of, all_of
    - RetryOutcome: Terminal state (succeeded, aborted, exhausted)
    - StopRetrying: Raised by an operation to stop without retrying
    - RetryExhausted: Raised when the stopper gives up

Usage:
    >>> from datetime import timedelta
    >>> from retrykit.retry import Retrier, exponential_backoff, max_attempts
    >>> retrier = Retrier(exponential_backoff(timedelta(milliseconds=10)), max_attempts(5))
    >>> value = retrier.call(fetch)
"""

from retrykit.retry.delay import (
    CombinedDelayer,
    Delayer,
    ExponentialBackoffDelayer,
    FixedDelayer,
    LimitDelayer,
    LinearDelayer,
    RandomDelayer,
    combine,
    exponential_backoff,
    fixed,
    jittered,
    limit,
    linear,
    max_delay,
    min_delay,
    sum_delay,
)
from retrykit.retry.exceptions import RetryExhausted, StopRetrying
from retrykit.retry.executor import Retrier, do, do_async, retrying
from retrykit.retry.outcome import RetryOutcome, RetryStatus
from retrykit.retry.policy import RetryPolicy
from retrykit.retry.stop import (
    AllStopper,
    AnyStopper,
    DeadlineStopper,
    MaxAttemptsStopper,
    Stopper,
    TimeoutStopper,
    all_of,
    any_of,
    deadline,
    max_attempts,
    timeout,
)

__all__ = [
    "Retrier",
    "do",
    "do_async",
    "retrying",
    "RetryPolicy",
    "RetryOutcome",
    "RetryStatus",
    "RetryExhausted",
    "StopRetrying",
    "Delayer",
    "FixedDelayer",
    "LinearDelayer",
    "ExponentialBackoffDelayer",
    "RandomDelayer",
    "LimitDelayer",
    "CombinedDelayer",
    "fixed",
    "linear",
    "exponential_backoff",
    "jittered",
    "limit",
    "combine",
    "min_delay",
    "max_delay",
    "sum_delay",
    "Stopper",
    "MaxAttemptsStopper",
    "TimeoutStopper",
    "DeadlineStopper",
    "AnyStopper",
    "AllStopper",
    "max_attempts",
    "timeout",
    "deadline",
    "any_of",
    "all_of",
]
