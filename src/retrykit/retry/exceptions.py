"""
Retry engine exceptions.

This module defines the two exceptions that shape the executor contract:

- StopRetrying: raised by an operation to abort the loop on purpose. It is
  never counted as a failed attempt and never shown to the policies.
- RetryExhausted: raised by the raising entry points once the Stopper gives
  up. It carries the ordered error history, bounded by the executor's
  max_history setting.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from retrykit.retry.outcome import RetryOutcome


class StopRetrying(Exception):
    """
    Sentinel stop raised from inside an operation.

    Signals "do not retry" rather than "this attempt failed". Wrap the
    underlying error as ``cause`` so the caller receives it unchanged:

        try:
            ...
        except PermissionError as e:
            raise StopRetrying(cause=e) from e

    Attributes:
        cause: The error that motivated the stop, if any
    """

    def __init__(self, message: str = "stop retries", cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class RetryExhausted(Exception):
    """
    Raised when the Stopper declares no more attempts.

    Attributes:
        outcome: Terminal RetryOutcome (status == exhausted)
        errors: The retained retryable errors, oldest first
        last_error: Most recent retryable error
        attempts: Number of failed attempts
        details: Structured data for logging
    """

    def __init__(self, outcome: "RetryOutcome") -> None:
        self.outcome = outcome
        self.errors = outcome.errors
        self.last_error = outcome.last_error
        self.attempts = outcome.attempts
        self.details: dict[str, Any] = {
            "attempts": outcome.attempts,
            "elapsed_ms": int(outcome.elapsed.total_seconds() * 1000),
            "error_types": [type(e).__name__ for e in outcome.errors],
            "errors_dropped": outcome.errors_dropped,
        }

        super().__init__(
            f"Retries exhausted after {outcome.attempts} attempts. "
            f"Final error: {type(self.last_error).__name__}: {self.last_error}"
        )
