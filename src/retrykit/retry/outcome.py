"""
Terminal outcome of one retry execution.

RetryOutcome is the sum type returned by Retrier.execute(). Exactly one of
three states is reached:

    succeeded  - the operation returned normally
    aborted    - the operation raised StopRetrying
    exhausted  - the Stopper gave up after a retryable failure
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, cast

from retrykit.retry.exceptions import RetryExhausted, StopRetrying


class RetryStatus(str, Enum):
    """Terminal state of the retry state machine."""

    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetryOutcome:
    """
    Complete result of one execution.

    Attributes:
        status: Terminal state
        value: Return value of the operation (succeeded only)
        attempts: Retryable failures observed; never counts success or abort
        errors: The most recent retryable errors, oldest first. The executor
            keeps at most ``max_history`` of them, so ``len(errors)`` may be
            smaller than ``attempts``
        elapsed: Wall-clock time from the first call to termination
        stop: The StopRetrying raised by the operation (aborted only)
        skipped: True when there was no operation to call
    """

    status: RetryStatus
    value: Any = None
    attempts: int = 0
    errors: tuple[BaseException, ...] = field(default_factory=tuple)
    elapsed: timedelta = timedelta(0)
    stop: StopRetrying | None = None
    skipped: bool = False

    def __post_init__(self) -> None:
        """Validate outcome invariants."""
        if len(self.errors) > self.attempts:
            raise ValueError("attempts cannot be fewer than the recorded errors")

        if self.attempts and not self.errors:
            raise ValueError("failed attempts need at least one recorded error")

        if self.status is RetryStatus.EXHAUSTED and not self.errors:
            raise ValueError("an exhausted outcome needs at least one error")

        if (self.status is RetryStatus.ABORTED) != (self.stop is not None):
            raise ValueError("stop is set if and only if the outcome is aborted")

        if self.skipped and (self.status is not RetryStatus.SUCCEEDED or self.attempts):
            raise ValueError("only a clean success can be skipped")

    @property
    def ok(self) -> bool:
        return self.status is RetryStatus.SUCCEEDED

    @property
    def last_error(self) -> BaseException | None:
        return self.errors[-1] if self.errors else None

    @property
    def errors_dropped(self) -> int:
        """Retryable errors that fell out of the bounded history."""
        return self.attempts - len(self.errors)

    @property
    def calls(self) -> int:
        """Number of times the operation was invoked (0 when skipped)."""
        if self.skipped:
            return 0
        if self.status is RetryStatus.EXHAUSTED:
            return self.attempts
        return self.attempts + 1

    def unwrap(self) -> Any:
        """
        Return the value or raise what the outcome describes.

        Raises:
            BaseException: The sentinel's cause (or the sentinel) when aborted
            RetryExhausted: When exhausted, chained from the last error
        """
        if self.status is RetryStatus.SUCCEEDED:
            return self.value

        if self.status is RetryStatus.ABORTED:
            stop = cast(StopRetrying, self.stop)
            if stop.cause is not None:
                raise stop.cause
            raise stop

        raise RetryExhausted(self) from self.last_error
