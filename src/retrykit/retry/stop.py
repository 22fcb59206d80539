"""
Stop strategies for the retry loop.

A Stopper is consulted after every retryable failure and decides whether the
executor should give up. Like delayers, stoppers are stateless and reentrant.

Strategies:
    - MaxAttemptsStopper: attempts >= max_attempts
    - TimeoutStopper: now > start_time + timeout
    - DeadlineStopper: now > deadline
    - AnyStopper / AllStopper: logical OR / AND, short-circuiting
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Wall-clock now, timezone-aware (UTC)."""
    return datetime.now(timezone.utc)


class Stopper(Protocol):
    """
    Protocol for stop strategies.

    Implementations must be side-effect free and safe to call concurrently.
    """

    def stop(
        self, start_time: datetime, attempts: int, error: BaseException | None
    ) -> bool:
        """
        Decide whether to abandon retries.

        Args:
            start_time: When the first attempt was made (UTC)
            attempts: Number of failed attempts so far (>= 1)
            error: The error raised by the last attempt

        Returns:
            True to stop, False to keep retrying
        """
        ...


@dataclass(frozen=True)
class MaxAttemptsStopper:
    """Stops once ``attempts >= max_attempts``."""

    max_attempts: int

    def stop(self, start_time: datetime, attempts: int, error: BaseException | None) -> bool:
        return attempts >= self.max_attempts


@dataclass(frozen=True)
class TimeoutStopper:
    """Stops once more than ``timeout`` has elapsed since ``start_time``."""

    timeout: timedelta
    clock: Clock = field(default=utc_now, repr=False, compare=False)

    def stop(self, start_time: datetime, attempts: int, error: BaseException | None) -> bool:
        return self.clock() - start_time > self.timeout


@dataclass(frozen=True)
class DeadlineStopper:
    """
    Stops once the wall clock is past an absolute ``deadline``.

    Naive deadlines are interpreted as local time.
    """

    deadline: datetime
    clock: Clock = field(default=utc_now, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.deadline.tzinfo is None:
            object.__setattr__(self, "deadline", self.deadline.astimezone())

    def stop(self, start_time: datetime, attempts: int, error: BaseException | None) -> bool:
        return self.clock() > self.deadline


@dataclass(frozen=True)
class AnyStopper:
    """True if any member stopper is true."""

    stoppers: tuple[Stopper, ...]

    def stop(self, start_time: datetime, attempts: int, error: BaseException | None) -> bool:
        return any(s.stop(start_time, attempts, error) for s in self.stoppers)


@dataclass(frozen=True)
class AllStopper:
    """True only if every member stopper is true."""

    stoppers: tuple[Stopper, ...]

    def stop(self, start_time: datetime, attempts: int, error: BaseException | None) -> bool:
        return all(s.stop(start_time, attempts, error) for s in self.stoppers)


def max_attempts(n: int) -> Stopper:
    """Stop after ``n`` failed attempts."""
    return MaxAttemptsStopper(n)


def timeout(d: timedelta, clock: Clock = utc_now) -> Stopper:
    """Stop once ``d`` has elapsed since the first attempt."""
    return TimeoutStopper(d, clock)


def deadline(t: datetime, clock: Clock = utc_now) -> Stopper:
    """Stop once the absolute time ``t`` has passed."""
    return DeadlineStopper(t, clock)


def any_of(*stoppers: Stopper | None) -> Stopper | None:
    """
    Logical OR of the given stoppers.

    Absent members are dropped; if nothing is left the result is None.
    """
    present = tuple(s for s in stoppers if s is not None)
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return AnyStopper(present)


def all_of(*stoppers: Stopper | None) -> Stopper | None:
    """
    Logical AND of the given stoppers.

    Absent members are dropped; if nothing is left the result is None
    (an empty AND would otherwise stop on the very first failure).
    """
    present = tuple(s for s in stoppers if s is not None)
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return AllStopper(present)
