"""
Delay strategies for the retry loop.

A Delayer answers one question after every failed attempt: how long should
the executor wait before calling the operation again? Delayers are pure
functions of (start_time, attempts, error), hold no mutable state and can be
shared by any number of concurrent executions.

Leaf strategies:
    - FixedDelayer: Always the same duration
    - LinearDelayer: step * attempts
    - ExponentialBackoffDelayer: coefficient * 2^attempts (overflow-capped)
    - RandomDelayer: Minimum delay plus uniform jitter

Combinators:
    - LimitDelayer: Caps an inner delayer
    - CombinedDelayer: Reduces several delayers (min, max, sum)

The factory functions (fixed, linear, exponential_backoff, ...) follow the
"absent policy" convention: invalid input returns None instead of raising,
and None is treated by the executor as "no extra wait".
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Protocol, Sequence

# timedelta.max is just above 2^66 microseconds. Keeping the product of the
# coefficient and the power of two strictly below 2^66 keeps it representable.
MAX_EXP = (timedelta.max // timedelta.resolution).bit_length() - 2

ZERO = timedelta(0)


class Delayer(Protocol):
    """
    Protocol for delay strategies.

    Implementations must be side-effect free and safe to call concurrently.
    """

    def delay(
        self, start_time: datetime, attempts: int, error: BaseException | None
    ) -> timedelta:
        """
        Compute the wait before the next attempt.

        Args:
            start_time: When the first attempt was made (UTC)
            attempts: Number of failed attempts so far (>= 1)
            error: The error raised by the last attempt

        Returns:
            Wait duration. Values <= 0 mean "retry immediately".
        """
        ...


def _saturating_add(a: timedelta, b: timedelta) -> timedelta:
    try:
        return a + b
    except OverflowError:
        return timedelta.max if b > ZERO else timedelta.min


@dataclass(frozen=True)
class FixedDelayer:
    """Always waits the same duration."""

    duration: timedelta

    def delay(self, start_time: datetime, attempts: int, error: BaseException | None) -> timedelta:
        return self.duration


@dataclass(frozen=True)
class LinearDelayer:
    """Waits ``step * attempts``."""

    step: timedelta

    def delay(self, start_time: datetime, attempts: int, error: BaseException | None) -> timedelta:
        try:
            return self.step * attempts
        except OverflowError:
            return timedelta.max if self.step > ZERO else timedelta.min


@dataclass(frozen=True)
class ExponentialBackoffDelayer:
    """
    Waits ``coefficient * 2^attempts``.

    The exponent is capped at MAX_EXP minus floor(log2(coefficient)) so the
    result never exceeds timedelta.max, whatever the attempt count. Past the
    cap the delay stays flat.

    Raises:
        ValueError: If coefficient is below one microsecond
    """

    coefficient: timedelta
    max_exponent: int = field(init=False, repr=False)
    _coefficient_us: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        coefficient_us = self.coefficient // timedelta.resolution
        if coefficient_us <= 0:
            raise ValueError(f"coefficient must be positive, got {self.coefficient!r}")

        # floor(log2(n)) for a positive int
        cap = MAX_EXP - (coefficient_us.bit_length() - 1)
        object.__setattr__(self, "max_exponent", max(cap, 0))
        object.__setattr__(self, "_coefficient_us", coefficient_us)

    def delay(self, start_time: datetime, attempts: int, error: BaseException | None) -> timedelta:
        exponent = min(max(attempts, 0), self.max_exponent)
        return timedelta(microseconds=self._coefficient_us << exponent)


@dataclass(frozen=True)
class RandomDelayer:
    """
    Waits ``max(min_delay, 0) + uniform[0, max_jitter)``.

    Each instance owns its own random source so executions sharing one
    delayer do not contend on the module-level generator, and separately
    created delayers do not produce correlated sequences.
    """

    min_delay: timedelta
    max_jitter: timedelta
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    def delay(self, start_time: datetime, attempts: int, error: BaseException | None) -> timedelta:
        base = max(self.min_delay, ZERO)
        jitter_us = self.max_jitter // timedelta.resolution
        if jitter_us <= 0:
            return base
        return _saturating_add(base, timedelta(microseconds=self.rng.randrange(jitter_us)))


@dataclass(frozen=True)
class LimitDelayer:
    """Caps the inner delayer at ``cap``."""

    inner: Delayer
    cap: timedelta

    def delay(self, start_time: datetime, attempts: int, error: BaseException | None) -> timedelta:
        return min(self.inner.delay(start_time, attempts, error), self.cap)


@dataclass(frozen=True)
class CombinedDelayer:
    """
    Evaluates every delayer and reduces the results with ``reducer``.

    Absent (None) members contribute a zero duration.
    """

    reducer: Callable[[Sequence[timedelta]], timedelta]
    delayers: tuple[Delayer | None, ...]

    def delay(self, start_time: datetime, attempts: int, error: BaseException | None) -> timedelta:
        durations = [
            d.delay(start_time, attempts, error) if d is not None else ZERO
            for d in self.delayers
        ]
        return self.reducer(durations)


def _sum(durations: Sequence[timedelta]) -> timedelta:
    total = ZERO
    for d in durations:
        total = _saturating_add(total, d)
    return total


def fixed(duration: timedelta) -> Delayer:
    """Delayer that always returns ``duration``."""
    return FixedDelayer(duration)


def linear(step: timedelta) -> Delayer:
    """Delayer that returns ``step * attempts``."""
    return LinearDelayer(step)


def exponential_backoff(coefficient: timedelta) -> Delayer | None:
    """Exponential backoff delayer, or None if ``coefficient`` is not positive."""
    if coefficient // timedelta.resolution <= 0:
        return None
    return ExponentialBackoffDelayer(coefficient)


def jittered(
    min_delay: timedelta, max_jitter: timedelta, rng: random.Random | None = None
) -> Delayer:
    """Randomized delayer with its own random source (seedable through ``rng``)."""
    if rng is None:
        return RandomDelayer(min_delay, max_jitter)
    return RandomDelayer(min_delay, max_jitter, rng)


def limit(inner: Delayer | None, cap: timedelta) -> Delayer | None:
    """Caps ``inner`` at ``cap``. An absent inner delayer stays absent."""
    if inner is None:
        return None
    return LimitDelayer(inner, cap)


def combine(
    reducer: Callable[[Sequence[timedelta]], timedelta], *delayers: Delayer | None
) -> Delayer | None:
    """Generic combinator. No delayers at all yields None."""
    if not delayers:
        return None
    return CombinedDelayer(reducer, tuple(delayers))


def min_delay(*delayers: Delayer | None) -> Delayer | None:
    """Smallest delay of the set (absent members count as zero)."""
    return combine(min, *delayers)


def max_delay(*delayers: Delayer | None) -> Delayer | None:
    """Largest delay of the set (absent members count as zero)."""
    return combine(max, *delayers)


def sum_delay(*delayers: Delayer | None) -> Delayer | None:
    """Sum of all delays, saturating at timedelta.max."""
    return combine(_sum, *delayers)
