"""
Retry policy: the (delayer, stopper) pair handed to the executor.

Both members are optional. A missing stopper means "never stop because of
policy"; a missing delayer means "retry immediately".
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from retrykit.config import Settings
from retrykit.retry import delay as delays
from retrykit.retry import stop as stops
from retrykit.retry.delay import Delayer
from retrykit.retry.stop import Stopper


def _saturating(**kwargs: float) -> timedelta:
    """timedelta(**kwargs), clamped to timedelta.max for out-of-range settings."""
    try:
        return timedelta(**kwargs)
    except OverflowError:
        return timedelta.max


@dataclass(frozen=True)
class RetryPolicy:
    """
    Immutable pair of policies for one or many executions.

    Attributes:
        delayer: Wait computation, or None for no wait
        stopper: Give-up decision, or None to retry until success or abort
    """

    delayer: Optional[Delayer] = None
    stopper: Optional[Stopper] = None

    @property
    def bounded(self) -> bool:
        """False when nothing but success or an abort can end the loop."""
        return self.stopper is not None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        """
        Build the standard production policy from settings.

        delayer = limit(sum(exponential_backoff(RETRY_BACKOFF_MS),
                            jittered(0, RETRY_JITTER_MS)), RETRY_MAX_DELAY_MS)
        stopper = any_of(max_attempts(RETRY_MAX_ATTEMPTS),
                         timeout(RETRY_TIMEOUT_SECONDS))
        """
        backoff = delays.exponential_backoff(_saturating(milliseconds=settings.RETRY_BACKOFF_MS))
        jitter = None
        if settings.RETRY_JITTER_MS > 0:
            jitter = delays.jittered(timedelta(0), _saturating(milliseconds=settings.RETRY_JITTER_MS))

        delayer = None
        if backoff is not None or jitter is not None:
            delayer = delays.limit(
                delays.sum_delay(backoff, jitter),
                _saturating(milliseconds=settings.RETRY_MAX_DELAY_MS),
            )

        overall = None
        if settings.RETRY_TIMEOUT_SECONDS is not None:
            overall = stops.timeout(_saturating(seconds=settings.RETRY_TIMEOUT_SECONDS))

        return cls(
            delayer=delayer,
            stopper=stops.any_of(stops.max_attempts(settings.RETRY_MAX_ATTEMPTS), overall),
        )
